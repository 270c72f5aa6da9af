"""Document-level data models for the upload → staging → extraction path."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class UploadCandidate(BaseModel):
    """A file as received from the client, before any checks have run."""

    data: Optional[bytes] = None
    content_type: Optional[str] = None
    filename: Optional[str] = None
    size: int = 0

    @classmethod
    def from_bytes(
        cls,
        data: Optional[bytes],
        content_type: Optional[str],
        filename: Optional[str],
    ) -> "UploadCandidate":
        return cls(
            data=data,
            content_type=content_type,
            filename=filename,
            size=len(data) if data else 0,
        )

    @property
    def extension(self) -> Optional[str]:
        if not self.filename or "." not in self.filename:
            return None
        return self.filename.rsplit(".", 1)[-1].lower() or None


class StagedDocument(BaseModel):
    """Reference to the uploaded bytes held in object storage."""

    locator: str
    public_id: str
    format: Optional[str] = None
    size_bytes: Optional[int] = None


class ExtractedText(BaseModel):
    """Plain text recovered from a staged document."""

    locator: str
    text: str
    page_count: int
