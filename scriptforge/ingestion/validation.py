"""Checks an uploaded file before anything is sent to storage."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from scriptforge.errors import FileTooLarge, MissingFile, UnsupportedFormat, UnsupportedType
from scriptforge.models.document import UploadCandidate

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
PDF_EXTENSIONS = ("pdf",)


def format_megabytes(num_bytes: int) -> str:
    megabytes = num_bytes / (1024 * 1024)
    if megabytes.is_integer():
        return f"{int(megabytes)}MB"
    return f"{megabytes:.1f}MB"


class UploadValidator:
    """Presence, content type, extension and size checks, in that order."""

    def __init__(
        self,
        max_bytes: int,
        accepted_content_type: str = PDF_CONTENT_TYPE,
        accepted_extensions: Sequence[str] = PDF_EXTENSIONS,
    ) -> None:
        if max_bytes <= 0:
            raise ValueError("max_bytes must be positive")
        self.max_bytes = max_bytes
        self.accepted_content_type = accepted_content_type
        self.accepted_extensions = tuple(ext.lower() for ext in accepted_extensions)

    def validate(self, candidate: Optional[UploadCandidate]) -> None:
        if candidate is None or not candidate.data or candidate.size <= 0:
            raise MissingFile("No file uploaded")

        content_type = (candidate.content_type or "").lower()
        if not content_type.startswith(self.accepted_content_type):
            logger.debug("Rejected %s: content type %r", candidate.filename, candidate.content_type)
            raise UnsupportedType(
                f"Invalid file type. Only {', '.join(self.accepted_extensions)} files are allowed."
            )

        extension = candidate.extension
        if extension not in self.accepted_extensions:
            logger.debug("Rejected %s: extension %r", candidate.filename, extension)
            raise UnsupportedFormat(
                f"Invalid file format. Allowed formats: {', '.join(self.accepted_extensions)}. "
                f"Received: {extension or 'unknown'}"
            )

        if candidate.size > self.max_bytes:
            logger.debug("Rejected %s: %s bytes", candidate.filename, candidate.size)
            raise FileTooLarge(
                f"File size too large. Maximum size is {format_megabytes(self.max_bytes)}"
            )
