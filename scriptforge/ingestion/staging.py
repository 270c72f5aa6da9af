"""Upload validated documents to Cloudinary and hand back a locator."""

from __future__ import annotations

import logging
import secrets
import time
from typing import Any, Callable, Dict, Optional, Sequence

import cloudinary.uploader
from cloudinary.exceptions import Error as CloudinaryError

from scriptforge.config import Settings
from scriptforge.errors import StagingError
from scriptforge.ingestion.validation import PDF_EXTENSIONS
from scriptforge.models.document import StagedDocument, UploadCandidate

logger = logging.getLogger(__name__)

Uploader = Callable[..., Dict[str, Any]]


def unique_suffix() -> str:
    """Millisecond timestamp plus a random component."""
    return f"{int(time.time() * 1000)}-{secrets.randbelow(10**9)}"


class CloudinaryStager:
    """Stores upload bytes under ``{namespace}/{category}/{prefix}-{suffix}``."""

    def __init__(
        self,
        cloud_name: str,
        api_key: str,
        api_secret: str,
        folder: str,
        prefix: str = "pdf",
        resource_type: str = "image",
        allowed_formats: Sequence[str] = PDF_EXTENSIONS,
        timeout: Optional[float] = None,
        uploader: Optional[Uploader] = None,
    ) -> None:
        self.credentials = {
            "cloud_name": cloud_name,
            "api_key": api_key,
            "api_secret": api_secret,
        }
        self.folder = folder
        self.prefix = prefix
        self.resource_type = resource_type
        self.allowed_formats = list(allowed_formats)
        self.timeout = timeout
        self.uploader = uploader or cloudinary.uploader.upload

    @classmethod
    def from_settings(cls, settings: Settings, uploader: Optional[Uploader] = None) -> "CloudinaryStager":
        return cls(
            cloud_name=settings.cloudinary_name or "",
            api_key=settings.cloudinary_api_key or "",
            api_secret=settings.cloudinary_api_secret or "",
            folder=settings.upload_folder,
            prefix=settings.upload_prefix,
            resource_type=settings.cloudinary_resource_type,
            timeout=settings.staging_timeout_seconds,
            uploader=uploader,
        )

    def stage(self, candidate: UploadCandidate) -> StagedDocument:
        public_id = f"{self.prefix}-{unique_suffix()}"
        options: Dict[str, Any] = {
            "folder": self.folder,
            "public_id": public_id,
            "resource_type": self.resource_type,
            "allowed_formats": self.allowed_formats,
            "filename": candidate.filename,
            **self.credentials,
        }
        if self.timeout:
            options["timeout"] = self.timeout

        try:
            result = self.uploader(candidate.data, **options)
        except (CloudinaryError, OSError) as exc:
            logger.error("Upload of %s to %s failed: %s", candidate.filename, self.folder, exc)
            raise StagingError(f"Object storage upload failed: {exc}") from exc

        locator = result.get("secure_url") or result.get("url")
        if not locator:
            raise StagingError("Object storage did not return a locator for the upload")

        logger.info("Staged %s as %s", candidate.filename, result.get("public_id", public_id))
        return StagedDocument(
            locator=locator,
            public_id=result.get("public_id", f"{self.folder}/{public_id}"),
            format=result.get("format"),
            size_bytes=result.get("bytes"),
        )
