"""Error taxonomy shared by the pipeline stages and the HTTP layer.

Every failure the service can surface belongs to one ``ErrorKind``. Each
exception class carries its kind, the HTTP status it maps to and a message
that is safe to show a client. The pipeline stamps ``stage`` on the exception
that aborted a run so callers can tell which step failed.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    STAGING = "staging_error"
    FETCH = "fetch_error"
    PARSE = "parse_error"
    GENERATION = "generation_error"
    GENERATION_THROTTLED = "generation_throttled"
    PERSISTENCE = "persistence_error"
    NOT_FOUND = "not_found"
    RATE_LIMITED = "rate_limited"
    INTERNAL = "internal_error"


class ConfigurationError(RuntimeError):
    """Raised at startup when required settings are missing."""


class ScriptForgeError(Exception):
    """Base class for every error the service reports to clients."""

    kind: ErrorKind = ErrorKind.INTERNAL
    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message
        self.stage: Optional[str] = None

    @property
    def client_message(self) -> str:
        return self.public_message


class ValidationError(ScriptForgeError):
    """Bad or missing input. The message names the violation."""

    kind = ErrorKind.VALIDATION
    status_code = 400
    public_message = "Invalid request"

    @property
    def client_message(self) -> str:
        return self.message


class MissingFile(ValidationError):
    public_message = "No file uploaded"


class UnsupportedType(ValidationError):
    public_message = "Invalid file type. Only pdf files are allowed."


class UnsupportedFormat(ValidationError):
    public_message = "Invalid file format."


class FileTooLarge(ValidationError):
    public_message = "File size too large."


class InvalidParameter(ValidationError):
    public_message = "Invalid generation parameter."


class StagingError(ScriptForgeError):
    kind = ErrorKind.STAGING
    status_code = 502
    public_message = "Failed to store the uploaded document"


class ExtractionError(ScriptForgeError):
    """Base for failures while recovering text from a staged document."""


class FetchError(ExtractionError):
    kind = ErrorKind.FETCH
    status_code = 502
    public_message = "Failed to fetch the stored document"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        # HTTP status returned by the storage host, None for transport failures.
        self.transport_status = status_code


class ParseError(ExtractionError):
    kind = ErrorKind.PARSE
    status_code = 422
    public_message = "The uploaded document could not be read as a PDF"


class GenerationError(ScriptForgeError):
    kind = ErrorKind.GENERATION
    status_code = 502
    public_message = "Script generation failed"


class GenerationRateLimited(GenerationError):
    kind = ErrorKind.GENERATION_THROTTLED
    status_code = 503
    public_message = "Script generation is temporarily throttled. Please try again later."


class PersistenceError(ScriptForgeError):
    kind = ErrorKind.PERSISTENCE
    status_code = 503
    public_message = "Script storage is unavailable"


class NotFound(ScriptForgeError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404
    public_message = "Script not found"

    @property
    def client_message(self) -> str:
        return self.message
