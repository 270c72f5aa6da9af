"""Typed models shared across the application."""

from .api import ErrorResponse, ScriptResponse
from .document import ExtractedText, StagedDocument, UploadCandidate
from .script import GenerationRequest, GenerationResult, Script, ScriptStyle

__all__ = [
    "ErrorResponse",
    "ExtractedText",
    "GenerationRequest",
    "GenerationResult",
    "Script",
    "ScriptResponse",
    "ScriptStyle",
    "StagedDocument",
    "UploadCandidate",
]
