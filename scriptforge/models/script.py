"""Generation and persisted script models."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

DEFAULT_TONE = "casual and engaging"
DEFAULT_LENGTH_MINUTES = "2"


class ScriptStyle(BaseModel):
    """Narration style parameters supplied alongside an upload."""

    tone: str = DEFAULT_TONE
    target_length_minutes: str = DEFAULT_LENGTH_MINUTES

    @field_validator("tone", mode="before")
    @classmethod
    def _default_blank_tone(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_TONE
        return value.strip() if isinstance(value, str) else value

    @field_validator("target_length_minutes", mode="before")
    @classmethod
    def _normalize_length(cls, value: Any) -> str:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_LENGTH_MINUTES
        if isinstance(value, bool):
            raise ValueError("target length must be a positive integer")
        if isinstance(value, int):
            minutes = value
        elif isinstance(value, str) and value.strip().isdigit():
            minutes = int(value.strip())
        else:
            raise ValueError("target length must be a positive integer")
        if minutes <= 0:
            raise ValueError("target length must be a positive integer")
        return str(minutes)


class GenerationRequest(ScriptStyle):
    """Inputs for one script generation."""

    extracted_text: str


class GenerationResult(BaseModel):
    """Text returned by the generation model."""

    content: str
    model_metadata: Optional[Dict[str, Any]] = None


class Script(BaseModel):
    """A persisted narration script."""

    id: str
    pdf_file_path: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    created_at: datetime
    updated_at: datetime
