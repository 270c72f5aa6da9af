"""Request/response models for the public API."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .script import Script


class ScriptResponse(BaseModel):
    """Script as returned to clients (camelCase, with a legacy ``_id``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    legacy_id: str = Field(..., alias="_id")
    pdf_file_path: str
    content: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_script(cls, script: Script) -> "ScriptResponse":
        return cls(
            id=script.id,
            legacy_id=script.id,
            pdf_file_path=script.pdf_file_path,
            content=script.content,
            created_at=script.created_at,
            updated_at=script.updated_at,
        )


class ErrorResponse(BaseModel):
    """Stable error envelope."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status_code: int
    timestamp: Optional[str] = None
    path: Optional[str] = None
    message: str
