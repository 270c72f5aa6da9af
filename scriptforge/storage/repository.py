"""Persistence of generated scripts: create, list, get and delete."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from scriptforge.errors import NotFound, PersistenceError, ValidationError
from scriptforge.models.script import Script
from scriptforge.storage.database import ScriptRecord

logger = logging.getLogger(__name__)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_script(record: ScriptRecord) -> Script:
    return Script(
        id=record.id,
        pdf_file_path=record.pdf_file_path,
        content=record.content,
        created_at=_as_utc(record.created_at),
        updated_at=_as_utc(record.updated_at),
    )


def _parse_id(script_id: object) -> str:
    try:
        return str(uuid.UUID(str(script_id)))
    except (TypeError, ValueError) as exc:
        raise NotFound(f"Script {script_id} not found") from exc


class ScriptRepository:
    """One short-lived session per operation; each write is one transaction."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self.session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Script store operation failed: %s", exc)
            raise PersistenceError(f"Script store operation failed: {exc}") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create(self, pdf_file_path: str, content: str) -> Script:
        if not pdf_file_path or not pdf_file_path.strip():
            raise ValidationError("pdfFilePath must not be empty")
        if not content or not content.strip():
            raise ValidationError("content must not be empty")

        now = datetime.now(timezone.utc)
        record = ScriptRecord(
            id=str(uuid.uuid4()),
            pdf_file_path=pdf_file_path,
            content=content,
            created_at=now,
            updated_at=now,
        )
        with self._session() as session:
            session.add(record)
        logger.info("Created script %s for %s", record.id, pdf_file_path)
        return Script(
            id=record.id,
            pdf_file_path=pdf_file_path,
            content=content,
            created_at=now,
            updated_at=now,
        )

    def list(self) -> List[Script]:
        with self._session() as session:
            records = session.scalars(
                select(ScriptRecord).order_by(ScriptRecord.created_at, ScriptRecord.id)
            ).all()
            return [_to_script(record) for record in records]

    def get(self, script_id: str) -> Script:
        key = _parse_id(script_id)
        with self._session() as session:
            record = session.get(ScriptRecord, key)
            if record is None:
                raise NotFound(f"Script {script_id} not found")
            return _to_script(record)

    def delete(self, script_id: str) -> Script:
        key = _parse_id(script_id)
        with self._session() as session:
            record = session.get(ScriptRecord, key)
            if record is None:
                raise NotFound(f"Script {script_id} not found")
            script = _to_script(record)
            session.delete(record)
        logger.info("Deleted script %s", key)
        return script
