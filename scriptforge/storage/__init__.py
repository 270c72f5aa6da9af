"""Script persistence."""

from .database import Base, ScriptRecord, create_db_engine, create_session_factory, init_db
from .repository import ScriptRepository

__all__ = [
    "Base",
    "ScriptRecord",
    "ScriptRepository",
    "create_db_engine",
    "create_session_factory",
    "init_db",
]
