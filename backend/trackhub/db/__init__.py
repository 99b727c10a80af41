"""Database package."""

from trackhub.db.base import Base, BaseModel, JSONType, new_id, utcnow
from trackhub.db.session import close_db, create_engine, create_session_factory, init_db

__all__ = [
    "Base",
    "BaseModel",
    "JSONType",
    "new_id",
    "utcnow",
    "close_db",
    "create_engine",
    "create_session_factory",
    "init_db",
]
