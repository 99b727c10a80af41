"""SQLAlchemy Base class and common model mixins."""

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from sqlalchemy import JSON, DateTime, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

# Embedded lists (members, tag ids, mentions) live in JSON columns.
# PostgreSQL gets JSONB, everything else the generic JSON type.
JSONType = JSON().with_variant(JSONB(), "postgresql")


def new_id() -> str:
    """Generate a new document identifier."""
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    # Automatically generate __tablename__ from class name
    @declared_attr.directive
    def __tablename__(cls) -> str:
        """Generate table name from class name (CamelCase to snake_case)."""
        name = cls.__name__
        return "".join(
            ["_" + c.lower() if c.isupper() else c for c in name]
        ).lstrip("_") + "s"

    def to_dict(self) -> dict[str, Any]:
        """Convert model to dictionary."""
        return {c.key: getattr(self, c.key) for c in self.__table__.columns}

    @classmethod
    def column_keys(cls) -> list[str]:
        return [c.key for c in cls.__table__.columns]


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )


class DocumentIdMixin:
    """Mixin for string UUID primary key.

    References between documents are stored as plain identifiers, never as
    foreign keys, so every relation is walked by hand.
    """

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=new_id,
    )


class BaseModel(Base, DocumentIdMixin, TimestampMixin):
    """Base model with string UUID primary key and timestamps."""

    __abstract__ = True
