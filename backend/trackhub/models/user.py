"""User model."""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from trackhub.db.base import BaseModel, JSONType

# Global roles, highest first
GLOBAL_ROLES = ("admin", "manager", "developer", "viewer")


class User(BaseModel):
    """An account that can own projects, report items and write comments."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    # Hashing happens outside this service; only the digest is stored
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # {"first_name": ..., "last_name": ..., "avatar": ...}
    profile: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)

    role: Mapped[str] = mapped_column(String(20), nullable=False, default="developer")

    last_active_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_public_dict(self) -> dict[str, Any]:
        """Dictionary form without credentials."""
        data = self.to_dict()
        data.pop("password_hash", None)
        return data

    def __repr__(self) -> str:
        return f"<User {self.username}>"
