"""Project model with its embedded member list."""

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from trackhub.db.base import BaseModel, JSONType

# Project-scoped roles, highest first
PROJECT_ROLES = ("manager", "developer", "viewer")
PROJECT_STATUSES = ("active", "archived", "completed")


class Project(BaseModel):
    """A tenant boundary: items, tags and comments all hang off a project.

    ``owner_id`` and ``members`` are written only by the membership registry,
    ``item_sequence`` only by the key generator.
    """

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # Short upper-case key used as item key prefix ("ALPHA" -> "ALPHA-7")
    key: Mapped[str] = mapped_column(String(10), unique=True, nullable=False, index=True)

    owner_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    # [{"user_id": str, "role": str, "joined_at": iso str}, ...]
    members: Mapped[list[dict]] = mapped_column(JSONType, nullable=False, default=list)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="active"
    )  # active, archived, completed

    # Last item number handed out; numbers are never reissued
    item_sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def member_entry(self, user_id: str) -> dict | None:
        """Return the member entry for a user, if present."""
        for member in self.members or []:
            if member.get("user_id") == user_id:
                return member
        return None

    def member_ids(self) -> list[str]:
        return [member["user_id"] for member in self.members or []]

    def has_access(self, user_id: str) -> bool:
        return self.owner_id == user_id or self.member_entry(user_id) is not None

    def __repr__(self) -> str:
        return f"<Project {self.key}>"
