"""Comment model."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from trackhub.db.base import BaseModel, JSONType


class Comment(BaseModel):
    """Discussion entry on a work item, with resolved @mentions."""

    __tablename__ = "comments"

    item_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)

    # None once the author account has been deleted
    author_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    # Derived from content; only project members end up here
    mentioned_user_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    read_by: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    def __repr__(self) -> str:
        return f"<Comment {self.id}>"
