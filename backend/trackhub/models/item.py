"""Work item model."""

from datetime import date

from sqlalchemy import Date, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from trackhub.db.base import BaseModel, JSONType

ITEM_TYPES = ("epic", "feature", "task", "bug")
ITEM_STATUSES = ("todo", "inprogress", "review", "testing", "done")
ITEM_PRIORITIES = ("low", "medium", "high", "critical")


class Item(BaseModel):
    """A unit of work inside a project, addressed by its sequential key."""

    __tablename__ = "items"

    # Immutable after creation
    project_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    key: Mapped[str] = mapped_column(String(32), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")

    type: Mapped[str] = mapped_column(String(20), nullable=False, default="task")
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="todo")
    priority: Mapped[str] = mapped_column(String(20), nullable=False, default="medium")

    # Nulled rather than deleted when the referenced user goes away
    reporter_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)
    assignee_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    parent_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    # Weak references to tags; usage counters live on the tags
    tag_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)

    story_points: Mapped[int | None] = mapped_column(Integer, nullable=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    def __repr__(self) -> str:
        return f"<Item {self.key}>"
