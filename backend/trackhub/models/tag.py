"""Tag model."""

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from trackhub.db.base import BaseModel

DEFAULT_TAGS = (
    {"name": "frontend", "color": "#28a745", "description": "Frontend development tasks"},
    {"name": "backend", "color": "#dc3545", "description": "Backend development tasks"},
    {"name": "bug", "color": "#ffc107", "description": "Bug fixes and issues"},
    {"name": "enhancement", "color": "#17a2b8", "description": "Feature enhancements"},
    {"name": "urgent", "color": "#ff6b6b", "description": "Urgent priority items"},
    {"name": "documentation", "color": "#6f42c1", "description": "Documentation tasks"},
)


class Tag(BaseModel):
    """Project-scoped label. Names are unique per project and case sensitive."""

    __tablename__ = "tags"

    project_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    color: Mapped[str] = mapped_column(String(7), nullable=False, default="#007bff")  # hex color
    description: Mapped[str] = mapped_column(String(200), nullable=False, default="")

    # Number of items carrying this tag, written only by the cascade coordinator
    usage_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<Tag {self.name}>"
