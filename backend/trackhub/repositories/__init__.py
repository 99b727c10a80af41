"""Repository package."""

from trackhub.repositories.interfaces import (
    CommentRepository,
    ItemRepository,
    ProjectRepository,
    Repository,
    TagRepository,
    UserRepository,
)
from trackhub.repositories.sqlalchemy import (
    SqlAlchemyCommentRepository,
    SqlAlchemyItemRepository,
    SqlAlchemyProjectRepository,
    SqlAlchemyRepository,
    SqlAlchemyTagRepository,
    SqlAlchemyUserRepository,
)

__all__ = [
    "CommentRepository",
    "ItemRepository",
    "ProjectRepository",
    "Repository",
    "TagRepository",
    "UserRepository",
    "SqlAlchemyCommentRepository",
    "SqlAlchemyItemRepository",
    "SqlAlchemyProjectRepository",
    "SqlAlchemyRepository",
    "SqlAlchemyTagRepository",
    "SqlAlchemyUserRepository",
]
