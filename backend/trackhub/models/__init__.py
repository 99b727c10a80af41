"""SQLAlchemy models package."""

from trackhub.models.comment import Comment
from trackhub.models.item import ITEM_PRIORITIES, ITEM_STATUSES, ITEM_TYPES, Item
from trackhub.models.project import PROJECT_ROLES, PROJECT_STATUSES, Project
from trackhub.models.tag import DEFAULT_TAGS, Tag
from trackhub.models.user import GLOBAL_ROLES, User

__all__ = [
    "Comment",
    "Item",
    "ITEM_PRIORITIES",
    "ITEM_STATUSES",
    "ITEM_TYPES",
    "Project",
    "PROJECT_ROLES",
    "PROJECT_STATUSES",
    "Tag",
    "DEFAULT_TAGS",
    "User",
    "GLOBAL_ROLES",
]
