"""Repository interfaces.

Every repository exposes the same collection primitives (find, count,
find_by_id, insert, update, remove). The typed finders below are built on
those primitives only, so any backing store that implements the primitives
gets them for free. Each primitive call is its own unit of work: nothing
spans two calls.
"""

from abc import ABC, abstractmethod
from typing import Any, Generic, TypeVar

from trackhub.models import Comment, Item, Project, Tag, User

ModelT = TypeVar("ModelT")

# Equality filters; an iterable value (list/tuple/set) means "any of"
Filters = dict[str, Any]


class Repository(ABC, Generic[ModelT]):
    """Async collection interface over one document type."""

    model: type[ModelT]

    @abstractmethod
    async def find(
        self,
        filters: Filters | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[ModelT]:
        """Return documents matching all filters."""

    @abstractmethod
    async def count(self, filters: Filters | None = None) -> int:
        """Count documents matching all filters."""

    @abstractmethod
    async def find_by_id(self, doc_id: str) -> ModelT | None:
        """Return one document by identifier."""

    @abstractmethod
    async def insert(self, doc: ModelT) -> ModelT:
        """Persist a new document and return it with generated fields filled."""

    @abstractmethod
    async def update(self, doc_id: str, patch: dict[str, Any]) -> ModelT | None:
        """Apply a field patch; returns the updated document or None if absent."""

    @abstractmethod
    async def remove(self, doc_id: str) -> bool:
        """Delete a document. Removing a missing document returns False."""

    async def find_one(self, filters: Filters) -> ModelT | None:
        docs = await self.find(filters, limit=1)
        return docs[0] if docs else None


class UserRepository(Repository[User]):
    model = User

    async def find_by_username(self, username: str) -> User | None:
        return await self.find_one({"username": username})

    async def find_by_usernames(self, usernames: set[str]) -> list[User]:
        if not usernames:
            return []
        return await self.find({"username": sorted(usernames)})

    async def find_by_email(self, email: str) -> User | None:
        return await self.find_one({"email": email})

    async def find_admins(self, exclude_id: str | None = None) -> list[User]:
        """Admins ordered by creation time, oldest first."""
        admins = await self.find({"role": "admin"}, order_by="created_at")
        return [admin for admin in admins if admin.id != exclude_id]


class ProjectRepository(Repository[Project]):
    model = Project

    async def find_by_key(self, key: str) -> Project | None:
        return await self.find_one({"key": key.upper()})

    async def find_owned_by(self, user_id: str) -> list[Project]:
        return await self.find({"owner_id": user_id}, order_by="created_at")

    async def find_with_member(self, user_id: str) -> list[Project]:
        """Projects whose member list contains the user (owner included)."""
        projects = await self.find(order_by="created_at")
        return [p for p in projects if p.member_entry(user_id) is not None]

    async def find_accessible(self, user_id: str, status: str | None = None) -> list[Project]:
        """Projects the user owns or belongs to, newest activity first."""
        filters = {"status": status} if status else None
        projects = await self.find(filters, order_by="updated_at", descending=True)
        return [p for p in projects if p.has_access(user_id)]


class ItemRepository(Repository[Item]):
    model = Item

    async def find_by_project(self, project_id: str) -> list[Item]:
        return await self.find({"project_id": project_id}, order_by="created_at")

    async def find_with_tag(self, project_id: str, tag_id: str) -> list[Item]:
        items = await self.find_by_project(project_id)
        return [item for item in items if tag_id in (item.tag_ids or [])]

    async def find_children(self, parent_id: str) -> list[Item]:
        return await self.find({"parent_id": parent_id}, order_by="created_at")

    async def find_reported_by(self, user_id: str) -> list[Item]:
        return await self.find({"reporter_id": user_id})

    async def find_assigned_to(self, user_id: str) -> list[Item]:
        return await self.find({"assignee_id": user_id})


class TagRepository(Repository[Tag]):
    model = Tag

    async def find_by_project(self, project_id: str) -> list[Tag]:
        return await self.find({"project_id": project_id}, order_by="name")

    async def find_by_name(self, project_id: str, name: str) -> Tag | None:
        return await self.find_one({"project_id": project_id, "name": name})


class CommentRepository(Repository[Comment]):
    model = Comment

    async def find_by_item(self, item_id: str) -> list[Comment]:
        return await self.find({"item_id": item_id}, order_by="created_at")

    async def find_by_items(self, item_ids: list[str]) -> list[Comment]:
        if not item_ids:
            return []
        return await self.find({"item_id": item_ids})

    async def find_by_author(self, user_id: str) -> list[Comment]:
        return await self.find({"author_id": user_id})

    async def find_mentioning(self, user_id: str) -> list[Comment]:
        """Comments mentioning the user, newest first."""
        comments = await self.find(order_by="created_at", descending=True)
        return [c for c in comments if user_id in (c.mentioned_user_ids or [])]

    async def find_read_by(self, user_id: str) -> list[Comment]:
        comments = await self.find()
        return [c for c in comments if user_id in (c.read_by or [])]
