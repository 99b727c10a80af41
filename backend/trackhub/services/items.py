"""Work item service."""

import structlog

from trackhub.config import Settings
from trackhub.models import ITEM_PRIORITIES, ITEM_STATUSES, Item, Project
from trackhub.repositories import ItemRepository, TagRepository
from trackhub.services.access_control import AccessPolicy
from trackhub.services.cascade import CascadeCoordinator
from trackhub.services.exceptions import InvalidOperationError, ValidationError
from trackhub.services.identity import Actor
from trackhub.services.keygen import SequentialKeyGenerator, parse_key
from trackhub.services.pagination import Page, clamp, paginate
from trackhub.services.schemas import (
    ItemAssign,
    ItemCreate,
    ItemStatusUpdate,
    ItemUpdate,
    validate,
)

logger = structlog.get_logger()

# Fields an update may set to null
NULLABLE_FIELDS = {"assignee_id", "parent_id", "story_points", "due_date"}

SORT_FIELDS = ("created_at", "updated_at", "title", "key", "priority", "status")


def _sort_key(sort_by: str):
    if sort_by == "priority":
        return lambda item: ITEM_PRIORITIES.index(item.priority)
    if sort_by == "status":
        return lambda item: ITEM_STATUSES.index(item.status)
    if sort_by == "key":
        return lambda item: parse_key(item.key)[1]
    if sort_by == "title":
        return lambda item: item.title.lower()
    return lambda item: getattr(item, sort_by)


class ItemService:
    """Service for work items inside a project."""

    def __init__(
        self,
        settings: Settings,
        items: ItemRepository,
        tags: TagRepository,
        policy: AccessPolicy,
        keygen: SequentialKeyGenerator,
        cascade: CascadeCoordinator,
    ):
        self.settings = settings
        self.items = items
        self.tags = tags
        self.policy = policy
        self.keygen = keygen
        self.cascade = cascade

    # =========================================================================
    # Reference checks
    # =========================================================================

    @staticmethod
    def _check_assignee(project: Project, assignee_id: str | None) -> None:
        if assignee_id is not None and not project.has_access(assignee_id):
            raise ValidationError(
                "Validation error",
                errors=["assignee_id: assignee must be a member of the project"],
            )

    async def _check_parent(self, project: Project, item_id: str | None, parent_id: str | None) -> None:
        """Parent must live in the same project and must not create a cycle."""
        if parent_id is None:
            return
        if item_id is not None and parent_id == item_id:
            raise InvalidOperationError("An item cannot be its own parent")

        parent = await self.items.find_by_id(parent_id)
        if parent is None or parent.project_id != project.id:
            raise ValidationError(
                "Validation error",
                errors=["parent_id: parent item not found in this project"],
            )

        if item_id is None:
            return

        seen = {parent_id}
        ancestor_id = parent.parent_id
        while ancestor_id is not None and ancestor_id not in seen:
            if ancestor_id == item_id:
                raise InvalidOperationError("Parent assignment would create a cycle")
            seen.add(ancestor_id)
            ancestor = await self.items.find_by_id(ancestor_id)
            ancestor_id = ancestor.parent_id if ancestor else None

    async def _check_tags(self, project: Project, tag_ids: list[str]) -> None:
        if not tag_ids:
            return
        found = await self.tags.find({"project_id": project.id, "id": list(set(tag_ids))})
        missing = set(tag_ids) - {tag.id for tag in found}
        if missing:
            raise ValidationError(
                "Validation error",
                errors=[f"tag_ids: unknown tag '{tag_id}'" for tag_id in sorted(missing)],
            )

    # =========================================================================
    # Item CRUD
    # =========================================================================

    async def create_item(self, actor: Actor, project_id: str, data) -> Item:
        project = await self.policy.require_project(actor, project_id, "developer")
        payload = validate(ItemCreate, data)

        self._check_assignee(project, payload.assignee_id)
        await self._check_parent(project, None, payload.parent_id)
        await self._check_tags(project, payload.tag_ids)

        async with self.keygen.allocate(project_id) as key:
            item = await self.items.insert(
                Item(
                    project_id=project_id,
                    key=key,
                    title=payload.title,
                    description=payload.description,
                    type=payload.type,
                    status=payload.status,
                    priority=payload.priority,
                    reporter_id=actor.user_id,
                    assignee_id=payload.assignee_id,
                    parent_id=payload.parent_id,
                    tag_ids=[],
                    story_points=payload.story_points,
                    due_date=payload.due_date,
                )
            )
        if payload.tag_ids:
            item = await self.cascade.set_item_tags(item.id, payload.tag_ids)

        logger.info("item_created", item_id=item.id, key=key, project_id=project_id)
        return item

    async def get_item(self, actor: Actor, item_id: str) -> Item:
        item, _ = await self.policy.require_item(actor, item_id)
        return item

    async def list_items(
        self,
        actor: Actor,
        project_id: str,
        *,
        status: str | None = None,
        type: str | None = None,
        priority: str | None = None,
        assignee_id: str | None = None,
        tag_id: str | None = None,
        parent_id: str | None = None,
        search: str | None = None,
        sort_by: str = "created_at",
        order: str = "desc",
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[Item]:
        await self.policy.require_project(actor, project_id)
        page, limit = clamp(page, limit, self.settings.default_page_size, self.settings.max_page_size)

        if sort_by not in SORT_FIELDS:
            raise ValidationError(
                "Validation error",
                errors=[f"sort_by: must be one of: {', '.join(SORT_FIELDS)}"],
            )
        if order not in ("asc", "desc"):
            raise ValidationError("Validation error", errors=["order: must be asc or desc"])

        filters = {"project_id": project_id}
        for field, value in (
            ("status", status),
            ("type", type),
            ("priority", priority),
            ("assignee_id", assignee_id),
            ("parent_id", parent_id),
        ):
            if value is not None:
                filters[field] = value

        items = await self.items.find(filters)
        if tag_id:
            items = [item for item in items if tag_id in (item.tag_ids or [])]
        if search:
            needle = search.lower()
            items = [
                item for item in items
                if needle in item.title.lower() or needle in (item.description or "").lower()
            ]

        items.sort(key=_sort_key(sort_by), reverse=order == "desc")
        return paginate(items, page, limit)

    async def update_item(self, actor: Actor, item_id: str, data) -> Item:
        item, project = await self.policy.require_item(actor, item_id, "developer")
        payload = validate(ItemUpdate, data)
        patch = payload.model_dump(exclude_unset=True)

        nulled = sorted(k for k, v in patch.items() if v is None and k not in NULLABLE_FIELDS)
        if nulled:
            raise ValidationError(
                "Validation error",
                errors=[f"{field}: may not be null" for field in nulled],
            )

        if "assignee_id" in patch:
            self._check_assignee(project, patch["assignee_id"])
        if "parent_id" in patch:
            await self._check_parent(project, item.id, patch["parent_id"])

        tag_ids = patch.pop("tag_ids", None)
        if tag_ids is not None:
            await self._check_tags(project, tag_ids)

        updated = item
        if patch:
            updated = await self.items.update(item_id, patch)
        if tag_ids is not None:
            updated = await self.cascade.set_item_tags(item_id, tag_ids)

        logger.info(
            "item_updated",
            item_id=item_id,
            fields=sorted(list(patch) + (["tag_ids"] if tag_ids is not None else [])),
        )
        return updated

    async def update_status(self, actor: Actor, item_id: str, data) -> Item:
        payload = validate(ItemStatusUpdate, data)
        return await self.update_item(actor, item_id, {"status": payload.status})

    async def assign_item(self, actor: Actor, item_id: str, data) -> Item:
        payload = validate(ItemAssign, data)
        return await self.update_item(actor, item_id, {"assignee_id": payload.assignee_id})

    async def delete_item(self, actor: Actor, item_id: str) -> None:
        await self.policy.require_item(actor, item_id, "manager")
        await self.cascade.delete_item(item_id)

    async def get_children(self, actor: Actor, item_id: str) -> list[Item]:
        await self.policy.require_item(actor, item_id)
        return await self.items.find_children(item_id)
