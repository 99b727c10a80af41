"""Tag service."""

import structlog

from trackhub.config import Settings
from trackhub.models import Item, Tag
from trackhub.repositories import ItemRepository, TagRepository
from trackhub.services.access_control import AccessPolicy
from trackhub.services.cascade import CascadeCoordinator
from trackhub.services.exceptions import ConflictError
from trackhub.services.identity import Actor
from trackhub.services.locks import KeyedLocks
from trackhub.services.pagination import Page, clamp, paginate
from trackhub.services.schemas import TagCreate, TagUpdate, validate

logger = structlog.get_logger()


class TagService:
    def __init__(
        self,
        settings: Settings,
        tags: TagRepository,
        items: ItemRepository,
        policy: AccessPolicy,
        cascade: CascadeCoordinator,
        name_locks: KeyedLocks | None = None,
    ):
        self.settings = settings
        self.tags = tags
        self.items = items
        self.policy = policy
        self.cascade = cascade
        self.name_locks = name_locks or KeyedLocks("tag_names")

    async def create_tag(self, actor: Actor, project_id: str, data) -> Tag:
        await self.policy.require_project(actor, project_id, "developer")
        payload = validate(TagCreate, data)

        async with self.name_locks(project_id):
            if await self.tags.find_by_name(project_id, payload.name):
                raise ConflictError("Tag name already exists in this project")

            tag = await self.tags.insert(
                Tag(
                    project_id=project_id,
                    name=payload.name,
                    color=payload.color or self.settings.default_tag_color,
                    description=payload.description,
                    usage_count=0,
                )
            )

        logger.info("tag_created", tag_id=tag.id, project_id=project_id, name=tag.name)
        return tag

    async def list_tags(self, actor: Actor, project_id: str, search: str | None = None) -> list[Tag]:
        await self.policy.require_project(actor, project_id)
        tags = await self.tags.find_by_project(project_id)
        if search:
            needle = search.lower()
            tags = [t for t in tags if needle in t.name.lower() or needle in (t.description or "").lower()]
        return tags

    async def get_tag(self, actor: Actor, tag_id: str) -> Tag:
        tag, _ = await self.policy.require_tag(actor, tag_id)
        return tag

    async def update_tag(self, actor: Actor, tag_id: str, data) -> Tag:
        tag, _ = await self.policy.require_tag(actor, tag_id, "developer")
        payload = validate(TagUpdate, data)
        patch = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
        if not patch:
            return tag

        async with self.name_locks(tag.project_id):
            if "name" in patch and patch["name"] != tag.name:
                if await self.tags.find_by_name(tag.project_id, patch["name"]):
                    raise ConflictError("Tag name already exists in this project")
            updated = await self.tags.update(tag_id, patch)

        logger.info("tag_updated", tag_id=tag_id, fields=sorted(patch))
        return updated

    async def delete_tag(self, actor: Actor, tag_id: str, force: bool = False) -> Tag:
        await self.policy.require_tag(actor, tag_id, "manager")
        return await self.cascade.delete_tag(tag_id, force=force)

    async def recount_usage(self, actor: Actor, project_id: str) -> dict[str, int]:
        await self.policy.require_project(actor, project_id, "manager")
        return await self.cascade.recount_tag_usage(project_id)

    async def most_used_tags(self, actor: Actor, project_id: str, limit: int = 10) -> list[Tag]:
        """Tags ordered by usage counter, then name."""
        await self.policy.require_project(actor, project_id)
        tags = await self.tags.find_by_project(project_id)
        tags.sort(key=lambda t: (-(t.usage_count or 0), t.name))
        return tags[:max(1, limit)]

    async def tag_usage(
        self,
        actor: Actor,
        tag_id: str,
        page: int | None = None,
        limit: int | None = None,
    ) -> tuple[Tag, Page[Item]]:
        """The tag and the items carrying it, most recently updated first."""
        tag, _ = await self.policy.require_tag(actor, tag_id)
        page, limit = clamp(page, limit, self.settings.default_page_size, self.settings.max_page_size)

        items = await self.items.find_with_tag(tag.project_id, tag_id)
        items.sort(key=lambda item: item.updated_at, reverse=True)
        return tag, paginate(items, page, limit)
