"""Project service."""

from collections import Counter

import structlog

from trackhub.config import Settings
from trackhub.models import (
    DEFAULT_TAGS,
    ITEM_PRIORITIES,
    ITEM_STATUSES,
    ITEM_TYPES,
    Project,
    Tag,
)
from trackhub.repositories import (
    CommentRepository,
    ItemRepository,
    ProjectRepository,
    TagRepository,
    UserRepository,
)
from trackhub.services.access_control import AccessPolicy, effective_role
from trackhub.services.cascade import CascadeCoordinator
from trackhub.services.exceptions import ConflictError
from trackhub.services.identity import Actor
from trackhub.services.locks import KeyedLocks
from trackhub.services.membership import MembershipRegistry
from trackhub.services.pagination import Page, clamp, paginate
from trackhub.services.schemas import (
    MemberAdd,
    MemberRoleUpdate,
    ProjectCreate,
    ProjectUpdate,
    validate,
)

logger = structlog.get_logger()

# Project keys are unique across all projects
PROJECT_KEYS_LOCK = "project_keys"


class ProjectService:
    """Service for project lifecycle and membership management."""

    def __init__(
        self,
        settings: Settings,
        projects: ProjectRepository,
        users: UserRepository,
        items: ItemRepository,
        tags: TagRepository,
        comments: CommentRepository,
        policy: AccessPolicy,
        registry: MembershipRegistry,
        cascade: CascadeCoordinator,
        key_locks: KeyedLocks | None = None,
    ):
        self.settings = settings
        self.projects = projects
        self.users = users
        self.items = items
        self.tags = tags
        self.comments = comments
        self.policy = policy
        self.registry = registry
        self.cascade = cascade
        self.key_locks = key_locks or KeyedLocks("project_keys")

    # =========================================================================
    # Project CRUD
    # =========================================================================

    async def create_project(self, actor: Actor, data) -> Project:
        payload = validate(ProjectCreate, data)

        async with self.key_locks(PROJECT_KEYS_LOCK):
            if await self.projects.find_by_key(payload.key):
                raise ConflictError("Project key already exists")

            project = await self.projects.insert(
                Project(
                    name=payload.name,
                    description=payload.description,
                    key=payload.key,
                    owner_id=actor.user_id,
                    members=self.registry.initial_members(actor.user_id),
                    status=payload.status,
                    item_sequence=0,
                )
            )

        seed = payload.with_default_tags
        if seed is None:
            seed = self.settings.seed_default_tags
        if seed:
            for tag in DEFAULT_TAGS:
                await self.tags.insert(Tag(project_id=project.id, usage_count=0, **tag))

        logger.info(
            "project_created",
            project_id=project.id,
            key=project.key,
            owner_id=actor.user_id,
            default_tags=seed,
        )
        return project

    async def get_project(self, actor: Actor, project_id: str) -> Project:
        return await self.policy.require_project(actor, project_id)

    async def list_projects(
        self,
        actor: Actor,
        page: int | None = None,
        limit: int | None = None,
        status: str | None = None,
    ) -> Page[Project]:
        """Projects visible to the actor, most recently updated first."""
        page, limit = clamp(page, limit, self.settings.default_page_size, self.settings.max_page_size)

        if actor.is_admin:
            projects = await self.projects.find(
                {"status": status} if status else None,
                order_by="updated_at",
                descending=True,
            )
        else:
            projects = await self.projects.find_accessible(actor.user_id, status)

        return paginate(projects, page, limit)

    async def update_project(self, actor: Actor, project_id: str, data) -> Project:
        project = await self.policy.require_project(actor, project_id, "manager")
        payload = validate(ProjectUpdate, data)

        patch = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
        if not patch:
            return project

        updated = await self.projects.update(project_id, patch)
        logger.info("project_updated", project_id=project_id, fields=sorted(patch))
        return updated

    async def delete_project(self, actor: Actor, project_id: str) -> None:
        await self.policy.require_project(actor, project_id, "manager")
        await self.cascade.delete_project(project_id)

    # =========================================================================
    # Members
    # =========================================================================

    async def list_members(self, actor: Actor, project_id: str) -> list[dict]:
        """Member entries joined with public user data, owner first."""
        project = await self.policy.require_project(actor, project_id)

        members = []
        for entry in project.members or []:
            user = await self.users.find_by_id(entry["user_id"])
            members.append(
                {
                    **entry,
                    "is_owner": entry["user_id"] == project.owner_id,
                    "user": user.to_public_dict() if user else None,
                }
            )
        members.sort(key=lambda m: not m["is_owner"])
        return members

    async def add_member(self, actor: Actor, project_id: str, data) -> Project:
        await self.policy.require_project(actor, project_id, "manager")
        payload = validate(MemberAdd, data)
        return await self.registry.add_member(project_id, payload.user_id, payload.role)

    async def remove_member(self, actor: Actor, project_id: str, user_id: str) -> bool:
        await self.policy.require_project(actor, project_id, "manager")
        return await self.registry.remove_member(project_id, user_id)

    async def update_member_role(self, actor: Actor, project_id: str, user_id: str, data) -> Project:
        await self.policy.require_project(actor, project_id, "manager")
        payload = validate(MemberRoleUpdate, data)
        return await self.registry.update_member_role(project_id, user_id, payload.role)

    # =========================================================================
    # Statistics
    # =========================================================================

    async def get_stats(self, actor: Actor, project_id: str) -> dict:
        project = await self.policy.require_project(actor, project_id)
        items = await self.items.find_by_project(project_id)
        comments = await self.comments.find_by_items([item.id for item in items])

        by_status = Counter(item.status for item in items)
        by_type = Counter(item.type for item in items)
        by_priority = Counter(item.priority for item in items)

        return {
            "total_items": len(items),
            "items_by_status": {s: by_status.get(s, 0) for s in ITEM_STATUSES},
            "items_by_type": {t: by_type.get(t, 0) for t in ITEM_TYPES},
            "items_by_priority": {p: by_priority.get(p, 0) for p in ITEM_PRIORITIES},
            "total_comments": len(comments),
            "total_members": len(project.members or []),
            "your_role": effective_role(project, actor.user_id),
        }
