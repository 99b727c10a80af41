"""Project access control.

Every project-scoped resource (items, tags, comments) resolves to its parent
project and is checked against the same rule:

- global admins are always allowed;
- the project owner acts as a manager;
- members act with their project role;
- everyone else is denied.

Evaluation never writes.
"""

from dataclasses import dataclass
from enum import Enum

import structlog

from trackhub.models import Comment, Item, Project, Tag
from trackhub.repositories import (
    CommentRepository,
    ItemRepository,
    ProjectRepository,
    TagRepository,
)
from trackhub.services.exceptions import ForbiddenError, NotFoundError
from trackhub.services.identity import Actor

logger = structlog.get_logger()


# Role hierarchy for permission checking (higher = more permissions)
# owner is not a stored member role; the owner always ranks as manager
ROLE_HIERARCHY = {"owner": 3, "manager": 3, "developer": 2, "viewer": 1}


def has_sufficient_role(user_role: str, required_role: str) -> bool:
    """Check if user_role meets or exceeds required_role."""
    return ROLE_HIERARCHY.get(user_role, 0) >= ROLE_HIERARCHY.get(required_role, 0)


def effective_role(project: Project, user_id: str) -> str | None:
    """The role a user holds inside a project, or None for outsiders."""
    if project.owner_id == user_id:
        return "owner"
    entry = project.member_entry(user_id)
    return entry["role"] if entry else None


class DenialReason(str, Enum):
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    project: Project | None = None
    role: str | None = None
    reason: DenialReason | None = None
    message: str | None = None

    def raise_for_denial(self, resource: str = "Project") -> None:
        if self.allowed:
            return
        if self.reason is DenialReason.NOT_FOUND:
            raise NotFoundError(self.message or f"{resource} not found")
        raise ForbiddenError(self.message)


def evaluate_access(
    actor: Actor,
    project: Project | None,
    required_role: str | None = None,
) -> AccessDecision:
    """Decide whether ``actor`` may act on ``project`` at ``required_role``."""
    if project is None:
        return AccessDecision(
            allowed=False,
            reason=DenialReason.NOT_FOUND,
            message="Project not found",
        )

    if actor.is_admin:
        return AccessDecision(allowed=True, project=project, role="admin")

    role = effective_role(project, actor.user_id)
    if role is None:
        return AccessDecision(
            allowed=False,
            project=project,
            reason=DenialReason.FORBIDDEN,
            message="Project access required",
        )

    if required_role and not has_sufficient_role(role, required_role):
        return AccessDecision(
            allowed=False,
            project=project,
            role=role,
            reason=DenialReason.FORBIDDEN,
            message=f"Insufficient permissions - requires {required_role} role or higher",
        )

    return AccessDecision(allowed=True, project=project, role=role)


class AccessPolicy:
    """Loads the project behind a resource and evaluates access to it."""

    def __init__(
        self,
        projects: ProjectRepository,
        items: ItemRepository,
        tags: TagRepository,
        comments: CommentRepository,
    ):
        self.projects = projects
        self.items = items
        self.tags = tags
        self.comments = comments

    async def check_access(
        self,
        actor: Actor,
        project_id: str,
        required_role: str | None = None,
    ) -> AccessDecision:
        project = await self.projects.find_by_id(project_id)
        decision = evaluate_access(actor, project, required_role)
        if not decision.allowed:
            logger.debug(
                "access_denied",
                user_id=actor.user_id,
                project_id=project_id,
                required_role=required_role,
                reason=decision.reason.value,
            )
        return decision

    async def require_project(
        self,
        actor: Actor,
        project_id: str,
        required_role: str | None = None,
    ) -> Project:
        decision = await self.check_access(actor, project_id, required_role)
        decision.raise_for_denial()
        return decision.project

    async def require_item(
        self,
        actor: Actor,
        item_id: str,
        required_role: str | None = None,
    ) -> tuple[Item, Project]:
        item = await self.items.find_by_id(item_id)
        if item is None:
            raise NotFoundError("Item not found")
        project = await self.require_project(actor, item.project_id, required_role)
        return item, project

    async def require_tag(
        self,
        actor: Actor,
        tag_id: str,
        required_role: str | None = None,
    ) -> tuple[Tag, Project]:
        tag = await self.tags.find_by_id(tag_id)
        if tag is None:
            raise NotFoundError("Tag not found")
        project = await self.require_project(actor, tag.project_id, required_role)
        return tag, project

    async def require_comment(
        self,
        actor: Actor,
        comment_id: str,
        required_role: str | None = None,
        allow_author: bool = False,
    ) -> tuple[Comment, Item, Project]:
        """Resolve a comment to its item and project and check access.

        With ``allow_author`` the comment's author passes the role check as
        long as they can still see the project.
        """
        comment = await self.comments.find_by_id(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found")

        item = await self.items.find_by_id(comment.item_id)
        if item is None:
            raise NotFoundError("Associated item not found")

        is_author = comment.author_id is not None and comment.author_id == actor.user_id
        role = None if (allow_author and is_author) else required_role
        project = await self.require_project(actor, item.project_id, role)
        return comment, item, project
