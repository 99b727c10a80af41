"""Comment service, including @mention tracking."""

import structlog

from trackhub.config import Settings
from trackhub.models import Comment
from trackhub.repositories import CommentRepository
from trackhub.services.access_control import AccessPolicy
from trackhub.services.exceptions import ForbiddenError
from trackhub.services.identity import Actor
from trackhub.services.mentions import MentionResolver
from trackhub.services.pagination import Page, clamp, paginate
from trackhub.services.schemas import CommentWrite, MentionsRead, validate

logger = structlog.get_logger()


class CommentService:
    def __init__(
        self,
        settings: Settings,
        comments: CommentRepository,
        policy: AccessPolicy,
        mentions: MentionResolver,
    ):
        self.settings = settings
        self.comments = comments
        self.policy = policy
        self.mentions = mentions

    def _page(self, page: int | None, limit: int | None) -> tuple[int, int]:
        return clamp(page, limit, self.settings.default_page_size, self.settings.max_page_size)

    async def list_comments(
        self,
        actor: Actor,
        item_id: str,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[Comment]:
        """Comments on an item, oldest first."""
        await self.policy.require_item(actor, item_id)
        page, limit = self._page(page, limit)
        return paginate(await self.comments.find_by_item(item_id), page, limit)

    async def create_comment(self, actor: Actor, item_id: str, data) -> Comment:
        item, project = await self.policy.require_item(actor, item_id)
        payload = validate(CommentWrite, data)

        mentioned = await self.mentions.resolve_text(payload.content, project.id)
        comment = await self.comments.insert(
            Comment(
                item_id=item.id,
                author_id=actor.user_id,
                content=payload.content,
                mentioned_user_ids=mentioned,
                read_by=[],
            )
        )

        logger.info(
            "comment_created",
            comment_id=comment.id,
            item_id=item.id,
            mentions=len(mentioned),
        )
        return comment

    async def update_comment(self, actor: Actor, comment_id: str, data) -> Comment:
        comment, _, project = await self.policy.require_comment(
            actor, comment_id, "manager", allow_author=True
        )
        payload = validate(CommentWrite, data)

        mentioned = await self.mentions.resolve_text(payload.content, project.id)
        # Read marks only make sense for users still mentioned
        read_by = [u for u in comment.read_by or [] if u in mentioned]
        updated = await self.comments.update(
            comment_id,
            {"content": payload.content, "mentioned_user_ids": mentioned, "read_by": read_by},
        )

        logger.info("comment_updated", comment_id=comment_id, mentions=len(mentioned))
        return updated

    async def delete_comment(self, actor: Actor, comment_id: str) -> None:
        await self.policy.require_comment(actor, comment_id, "manager", allow_author=True)
        await self.comments.remove(comment_id)
        logger.info("comment_deleted", comment_id=comment_id, user_id=actor.user_id)

    # =========================================================================
    # Mentions
    # =========================================================================

    async def user_mentions(
        self,
        actor: Actor,
        user_id: str,
        unread_only: bool = False,
        page: int | None = None,
        limit: int | None = None,
    ) -> Page[Comment]:
        """Comments mentioning a user, newest first."""
        if actor.user_id != user_id and not actor.is_admin:
            raise ForbiddenError("Cannot access another user's mentions")

        page, limit = self._page(page, limit)
        comments = await self.comments.find_mentioning(user_id)
        if unread_only:
            comments = [c for c in comments if user_id not in (c.read_by or [])]
        return paginate(comments, page, limit)

    async def mark_mentions_read(self, actor: Actor, user_id: str, data=None) -> int:
        """Mark mentions as read; returns how many comments changed."""
        if actor.user_id != user_id:
            raise ForbiddenError("Cannot mark another user's mentions as read")

        payload = validate(MentionsRead, data)
        wanted = set(payload.comment_ids) if payload.comment_ids else None

        modified = 0
        for comment in await self.comments.find_mentioning(user_id):
            if wanted is not None and comment.id not in wanted:
                continue
            if user_id in (comment.read_by or []):
                continue
            await self.comments.update(comment.id, {"read_by": [*(comment.read_by or []), user_id]})
            modified += 1

        logger.info("mentions_marked_read", user_id=user_id, modified=modified)
        return modified
