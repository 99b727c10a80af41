"""Cascade coordinator.

The store has no foreign keys and no multi-document transactions, so every
deletion that touches more than one collection is walked here, step by step.
Each step is idempotent: re-running a cascade after a failure finishes the
job without repeating side effects. The root record is always removed last,
so an interrupted cascade leaves it in place for a retry.

This module is also the only writer of ``Tag.usage_count``.
"""

from collections import Counter
from contextlib import asynccontextmanager

import structlog

from trackhub.models import Item, Tag
from trackhub.repositories import (
    CommentRepository,
    ItemRepository,
    ProjectRepository,
    TagRepository,
    UserRepository,
)
from trackhub.services.exceptions import CascadeIncompleteError, ConflictError, NotFoundError
from trackhub.services.locks import KeyedLocks
from trackhub.services.membership import MembershipRegistry

logger = structlog.get_logger()


class CascadeRun:
    """Tracks completed steps of one cascade and reports partial failures."""

    def __init__(self, operation: str, target_id: str):
        self.operation = operation
        self.target_id = target_id
        self.completed: list[str] = []

    @asynccontextmanager
    async def step(self, name: str):
        try:
            yield
        except Exception as e:
            if not self.completed:
                raise
            logger.error(
                "cascade_incomplete",
                operation=self.operation,
                target_id=self.target_id,
                failed_step=name,
                completed_steps=list(self.completed),
                error=str(e),
            )
            raise CascadeIncompleteError(
                self.operation, self.target_id, name, list(self.completed)
            ) from e
        self.completed.append(name)


class CascadeCoordinator:
    def __init__(
        self,
        users: UserRepository,
        projects: ProjectRepository,
        items: ItemRepository,
        tags: TagRepository,
        comments: CommentRepository,
        registry: MembershipRegistry,
        tag_locks: KeyedLocks | None = None,
        project_locks: KeyedLocks | None = None,
    ):
        self.users = users
        self.projects = projects
        self.items = items
        self.tags = tags
        self.comments = comments
        self.registry = registry
        self.tag_locks = tag_locks or KeyedLocks("tag_usage")
        # Shared with the key generator; item inserts happen under it
        self.project_locks = project_locks or KeyedLocks("item_keys")

    # ------------------------------------------------------------------
    # Tag usage accounting
    # ------------------------------------------------------------------

    async def _adjust_usage(self, project_id: str, old_ids: list[str], new_ids: list[str]) -> None:
        old, new = set(old_ids or []), set(new_ids or [])
        deltas = {tag_id: 1 for tag_id in new - old}
        deltas.update({tag_id: -1 for tag_id in old - new})

        for tag_id, delta in deltas.items():
            tag = await self.tags.find_by_id(tag_id)
            if tag is None or tag.project_id != project_id:
                continue
            await self.tags.update(tag_id, {"usage_count": max(0, (tag.usage_count or 0) + delta)})

    async def apply_tag_changes(self, project_id: str, old_ids: list[str], new_ids: list[str]) -> None:
        """Adjust usage counters for an item whose tags went from old_ids to new_ids."""
        async with self.tag_locks(project_id):
            await self._adjust_usage(project_id, old_ids, new_ids)

    async def set_item_tags(self, item_id: str, tag_ids: list[str]) -> Item:
        """Replace an item's tags and move the usage counters with them.

        Tags that no longer exist in the item's project are dropped.
        """
        item = await self.items.find_by_id(item_id)
        if item is None:
            raise NotFoundError("Item not found")

        async with self.tag_locks(item.project_id):
            # Re-read under the lock; another writer may have changed the tags
            item = await self.items.find_by_id(item_id)
            if item is None:
                raise NotFoundError("Item not found")

            wanted = list(dict.fromkeys(tag_ids or []))
            existing = {
                tag.id for tag in await self.tags.find({"project_id": item.project_id, "id": wanted})
            } if wanted else set()
            kept = [tag_id for tag_id in wanted if tag_id in existing]
            if len(kept) != len(wanted):
                logger.info("missing_tags_dropped", item_id=item_id, count=len(wanted) - len(kept))

            updated = await self.items.update(item_id, {"tag_ids": kept})
            if updated is None:
                raise NotFoundError("Item not found")
            await self._adjust_usage(item.project_id, item.tag_ids or [], kept)

        return updated

    async def recount_tag_usage(self, project_id: str) -> dict[str, int]:
        """Rebuild every tag counter of a project from its items.

        Repair path for counters that drifted; returns the counts written.
        """
        async with self.tag_locks(project_id):
            counts = Counter()
            for item in await self.items.find({"project_id": project_id}):
                counts.update(set(item.tag_ids or []))

            result = {}
            for tag in await self.tags.find({"project_id": project_id}):
                actual = counts.get(tag.id, 0)
                if tag.usage_count != actual:
                    logger.warning(
                        "tag_usage_corrected",
                        tag_id=tag.id,
                        stored=tag.usage_count,
                        actual=actual,
                    )
                    await self.tags.update(tag.id, {"usage_count": actual})
                result[tag.id] = actual

        return result

    # ------------------------------------------------------------------
    # Deletions
    # ------------------------------------------------------------------

    async def delete_project(self, project_id: str) -> None:
        project = await self.projects.find_by_id(project_id)
        if project is None:
            raise NotFoundError("Project not found")

        run = CascadeRun("delete_project", project_id)

        # No item can be stored in the project while this lock is held
        async with self.project_locks(project_id):
            async with run.step("comments"):
                items = await self.items.find({"project_id": project_id})
                comments = await self.comments.find_by_items([item.id for item in items])
                for comment in comments:
                    await self.comments.remove(comment.id)

            async with run.step("items"):
                items = await self.items.find({"project_id": project_id})
                for item in items:
                    # Comments written since the first step go with their item
                    for comment in await self.comments.find_by_item(item.id):
                        await self.comments.remove(comment.id)
                    await self.items.remove(item.id)

            async with run.step("tags"):
                tags = await self.tags.find({"project_id": project_id})
                for tag in tags:
                    await self.tags.remove(tag.id)

            async with run.step("project"):
                await self.projects.remove(project_id)

        logger.info(
            "project_deleted",
            project_id=project_id,
            key=project.key,
            items=len(items),
            comments=len(comments),
            tags=len(tags),
        )

    @staticmethod
    def _check_unused(tag: Tag, force: bool) -> None:
        if tag.usage_count > 0 and not force:
            raise ConflictError(
                f"Tag is used by {tag.usage_count} item(s); use force delete to remove it anyway"
            )

    async def delete_tag(self, tag_id: str, force: bool = False) -> Tag:
        tag = await self.tags.find_by_id(tag_id)
        if tag is None:
            raise NotFoundError("Tag not found")

        self._check_unused(tag, force)

        run = CascadeRun("delete_tag", tag_id)

        async with self.tag_locks(tag.project_id):
            # Items may have been tagged while waiting for the lock
            tag = await self.tags.find_by_id(tag_id)
            if tag is None:
                raise NotFoundError("Tag not found")
            self._check_unused(tag, force)

            async with run.step("detach"):
                carriers = await self.items.find_with_tag(tag.project_id, tag_id)
                for item in carriers:
                    await self.items.update(
                        item.id, {"tag_ids": [t for t in item.tag_ids if t != tag_id]}
                    )
                await self.tags.update(tag_id, {"usage_count": 0})

            async with run.step("tag"):
                await self.tags.remove(tag_id)

        logger.info("tag_deleted", tag_id=tag_id, project_id=tag.project_id, force=force, detached=len(carriers))
        return tag

    async def delete_item(self, item_id: str) -> Item:
        item = await self.items.find_by_id(item_id)
        if item is None:
            raise NotFoundError("Item not found")

        run = CascadeRun("delete_item", item_id)

        async with run.step("children"):
            for child in await self.items.find_children(item_id):
                await self.items.update(child.id, {"parent_id": None})

        async with run.step("comments"):
            for comment in await self.comments.find_by_item(item_id):
                await self.comments.remove(comment.id)

        async with run.step("tag_usage"):
            await self.set_item_tags(item_id, [])

        async with run.step("item"):
            await self.items.remove(item_id)

        logger.info("item_deleted", item_id=item_id, key=item.key, project_id=item.project_id)
        return item

    async def delete_user(self, user_id: str) -> None:
        """Delete a user, handing their projects to another admin first.

        Fails with ConflictError before writing anything when the user owns
        projects and there is no other admin to take them over.
        """
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")

        owned = await self.projects.find_owned_by(user_id)
        heir = None
        if owned:
            admins = await self.users.find_admins(exclude_id=user_id)
            if not admins:
                raise ConflictError(
                    f"User owns {len(owned)} project(s) and no other admin exists to take them over"
                )
            heir = admins[0]

        run = CascadeRun("delete_user", user_id)

        async with run.step("ownership"):
            for project in owned:
                await self.registry.transfer_ownership(project.id, heir.id)

        async with run.step("memberships"):
            for project in await self.projects.find_with_member(user_id):
                await self.registry.remove_member(project.id, user_id)

        async with run.step("items"):
            for item in await self.items.find_reported_by(user_id):
                await self.items.update(item.id, {"reporter_id": None})
            for item in await self.items.find_assigned_to(user_id):
                await self.items.update(item.id, {"assignee_id": None})

        async with run.step("comments"):
            for comment in await self.comments.find_by_author(user_id):
                await self.comments.update(comment.id, {"author_id": None})
            for comment in await self.comments.find_mentioning(user_id):
                await self.comments.update(
                    comment.id,
                    {"mentioned_user_ids": [u for u in comment.mentioned_user_ids if u != user_id]},
                )
            for comment in await self.comments.find_read_by(user_id):
                await self.comments.update(
                    comment.id, {"read_by": [u for u in comment.read_by if u != user_id]}
                )

        async with run.step("user"):
            await self.users.remove(user_id)

        logger.info(
            "user_deleted",
            user_id=user_id,
            transferred_projects=len(owned),
            heir_id=heir.id if heir else None,
        )
