import asyncio
import copy
from unittest.mock import AsyncMock

import pytest

from trackhub.models import Item
from trackhub.services.exceptions import CascadeIncompleteError, ConflictError, NotFoundError

from fakes import as_actor


@pytest.fixture
async def populated(container, project, alice, bob, carol):
    """Two items with comments and a tag on the ALPHA project."""
    tag = await container.tag_service.create_tag(as_actor(alice), project.id, {"name": "backend"})
    epic = await container.item_service.create_item(
        as_actor(bob), project.id, {"title": "Epic", "type": "epic", "tag_ids": [tag.id]}
    )
    story = await container.item_service.create_item(
        as_actor(bob),
        project.id,
        {"title": "Story", "parent_id": epic.id, "assignee_id": carol.id, "tag_ids": [tag.id]},
    )
    comment = await container.comment_service.create_comment(
        as_actor(carol), story.id, {"content": "@bob on it"}
    )
    return {"tag": tag, "epic": epic, "story": story, "comment": comment}


# ===================================================================
#  Projects
# ===================================================================
class TestDeleteProject:
    async def test_removes_everything(self, container, project, populated):
        await container.cascade.delete_project(project.id)

        assert await container.projects.find_by_id(project.id) is None
        assert await container.items.count({"project_id": project.id}) == 0
        assert await container.tags.count({"project_id": project.id}) == 0
        assert await container.comments.count() == 0

    async def test_other_projects_are_untouched(self, container, project, populated, alice):
        other = await container.project_service.create_project(as_actor(alice), {"name": "B", "key": "BETA"})
        item = await container.item_service.create_item(as_actor(alice), other.id, {"title": "keep me"})

        await container.cascade.delete_project(project.id)

        assert await container.items.find_by_id(item.id) is not None
        assert await container.projects.find_by_id(other.id) is not None

    async def test_partial_failure_keeps_project_for_retry(self, container, project, populated, monkeypatch):
        monkeypatch.setattr(container.items, "remove", AsyncMock(side_effect=RuntimeError("store down")))

        with pytest.raises(CascadeIncompleteError) as exc_info:
            await container.cascade.delete_project(project.id)

        assert exc_info.value.failed_step == "items"
        assert exc_info.value.completed_steps == ["comments"]
        assert await container.projects.find_by_id(project.id) is not None

        monkeypatch.undo()
        await container.cascade.delete_project(project.id)
        assert await container.projects.find_by_id(project.id) is None

    async def test_first_step_failure_propagates_as_is(self, container, project, populated, monkeypatch):
        monkeypatch.setattr(container.comments, "remove", AsyncMock(side_effect=RuntimeError("store down")))

        with pytest.raises(RuntimeError):
            await container.cascade.delete_project(project.id)

    async def test_missing_project(self, container):
        with pytest.raises(NotFoundError):
            await container.cascade.delete_project("missing")

    async def test_waits_for_item_being_stored(self, container, project, populated):
        async with container.keygen.allocate(project.id) as key:
            deletion = asyncio.create_task(container.cascade.delete_project(project.id))
            for _ in range(5):
                await asyncio.sleep(0)

            assert await container.projects.find_by_id(project.id) is not None
            late = await container.items.insert(Item(project_id=project.id, key=key, title="late"))

        await deletion

        assert await container.items.find_by_id(late.id) is None
        assert await container.items.count({"project_id": project.id}) == 0
        with pytest.raises(NotFoundError):
            await container.keygen.next_key(project.id)


# ===================================================================
#  Tags
# ===================================================================
class TestDeleteTag:
    async def test_in_use_tag_conflicts(self, container, populated):
        tag = populated["tag"]

        with pytest.raises(ConflictError):
            await container.cascade.delete_tag(tag.id)

        stored = await container.tags.find_by_id(tag.id)
        assert stored.usage_count == 2

    async def test_force_detaches_then_deletes(self, container, populated):
        tag = populated["tag"]

        await container.cascade.delete_tag(tag.id, force=True)

        assert await container.tags.find_by_id(tag.id) is None
        for key in ("epic", "story"):
            item = await container.items.find_by_id(populated[key].id)
            assert tag.id not in item.tag_ids

    async def test_item_tagged_while_waiting_conflicts(self, container, project, alice):
        tag = await container.tag_service.create_tag(as_actor(alice), project.id, {"name": "racy"})
        item = await container.item_service.create_item(as_actor(alice), project.id, {"title": "x"})

        async with container.cascade.tag_locks(project.id):
            deletion = asyncio.create_task(container.cascade.delete_tag(tag.id))
            for _ in range(5):
                await asyncio.sleep(0)
            await container.items.update(item.id, {"tag_ids": [tag.id]})
            await container.tags.update(tag.id, {"usage_count": 1})

        with pytest.raises(ConflictError):
            await deletion

        assert (await container.tags.find_by_id(tag.id)).usage_count == 1
        assert (await container.items.find_by_id(item.id)).tag_ids == [tag.id]

    async def test_unused_tag_deletes(self, container, project, alice):
        tag = await container.tag_service.create_tag(as_actor(alice), project.id, {"name": "idle"})

        await container.cascade.delete_tag(tag.id)

        assert await container.tags.find_by_id(tag.id) is None


# ===================================================================
#  Items
# ===================================================================
class TestDeleteItem:
    async def test_detaches_children_and_releases_tags(self, container, populated):
        epic, story, tag = populated["epic"], populated["story"], populated["tag"]

        await container.cascade.delete_item(epic.id)

        assert await container.items.find_by_id(epic.id) is None
        assert (await container.items.find_by_id(story.id)).parent_id is None
        assert (await container.tags.find_by_id(tag.id)).usage_count == 1

    async def test_removes_comments(self, container, populated):
        story, comment = populated["story"], populated["comment"]

        await container.cascade.delete_item(story.id)

        assert await container.comments.find_by_id(comment.id) is None


# ===================================================================
#  Users
# ===================================================================
class TestDeleteUser:
    async def test_sole_owner_without_other_admin_conflicts(self, container, project, populated, alice):
        projects_before = copy.deepcopy(container.projects.docs)
        users_before = set(container.users.docs)

        with pytest.raises(ConflictError):
            await container.cascade.delete_user(alice.id)

        assert set(container.users.docs) == users_before
        assert container.projects.docs == projects_before

    async def test_transfers_ownership_and_anonymizes(
        self, container, project, populated, alice, bob, carol, make_user
    ):
        first_admin = await make_user("root", role="admin")
        await make_user("root2", role="admin")
        # alice comments and reports too
        own_comment = await container.comment_service.create_comment(
            as_actor(alice), populated["story"].id, {"content": "ack @carol"}
        )
        await container.item_service.assign_item(as_actor(alice), populated["epic"].id, {"assignee_id": alice.id})

        await container.cascade.delete_user(alice.id)

        assert await container.users.find_by_id(alice.id) is None
        stored = await container.projects.find_by_id(project.id)
        assert stored.owner_id == first_admin.id
        assert stored.member_entry(first_admin.id)["role"] == "manager"
        assert stored.member_entry(alice.id) is None

        comment = await container.comments.find_by_id(own_comment.id)
        assert comment.author_id is None
        assert comment.content == "ack @carol"

        epic = await container.items.find_by_id(populated["epic"].id)
        assert epic.assignee_id is None

    async def test_removes_memberships_and_references(self, container, project, populated, bob, carol):
        await container.comment_service.mark_mentions_read(as_actor(bob), bob.id)

        await container.cascade.delete_user(bob.id)

        stored = await container.projects.find_by_id(project.id)
        assert stored.member_entry(bob.id) is None
        for key in ("epic", "story"):
            item = await container.items.find_by_id(populated[key].id)
            assert item.reporter_id is None
        comment = await container.comments.find_by_id(populated["comment"].id)
        assert bob.id not in comment.mentioned_user_ids
        assert bob.id not in comment.read_by
        assert comment.author_id == carol.id

    async def test_missing_user(self, container):
        with pytest.raises(NotFoundError):
            await container.cascade.delete_user("ghost")


# ===================================================================
#  Tag usage accounting
# ===================================================================
class TestTagUsage:
    async def test_counter_follows_item_updates(self, container, project, populated, alice, bob):
        other = await container.tag_service.create_tag(as_actor(alice), project.id, {"name": "frontend"})
        tag = populated["tag"]

        await container.item_service.update_item(
            as_actor(bob), populated["story"].id, {"tag_ids": [other.id]}
        )

        assert (await container.tags.find_by_id(tag.id)).usage_count == 1
        assert (await container.tags.find_by_id(other.id)).usage_count == 1

    async def test_recount_repairs_drift(self, container, project, populated):
        tag = populated["tag"]
        await container.tags.update(tag.id, {"usage_count": 42})

        counts = await container.cascade.recount_tag_usage(project.id)

        assert counts[tag.id] == 2
        assert (await container.tags.find_by_id(tag.id)).usage_count == 2
