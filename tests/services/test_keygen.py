import asyncio
import contextlib

import pytest

from trackhub.models import Item
from trackhub.services.exceptions import NotFoundError, ValidationError
from trackhub.services.keygen import parse_key

from fakes import as_actor


class TestParseKey:
    def test_parse(self):
        assert parse_key("ALPHA-12") == ("ALPHA", 12)

    @pytest.mark.parametrize("key", ["ALPHA", "ALPHA-", "-3", "ALPHA-x1"])
    def test_malformed(self, key):
        with pytest.raises(ValidationError):
            parse_key(key)


class TestNextKey:
    async def test_sequential_keys(self, container, project, bob):
        actor = as_actor(bob)
        keys = []
        for title in ("one", "two", "three"):
            item = await container.item_service.create_item(actor, project.id, {"title": title})
            keys.append(item.key)

        assert keys == ["ALPHA-1", "ALPHA-2", "ALPHA-3"]

    async def test_deleted_numbers_are_not_reused(self, container, project, alice, bob):
        first = await container.item_service.create_item(as_actor(bob), project.id, {"title": "one"})
        second = await container.item_service.create_item(as_actor(bob), project.id, {"title": "two"})
        await container.item_service.delete_item(as_actor(alice), second.id)

        third = await container.item_service.create_item(as_actor(bob), project.id, {"title": "three"})

        assert first.key == "ALPHA-1"
        assert third.key == "ALPHA-3"

    async def test_concurrent_allocation_has_no_collisions(self, container, project):
        keys = await asyncio.gather(*(container.keygen.next_key(project.id) for _ in range(50)))

        assert len(set(keys)) == 50
        assert {parse_key(k)[1] for k in keys} == set(range(1, 51))

        stored = await container.projects.find_by_id(project.id)
        assert stored.item_sequence == 50

    async def test_unlocked_allocation_collides(self, container, project, monkeypatch):
        monkeypatch.setattr(container.keygen, "locks", lambda key: contextlib.nullcontext())

        keys = await asyncio.gather(*(container.keygen.next_key(project.id) for _ in range(50)))

        assert len(set(keys)) < 50

    async def test_numeric_not_lexical_maximum(self, container, project):
        # Items that predate the persisted counter
        for number in (9, 10):
            await container.items.insert(
                Item(project_id=project.id, key=f"ALPHA-{number}", title=f"legacy {number}", reporter_id=None)
            )

        assert await container.keygen.next_key(project.id) == "ALPHA-11"

    async def test_unknown_project(self, container):
        with pytest.raises(NotFoundError):
            await container.keygen.next_key("missing")
