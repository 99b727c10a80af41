import pytest

from trackhub.services.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidOperationError,
    ValidationError,
)

from fakes import as_actor


class TestCreateUser:
    async def test_email_is_normalised(self, container):
        user = await container.user_service.create_user(
            {"username": "erin", "email": "Erin@Example.COM", "password": "secret1"}
        )

        assert user.email == "erin@example.com"
        assert user.role == "developer"
        assert "password_hash" not in user.to_public_dict()

    async def test_duplicate_username(self, container, alice):
        with pytest.raises(ConflictError):
            await container.user_service.create_user(
                {"username": "alice", "email": "other@example.com", "password": "secret1"}
            )

    async def test_duplicate_email(self, container, alice):
        with pytest.raises(ConflictError):
            await container.user_service.create_user(
                {"username": "alice2", "email": "alice@example.com", "password": "secret1"}
            )

    @pytest.mark.parametrize(
        "data",
        [
            {"username": "ab", "email": "x@example.com", "password": "secret1"},
            {"username": "bad name", "email": "x@example.com", "password": "secret1"},
            {"username": "good", "email": "not-an-email", "password": "secret1"},
            {"username": "good", "email": "x@example.com", "password": "secret1", "role": "root"},
            {"username": "good", "email": "x@example.com", "password": "short"},
        ],
    )
    async def test_invalid(self, container, data):
        with pytest.raises(ValidationError):
            await container.user_service.create_user(data)


class TestUserAccess:
    async def test_self_and_admin_can_read(self, container, admin, alice):
        assert (await container.user_service.get_user(as_actor(alice), alice.id)).id == alice.id
        assert (await container.user_service.get_user(as_actor(admin), alice.id)).id == alice.id

    async def test_others_cannot_read(self, container, alice, bob):
        with pytest.raises(ForbiddenError):
            await container.user_service.get_user(as_actor(bob), alice.id)

    async def test_list_is_admin_only(self, container, admin, alice, carol):
        with pytest.raises(ForbiddenError):
            await container.user_service.list_users(as_actor(alice))

        viewers = await container.user_service.list_users(as_actor(admin), role="viewer")
        assert [u.username for u in viewers.items] == ["carol"]


class TestUpdateUser:
    async def test_profile_merges(self, container, alice):
        actor = as_actor(alice)
        await container.user_service.update_user(actor, alice.id, {"profile": {"first_name": "Alice"}})

        updated = await container.user_service.update_user(actor, alice.id, {"profile": {"last_name": "Liddell"}})

        assert updated.profile == {"first_name": "Alice", "last_name": "Liddell"}

    async def test_role_change_needs_admin(self, container, admin, alice):
        with pytest.raises(ForbiddenError):
            await container.user_service.update_user(as_actor(alice), alice.id, {"role": "admin"})

        updated = await container.user_service.update_user(as_actor(admin), alice.id, {"role": "manager"})
        assert updated.role == "manager"

    async def test_email_taken(self, container, alice, bob):
        with pytest.raises(ConflictError):
            await container.user_service.update_user(as_actor(alice), alice.id, {"email": "bob@example.com"})

    async def test_username_is_immutable(self, container, alice):
        with pytest.raises(ValidationError):
            await container.user_service.update_user(as_actor(alice), alice.id, {"username": "alicia"})


class TestDeleteUser:
    async def test_admin_cannot_delete_self(self, container, admin):
        with pytest.raises(InvalidOperationError):
            await container.user_service.delete_user(as_actor(admin), admin.id)

    async def test_non_admin_cannot_delete(self, container, alice, bob):
        with pytest.raises(ForbiddenError):
            await container.user_service.delete_user(as_actor(alice), bob.id)

    async def test_admin_deletes(self, container, admin, bob):
        await container.user_service.delete_user(as_actor(admin), bob.id)

        assert await container.users.find_by_id(bob.id) is None


class TestSearchAndStats:
    async def test_search(self, container, alice, bob, carol):
        await container.user_service.update_user(as_actor(bob), bob.id, {"profile": {"last_name": "Alison"}})

        found = await container.user_service.search_users(as_actor(carol), "ali")

        assert [u.username for u in found] == ["alice", "bob"]

    async def test_short_query(self, container, alice):
        with pytest.raises(ValidationError):
            await container.user_service.search_users(as_actor(alice), " a ")

    async def test_stats(self, container, admin, alice, bob, carol):
        stats = await container.user_service.user_stats(as_actor(admin))

        assert stats["total_users"] == 4
        assert stats["users_by_role"] == {"admin": 1, "manager": 0, "developer": 2, "viewer": 1}
        assert stats["recent_registrations"] == 4

    async def test_stats_admin_only(self, container, alice):
        with pytest.raises(ForbiddenError):
            await container.user_service.user_stats(as_actor(alice))
