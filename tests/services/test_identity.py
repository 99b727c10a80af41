from datetime import timedelta

import pytest
from jose import jwt

from trackhub.services.exceptions import UnauthenticatedError
from trackhub.services.identity import create_access_token, create_refresh_token


class TestIdentity:
    async def test_valid_token(self, container, settings, alice):
        token = create_access_token(alice, settings)

        actor = await container.identity.verify(token)

        assert actor.user_id == alice.id
        assert actor.role == "developer"
        assert not actor.is_admin

    async def test_role_comes_from_store(self, container, settings, alice):
        token = create_access_token(alice, settings)
        await container.users.update(alice.id, {"role": "admin"})

        actor = await container.identity.verify(token)

        assert actor.is_admin

    @pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
    async def test_missing_or_garbage(self, container, token):
        with pytest.raises(UnauthenticatedError):
            await container.identity.verify(token)

    async def test_expired(self, container, settings, alice):
        token = create_access_token(alice, settings, expires_delta=timedelta(seconds=-5))

        with pytest.raises(UnauthenticatedError):
            await container.identity.verify(token)

    async def test_wrong_secret(self, container, alice):
        token = jwt.encode({"sub": alice.id, "role": "developer", "type": "access"}, "other", algorithm="HS256")

        with pytest.raises(UnauthenticatedError):
            await container.identity.verify(token)

    async def test_refresh_token_rejected(self, container, settings, alice):
        token = jwt.encode(
            {"sub": alice.id, "role": "developer", "type": "refresh"},
            settings.jwt_secret_key.get_secret_value(),
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(UnauthenticatedError):
            container.identity.decode(token)

    async def test_deleted_user(self, container, settings, admin, alice):
        token = create_access_token(alice, settings)
        await container.cascade.delete_user(alice.id)

        with pytest.raises(UnauthenticatedError):
            await container.identity.verify(token)


class TestRefreshToken:
    async def test_resolves_user(self, container, settings, alice):
        user = await container.identity.verify_refresh(create_refresh_token(alice, settings))

        assert user.id == alice.id

    async def test_access_token_is_not_a_refresh_token(self, container, settings, alice):
        with pytest.raises(UnauthenticatedError, match="Invalid token type"):
            await container.identity.verify_refresh(create_access_token(alice, settings))

    async def test_refresh_token_carries_no_role(self, settings, alice):
        claims = jwt.get_unverified_claims(create_refresh_token(alice, settings))

        assert claims["type"] == "refresh"
        assert "role" not in claims

    async def test_deleted_user(self, container, settings, admin, alice):
        token = create_refresh_token(alice, settings)
        await container.cascade.delete_user(alice.id)

        with pytest.raises(UnauthenticatedError):
            await container.identity.verify_refresh(token)
