"""Bearer token verification and the actor identity it produces."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import structlog
from jose import JWTError, jwt

from trackhub.config import Settings
from trackhub.models import GLOBAL_ROLES, User
from trackhub.repositories import UserRepository
from trackhub.services.exceptions import UnauthenticatedError

logger = structlog.get_logger()


@dataclass(frozen=True)
class Actor:
    """The authenticated caller: who they are and their global role."""

    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(user_id=user.id, role=user.role)


def create_access_token(user: User, settings: Settings, expires_delta: timedelta | None = None) -> str:
    """Create a JWT access token."""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes)
    )
    to_encode = {
        "sub": user.id,
        "role": user.role,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key.get_secret_value(),
        algorithm=settings.jwt_algorithm,
    )


def create_refresh_token(user: User, settings: Settings) -> str:
    """Create a JWT refresh token. It carries no role; only /auth/refresh accepts it."""
    expire = datetime.now(timezone.utc) + timedelta(days=settings.jwt_refresh_token_expire_days)
    to_encode = {
        "sub": user.id,
        "exp": expire,
        "type": "refresh",
    }
    return jwt.encode(
        to_encode,
        settings.jwt_secret_key.get_secret_value(),
        algorithm=settings.jwt_algorithm,
    )


class IdentityService:
    """Turns a bearer credential into an :class:`Actor`."""

    def __init__(self, settings: Settings, users: UserRepository):
        self.settings = settings
        self.users = users

    def _claims(self, token: str, token_type: str) -> dict:
        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret_key.get_secret_value(),
                algorithms=[self.settings.jwt_algorithm],
            )
        except JWTError as e:
            raise UnauthenticatedError("Invalid or expired token") from e

        if payload.get("type") != token_type:
            raise UnauthenticatedError("Invalid token type")
        return payload

    def decode(self, token: str) -> Actor:
        """Verify the token signature and claims, without touching the store."""
        payload = self._claims(token, "access")

        user_id = payload.get("sub")
        role = payload.get("role")
        if not user_id or role not in GLOBAL_ROLES:
            raise UnauthenticatedError("Invalid token payload")

        return Actor(user_id=user_id, role=role)

    async def verify(self, token: str | None) -> Actor:
        """Verify a token and confirm its user still exists.

        The role is taken from the stored user, so a role change takes effect
        before the token expires.
        """
        if not token:
            raise UnauthenticatedError("Access token required")

        claims = self.decode(token)
        user = await self.users.find_by_id(claims.user_id)
        if user is None:
            logger.info("token_for_missing_user", user_id=claims.user_id)
            raise UnauthenticatedError("User not found")

        return Actor.from_user(user)

    async def verify_refresh(self, token: str | None) -> User:
        """Resolve a refresh token to its (still existing) user."""
        if not token:
            raise UnauthenticatedError("Refresh token required")

        user_id = self._claims(token, "refresh").get("sub")
        user = await self.users.find_by_id(user_id) if user_id else None
        if user is None:
            raise UnauthenticatedError("User not found")
        return user
