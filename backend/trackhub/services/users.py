"""User service."""

from collections import Counter
from datetime import timedelta

import structlog

from trackhub.config import Settings
from trackhub.db.base import utcnow
from trackhub.models import GLOBAL_ROLES, User
from trackhub.repositories import UserRepository
from trackhub.services.cascade import CascadeCoordinator
from trackhub.services.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidOperationError,
    NotFoundError,
    ValidationError,
)
from trackhub.services.identity import Actor
from trackhub.services.pagination import Page, clamp, paginate
from trackhub.services.passwords import PasswordService
from trackhub.services.schemas import UserCreate, UserUpdate, validate

logger = structlog.get_logger()

RECENT_REGISTRATION_DAYS = 30


class UserService:
    def __init__(
        self,
        settings: Settings,
        users: UserRepository,
        cascade: CascadeCoordinator,
        passwords: PasswordService,
    ):
        self.settings = settings
        self.users = users
        self.cascade = cascade
        self.passwords = passwords

    async def create_user(self, data) -> User:
        """Register a user. Username and email must both be unused."""
        payload = validate(UserCreate, data)

        if await self.users.find_by_username(payload.username):
            raise ConflictError("Username already taken")
        if await self.users.find_by_email(payload.email):
            raise ConflictError("Email already registered")

        user = await self.users.insert(
            User(
                username=payload.username,
                email=payload.email,
                password_hash=await self.passwords.hash(payload.password),
                profile=payload.profile.model_dump(exclude_none=True),
                role=payload.role,
            )
        )
        logger.info("user_created", user_id=user.id, username=user.username, role=user.role)
        return user

    async def get_user(self, actor: Actor, user_id: str) -> User:
        if actor.user_id != user_id and not actor.is_admin:
            raise ForbiddenError("Cannot view another user's account")
        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def list_users(
        self,
        actor: Actor,
        page: int | None = None,
        limit: int | None = None,
        role: str | None = None,
    ) -> Page[User]:
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")
        if role is not None and role not in GLOBAL_ROLES:
            raise ValidationError(
                "Validation error",
                errors=[f"role: must be one of: {', '.join(GLOBAL_ROLES)}"],
            )

        page, limit = clamp(page, limit, self.settings.default_page_size, self.settings.max_page_size)
        users = await self.users.find({"role": role} if role else None, order_by="username")
        return paginate(users, page, limit)

    async def search_users(self, actor: Actor, q: str, limit: int = 10) -> list[User]:
        """Case-insensitive match on username, email and profile names."""
        q = (q or "").strip()
        if len(q) < 2:
            raise ValidationError("Search query must be at least 2 characters")

        needle = q.lower()
        matches = []
        for user in await self.users.find(order_by="username"):
            profile = user.profile or {}
            fields = (
                user.username,
                user.email,
                profile.get("first_name") or "",
                profile.get("last_name") or "",
            )
            if any(needle in value.lower() for value in fields):
                matches.append(user)
        return matches[:max(1, min(limit, self.settings.max_page_size))]

    async def update_user(self, actor: Actor, user_id: str, data) -> User:
        if actor.user_id != user_id and not actor.is_admin:
            raise ForbiddenError("Cannot update another user's account")

        user = await self.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")

        payload = validate(UserUpdate, data)
        patch = {}

        if payload.role is not None and payload.role != user.role:
            if not actor.is_admin:
                raise ForbiddenError("Only admins can change roles")
            patch["role"] = payload.role

        if payload.email is not None and payload.email != user.email:
            existing = await self.users.find_by_email(payload.email)
            if existing is not None and existing.id != user_id:
                raise ConflictError("Email already registered")
            patch["email"] = payload.email

        if payload.profile is not None:
            patch["profile"] = {
                **(user.profile or {}),
                **payload.profile.model_dump(exclude_unset=True),
            }

        if not patch:
            return user

        updated = await self.users.update(user_id, patch)
        logger.info("user_updated", user_id=user_id, fields=sorted(patch), by=actor.user_id)
        return updated

    async def delete_user(self, actor: Actor, user_id: str) -> None:
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")
        if actor.user_id == user_id:
            raise InvalidOperationError("Cannot delete your own account")
        await self.cascade.delete_user(user_id)

    async def user_stats(self, actor: Actor) -> dict:
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")

        users = await self.users.find()
        by_role = Counter(user.role for user in users)
        since = utcnow() - timedelta(days=RECENT_REGISTRATION_DAYS)
        recent = sum(1 for user in users if user.created_at and _aware(user.created_at) >= since)

        return {
            "total_users": len(users),
            "users_by_role": {role: by_role.get(role, 0) for role in GLOBAL_ROLES},
            "recent_registrations": recent,
        }


def _aware(value):
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=utcnow().tzinfo)
