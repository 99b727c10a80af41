"""Account self-service: registration, login, token refresh and password changes."""

import structlog

from trackhub.config import Settings
from trackhub.db.base import utcnow
from trackhub.models import User
from trackhub.repositories import UserRepository
from trackhub.services.exceptions import NotFoundError, UnauthenticatedError, ValidationError
from trackhub.services.identity import (
    Actor,
    IdentityService,
    create_access_token,
    create_refresh_token,
)
from trackhub.services.passwords import PasswordService
from trackhub.services.schemas import (
    LoginRequest,
    PasswordChange,
    RefreshRequest,
    RegisterRequest,
    validate,
)
from trackhub.services.users import UserService

logger = structlog.get_logger()


class AuthService:
    def __init__(
        self,
        settings: Settings,
        users: UserRepository,
        user_service: UserService,
        identity: IdentityService,
        passwords: PasswordService,
    ):
        self.settings = settings
        self.users = users
        self.user_service = user_service
        self.identity = identity
        self.passwords = passwords

    def issue_tokens(self, user: User) -> dict:
        return {
            "access_token": create_access_token(user, self.settings),
            "refresh_token": create_refresh_token(user, self.settings),
            "token_type": "bearer",
            "expires_in": self.settings.jwt_access_token_expire_minutes * 60,
        }

    async def register(self, data) -> tuple[User, dict]:
        """Self-registration always creates a developer account."""
        payload = validate(RegisterRequest, data)
        user = await self.user_service.create_user(
            {
                "username": payload.username,
                "email": payload.email,
                "password": payload.password,
                "profile": payload.profile.model_dump(exclude_none=True),
                "role": "developer",
            }
        )
        logger.info("user_registered", user_id=user.id, username=user.username)
        return user, self.issue_tokens(user)

    async def login(self, data) -> tuple[User, dict]:
        payload = validate(LoginRequest, data)

        user = await self.users.find_by_email(payload.email)
        if user is None or not await self.passwords.verify(user.password_hash, payload.password):
            logger.info("login_failed", email=payload.email)
            raise UnauthenticatedError("Invalid email or password")

        patch = {"last_active_at": utcnow()}
        if self.passwords.needs_rehash(user.password_hash):
            patch["password_hash"] = await self.passwords.hash(payload.password)
        user = await self.users.update(user.id, patch)

        logger.info("user_logged_in", user_id=user.id)
        return user, self.issue_tokens(user)

    async def refresh(self, data) -> dict:
        payload = validate(RefreshRequest, data)
        user = await self.identity.verify_refresh(payload.refresh_token)
        return self.issue_tokens(user)

    async def change_password(self, actor: Actor, data) -> None:
        payload = validate(PasswordChange, data)

        user = await self.users.find_by_id(actor.user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not await self.passwords.verify(user.password_hash, payload.current_password):
            raise ValidationError(
                "Validation error",
                errors=["current_password: current password is incorrect"],
            )

        await self.users.update(user.id, {"password_hash": await self.passwords.hash(payload.new_password)})
        logger.info("password_changed", user_id=user.id)

    async def logout(self, actor: Actor) -> None:
        # Tokens are stateless; the client discards them
        logger.info("user_logged_out", user_id=actor.user_id)
