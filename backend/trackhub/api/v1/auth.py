"""Authentication endpoints."""

from fastapi import APIRouter
from fastapi.responses import ORJSONResponse

from trackhub.api.deps import CurrentActor, Services
from trackhub.api.envelope import created, ok
from trackhub.services.schemas import (
    LoginRequest,
    PasswordChange,
    RefreshRequest,
    RegisterRequest,
    UserUpdate,
)

router = APIRouter()


@router.post("/register")
async def register(body: RegisterRequest, services: Services) -> ORJSONResponse:
    user, tokens = await services.auth_service.register(body)
    return created("User registered successfully", {"user": user, **tokens})


@router.post("/login")
async def login(body: LoginRequest, services: Services) -> ORJSONResponse:
    user, tokens = await services.auth_service.login(body)
    return ok("Login successful", {"user": user, **tokens})


@router.post("/refresh")
async def refresh_token(body: RefreshRequest, services: Services) -> ORJSONResponse:
    """Exchange a refresh token for a new token pair."""
    tokens = await services.auth_service.refresh(body)
    return ok("Token refreshed successfully", tokens)


@router.get("/me")
async def get_profile(actor: CurrentActor, services: Services) -> ORJSONResponse:
    user = await services.user_service.get_user(actor, actor.user_id)
    return ok("Profile retrieved successfully", user)


@router.put("/me")
async def update_profile(body: UserUpdate, actor: CurrentActor, services: Services) -> ORJSONResponse:
    user = await services.user_service.update_user(actor, actor.user_id, body)
    return ok("Profile updated successfully", user)


@router.put("/password")
async def change_password(body: PasswordChange, actor: CurrentActor, services: Services) -> ORJSONResponse:
    await services.auth_service.change_password(actor, body)
    return ok("Password changed successfully")


@router.post("/logout")
async def logout(actor: CurrentActor, services: Services) -> ORJSONResponse:
    """Tokens are stateless; the client discards them."""
    await services.auth_service.logout(actor)
    return ok("Successfully logged out")
