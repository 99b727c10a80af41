"""Users API endpoints, including per-user mention inboxes."""

from fastapi import APIRouter, Query
from fastapi.responses import ORJSONResponse

from trackhub.api.deps import AdminActor, CurrentActor, Services
from trackhub.api.envelope import created, ok
from trackhub.services.schemas import MentionsRead, UserCreate, UserUpdate

router = APIRouter()


@router.get("")
async def list_users(
    actor: AdminActor,
    services: Services,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    role: str | None = None,
) -> ORJSONResponse:
    result = await services.user_service.list_users(actor, page, limit, role)
    return ok("Users retrieved successfully", result)


@router.post("")
async def create_user(body: UserCreate, actor: AdminActor, services: Services) -> ORJSONResponse:
    user = await services.user_service.create_user(body)
    return created("User created successfully", user)


@router.get("/search")
async def search_users(
    actor: CurrentActor,
    services: Services,
    q: str = "",
    limit: int = Query(10, ge=1, le=100),
) -> ORJSONResponse:
    users = await services.user_service.search_users(actor, q, limit)
    return ok("Users found", users)


@router.get("/stats")
async def user_stats(actor: AdminActor, services: Services) -> ORJSONResponse:
    stats = await services.user_service.user_stats(actor)
    return ok("User statistics retrieved successfully", stats)


@router.get("/{user_id}")
async def get_user(user_id: str, actor: CurrentActor, services: Services) -> ORJSONResponse:
    user = await services.user_service.get_user(actor, user_id)
    return ok("User retrieved successfully", user)


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    body: UserUpdate,
    actor: CurrentActor,
    services: Services,
) -> ORJSONResponse:
    user = await services.user_service.update_user(actor, user_id, body)
    return ok("User updated successfully", user)


@router.delete("/{user_id}")
async def delete_user(user_id: str, actor: AdminActor, services: Services) -> ORJSONResponse:
    await services.user_service.delete_user(actor, user_id)
    return ok("User deleted successfully")


# =============================================================================
# Mentions
# =============================================================================


@router.get("/{user_id}/mentions")
async def user_mentions(
    user_id: str,
    actor: CurrentActor,
    services: Services,
    unread_only: bool = False,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
) -> ORJSONResponse:
    result = await services.comment_service.user_mentions(actor, user_id, unread_only, page, limit)
    return ok("Mentions retrieved successfully", result)


@router.put("/{user_id}/mentions/read")
async def mark_mentions_read(
    user_id: str,
    actor: CurrentActor,
    services: Services,
    body: MentionsRead | None = None,
) -> ORJSONResponse:
    modified = await services.comment_service.mark_mentions_read(actor, user_id, body)
    return ok("Mentions marked as read", {"modified_count": modified})
