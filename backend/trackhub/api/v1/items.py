"""Items API endpoints."""

from fastapi import APIRouter, Query
from fastapi.responses import ORJSONResponse

from trackhub.api.deps import CurrentActor, Services
from trackhub.api.envelope import created, ok
from trackhub.services.schemas import CommentWrite, ItemAssign, ItemStatusUpdate, ItemUpdate

router = APIRouter()


@router.get("/{item_id}")
async def get_item(item_id: str, actor: CurrentActor, services: Services) -> ORJSONResponse:
    item = await services.item_service.get_item(actor, item_id)
    return ok("Item retrieved successfully", item)


@router.put("/{item_id}")
async def update_item(
    item_id: str,
    body: ItemUpdate,
    actor: CurrentActor,
    services: Services,
) -> ORJSONResponse:
    item = await services.item_service.update_item(actor, item_id, body)
    return ok("Item updated successfully", item)


@router.delete("/{item_id}")
async def delete_item(item_id: str, actor: CurrentActor, services: Services) -> ORJSONResponse:
    await services.item_service.delete_item(actor, item_id)
    return ok("Item deleted successfully")


@router.put("/{item_id}/status")
async def update_status(
    item_id: str,
    body: ItemStatusUpdate,
    actor: CurrentActor,
    services: Services,
) -> ORJSONResponse:
    item = await services.item_service.update_status(actor, item_id, body)
    return ok("Item status updated successfully", item)


@router.put("/{item_id}/assign")
async def assign_item(
    item_id: str,
    body: ItemAssign,
    actor: CurrentActor,
    services: Services,
) -> ORJSONResponse:
    item = await services.item_service.assign_item(actor, item_id, body)
    return ok("Item assigned successfully", item)


@router.get("/{item_id}/children")
async def get_children(item_id: str, actor: CurrentActor, services: Services) -> ORJSONResponse:
    children = await services.item_service.get_children(actor, item_id)
    return ok("Child items retrieved successfully", children)


@router.get("/{item_id}/comments")
async def list_comments(
    item_id: str,
    actor: CurrentActor,
    services: Services,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
) -> ORJSONResponse:
    result = await services.comment_service.list_comments(actor, item_id, page, limit)
    return ok("Comments retrieved successfully", result)


@router.post("/{item_id}/comments")
async def create_comment(
    item_id: str,
    body: CommentWrite,
    actor: CurrentActor,
    services: Services,
) -> ORJSONResponse:
    comment = await services.comment_service.create_comment(actor, item_id, body)
    return created("Comment created successfully", comment)
