"""Tags API endpoints."""

from fastapi import APIRouter, Query
from fastapi.responses import ORJSONResponse

from trackhub.api.deps import CurrentActor, Services
from trackhub.api.envelope import ok
from trackhub.services.schemas import TagUpdate

router = APIRouter()


@router.get("/{tag_id}")
async def get_tag(tag_id: str, actor: CurrentActor, services: Services) -> ORJSONResponse:
    tag = await services.tag_service.get_tag(actor, tag_id)
    return ok("Tag retrieved successfully", tag)


@router.put("/{tag_id}")
async def update_tag(
    tag_id: str,
    body: TagUpdate,
    actor: CurrentActor,
    services: Services,
) -> ORJSONResponse:
    tag = await services.tag_service.update_tag(actor, tag_id, body)
    return ok("Tag updated successfully", tag)


@router.delete("/{tag_id}")
async def delete_tag(tag_id: str, actor: CurrentActor, services: Services) -> ORJSONResponse:
    await services.tag_service.delete_tag(actor, tag_id)
    return ok("Tag deleted successfully")


@router.delete("/{tag_id}/force")
async def force_delete_tag(tag_id: str, actor: CurrentActor, services: Services) -> ORJSONResponse:
    tag = await services.tag_service.delete_tag(actor, tag_id, force=True)
    return ok("Tag force deleted successfully", {"removed_from_items": tag.usage_count})


@router.get("/{tag_id}/usage")
async def tag_usage(
    tag_id: str,
    actor: CurrentActor,
    services: Services,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
) -> ORJSONResponse:
    tag, result = await services.tag_service.tag_usage(actor, tag_id, page, limit)
    return ok(
        "Tag usage retrieved successfully",
        {"tag": tag, "items": result.items},
        pagination=result.pagination,
    )
