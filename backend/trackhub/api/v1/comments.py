"""Comments API endpoints."""

from fastapi import APIRouter
from fastapi.responses import ORJSONResponse

from trackhub.api.deps import CurrentActor, Services
from trackhub.api.envelope import ok
from trackhub.services.schemas import CommentWrite

router = APIRouter()


@router.put("/{comment_id}")
async def update_comment(
    comment_id: str,
    body: CommentWrite,
    actor: CurrentActor,
    services: Services,
) -> ORJSONResponse:
    comment = await services.comment_service.update_comment(actor, comment_id, body)
    return ok("Comment updated successfully", comment)


@router.delete("/{comment_id}")
async def delete_comment(comment_id: str, actor: CurrentActor, services: Services) -> ORJSONResponse:
    await services.comment_service.delete_comment(actor, comment_id)
    return ok("Comment deleted successfully")
