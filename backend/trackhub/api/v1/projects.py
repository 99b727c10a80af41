"""Projects API endpoints, including the project-scoped item and tag collections."""

from fastapi import APIRouter, Query
from fastapi.responses import ORJSONResponse

from trackhub.api.deps import CurrentActor, Services
from trackhub.api.envelope import created, ok
from trackhub.services.schemas import (
    ItemCreate,
    MemberAdd,
    MemberRoleUpdate,
    ProjectCreate,
    ProjectUpdate,
    TagCreate,
)

router = APIRouter()


@router.get("")
async def list_projects(
    actor: CurrentActor,
    services: Services,
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    status: str | None = None,
) -> ORJSONResponse:
    result = await services.project_service.list_projects(actor, page, limit, status)
    return ok("Projects retrieved successfully", result)


@router.post("")
async def create_project(body: ProjectCreate, actor: CurrentActor, services: Services) -> ORJSONResponse:
    project = await services.project_service.create_project(actor, body)
    return created("Project created successfully", project)


@router.get("/{project_id}")
async def get_project(project_id: str, actor: CurrentActor, services: Services) -> ORJSONResponse:
    project = await services.project_service.get_project(actor, project_id)
    return ok("Project retrieved successfully", project)


@router.put("/{project_id}")
async def update_project(
    project_id: str,
    body: ProjectUpdate,
    actor: CurrentActor,
    services: Services,
) -> ORJSONResponse:
    project = await services.project_service.update_project(actor, project_id, body)
    return ok("Project updated successfully", project)


@router.delete("/{project_id}")
async def delete_project(project_id: str, actor: CurrentActor, services: Services) -> ORJSONResponse:
    await services.project_service.delete_project(actor, project_id)
    return ok("Project deleted successfully")


# =============================================================================
# Members
# =============================================================================


@router.get("/{project_id}/members")
async def list_members(project_id: str, actor: CurrentActor, services: Services) -> ORJSONResponse:
    members = await services.project_service.list_members(actor, project_id)
    return ok("Project members retrieved successfully", members)


@router.post("/{project_id}/members")
async def add_member(
    project_id: str,
    body: MemberAdd,
    actor: CurrentActor,
    services: Services,
) -> ORJSONResponse:
    project = await services.project_service.add_member(actor, project_id, body)
    return created("Member added successfully", project)


@router.put("/{project_id}/members/{user_id}")
async def update_member_role(
    project_id: str,
    user_id: str,
    body: MemberRoleUpdate,
    actor: CurrentActor,
    services: Services,
) -> ORJSONResponse:
    project = await services.project_service.update_member_role(actor, project_id, user_id, body)
    return ok("Member role updated successfully", project)


@router.delete("/{project_id}/members/{user_id}")
async def remove_member(
    project_id: str,
    user_id: str,
    actor: CurrentActor,
    services: Services,
) -> ORJSONResponse:
    removed = await services.project_service.remove_member(actor, project_id, user_id)
    message = "Member removed successfully" if removed else "User was not a member"
    return ok(message, {"removed": removed})


@router.get("/{project_id}/stats")
async def project_stats(project_id: str, actor: CurrentActor, services: Services) -> ORJSONResponse:
    stats = await services.project_service.get_stats(actor, project_id)
    return ok("Project statistics retrieved successfully", stats)


# =============================================================================
# Items
# =============================================================================


@router.get("/{project_id}/items")
async def list_items(
    project_id: str,
    actor: CurrentActor,
    services: Services,
    status: str | None = None,
    type: str | None = None,
    priority: str | None = None,
    assignee_id: str | None = None,
    tag_id: str | None = None,
    parent_id: str | None = None,
    search: str | None = None,
    sort_by: str = "created_at",
    order: str = "desc",
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
) -> ORJSONResponse:
    result = await services.item_service.list_items(
        actor,
        project_id,
        status=status,
        type=type,
        priority=priority,
        assignee_id=assignee_id,
        tag_id=tag_id,
        parent_id=parent_id,
        search=search,
        sort_by=sort_by,
        order=order,
        page=page,
        limit=limit,
    )
    return ok("Items retrieved successfully", result)


@router.post("/{project_id}/items")
async def create_item(
    project_id: str,
    body: ItemCreate,
    actor: CurrentActor,
    services: Services,
) -> ORJSONResponse:
    item = await services.item_service.create_item(actor, project_id, body)
    return created("Item created successfully", item)


# =============================================================================
# Tags
# =============================================================================


@router.get("/{project_id}/tags")
async def list_tags(
    project_id: str,
    actor: CurrentActor,
    services: Services,
    search: str | None = None,
) -> ORJSONResponse:
    tags = await services.tag_service.list_tags(actor, project_id, search)
    return ok("Tags retrieved successfully", tags)


@router.get("/{project_id}/tags/most-used")
async def most_used_tags(
    project_id: str,
    actor: CurrentActor,
    services: Services,
    limit: int = Query(10, ge=1, le=100),
) -> ORJSONResponse:
    tags = await services.tag_service.most_used_tags(actor, project_id, limit)
    return ok("Most used tags retrieved successfully", tags)


@router.post("/{project_id}/tags")
async def create_tag(
    project_id: str,
    body: TagCreate,
    actor: CurrentActor,
    services: Services,
) -> ORJSONResponse:
    tag = await services.tag_service.create_tag(actor, project_id, body)
    return created("Tag created successfully", tag)


@router.post("/{project_id}/tags/recount")
async def recount_tag_usage(project_id: str, actor: CurrentActor, services: Services) -> ORJSONResponse:
    counts = await services.tag_service.recount_usage(actor, project_id)
    return ok("Tag usage recounted", counts)
