"""Shared FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from trackhub.services.container import Container
from trackhub.services.exceptions import ForbiddenError
from trackhub.services.identity import Actor

security = HTTPBearer(auto_error=False)


def get_container(request: Request) -> Container:
    return request.app.state.container


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    container: Annotated[Container, Depends(get_container)],
) -> Actor:
    """Resolve the bearer token into the calling actor."""
    token = credentials.credentials if credentials else None
    return await container.identity.verify(token)


async def get_admin_actor(actor: Annotated[Actor, Depends(get_current_actor)]) -> Actor:
    if not actor.is_admin:
        raise ForbiddenError("Admin access required")
    return actor


Services = Annotated[Container, Depends(get_container)]
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
AdminActor = Annotated[Actor, Depends(get_admin_actor)]
