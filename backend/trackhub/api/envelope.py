"""Response envelope.

Every response body has the shape
``{success, message, data?, errors?, pagination?}``.
"""

from typing import Any

from fastapi import status
from fastapi.responses import ORJSONResponse

from trackhub.db.base import Base
from trackhub.models import User
from trackhub.services.pagination import Page, Pagination


def dump(value: Any) -> Any:
    """Turn models (and containers of models) into JSON-ready structures."""
    if isinstance(value, User):
        return value.to_public_dict()
    if isinstance(value, Base):
        return value.to_dict()
    if isinstance(value, (list, tuple)):
        return [dump(v) for v in value]
    if isinstance(value, dict):
        return {k: dump(v) for k, v in value.items()}
    return value


def ok(
    message: str,
    data: Any = None,
    *,
    pagination: Pagination | None = None,
    status_code: int = status.HTTP_200_OK,
) -> ORJSONResponse:
    body: dict[str, Any] = {"success": True, "message": message}
    if isinstance(data, Page):
        pagination = data.pagination
        data = data.items
    if data is not None:
        body["data"] = dump(data)
    if pagination is not None:
        body["pagination"] = pagination.to_dict()
    return ORJSONResponse(body, status_code=status_code)


def created(message: str, data: Any = None) -> ORJSONResponse:
    return ok(message, data, status_code=status.HTTP_201_CREATED)


def error(
    message: str,
    status_code: int,
    errors: list[str] | None = None,
    detail: str | None = None,
    headers: dict[str, str] | None = None,
) -> ORJSONResponse:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    if detail:
        body["error"] = detail
    return ORJSONResponse(body, status_code=status_code, headers=headers)
