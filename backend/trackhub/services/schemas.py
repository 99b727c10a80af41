"""Input schemas and their validation.

The field constraints of every writable entity live here as pydantic models;
services call :func:`validate` before touching the store.
"""

from datetime import date
from typing import Literal, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from trackhub.services.exceptions import ValidationError

SchemaT = TypeVar("SchemaT", bound=BaseModel)

GlobalRole = Literal["admin", "manager", "developer", "viewer"]
ProjectStatus = Literal["active", "archived", "completed"]
ItemType = Literal["epic", "feature", "task", "bug"]
ItemStatus = Literal["todo", "inprogress", "review", "testing", "done"]
ItemPriority = Literal["low", "medium", "high", "critical"]

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class Schema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class PatchSchema(Schema):
    """Partial update; unknown fields (including immutable ones) are rejected."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")


def format_errors(exc: PydanticValidationError) -> list[str]:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"] if part not in ("body", "query", "path"))
        messages.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return messages


def validate(schema: type[SchemaT], data) -> SchemaT:
    """Validate a mapping (or an already built schema) against ``schema``."""
    if isinstance(data, schema):
        return data
    try:
        return schema.model_validate(data or {})
    except PydanticValidationError as e:
        raise ValidationError("Validation error", errors=format_errors(e)) from e


# --- Users ---

class UserProfile(Schema):
    first_name: str | None = Field(None, max_length=50)
    last_name: str | None = Field(None, max_length=50)
    avatar: str | None = Field(None, max_length=500)


class UserCreate(Schema):
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9]+$")
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    profile: UserProfile = Field(default_factory=UserProfile)
    role: GlobalRole = "developer"

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class UserUpdate(PatchSchema):
    email: EmailStr | None = None
    profile: UserProfile | None = None
    role: GlobalRole | None = None

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str | None) -> str | None:
        return v.lower() if v else v


# --- Projects ---

class ProjectCreate(Schema):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(default="", max_length=1000)
    key: str = Field(..., min_length=2, max_length=10, pattern=r"^[A-Za-z0-9]+$")
    status: ProjectStatus = "active"
    with_default_tags: bool | None = None

    @field_validator("key")
    @classmethod
    def upper_key(cls, v: str) -> str:
        return v.upper()


class ProjectUpdate(PatchSchema):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)
    status: ProjectStatus | None = None


class MemberAdd(Schema):
    user_id: str = Field(..., min_length=1)
    # Checked against the project roles by the membership registry
    role: str = "developer"


class MemberRoleUpdate(Schema):
    role: str


# --- Items ---

class ItemCreate(Schema):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=5000)
    type: ItemType = "task"
    status: ItemStatus = "todo"
    priority: ItemPriority = "medium"
    assignee_id: str | None = None
    parent_id: str | None = None
    tag_ids: list[str] = Field(default_factory=list)
    story_points: int | None = Field(None, ge=0, le=100)
    due_date: date | None = None


class ItemUpdate(PatchSchema):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    type: ItemType | None = None
    status: ItemStatus | None = None
    priority: ItemPriority | None = None
    assignee_id: str | None = None
    parent_id: str | None = None
    tag_ids: list[str] | None = None
    story_points: int | None = Field(None, ge=0, le=100)
    due_date: date | None = None


class ItemStatusUpdate(Schema):
    status: ItemStatus


class ItemAssign(Schema):
    assignee_id: str | None = None


# --- Tags ---

class TagCreate(Schema):
    name: str = Field(..., min_length=1, max_length=50)
    color: str | None = Field(None, pattern=HEX_COLOR)
    description: str = Field(default="", max_length=200)


class TagUpdate(PatchSchema):
    name: str | None = Field(None, min_length=1, max_length=50)
    color: str | None = Field(None, pattern=HEX_COLOR)
    description: str | None = Field(None, max_length=200)


# --- Comments ---

class CommentWrite(Schema):
    content: str = Field(..., min_length=1, max_length=2000)


class MentionsRead(Schema):
    comment_ids: list[str] | None = None


# --- Auth ---

class RegisterRequest(Schema):
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9]+$")
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    profile: UserProfile = Field(default_factory=UserProfile)


class LoginRequest(Schema):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class RefreshRequest(Schema):
    refresh_token: str = Field(..., min_length=1)


class PasswordChange(Schema):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=6, max_length=128)
