from __future__ import annotations

import re
from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.domain.tags import MAX_TAGS_LENGTH, TAG_SEPARATOR, normalize_tags
from app.domain.visibility import Visibility

T = TypeVar("T")

_USERNAME_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def _not_blank(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError("must not be blank")
    return stripped


def _email(value: str) -> str:
    email = value.strip().lower()
    local, _, domain = email.partition("@")
    if not local or "." not in domain or domain.startswith(".") or domain.endswith("."):
        raise ValueError("Email should be valid")
    return email


# ── Auth ────────────────────────────────────────────────────────────────


class RegisterRequest(ApiModel):
    username: str = Field(min_length=3, max_length=50)
    email: str = Field(max_length=100)
    password: str = Field(min_length=8, max_length=128)
    full_name: str | None = Field(default=None, max_length=100)

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        value = value.strip()
        if not _USERNAME_RE.match(value):
            raise ValueError("Username may only contain letters, digits, '.', '_' and '-'")
        return value

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return _email(value)


class LoginRequest(ApiModel):
    # Username or email.
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class RefreshRequest(ApiModel):
    refresh_token: str = Field(min_length=1)


class UserInfo(ApiModel):
    id: int
    username: str
    email: str


class AuthResponse(ApiModel):
    token: str
    refresh_token: str
    token_type: str = "Bearer"
    user: UserInfo


# ── Users ───────────────────────────────────────────────────────────────


class UserProfileResponse(ApiModel):
    id: int
    username: str
    email: str
    full_name: str | None = None
    bio: str | None = None
    created_at: datetime
    updated_at: datetime


class UpdateProfileRequest(ApiModel):
    username: str | None = Field(default=None, min_length=3, max_length=50)
    email: str | None = Field(default=None, max_length=100)
    full_name: str | None = Field(default=None, max_length=100)
    bio: str | None = Field(default=None, max_length=500)

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        if not _USERNAME_RE.match(value):
            raise ValueError("Username may only contain letters, digits, '.', '_' and '-'")
        return value

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str | None) -> str | None:
        return None if value is None else _email(value)


class UserStatistics(ApiModel):
    total_snippets: int
    public_snippets: int
    private_snippets: int
    unlisted_snippets: int
    total_views: int
    last_activity: datetime | None = None


class UserDashboardResponse(ApiModel):
    profile: UserProfileResponse
    statistics: UserStatistics
    recent_languages: list[str]


# ── Snippets ────────────────────────────────────────────────────────────


class SnippetWriteRequest(ApiModel):
    title: str = Field(max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    content: str
    language: str = Field(max_length=50)
    tags: list[str] = Field(default_factory=list)
    visibility: Visibility = Visibility.PUBLIC

    @field_validator("title", "content", "language")
    @classmethod
    def check_required_text(cls, value: str) -> str:
        return _not_blank(value)

    @field_validator("visibility", mode="before")
    @classmethod
    def coerce_visibility(cls, value: object) -> object:
        if value is None:
            return Visibility.PUBLIC
        if isinstance(value, str):
            return value.strip().upper()
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return normalize_tags(value)
        if isinstance(value, (list, tuple, set)):
            items = [str(v) for v in value if v is not None]
            if any(TAG_SEPARATOR in item for item in items):
                raise ValueError(f"Tags in a list must not contain '{TAG_SEPARATOR}'")
            return normalize_tags(items)
        raise ValueError("Tags must be a list of strings or a comma-separated string")

    @field_validator("tags")
    @classmethod
    def check_tags_length(cls, value: list[str]) -> list[str]:
        if len(TAG_SEPARATOR.join(value)) > MAX_TAGS_LENGTH:
            raise ValueError(f"Tags must not exceed {MAX_TAGS_LENGTH} characters")
        return value


class CreateSnippetRequest(SnippetWriteRequest):
    pass


class UpdateSnippetRequest(SnippetWriteRequest):
    pass


class SnippetSummaryResponse(ApiModel):
    id: int
    title: str
    description: str | None = None
    language: str
    tags: list[str]
    visibility: Visibility
    view_count: int
    created_at: datetime
    updated_at: datetime
    author_username: str
    author_id: int


class SnippetResponse(SnippetSummaryResponse):
    content: str


class PagedResponse(ApiModel, Generic[T]):
    content: list[T]
    page: int
    size: int
    total_elements: int
    total_pages: int
    first: bool
    last: bool
    has_next: bool
    has_previous: bool


# ── Errors ──────────────────────────────────────────────────────────────


class ErrorResponse(ApiModel):
    timestamp: datetime
    status: int
    error: str
    message: str
    path: str
    errors: dict[str, str] | None = None
