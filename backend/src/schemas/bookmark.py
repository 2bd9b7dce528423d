"""Pydantic schemas for bookmark endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

from core.config import get_settings


def validate_title(title: str) -> str:
    """
    Validate that a title is non-blank and within the configured length.

    Surrounding whitespace is stripped before the checks.
    """
    settings = get_settings()
    stripped = title.strip()
    if not stripped:
        raise ValueError("Title cannot be empty")
    if len(stripped) > settings.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_title_length:,} characters "
            f"(got {len(stripped):,} characters).",
        )
    return stripped


def validate_url(url: str) -> str:
    """
    Validate that a URL is non-blank and within the configured length.

    Format validation is left to the client; any non-empty string is stored.
    """
    settings = get_settings()
    stripped = url.strip()
    if not stripped:
        raise ValueError("URL cannot be empty")
    if len(stripped) > settings.max_url_length:
        raise ValueError(
            f"URL exceeds maximum length of {settings.max_url_length:,} characters "
            f"(got {len(stripped):,} characters).",
        )
    return stripped


class BookmarkCreate(BaseModel):
    """Schema for creating a new bookmark. The owner comes from the auth token."""

    title: str
    url: str

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        """Validate title."""
        return validate_title(v)

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        """Validate URL."""
        return validate_url(v)


class BookmarkResponse(BaseModel):
    """Schema for a stored bookmark."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    title: str
    url: str
    created_at: datetime
    updated_at: datetime


class BookmarkListResponse(BaseModel):
    """
    Schema for the full bookmark list of a user.

    Items are ordered by created_at descending. There is no pagination, so
    `total` always equals `len(items)`.
    """

    items: list[BookmarkResponse]
    total: int
