"""Client-side data types for the dashboard core."""
from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class UserIdentity(BaseModel):
    """The signed-in user as reported by the session provider."""

    model_config = ConfigDict(frozen=True)

    id: UUID
    email: str | None = None


class Bookmark(BaseModel):
    """
    A bookmark as held in the dashboard store.

    `pending` marks a provisional entry created optimistically by the store;
    its `id` is a local placeholder that the gateway has never seen.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: UUID
    title: str
    url: str
    owner: UUID = Field(validation_alias="user_id")
    created_at: datetime
    pending: bool = False
