"""Schemas for change notifications pushed to subscribers."""
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, Field


class ChangeType(StrEnum):
    """Kind of change applied to a record."""

    INSERT = "INSERT"
    DELETE = "DELETE"


class ChangeEvent(BaseModel):
    """
    A single change to a user's records.

    Subscribers treat every event identically (as a cue to refetch), so the
    payload is informational.
    """

    type: ChangeType
    table: str = "bookmarks"
    record_id: UUID
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
