"""Bookmark model for storing user bookmarks."""
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.user import User


class Bookmark(Base, UUIDv7Mixin, TimestampMixin):
    """
    Bookmark model - a titled URL owned by exactly one user.

    Duplicate title/url pairs are allowed; there is no uniqueness constraint.
    """

    __tablename__ = "bookmarks"
    __table_args__ = (
        # Every list query is "all bookmarks for a user, newest first"
        Index("ix_bookmarks_user_id_created_at", "user_id", "created_at"),
    )

    # id provided by UUIDv7Mixin
    user_id: Mapped[UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        index=True,
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)

    user: Mapped["User"] = relationship(back_populates="bookmarks")
