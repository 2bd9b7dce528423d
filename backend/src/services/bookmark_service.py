"""Service layer for bookmark create/read/delete operations."""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from schemas.bookmark import BookmarkCreate

logger = logging.getLogger(__name__)


async def create_bookmark(
    db: AsyncSession,
    user_id: UUID,
    data: BookmarkCreate,
) -> Bookmark:
    """
    Create a new bookmark for a user.

    Args:
        db: Database session.
        user_id: User ID that will own the bookmark.
        data: Bookmark creation data.

    Returns:
        The created bookmark with its server-assigned ID and timestamps.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    bookmark = Bookmark(
        user_id=user_id,
        title=data.title,
        url=data.url,
    )
    db.add(bookmark)
    await db.flush()
    await db.refresh(bookmark)
    logger.debug("Created bookmark %s for user %s", bookmark.id, user_id)
    return bookmark


async def get_bookmark(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
) -> Bookmark | None:
    """
    Get a bookmark by ID, scoped to user.

    Returns:
        The bookmark if it exists and belongs to the user, None otherwise.
    """
    result = await db.execute(
        select(Bookmark).where(
            Bookmark.id == bookmark_id,
            Bookmark.user_id == user_id,
        ),
    )
    return result.scalar_one_or_none()


async def list_bookmarks(
    db: AsyncSession,
    user_id: UUID,
) -> list[Bookmark]:
    """
    List every bookmark owned by a user, newest first.

    Ties on created_at are broken by ID descending; UUIDv7 IDs are time-ordered,
    so this keeps insertion order stable for rows created in the same instant.
    """
    result = await db.execute(
        select(Bookmark)
        .where(Bookmark.user_id == user_id)
        .order_by(Bookmark.created_at.desc(), Bookmark.id.desc()),
    )
    return list(result.scalars().all())


async def delete_bookmark(
    db: AsyncSession,
    user_id: UUID,
    bookmark_id: UUID,
) -> bool:
    """
    Permanently delete a bookmark.

    Returns:
        True if deleted, False if not found or owned by another user.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    bookmark = await get_bookmark(db, user_id, bookmark_id)
    if bookmark is None:
        return False

    await db.delete(bookmark)
    await db.flush()
    return True
