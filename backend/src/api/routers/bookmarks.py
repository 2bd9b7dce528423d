"""Bookmark endpoints: create, list, get, delete, and the live change stream."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_change_feed, get_current_user, get_settings
from core.config import Settings
from models.user import User
from schemas.bookmark import BookmarkCreate, BookmarkListResponse, BookmarkResponse
from schemas.change_event import ChangeEvent, ChangeType
from services import bookmark_service
from services.change_feed import ChangeFeed, stream_events

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.post("/", response_model=BookmarkResponse, status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    feed: ChangeFeed = Depends(get_change_feed),
) -> BookmarkResponse:
    """Create a new bookmark owned by the current user."""
    bookmark = await bookmark_service.create_bookmark(db, current_user.id, data)
    response = BookmarkResponse.model_validate(bookmark)
    # Commit before notifying so subscribers refetch the committed state
    await db.commit()
    await feed.publish(
        current_user.id,
        ChangeEvent(type=ChangeType.INSERT, record_id=response.id),
    )
    return response


@router.get("/", response_model=BookmarkListResponse)
async def list_bookmarks(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkListResponse:
    """List all of the current user's bookmarks, newest first."""
    bookmarks = await bookmark_service.list_bookmarks(db, current_user.id)
    items = [BookmarkResponse.model_validate(b) for b in bookmarks]
    return BookmarkListResponse(items=items, total=len(items))


@router.get("/changes")
async def stream_changes(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    feed: ChangeFeed = Depends(get_change_feed),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    """
    Stream change notifications for the current user as Server-Sent Events.

    Each message is `event: change` with a JSON ChangeEvent as data. Clients are
    expected to refetch the full list on every message.

    The request session is committed before streaming starts, so an open stream
    holds no database connection.
    """
    user_id = current_user.id
    await db.commit()
    return StreamingResponse(
        stream_events(
            feed,
            user_id,
            keepalive_seconds=settings.sse_keepalive_seconds,
            is_disconnected=request.is_disconnected,
        ),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/{bookmark_id}", response_model=BookmarkResponse)
async def get_bookmark(
    bookmark_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> BookmarkResponse:
    """Get a single bookmark by ID."""
    bookmark = await bookmark_service.get_bookmark(db, current_user.id, bookmark_id)
    if bookmark is None:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    return BookmarkResponse.model_validate(bookmark)


@router.delete("/{bookmark_id}", status_code=204)
async def delete_bookmark(
    bookmark_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    feed: ChangeFeed = Depends(get_change_feed),
) -> None:
    """Permanently delete a bookmark."""
    deleted = await bookmark_service.delete_bookmark(db, current_user.id, bookmark_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Bookmark not found")
    await db.commit()
    await feed.publish(
        current_user.id,
        ChangeEvent(type=ChangeType.DELETE, record_id=bookmark_id),
    )
