"""
Persistence gateway: the dashboard's view of the remote bookmark store.

`BookmarkGateway` is the contract the store depends on. Any backend offering an
owner-scoped list, a single-record create that returns the stored record, a
single-record delete by id and a change notification callback satisfies it.
`HttpBookmarkGateway` implements it against the SmartMarks API.
"""
import asyncio
import contextlib
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol
from uuid import UUID

import httpx

from dashboard.exceptions import PersistenceError, SubscriptionError
from dashboard.models import Bookmark

logger = logging.getLogger(__name__)

BOOKMARKS_TABLE = "bookmarks"


@dataclass
class SubscriptionHandle:
    """Token returned by subscribe_to_changes and accepted by unsubscribe."""

    table: str
    task: asyncio.Task | None = None
    # Set when the subscription ended for good (e.g. rejected credentials)
    error: SubscriptionError | None = None

    @property
    def active(self) -> bool:
        """True while the underlying stream task is running."""
        return self.task is not None and not self.task.done()


class BookmarkGateway(Protocol):
    """Remote create/read/delete of bookmark records plus change notifications."""

    async def list_bookmarks(self, owner: UUID) -> list[Bookmark]:
        """All bookmarks of `owner`, newest first."""
        ...

    async def create_bookmark(self, *, title: str, url: str, owner: UUID) -> Bookmark:
        """Store a new bookmark and return the stored record."""
        ...

    async def delete_bookmark(self, bookmark_id: UUID) -> None:
        """Delete a bookmark by id."""
        ...

    def subscribe_to_changes(
        self,
        table: str,
        on_change: Callable[[], None],
    ) -> SubscriptionHandle:
        """Call `on_change` whenever the remote record set changes."""
        ...

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Stop a subscription created by subscribe_to_changes."""
        ...


def _error_detail(response: httpx.Response) -> str:
    """Extract the API's error detail, falling back to the status line."""
    try:
        detail = response.json().get("detail")
    except (ValueError, AttributeError):
        detail = None
    if detail:
        return str(detail)
    return f"HTTP {response.status_code}"


class HttpBookmarkGateway:
    """
    Gateway backed by the SmartMarks HTTP API.

    Owner scoping is done by the API from the bearer token carried by `client`;
    the `owner` arguments exist to satisfy the gateway contract.
    """

    def __init__(self, client: httpx.AsyncClient, reconnect_delay: float = 2.0) -> None:
        self._client = client
        self._reconnect_delay = reconnect_delay

    async def _request(
        self,
        operation: str,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise PersistenceError(
                operation, _error_detail(e.response), e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise PersistenceError(operation, str(e) or type(e).__name__) from e
        return response

    async def list_bookmarks(self, owner: UUID) -> list[Bookmark]:  # noqa: ARG002
        """Fetch all of the signed-in user's bookmarks, newest first."""
        response = await self._request("list_bookmarks", "GET", "/bookmarks/")
        try:
            return [Bookmark.model_validate(item) for item in response.json()["items"]]
        except (ValueError, KeyError, TypeError) as e:
            raise PersistenceError("list_bookmarks", f"unexpected response: {e}") from e

    async def create_bookmark(
        self,
        *,
        title: str,
        url: str,
        owner: UUID,  # noqa: ARG002
    ) -> Bookmark:
        """Create a bookmark; the API assigns its id and timestamps."""
        response = await self._request(
            "create_bookmark", "POST", "/bookmarks/", json={"title": title, "url": url},
        )
        try:
            return Bookmark.model_validate(response.json())
        except ValueError as e:
            raise PersistenceError("create_bookmark", f"unexpected response: {e}") from e

    async def delete_bookmark(self, bookmark_id: UUID) -> None:
        """Delete a bookmark by id."""
        await self._request("delete_bookmark", "DELETE", f"/bookmarks/{bookmark_id}")

    def subscribe_to_changes(
        self,
        table: str,
        on_change: Callable[[], None],
    ) -> SubscriptionHandle:
        """
        Open the API's change stream in a background task.

        Must be called from a running event loop. Dropped streams are reopened
        after `reconnect_delay`; `on_change` is also called once after every
        reconnect, since notifications may have been missed while disconnected.
        Authentication failures end the subscription.
        """
        if table != BOOKMARKS_TABLE:
            raise ValueError(f"Unsupported table for change notifications: {table!r}")
        handle = SubscriptionHandle(table=table)
        handle.task = asyncio.create_task(self._stream(handle, on_change))
        return handle

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        """Close the change stream behind `handle`."""
        if handle.task is None:
            return
        handle.task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await handle.task
        handle.task = None

    async def _stream(
        self,
        handle: SubscriptionHandle,
        on_change: Callable[[], None],
    ) -> None:
        connected_before = False
        # No read timeout: the server only sends keep-alives every few seconds
        timeout = httpx.Timeout(self._client.timeout.connect, read=None)
        while True:
            try:
                async with self._client.stream(
                    "GET", "/bookmarks/changes", timeout=timeout,
                ) as response:
                    response.raise_for_status()
                    async for line in response.aiter_lines():
                        if line.startswith(": connected"):
                            if connected_before:
                                _notify(on_change)
                            connected_before = True
                        elif line.startswith("data:"):
                            _notify(on_change)
                logger.info("Change stream closed by server, reconnecting")
            except httpx.HTTPStatusError as e:
                if e.response.status_code in (401, 403):
                    handle.error = SubscriptionError(
                        f"Change stream rejected with HTTP {e.response.status_code}",
                    )
                    logger.error("Giving up on change stream: %s", handle.error)
                    return
                logger.warning("Change stream failed: %s", e)
            except httpx.HTTPError as e:
                logger.warning("Change stream disconnected: %s", e)
            await asyncio.sleep(self._reconnect_delay)


def _notify(on_change: Callable[[], None]) -> None:
    """Invoke a change callback; a failing callback must not end the stream."""
    try:
        on_change()
    except Exception:
        logger.exception("Change callback failed")
