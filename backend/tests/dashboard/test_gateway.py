"""Tests for the HTTP persistence gateway against a mocked API."""
import asyncio
import json
from collections.abc import AsyncGenerator
from uuid import UUID

import httpx
import pytest
import respx
from httpx import Response
from uuid6 import uuid7

from dashboard.exceptions import PersistenceError, SubscriptionError
from dashboard.gateway import HttpBookmarkGateway
from tests.dashboard.conftest import API_URL

OWNER = uuid7()


def _record(title: str = "Docs", url: str = "https://docs.example.com") -> dict:
    return {
        "id": str(uuid7()),
        "user_id": str(OWNER),
        "title": title,
        "url": url,
        "created_at": "2026-01-01T12:00:00Z",
        "updated_at": "2026-01-01T12:00:00Z",
    }


@pytest.fixture
async def http_client() -> AsyncGenerator[httpx.AsyncClient]:
    async with httpx.AsyncClient(base_url=API_URL, timeout=5.0) as client:
        yield client


@pytest.fixture
def gateway(http_client: httpx.AsyncClient) -> HttpBookmarkGateway:
    return HttpBookmarkGateway(http_client, reconnect_delay=0)


class TestListBookmarks:
    """Tests for HttpBookmarkGateway.list_bookmarks."""

    async def test__list_bookmarks__maps_records(
        self, mock_api: respx.MockRouter, gateway: HttpBookmarkGateway,
    ) -> None:
        newer, older = _record("Newer"), _record("Older")
        mock_api.get("/bookmarks/").mock(
            return_value=Response(200, json={"items": [newer, older], "total": 2}),
        )

        bookmarks = await gateway.list_bookmarks(OWNER)

        assert [b.title for b in bookmarks] == ["Newer", "Older"]
        assert bookmarks[0].id == UUID(newer["id"])
        assert bookmarks[0].owner == OWNER
        assert bookmarks[0].pending is False

    async def test__list_bookmarks__http_error(
        self, mock_api: respx.MockRouter, gateway: HttpBookmarkGateway,
    ) -> None:
        mock_api.get("/bookmarks/").mock(
            return_value=Response(401, json={"detail": "Not authenticated"}),
        )

        with pytest.raises(PersistenceError) as exc_info:
            await gateway.list_bookmarks(OWNER)

        assert exc_info.value.operation == "list_bookmarks"
        assert exc_info.value.status_code == 401
        assert str(exc_info.value) == "list_bookmarks failed: Not authenticated"

    async def test__list_bookmarks__network_error(
        self, mock_api: respx.MockRouter, gateway: HttpBookmarkGateway,
    ) -> None:
        mock_api.get("/bookmarks/").mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(PersistenceError) as exc_info:
            await gateway.list_bookmarks(OWNER)

        assert exc_info.value.status_code is None
        assert "refused" in str(exc_info.value)

    async def test__list_bookmarks__malformed_response(
        self, mock_api: respx.MockRouter, gateway: HttpBookmarkGateway,
    ) -> None:
        mock_api.get("/bookmarks/").mock(return_value=Response(200, json={"rows": []}))

        with pytest.raises(PersistenceError, match="unexpected response"):
            await gateway.list_bookmarks(OWNER)

    async def test__list_bookmarks__error_without_detail(
        self, mock_api: respx.MockRouter, gateway: HttpBookmarkGateway,
    ) -> None:
        mock_api.get("/bookmarks/").mock(return_value=Response(502, text="Bad Gateway"))

        with pytest.raises(PersistenceError, match="HTTP 502"):
            await gateway.list_bookmarks(OWNER)


class TestCreateBookmark:
    """Tests for HttpBookmarkGateway.create_bookmark."""

    async def test__create_bookmark__posts_fields_and_returns_record(
        self, mock_api: respx.MockRouter, gateway: HttpBookmarkGateway,
    ) -> None:
        stored = _record()
        route = mock_api.post("/bookmarks/").mock(return_value=Response(201, json=stored))

        bookmark = await gateway.create_bookmark(
            title="Docs", url="https://docs.example.com", owner=OWNER,
        )

        assert bookmark.id == UUID(stored["id"])
        assert json.loads(route.calls.last.request.content) == {
            "title": "Docs",
            "url": "https://docs.example.com",
        }

    async def test__create_bookmark__validation_error(
        self, mock_api: respx.MockRouter, gateway: HttpBookmarkGateway,
    ) -> None:
        mock_api.post("/bookmarks/").mock(
            return_value=Response(422, json={"detail": [{"msg": "Title cannot be empty"}]}),
        )

        with pytest.raises(PersistenceError) as exc_info:
            await gateway.create_bookmark(title=" ", url="https://x", owner=OWNER)

        assert exc_info.value.status_code == 422
        assert "Title cannot be empty" in str(exc_info.value)


class TestDeleteBookmark:
    """Tests for HttpBookmarkGateway.delete_bookmark."""

    async def test__delete_bookmark__sends_delete(
        self, mock_api: respx.MockRouter, gateway: HttpBookmarkGateway,
    ) -> None:
        bookmark_id = uuid7()
        route = mock_api.delete(f"/bookmarks/{bookmark_id}").mock(return_value=Response(204))

        await gateway.delete_bookmark(bookmark_id)

        assert route.called

    async def test__delete_bookmark__not_found(
        self, mock_api: respx.MockRouter, gateway: HttpBookmarkGateway,
    ) -> None:
        bookmark_id = uuid7()
        mock_api.delete(f"/bookmarks/{bookmark_id}").mock(
            return_value=Response(404, json={"detail": "Bookmark not found"}),
        )

        with pytest.raises(PersistenceError, match="delete_bookmark failed: Bookmark not found"):
            await gateway.delete_bookmark(bookmark_id)


def _sse(*messages: str) -> Response:
    return Response(
        200,
        headers={"Content-Type": "text/event-stream"},
        content="".join(messages).encode(),
    )


CONNECTED = ": connected\n\n"
CHANGE = 'event: change\ndata: {"type": "INSERT", "table": "bookmarks"}\n\n'


class TestChangeStream:
    """Tests for subscribe_to_changes / unsubscribe over the SSE endpoint."""

    async def test__subscribe__notifies_on_change_and_after_reconnect(
        self, mock_api: respx.MockRouter, gateway: HttpBookmarkGateway,
    ) -> None:
        """Each change message notifies; so does every reconnect after the first connect."""
        mock_api.get("/bookmarks/changes").mock(
            side_effect=[
                _sse(CONNECTED, CHANGE, ": keepalive\n\n", CHANGE),
                _sse(CONNECTED),
                Response(401, json={"detail": "Token has expired"}),
            ],
        )
        notifications: list[None] = []

        handle = gateway.subscribe_to_changes("bookmarks", lambda: notifications.append(None))
        await asyncio.wait_for(handle.task, timeout=2)

        assert len(notifications) == 3
        assert isinstance(handle.error, SubscriptionError)
        assert "401" in str(handle.error)
        assert handle.active is False

    async def test__subscribe__retries_after_server_error(
        self, mock_api: respx.MockRouter, gateway: HttpBookmarkGateway,
    ) -> None:
        route = mock_api.get("/bookmarks/changes").mock(
            side_effect=[
                Response(500),
                httpx.ReadError("connection reset"),
                Response(403, json={"detail": "Forbidden"}),
            ],
        )

        handle = gateway.subscribe_to_changes("bookmarks", lambda: None)
        await asyncio.wait_for(handle.task, timeout=2)

        assert route.call_count == 3
        assert "403" in str(handle.error)

    async def test__subscribe__callback_failure_keeps_stream_alive(
        self, mock_api: respx.MockRouter, gateway: HttpBookmarkGateway,
    ) -> None:
        mock_api.get("/bookmarks/changes").mock(
            side_effect=[
                _sse(CONNECTED, CHANGE, CHANGE),
                Response(401),
            ],
        )
        calls: list[None] = []

        def broken() -> None:
            calls.append(None)
            raise RuntimeError("callback bug")

        handle = gateway.subscribe_to_changes("bookmarks", broken)
        await asyncio.wait_for(handle.task, timeout=2)

        assert len(calls) == 2

    async def test__subscribe__unsupported_table(self, gateway: HttpBookmarkGateway) -> None:
        with pytest.raises(ValueError, match="Unsupported table"):
            gateway.subscribe_to_changes("notes", lambda: None)

    async def test__unsubscribe__cancels_stream(
        self, mock_api: respx.MockRouter, http_client: httpx.AsyncClient,
    ) -> None:
        mock_api.get("/bookmarks/changes").mock(return_value=Response(503))
        gateway = HttpBookmarkGateway(http_client, reconnect_delay=60)

        handle = gateway.subscribe_to_changes("bookmarks", lambda: None)
        await asyncio.sleep(0.05)
        assert handle.active is True

        await gateway.unsubscribe(handle)

        assert handle.task is None
        assert handle.active is False
        assert handle.error is None

    async def test__subscribe__sends_auth_header(
        self, mock_api: respx.MockRouter,
    ) -> None:
        route = mock_api.get("/bookmarks/changes").mock(return_value=Response(401))
        async with httpx.AsyncClient(
            base_url=API_URL, headers={"Authorization": "Bearer abc"},
        ) as client:
            gateway = HttpBookmarkGateway(client, reconnect_delay=0)
            handle = gateway.subscribe_to_changes("bookmarks", lambda: None)
            await asyncio.wait_for(handle.task, timeout=2)

        assert route.calls.last.request.headers["Authorization"] == "Bearer abc"
