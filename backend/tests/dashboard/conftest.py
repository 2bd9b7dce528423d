"""
Shared fixtures for dashboard core tests.

`FakeGateway` is an in-memory persistence gateway. Individual calls can be
held open with `hold()` to arrange interleavings (overlapping fetches, a fetch
landing before an insert response, teardown during a pending call), and made
to fail with `fail_next()`.
"""
import asyncio
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from uuid import UUID

import pytest
import respx
from uuid6 import uuid7

from dashboard.exceptions import PersistenceError
from dashboard.gateway import SubscriptionHandle
from dashboard.models import Bookmark, UserIdentity


class FakeGateway:
    """In-memory BookmarkGateway with per-call control over timing and failures."""

    def __init__(self) -> None:
        # Remote records, newest first
        self.records: list[Bookmark] = []
        self.calls: list[tuple] = []
        self._gates: dict[str, list[asyncio.Event]] = {}
        self._failures: dict[str, list[PersistenceError]] = {}
        self._callbacks: dict[int, Callable[[], None]] = {}
        self.handles: list[SubscriptionHandle] = []

    def seed(self, owner: UUID, title: str, url: str) -> Bookmark:
        """Store a record directly, as if another session had added it."""
        created_at = datetime.now(UTC)
        if self.records:
            created_at = max(created_at, self.records[0].created_at + timedelta(microseconds=1))
        record = Bookmark(id=uuid7(), title=title, url=url, owner=owner, created_at=created_at)
        self.records.insert(0, record)
        return record

    def hold(self, operation: str) -> asyncio.Event:
        """Hold the next call of `operation` until the returned event is set."""
        gate = asyncio.Event()
        self._gates.setdefault(operation, []).append(gate)
        return gate

    def fail_next(self, operation: str, message: str = "boom", status_code: int = 500) -> None:
        """Make the next call of `operation` raise a PersistenceError."""
        error = PersistenceError(operation, message, status_code)
        self._failures.setdefault(operation, []).append(error)

    def count(self, operation: str) -> int:
        """Number of calls made to `operation`."""
        return sum(1 for call in self.calls if call[0] == operation)

    async def _wait(self, gate: asyncio.Event | None) -> None:
        if gate is not None:
            await gate.wait()

    def _take(self, registry: dict[str, list], operation: str) -> object | None:
        pending = registry.get(operation)
        return pending.pop(0) if pending else None

    async def list_bookmarks(self, owner: UUID) -> list[Bookmark]:
        self.calls.append(("list_bookmarks", owner))
        gate = self._take(self._gates, "list_bookmarks")
        error = self._take(self._failures, "list_bookmarks")
        # The response reflects the remote state when the request was served
        snapshot = [b for b in self.records if b.owner == owner]
        await self._wait(gate)
        if error is not None:
            raise error
        return snapshot

    async def create_bookmark(self, *, title: str, url: str, owner: UUID) -> Bookmark:
        self.calls.append(("create_bookmark", title, url, owner))
        gate = self._take(self._gates, "create_bookmark")
        error = self._take(self._failures, "create_bookmark")
        if error is not None:
            await self._wait(gate)
            raise error
        record = self.seed(owner, title, url)
        await self._wait(gate)
        return record

    async def delete_bookmark(self, bookmark_id: UUID) -> None:
        self.calls.append(("delete_bookmark", bookmark_id))
        gate = self._take(self._gates, "delete_bookmark")
        error = self._take(self._failures, "delete_bookmark")
        if error is not None:
            await self._wait(gate)
            raise error
        self.records = [b for b in self.records if b.id != bookmark_id]
        await self._wait(gate)

    def subscribe_to_changes(
        self,
        table: str,
        on_change: Callable[[], None],
    ) -> SubscriptionHandle:
        self.calls.append(("subscribe_to_changes", table))
        handle = SubscriptionHandle(table=table)
        self._callbacks[id(handle)] = on_change
        self.handles.append(handle)
        return handle

    async def unsubscribe(self, handle: SubscriptionHandle) -> None:
        self.calls.append(("unsubscribe", handle.table))
        self._callbacks.pop(id(handle), None)

    @property
    def subscriber_count(self) -> int:
        """Number of open subscriptions."""
        return len(self._callbacks)

    def emit(self) -> None:
        """Notify every open subscription of a change."""
        for callback in list(self._callbacks.values()):
            callback()


async def settle() -> None:
    """Let pending tasks and callbacks run."""
    for _ in range(5):
        await asyncio.sleep(0)


@pytest.fixture
def gateway() -> FakeGateway:
    """An empty in-memory gateway."""
    return FakeGateway()


@pytest.fixture
def user() -> UserIdentity:
    """The signed-in user."""
    return UserIdentity(id=uuid7(), email="user@example.com")


@pytest.fixture
def other_user() -> UserIdentity:
    """A second user sharing the gateway."""
    return UserIdentity(id=uuid7(), email="other@example.com")


API_URL = "http://localhost:8000"


@pytest.fixture
def mock_api() -> respx.MockRouter:
    """Mock the SmartMarks API for HTTP client tests."""
    with respx.mock(base_url=API_URL) as respx_mock:
        yield respx_mock
