"""
Optimistic in-memory bookmark state for one signed-in session.

Adds and deletes are applied to the local list before the gateway call
resolves. A full fetch is the only thing that reconciles local state with the
remote store: it replaces the whole list, so it is idempotent and heals any
drift left by optimistic updates. Gateway failures are recorded and reported
to listeners; they never escape a store operation.
"""
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from uuid import UUID, uuid4

from dashboard.exceptions import PersistenceError
from dashboard.gateway import BookmarkGateway
from dashboard.models import Bookmark, UserIdentity
from dashboard.search import filter_bookmarks

logger = logging.getLogger(__name__)

Listener = Callable[[], None]
ErrorListener = Callable[[PersistenceError], None]


class StoreState(StrEnum):
    """Load state of a store. There is no error state; failures keep the last list."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"


@dataclass
class BookmarkDraft:
    """Pending input for the next bookmark to add."""

    title: str = ""
    url: str = ""

    @property
    def is_complete(self) -> bool:
        """True when both fields are filled in."""
        return bool(self.title and self.url)

    def clear(self) -> None:
        """Reset both fields."""
        self.title = ""
        self.url = ""


class BookmarkStore:
    """
    The current user's bookmarks, mutated optimistically and reconciled by fetch.

    One store exists per signed-in session; see `dashboard.lifecycle`.
    """

    def __init__(self, gateway: BookmarkGateway, user: UserIdentity | None) -> None:
        self._gateway = gateway
        self._user = user
        self._bookmarks: list[Bookmark] = []
        self._state = StoreState.UNINITIALIZED
        self._fetch_seq = 0
        self._adding = 0
        self._closed = False
        self._listeners: list[Listener] = []
        self._error_listeners: list[ErrorListener] = []
        self.last_error: PersistenceError | None = None
        self.draft = BookmarkDraft()

    @property
    def user(self) -> UserIdentity | None:
        """The session's user, or None when signed out."""
        return self._user

    @property
    def bookmarks(self) -> list[Bookmark]:
        """Snapshot of the current list, newest first."""
        return list(self._bookmarks)

    @property
    def state(self) -> StoreState:
        """Current load state."""
        return self._state

    @property
    def is_loading(self) -> bool:
        """True while a fetch is in flight."""
        return self._state is StoreState.LOADING

    @property
    def adding(self) -> int:
        """Number of add calls waiting on the gateway."""
        return self._adding

    @property
    def closed(self) -> bool:
        """True once the store has been torn down."""
        return self._closed

    def visible(self, query: str) -> list[Bookmark]:
        """The current list narrowed by a search query."""
        return filter_bookmarks(self._bookmarks, query)

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` after every state change. Returns a function that removes it."""
        self._listeners.append(listener)
        return lambda: _discard(self._listeners, listener)

    def add_error_listener(self, listener: ErrorListener) -> Callable[[], None]:
        """Call `listener` with every gateway failure. Returns a function that removes it."""
        self._error_listeners.append(listener)
        return lambda: _discard(self._error_listeners, listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("Store listener failed")

    def _report(self, error: PersistenceError) -> None:
        self.last_error = error
        logger.warning("Bookmark store: %s", error)
        for listener in list(self._error_listeners):
            try:
                listener(error)
            except Exception:
                logger.exception("Store error listener failed")

    def _set_bookmarks(self, bookmarks: list[Bookmark]) -> None:
        self._bookmarks = bookmarks
        self._notify()

    async def fetch(self) -> bool:
        """
        Replace the whole list with the gateway's current records.

        When fetches overlap, only the most recently started one may apply its
        result; older responses are discarded. On failure the list is left as
        it was. Either way the store settles in READY.

        Returns:
            True if the list was replaced.
        """
        if self._closed or self._user is None:
            return False

        self._fetch_seq += 1
        seq = self._fetch_seq
        self._state = StoreState.LOADING
        self._notify()

        try:
            bookmarks = await self._gateway.list_bookmarks(self._user.id)
        except PersistenceError as e:
            if self._closed:
                return False
            if seq != self._fetch_seq:
                logger.debug("Ignoring failure of stale fetch %d: %s", seq, e)
                return False
            self._state = StoreState.READY
            self._notify()
            self._report(e)
            return False

        if self._closed:
            return False
        if seq != self._fetch_seq:
            logger.debug("Discarding stale fetch %d (latest is %d)", seq, self._fetch_seq)
            return False

        self._state = StoreState.READY
        self._set_bookmarks(list(bookmarks))
        return True

    async def add(self, title: str, url: str) -> Bookmark | None:
        """
        Add a bookmark optimistically.

        A provisional entry is prepended at once. When the gateway confirms,
        that entry is replaced by the stored record; when it fails, the entry
        is removed again and the error is reported. Missing title, url or user
        means nothing is attempted.

        Returns:
            The stored record, or None if skipped or failed.
        """
        if not title or not url or self._user is None or self._closed:
            return None

        provisional = Bookmark(
            id=uuid4(),
            title=title,
            url=url,
            owner=self._user.id,
            created_at=datetime.now(UTC),
            pending=True,
        )
        self._adding += 1
        self._set_bookmarks([provisional, *self._bookmarks])

        try:
            stored = await self._gateway.create_bookmark(
                title=title, url=url, owner=self._user.id,
            )
        except PersistenceError as e:
            if not self._closed:
                self._set_bookmarks([b for b in self._bookmarks if b.id != provisional.id])
                self._report(e)
            return None
        finally:
            self._adding -= 1

        if not self._closed:
            self._confirm(provisional.id, stored)
        return stored

    def _confirm(self, provisional_id: UUID, stored: Bookmark) -> None:
        if any(b.id == stored.id for b in self._bookmarks):
            # A fetch already brought in the stored record
            bookmarks = [b for b in self._bookmarks if b.id != provisional_id]
        elif any(b.id == provisional_id for b in self._bookmarks):
            bookmarks = [stored if b.id == provisional_id else b for b in self._bookmarks]
        else:
            # A fetch that ran before the insert landed dropped the provisional entry
            bookmarks = [stored, *self._bookmarks]
        self._set_bookmarks(bookmarks)

    async def submit_draft(self) -> Bookmark | None:
        """
        Add the bookmark described by `draft`.

        The draft is cleared on success, unless it was edited while the add was
        in flight.
        """
        title, url = self.draft.title, self.draft.url
        stored = await self.add(title, url)
        if stored is not None and (self.draft.title, self.draft.url) == (title, url):
            self.draft.clear()
        return stored

    async def delete(self, bookmark_id: UUID) -> bool:
        """
        Remove a bookmark locally, then ask the gateway to delete it.

        The local removal stands even if the gateway call fails; the next
        fetch restores the entry in that case. Unknown ids are ignored, and
        provisional entries cannot be deleted until the gateway has confirmed
        them.

        Returns:
            True if the gateway confirmed the delete.
        """
        if self._closed:
            return False

        target = next((b for b in self._bookmarks if b.id == bookmark_id), None)
        if target is None:
            logger.debug("Delete ignored, bookmark %s is not in the store", bookmark_id)
            return False
        if target.pending:
            logger.info("Delete refused, bookmark %s is not confirmed yet", bookmark_id)
            return False

        self._set_bookmarks([b for b in self._bookmarks if b.id != bookmark_id])

        try:
            await self._gateway.delete_bookmark(bookmark_id)
        except PersistenceError as e:
            if not self._closed:
                self._report(e)
            return False
        return True

    def teardown(self) -> None:
        """
        Discard all state. Later calls and late gateway responses are ignored.

        Listeners are notified once more so a presentation can clear itself,
        then dropped.
        """
        if self._closed:
            return
        self._closed = True
        self._bookmarks = []
        self._state = StoreState.UNINITIALIZED
        self.draft.clear()
        self._notify()
        self._listeners.clear()
        self._error_listeners.clear()


def _discard(listeners: list, listener: Callable) -> None:
    if listener in listeners:
        listeners.remove(listener)
