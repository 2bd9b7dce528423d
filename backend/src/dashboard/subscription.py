"""Live change subscription that keeps a store in sync with the remote records."""
import asyncio
import logging
from uuid import UUID

from dashboard.gateway import BOOKMARKS_TABLE, BookmarkGateway, SubscriptionHandle
from dashboard.store import BookmarkStore

logger = logging.getLogger(__name__)


class ChangeSubscription:
    """
    Refetch a store whenever the gateway reports a change.

    Every notification triggers a full fetch, whatever it describes; the
    store's fetch is a full replace, so repeated or redundant refetches are
    harmless. One subscription is kept per user.
    """

    def __init__(self, gateway: BookmarkGateway, store: BookmarkStore) -> None:
        if store.user is None:
            raise ValueError("A change subscription needs a signed-in user")
        self._gateway = gateway
        self._store = store
        self._user_id = store.user.id
        self._handle: SubscriptionHandle | None = None
        self._refetches: set[asyncio.Task] = set()

    @property
    def user_id(self) -> UUID:
        """Identity the subscription is keyed by."""
        return self._user_id

    @property
    def active(self) -> bool:
        """True between start() and stop()."""
        return self._handle is not None

    @property
    def handle(self) -> SubscriptionHandle | None:
        """The gateway's handle for the open subscription."""
        return self._handle

    def start(self) -> None:
        """Subscribe to changes. Calling it again while active does nothing."""
        if self._handle is not None:
            return
        self._handle = self._gateway.subscribe_to_changes(BOOKMARKS_TABLE, self._on_change)
        logger.info("Subscribed to bookmark changes for user %s", self._user_id)

    def _on_change(self) -> None:
        if self._handle is None or self._store.closed:
            return
        task = asyncio.create_task(self._store.fetch())
        self._refetches.add(task)
        task.add_done_callback(self._refetches.discard)

    async def stop(self) -> None:
        """Unsubscribe and cancel refetches that are still running."""
        handle, self._handle = self._handle, None
        if handle is not None:
            await self._gateway.unsubscribe(handle)
            logger.info("Unsubscribed from bookmark changes for user %s", self._user_id)
        for task in list(self._refetches):
            task.cancel()
        if self._refetches:
            await asyncio.gather(*self._refetches, return_exceptions=True)
        self._refetches.clear()
