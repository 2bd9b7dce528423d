"""
Session lifecycle: owns the one store and subscription of a signed-in session.

There is no global store. `SessionLifecycle.mount()` builds a store for the
signed-in user and `logout()` tears it down; `init_store` and `teardown_store`
are the underlying constructors for callers managing stores themselves.
"""
import asyncio
import logging
from collections.abc import Callable

from dashboard.exceptions import AuthRequiredError
from dashboard.gateway import BookmarkGateway
from dashboard.models import UserIdentity
from dashboard.session import SessionProvider
from dashboard.store import BookmarkStore
from dashboard.subscription import ChangeSubscription

logger = logging.getLogger(__name__)

RedirectCallback = Callable[[str], None]


def init_store(user: UserIdentity, gateway: BookmarkGateway) -> BookmarkStore:
    """Create the store for a signed-in user."""
    return BookmarkStore(gateway, user)


def teardown_store(store: BookmarkStore) -> None:
    """Discard a store; nothing mutates it afterwards."""
    store.teardown()


class SessionLifecycle:
    """
    Mount and unmount the dashboard core for one session.

    Redirects (to sign in, or after signing out) are signalled through
    `on_redirect`; the last target is also kept in `redirect_to`.
    """

    def __init__(
        self,
        provider: SessionProvider,
        gateway: BookmarkGateway,
        on_redirect: RedirectCallback | None = None,
    ) -> None:
        self._provider = provider
        self._gateway = gateway
        self._on_redirect = on_redirect
        self._user: UserIdentity | None = None
        self._store: BookmarkStore | None = None
        self._subscription: ChangeSubscription | None = None
        self._mount_lock = asyncio.Lock()
        self.redirect_to: str | None = None

    @property
    def user(self) -> UserIdentity | None:
        """The mounted session's user."""
        return self._user

    @property
    def store(self) -> BookmarkStore | None:
        """The mounted session's store."""
        return self._store

    @property
    def subscription(self) -> ChangeSubscription | None:
        """The mounted session's change subscription."""
        return self._subscription

    def _redirect(self, target: str) -> None:
        self.redirect_to = target
        if self._on_redirect is not None:
            self._on_redirect(target)

    async def _require_user(self) -> UserIdentity:
        user = await self._provider.get_current_user()
        if user is None:
            raise AuthRequiredError()
        return user

    async def mount(self) -> BookmarkStore | None:
        """
        Start the dashboard for the current user.

        Without a session, signals a redirect to the entry point and does
        nothing else. Otherwise creates the store, loads it and subscribes to
        changes. Mounting an already mounted session returns its store; overlapping
        calls wait for the first one and share its store.

        Returns:
            The session's store, or None when the user must sign in.
        """
        async with self._mount_lock:
            if self._store is not None:
                return self._store

            try:
                user = await self._require_user()
            except AuthRequiredError:
                logger.info("No active session, redirecting to %s", self._provider.entry_url)
                self._redirect(self._provider.entry_url)
                return None

            self._user = user
            self._store = init_store(user, self._gateway)
            await self._store.fetch()
            self._subscription = ChangeSubscription(self._gateway, self._store)
            self._subscription.start()
            return self._store

    async def unmount(self) -> None:
        """Stop the subscription and discard the store, keeping the session signed in."""
        async with self._mount_lock:
            if self._subscription is not None:
                await self._subscription.stop()
                self._subscription = None
            if self._store is not None:
                teardown_store(self._store)
                self._store = None
            self._user = None

    async def logout(self) -> None:
        """Tear everything down, sign out, and redirect."""
        await self.unmount()
        await self._provider.sign_out()
        self._redirect(self._provider.logout_url)
