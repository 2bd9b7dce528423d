"""
Dashboard core: the client-side bookmark state of a signed-in session.

Holds the current user's bookmarks in memory, applies adds and deletes
optimistically before the backend confirms them, and refetches the full list
whenever the backend reports a change.
"""
from dashboard.exceptions import AuthRequiredError, PersistenceError, SubscriptionError
from dashboard.gateway import BookmarkGateway, HttpBookmarkGateway, SubscriptionHandle
from dashboard.lifecycle import SessionLifecycle, init_store, teardown_store
from dashboard.models import Bookmark, UserIdentity
from dashboard.search import filter_bookmarks
from dashboard.session import SessionProvider
from dashboard.store import BookmarkDraft, BookmarkStore, StoreState
from dashboard.subscription import ChangeSubscription

__all__ = [
    "AuthRequiredError",
    "Bookmark",
    "BookmarkDraft",
    "BookmarkGateway",
    "BookmarkStore",
    "ChangeSubscription",
    "HttpBookmarkGateway",
    "PersistenceError",
    "SessionLifecycle",
    "SessionProvider",
    "StoreState",
    "SubscriptionError",
    "SubscriptionHandle",
    "UserIdentity",
    "filter_bookmarks",
    "init_store",
    "teardown_store",
]
