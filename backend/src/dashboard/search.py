"""Client-side search over the in-memory bookmark list."""
from collections.abc import Sequence

from dashboard.models import Bookmark


def filter_bookmarks(bookmarks: Sequence[Bookmark], query: str) -> list[Bookmark]:
    """
    Return the bookmarks whose title or url contains `query`, ignoring case.

    Input order is preserved. An empty query matches everything. The query is
    used as typed (no trimming), so " " only matches text containing a space.
    """
    if not query:
        return list(bookmarks)
    needle = query.casefold()
    return [
        bookmark
        for bookmark in bookmarks
        if needle in bookmark.title.casefold() or needle in bookmark.url.casefold()
    ]
