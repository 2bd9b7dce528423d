"""
Fan-out of bookmark change events to live subscribers.

Each API worker keeps its own set of subscriber queues. When Redis is
connected, events are published to a per-user Redis channel and a listener
task in every worker relays them into local queues, so a change made through
one worker reaches subscribers connected to any other. Without Redis the
feed degrades to direct in-process delivery.
"""
import asyncio
import contextlib
import logging
from collections import defaultdict
from collections.abc import AsyncIterator, Awaitable, Callable
from uuid import UUID

from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from core.redis import RedisClient
from schemas.change_event import ChangeEvent

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "bookmarks:changes"
DEFAULT_QUEUE_SIZE = 16


def channel_for(user_id: UUID) -> str:
    """Redis channel carrying a single user's change events."""
    return f"{CHANNEL_PREFIX}:{user_id}"


class ChangeFeed:
    """Per-user publish/subscribe hub for change events."""

    def __init__(
        self,
        redis_client: RedisClient | None = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        self._redis = redis_client
        self._queue_size = queue_size
        self._subscribers: dict[UUID, set[asyncio.Queue[ChangeEvent]]] = defaultdict(set)
        self._listener: asyncio.Task | None = None

    @property
    def relays_through_redis(self) -> bool:
        """True while the Redis listener task is alive."""
        return self._listener is not None and not self._listener.done()

    def subscriber_count(self, user_id: UUID) -> int:
        """Number of live subscriber queues for a user."""
        return len(self._subscribers.get(user_id, ()))

    async def start(self) -> None:
        """Start relaying Redis messages into local queues, if Redis is available."""
        if self._listener is not None or self._redis is None:
            return
        pubsub = self._redis.pubsub()
        if pubsub is None:
            logger.info("Change feed running in-process only (Redis unavailable)")
            return
        try:
            await pubsub.psubscribe(f"{CHANNEL_PREFIX}:*")
        except RedisError as e:
            logger.warning("Change feed could not subscribe to Redis: %s", e)
            await pubsub.aclose()
            return
        self._listener = asyncio.create_task(self._relay(pubsub))
        logger.info("Change feed relaying through Redis")

    async def stop(self) -> None:
        """Stop the Redis listener task."""
        if self._listener is None:
            return
        self._listener.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._listener
        self._listener = None

    async def _relay(self, pubsub: PubSub) -> None:
        try:
            async for message in pubsub.listen():
                if message.get("type") != "pmessage":
                    continue
                channel = message["channel"]
                if isinstance(channel, bytes):
                    channel = channel.decode()
                try:
                    user_id = UUID(channel.rsplit(":", 1)[-1])
                    event = ChangeEvent.model_validate_json(message["data"])
                except ValueError as e:
                    logger.warning("Dropping malformed change message on %s: %s", channel, e)
                    continue
                self._dispatch(user_id, event)
        except RedisError as e:
            # publish() falls back to local delivery once this task has finished
            logger.warning("Change feed lost its Redis subscription: %s", e)
        finally:
            await pubsub.aclose()

    def _dispatch(self, user_id: UUID, event: ChangeEvent) -> None:
        for queue in list(self._subscribers.get(user_id, ())):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                # Any queued event already triggers a full refetch downstream
                logger.debug("Subscriber queue full for user %s, dropping event", user_id)

    async def publish(self, user_id: UUID, event: ChangeEvent) -> None:
        """Deliver an event to every subscriber of a user, across workers when possible."""
        if self.relays_through_redis and self._redis is not None:
            if await self._redis.publish(channel_for(user_id), event.model_dump_json()):
                return
        self._dispatch(user_id, event)

    @contextlib.asynccontextmanager
    async def subscribe(self, user_id: UUID) -> AsyncIterator[asyncio.Queue[ChangeEvent]]:
        """Register a subscriber queue for a user for the duration of the context."""
        queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers[user_id].add(queue)
        try:
            yield queue
        finally:
            subscribers = self._subscribers.get(user_id)
            if subscribers is not None:
                subscribers.discard(queue)
                if not subscribers:
                    del self._subscribers[user_id]


def format_sse(event: ChangeEvent) -> str:
    """Render a change event as a Server-Sent Events message."""
    return f"event: change\ndata: {event.model_dump_json()}\n\n"


async def stream_events(
    feed: ChangeFeed,
    user_id: UUID,
    keepalive_seconds: float,
    is_disconnected: Callable[[], Awaitable[bool]] | None = None,
) -> AsyncIterator[str]:
    """
    Yield SSE messages for a user's change events until the client goes away.

    A comment line is sent first so clients know the subscription is live, and
    again every `keepalive_seconds` without events to keep proxies from closing
    the connection.
    """
    async with feed.subscribe(user_id) as queue:
        yield ": connected\n\n"
        while True:
            try:
                event = await asyncio.wait_for(queue.get(), timeout=keepalive_seconds)
            except TimeoutError:
                if is_disconnected is not None and await is_disconnected():
                    break
                yield ": keepalive\n\n"
                continue
            yield format_sse(event)


# Global change feed state using a container to avoid global statement
class _ChangeFeedState:
    """Container for global change feed state."""

    feed: ChangeFeed | None = None


_state = _ChangeFeedState()


def get_change_feed() -> ChangeFeed:
    """
    Get the global change feed, creating an in-process one on first use.

    The application lifespan installs a Redis-backed feed; the lazy fallback
    covers contexts where the lifespan does not run.
    """
    if _state.feed is None:
        _state.feed = ChangeFeed()
    return _state.feed


def set_change_feed(feed: ChangeFeed | None) -> None:
    """Set the global change feed instance."""
    _state.feed = feed
