"""In-process change feed: per-user channels backed by asyncio queues."""
import asyncio
import logging
from typing import Dict, Set

from eats_notify.domain.notifications.models import ChangeEvent, channel_for

logger = logging.getLogger(__name__)

_CLOSED = object()


class InMemoryChangeSubscription:
    """Async iterator over one user's change events until unsubscribed."""

    def __init__(self, feed: "InMemoryChangeFeed", user_id: str):
        self._feed = feed
        self.user_id = user_id
        self.channel = channel_for(user_id)
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def ready(self) -> None:
        """Already registered with the feed at construction."""

    def deliver(self, event: ChangeEvent) -> None:
        if not self._closed:
            self._queue.put_nowait(event)

    def unsubscribe(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._feed._remove(self)
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "InMemoryChangeSubscription":
        return self

    async def __anext__(self) -> ChangeEvent:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class InMemoryChangeFeed:
    """Fan-out of change events to every open subscription for the event's user."""

    def __init__(self):
        # Map channel -> open subscriptions
        self.channels: Dict[str, Set[InMemoryChangeSubscription]] = {}

    def subscribe(self, user_id: str) -> InMemoryChangeSubscription:
        subscription = InMemoryChangeSubscription(self, user_id)
        self.channels.setdefault(subscription.channel, set()).add(subscription)
        logger.debug("Subscribed to %s (%d open)", subscription.channel, len(self.channels[subscription.channel]))
        return subscription

    def _remove(self, subscription: InMemoryChangeSubscription) -> None:
        subs = self.channels.get(subscription.channel)
        if subs is None:
            return
        subs.discard(subscription)
        if not subs:
            del self.channels[subscription.channel]
        logger.debug("Unsubscribed from %s", subscription.channel)

    def subscriber_count(self, user_id: str) -> int:
        return len(self.channels.get(channel_for(user_id), ()))

    async def publish(self, event: ChangeEvent) -> None:
        for subscription in list(self.channels.get(channel_for(event.user_id), ())):
            subscription.deliver(event)
