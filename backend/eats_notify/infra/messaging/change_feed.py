"""Change feed over Redis pub/sub so every process sees every store write."""
import asyncio
import logging
from typing import AsyncIterator, Optional

import pydantic
from redis.asyncio.client import PubSub

from eats_notify.domain.notifications.models import ChangeEvent, channel_for
from eats_notify.infra.messaging.redis_bus import RedisBus, redis_bus

logger = logging.getLogger(__name__)


class RedisChangeSubscription:
    """Reads one user's channel until unsubscribed or the consuming task is cancelled."""

    def __init__(self, bus: RedisBus, user_id: str, poll_timeout: float = 1.0):
        self._bus = bus
        self.user_id = user_id
        self.channel = channel_for(user_id)
        self._poll_timeout = poll_timeout
        self._closed = False
        self._pubsub: Optional[PubSub] = None
        self._iterating = False
        self._release_task: Optional[asyncio.Task] = None

    @property
    def closed(self) -> bool:
        return self._closed

    async def ready(self) -> None:
        """SUBSCRIBE now, so nothing published from here on is missed."""
        if self._pubsub is not None or self._closed:
            return
        pubsub = await self._bus.open_pubsub(self.channel)
        if self._closed:
            await self._release(pubsub)
            return
        self._pubsub = pubsub

    def unsubscribe(self) -> None:
        self._closed = True
        if self._pubsub is not None and not self._iterating and self._release_task is None:
            # joined but never iterated: release here
            self._release_task = asyncio.get_running_loop().create_task(self._release(self._pubsub))
            self._pubsub = None

    async def _release(self, pubsub: PubSub) -> None:
        try:
            await pubsub.unsubscribe(self.channel)
            await pubsub.aclose()
        except Exception as e:
            logger.warning("Closing pubsub for %s failed: %s", self.channel, e)

    async def __aiter__(self) -> AsyncIterator[ChangeEvent]:
        await self.ready()
        pubsub = self._pubsub
        if pubsub is None:
            return
        self._iterating = True
        try:
            while not self._closed:
                msg = await pubsub.get_message(ignore_subscribe_messages=True, timeout=self._poll_timeout)
                if not msg or msg.get("type") != "message" or not msg.get("data"):
                    continue
                try:
                    event = ChangeEvent.model_validate_json(msg["data"])
                except pydantic.ValidationError as e:
                    logger.warning("Dropping malformed change event on %s: %s", self.channel, e)
                    continue
                if self._closed:
                    break
                yield event
        finally:
            self._pubsub = None
            await pubsub.unsubscribe(self.channel)
            await pubsub.aclose()


class RedisChangeFeed:
    """Publishes change events as JSON on notifications:{user_id}."""

    def __init__(self, bus: Optional[RedisBus] = None):
        self.bus = bus or redis_bus

    def subscribe(self, user_id: str) -> RedisChangeSubscription:
        return RedisChangeSubscription(self.bus, user_id)

    async def publish(self, event: ChangeEvent) -> None:
        await self.bus.publish(channel_for(event.user_id), event.model_dump_json())
