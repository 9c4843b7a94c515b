"""Redis message bus: pub/sub for change events and a list-backed job queue."""
import json
from typing import Optional

import redis.asyncio as redis
from redis.asyncio.client import PubSub

from eats_notify.settings import settings


class RedisBus:
    """Redis message bus for pub/sub and queue."""

    def __init__(self, url: Optional[str] = None, queue_url: Optional[str] = None):
        self._url = url
        self._queue_url = queue_url
        self._redis: Optional[redis.Redis] = None
        self._queue_redis: Optional[redis.Redis] = None

    async def connect(self):
        """Connect to Redis."""
        self._redis = redis.from_url(self._url or settings.redis_url, decode_responses=True)
        self._queue_redis = redis.from_url(self._queue_url or settings.redis_queue_url, decode_responses=True)

    async def disconnect(self):
        """Disconnect from Redis."""
        if self._redis:
            await self._redis.aclose()
            self._redis = None
        if self._queue_redis:
            await self._queue_redis.aclose()
            self._queue_redis = None

    async def publish(self, channel: str, message: str) -> None:
        """Publish a raw string payload to a channel."""
        if not self._redis:
            await self.connect()
        await self._redis.publish(channel, message)

    async def open_pubsub(self, channel: str) -> PubSub:
        """Return a PubSub already subscribed to channel. Caller closes it."""
        if not self._redis:
            await self.connect()
        pubsub = self._redis.pubsub()
        await pubsub.subscribe(channel)
        return pubsub

    async def enqueue_job(self, queue_name: str, job_data: dict):
        """Enqueue a job."""
        if not self._queue_redis:
            await self.connect()
        await self._queue_redis.lpush(queue_name, json.dumps(job_data))

    async def get_job(self, queue_name: str) -> Optional[dict]:
        """Get a job from queue (blocking, 1s timeout)."""
        if not self._queue_redis:
            await self.connect()
        result = await self._queue_redis.brpop(queue_name, timeout=1)
        if result:
            _, data = result
            return json.loads(data)
        return None


# Global instance
redis_bus = RedisBus()
