"""Test helpers shared across modules."""
import asyncio
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Optional

from eats_notify.domain.common.types import generate_id
from eats_notify.domain.notifications.models import Notification, NotificationType

BASE_TIME = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_notification(
    user_id: str = "user-a",
    *,
    minutes: int = 0,
    read: bool = False,
    type: NotificationType = NotificationType.SYSTEM,
    id: Optional[str] = None,
) -> Notification:
    """Build a record created `minutes` after BASE_TIME."""
    return Notification(
        id=id or generate_id(),
        user_id=user_id,
        title=f"Notice {minutes}",
        message="hello",
        type=type,
        read=read,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


async def drain(rounds: int = 5) -> None:
    """Let background consumer tasks process queued events."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakePubSub:
    """Subscribed pubsub handle; only sees messages published after it joined."""

    def __init__(self, bus: "FakeRedisBus", channel: str):
        self.bus = bus
        self.channel = channel
        self.messages: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def get_message(self, ignore_subscribe_messages=True, timeout=None):
        try:
            return await asyncio.wait_for(self.messages.get(), timeout)
        except asyncio.TimeoutError:
            return None

    async def unsubscribe(self, channel):
        self.bus.subscribers[channel].discard(self)

    async def aclose(self):
        self.closed = True


class FakeRedisBus:
    """Stands in for RedisBus: publish reaches only channels already joined."""

    def __init__(self):
        self.subscribers = defaultdict(set)
        self.opened: list[FakePubSub] = []

    async def open_pubsub(self, channel):
        pubsub = FakePubSub(self, channel)
        self.subscribers[channel].add(pubsub)
        self.opened.append(pubsub)
        return pubsub

    async def publish(self, channel, message):
        for pubsub in list(self.subscribers[channel]):
            pubsub.messages.put_nowait({"type": "message", "data": message})
