"""Tests for the in-memory and Redis change feeds."""
import asyncio
from unittest.mock import AsyncMock, MagicMock

from eats_notify.domain.notifications.models import ChangeEvent, ChangeKind
from eats_notify.infra.messaging.change_feed import RedisChangeFeed
from eats_notify.infra.realtime.change_feed import InMemoryChangeFeed
from helpers import FakeRedisBus, make_notification


async def test_in_memory_feed_routes_by_user():
    feed = InMemoryChangeFeed()
    sub_a = feed.subscribe("user-a")
    sub_b = feed.subscribe("user-b")
    record = make_notification("user-a")

    await feed.publish(ChangeEvent.inserted(record))

    event = await asyncio.wait_for(sub_a.__anext__(), timeout=1)
    assert event.kind == ChangeKind.INSERT
    assert event.record == record
    assert sub_b._queue.empty()


async def test_unsubscribe_ends_iteration_and_stops_delivery():
    feed = InMemoryChangeFeed()
    sub = feed.subscribe("user-a")
    received = []

    async def consume():
        async for event in sub:
            received.append(event)

    task = asyncio.create_task(consume())
    await feed.publish(ChangeEvent.deleted("user-a", "n-1"))
    await asyncio.sleep(0)
    sub.unsubscribe()
    await feed.publish(ChangeEvent.deleted("user-a", "n-2"))
    await asyncio.wait_for(task, timeout=1)

    assert [e.notification_id for e in received] == ["n-1"]
    assert feed.subscriber_count("user-a") == 0
    assert sub.closed


def test_change_event_json_round_trip_keeps_record():
    record = make_notification("user-a", read=True)
    event = ChangeEvent.updated(record)

    decoded = ChangeEvent.model_validate_json(event.model_dump_json())

    assert decoded == event
    assert decoded.record.created_at == record.created_at


async def test_redis_feed_publishes_json_on_user_channel():
    bus = MagicMock()
    bus.publish = AsyncMock()
    feed = RedisChangeFeed(bus)
    event = ChangeEvent.deleted("user-a", "n-1")

    await feed.publish(event)

    bus.publish.assert_awaited_once_with("notifications:user-a", event.model_dump_json())


async def test_redis_subscription_skips_malformed_payloads():
    first = ChangeEvent.inserted(make_notification("user-a"))
    second = ChangeEvent.deleted("user-a", "n-2")
    messages = [
        {"type": "message", "data": first.model_dump_json()},
        {"type": "message", "data": "{not json"},
        None,
        {"type": "message", "data": second.model_dump_json()},
    ]
    bus = MagicMock()
    pubsub = MagicMock()
    pubsub.unsubscribe = AsyncMock()
    pubsub.aclose = AsyncMock()
    bus.open_pubsub = AsyncMock(return_value=pubsub)
    sub = RedisChangeFeed(bus).subscribe("user-a")

    async def get_message(ignore_subscribe_messages=True, timeout=None):
        if messages:
            return messages.pop(0)
        sub.unsubscribe()
        return None

    pubsub.get_message = get_message

    received = [event async for event in sub]

    assert received == [first, second]
    bus.open_pubsub.assert_awaited_once_with("notifications:user-a")
    pubsub.unsubscribe.assert_awaited_once_with("notifications:user-a")
    pubsub.aclose.assert_awaited_once()


async def test_redis_subscription_joins_channel_on_ready():
    bus = FakeRedisBus()
    feed = RedisChangeFeed(bus)
    subscription = feed.subscribe("user-a")

    await subscription.ready()
    await feed.publish(ChangeEvent.deleted("user-a", "n-1"))

    assert len(bus.subscribers["notifications:user-a"]) == 1
    pubsub = bus.opened[0]
    assert pubsub.messages.qsize() == 1
    subscription.unsubscribe()
    await asyncio.sleep(0)
    assert pubsub.closed is True


async def test_redis_unsubscribe_before_iteration_releases_pubsub():
    bus = FakeRedisBus()
    subscription = RedisChangeFeed(bus).subscribe("user-a")
    await subscription.ready()

    subscription.unsubscribe()
    for _ in range(5):
        await asyncio.sleep(0)

    assert bus.opened[0].closed is True
    assert not bus.subscribers["notifications:user-a"]
