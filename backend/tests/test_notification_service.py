"""Tests for NotificationService."""
from datetime import timedelta
from unittest.mock import AsyncMock

from eats_notify.domain.common.errors import StoreError, TransientStoreError
from eats_notify.domain.common.types import utcnow
from eats_notify.domain.notifications.models import NotificationType
from eats_notify.domain.notifications.services import (
    NotificationService,
    delivery_status_message,
    order_status_message,
)
from eats_notify.services.retry import NO_RETRY, RetryPolicy
from helpers import make_notification


async def test_order_status_notification_title_and_metadata(notification_service, store):
    n = await notification_service.create_order_status_notification("user-a", "order-123456789", "ready")

    assert n is not None
    assert n.title == "Order #456789 - ready"
    assert n.message == "Your order is ready for pickup"
    assert n.type == NotificationType.ORDER_STATUS
    assert n.metadata == {"order_id": "order-123456789"}
    assert n.read is False
    assert store.rows[n.id] == n


async def test_order_status_additional_info_overrides_canned_message(notification_service):
    n = await notification_service.create_order_status_notification(
        "user-a", "abc", "preparing", additional_info="Chef is on it"
    )
    assert n.message == "Chef is on it"
    assert n.title == "Order #abc - preparing"


def test_unknown_status_codes_get_generic_text():
    assert order_status_message("teleported") == "Order status updated"
    assert delivery_status_message("teleported", "5 min") == "Delivery status updated"


def test_delivery_eta_only_on_known_status():
    assert delivery_status_message("on_the_way", "10 min") == "Your order is on the way - Estimated time: 10 min"
    assert delivery_status_message("on_the_way") == "Your order is on the way"


async def test_delivery_notification(notification_service):
    n = await notification_service.create_delivery_notification("user-a", "del-1", "picked_up", "15 min")
    assert n.title == "Delivery Update"
    assert n.message.endswith("Estimated time: 15 min")
    assert n.metadata == {"delivery_id": "del-1"}


async def test_promotion_notification_prefixes_title(notification_service):
    n = await notification_service.create_promotion_notification("user-a", "promo-9", "Half price", "Today only")
    assert n.title == "\U0001F389 Half price"
    assert n.message == "Today only"
    assert n.type == NotificationType.PROMOTION
    assert n.metadata == {"promotion_id": "promo-9"}


async def test_system_notification_has_no_metadata(notification_service):
    n = await notification_service.create_system_notification("user-a", "Maintenance", "Back soon")
    assert n.type == NotificationType.SYSTEM
    assert n.metadata is None


async def test_create_returns_none_when_store_fails():
    store = AsyncMock()
    store.create.side_effect = StoreError("notifications.create", "constraint violated")
    service = NotificationService(store, retry=NO_RETRY)

    assert await service.create_system_notification("user-a", "t", "m") is None


async def test_create_retries_transient_failures(store):
    calls = {"n": 0}
    original = store.create

    async def flaky(draft):
        calls["n"] += 1
        if calls["n"] < 3:
            raise TransientStoreError("notifications.create", "connection reset")
        return await original(draft)

    store.create = flaky
    service = NotificationService(store, retry=RetryPolicy(attempts=3, base_delay=0, max_delay=0))

    n = await service.create_system_notification("user-a", "t", "m")
    assert n is not None
    assert calls["n"] == 3


async def test_bulk_counts_successes_and_continues_past_failures(store):
    original = store.create

    async def create(draft):
        if draft.user_id == "user-b":
            raise StoreError("notifications.create", "boom")
        return await original(draft)

    store.create = create
    service = NotificationService(store, retry=NO_RETRY)

    sent = await service.send_bulk_notification(["user-a", "user-b", "user-c"], "Hi", "There", "system")

    assert sent == 2
    assert sorted(n.user_id for n in store.rows.values()) == ["user-a", "user-c"]


async def test_bulk_unknown_type_creates_nothing(notification_service, store):
    count = await notification_service.send_bulk_notification(["user-a", "user-b"], "Hi", "There", "carrier_pigeon")

    assert count == 0
    assert store.rows == {}


async def test_cleanup_deletes_only_old_rows(notification_service, store):
    old = make_notification("user-a").model_copy(update={"created_at": utcnow() - timedelta(days=40)})
    recent = make_notification("user-b").model_copy(update={"created_at": utcnow() - timedelta(days=2)})
    store.seed(old)
    store.seed(recent)

    assert await notification_service.cleanup_old_notifications(30) == 1
    assert list(store.rows) == [recent.id]
    # idempotent
    assert await notification_service.cleanup_old_notifications(30) == 0


async def test_cleanup_uses_retention_setting_by_default(notification_service, store):
    store.seed(make_notification().model_copy(update={"created_at": utcnow() - timedelta(days=31)}))
    assert await notification_service.cleanup_old_notifications() == 1


async def test_cleanup_returns_zero_on_failure():
    store = AsyncMock()
    store.delete_older_than.side_effect = StoreError("notifications.delete_older_than", "boom")
    service = NotificationService(store, retry=NO_RETRY)
    assert await service.cleanup_old_notifications(7) == 0
