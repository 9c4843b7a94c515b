"""Tests for domain models and dependency wiring."""
from datetime import datetime, timezone

import pytest

from eats_notify import deps
from eats_notify.domain.notifications.models import Notification, NotificationType, metadata_for
from eats_notify.domain.push.models import PushOptions
from eats_notify.domain.push.services import default_push_options
from eats_notify.infra.messaging.change_feed import RedisChangeFeed
from eats_notify.infra.realtime.change_feed import InMemoryChangeFeed
from eats_notify.settings import get_config_store


def test_metadata_for_keeps_only_type_keys():
    assert metadata_for(NotificationType.ORDER_STATUS, order_id="o-1", delivery_id="d-1") == {"order_id": "o-1"}
    assert metadata_for(NotificationType.SYSTEM, order_id="o-1") is None


def test_naive_created_at_is_utc():
    n = Notification(
        id="n-1",
        user_id="user-a",
        title="t",
        message="m",
        type="promotion",
        metadata={"promotion_id": "p-1"},
        created_at=datetime(2024, 1, 1, 9, 30),
    )
    assert n.created_at == datetime(2024, 1, 1, 9, 30, tzinfo=timezone.utc)
    assert n.typed_metadata.promotion_id == "p-1"
    assert n.read is False


def test_push_options_override_defaults():
    merged = PushOptions(body="hi", vibrate=[50], data={"url": "/orders/1"}).merged_over(default_push_options())

    assert merged.body == "hi"
    assert merged.vibrate == [50]
    assert merged.data == {"url": "/orders/1"}
    assert merged.tag == "colab-eats-notification"


@pytest.fixture
def restore_config():
    yield get_config_store()
    get_config_store().clear_overrides()
    deps.reset_change_feed()


def test_change_feed_backend_follows_settings(restore_config):
    deps.reset_change_feed()
    assert isinstance(deps.get_change_feed(), InMemoryChangeFeed)
    assert deps.get_change_feed() is deps.get_change_feed()

    restore_config.update({"change_feed_backend": "redis"})
    deps.reset_change_feed()
    assert isinstance(deps.get_change_feed(), RedisChangeFeed)
