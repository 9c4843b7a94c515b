"""Dependency wiring: build stores, change feed and services from settings."""
from typing import Optional

from eats_notify.domain.notifications.repositories import ChangeFeed, NotificationStore
from eats_notify.domain.notifications.services import NotificationService
from eats_notify.domain.push.dispatch import PushDispatcher
from eats_notify.domain.push.services import PushNotificationService
from eats_notify.domain.push.transport import PushTransport
from eats_notify.infra.db.base import get_sessionmaker
from eats_notify.infra.db.repositories.notification_repo import NotificationRepository
from eats_notify.infra.db.repositories.push_subscription_repo import (
    AppSettingsRepository,
    PushSubscriptionRepository,
)
from eats_notify.infra.messaging.change_feed import RedisChangeFeed
from eats_notify.infra.realtime.change_feed import InMemoryChangeFeed
from eats_notify.services.reconciler import LiveNotificationReconciler
from eats_notify.services.retry import RetryPolicy
from eats_notify.settings import settings

_change_feed: Optional[ChangeFeed] = None


def get_change_feed() -> ChangeFeed:
    """Process-wide change feed; backend chosen by settings.change_feed_backend."""
    global _change_feed
    if _change_feed is None:
        if settings.change_feed_backend == "redis":
            _change_feed = RedisChangeFeed()
        else:
            _change_feed = InMemoryChangeFeed()
    return _change_feed


def reset_change_feed() -> None:
    global _change_feed
    _change_feed = None


def get_notification_store(feed: Optional[ChangeFeed] = None) -> NotificationStore:
    return NotificationRepository(get_sessionmaker(), publisher=feed or get_change_feed())


def get_notification_service(store: Optional[NotificationStore] = None) -> NotificationService:
    return NotificationService(store or get_notification_store(), retry=RetryPolicy.from_settings())


def get_push_service(
    transport: PushTransport,
    notification_service: Optional[NotificationService] = None,
    dispatcher: Optional[PushDispatcher] = None,
) -> PushNotificationService:
    """Push service over the SQL subscription and settings stores."""
    session_factory = get_sessionmaker()
    return PushNotificationService(
        transport,
        PushSubscriptionRepository(session_factory),
        AppSettingsRepository(session_factory),
        notification_service or get_notification_service(),
        dispatcher=dispatcher,
    )


def get_reconciler(
    store: Optional[NotificationStore] = None,
    feed: Optional[ChangeFeed] = None,
) -> LiveNotificationReconciler:
    feed = feed or get_change_feed()
    return LiveNotificationReconciler(
        store or get_notification_store(feed),
        feed,
        retry=RetryPolicy.from_settings(),
        fetch_limit=settings.notification_fetch_limit,
    )
