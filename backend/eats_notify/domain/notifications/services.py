"""Notification domain services.

NotificationService builds and persists notification records for domain
events (order status, delivery, promotion, system). Every create returns the
persisted Notification or None; store failures are logged, never raised, so
callers can degrade (e.g. skip a push when the record did not persist).
"""
import logging
from datetime import timedelta
from typing import Any, Optional

from eats_notify.domain.common.types import utcnow
from eats_notify.domain.notifications.models import (
    Notification,
    NotificationDraft,
    NotificationType,
    metadata_for,
)
from eats_notify.domain.notifications.repositories import NotificationStore
from eats_notify.services.retry import RetryPolicy, retry_async
from eats_notify.settings import settings

logger = logging.getLogger(__name__)

ORDER_STATUS_MESSAGES: dict[str, str] = {
    "pending": "Your order was received and is being prepared",
    "preparing": "Your order is being prepared",
    "ready": "Your order is ready for pickup",
    "delivered": "Your order was delivered successfully!",
    "cancelled": "Your order was cancelled",
}
ORDER_STATUS_FALLBACK = "Order status updated"

DELIVERY_STATUS_MESSAGES: dict[str, str] = {
    "assigned": "A courier was assigned to your order",
    "picked_up": "Your order was picked up from the restaurant",
    "on_the_way": "Your order is on the way",
    "delivered": "Your order was delivered!",
}
DELIVERY_STATUS_FALLBACK = "Delivery status updated"
DELIVERY_TITLE = "Delivery Update"


def order_status_message(status: str, additional_info: Optional[str] = None) -> str:
    """Canned message for an order status; unknown codes get the generic text."""
    if additional_info:
        return additional_info
    return ORDER_STATUS_MESSAGES.get(status, ORDER_STATUS_FALLBACK)


def delivery_status_message(status: str, estimated_time: Optional[str] = None) -> str:
    """Canned delivery message; the ETA suffix is only added to known statuses."""
    base = DELIVERY_STATUS_MESSAGES.get(status)
    if base is None:
        return DELIVERY_STATUS_FALLBACK
    if estimated_time:
        return f"{base} - Estimated time: {estimated_time}"
    return base


class NotificationService:
    """Creates notification records; stateless apart from its collaborators."""

    def __init__(self, store: NotificationStore, retry: Optional[RetryPolicy] = None):
        self.store = store
        self.retry = retry or RetryPolicy.from_settings()

    async def create_notification(self, draft: NotificationDraft) -> Optional[Notification]:
        """Persist a draft. Returns None (logged) if the store fails."""
        try:
            notification = await retry_async(
                lambda: self.store.create(draft),
                self.retry,
                "create_notification",
                user_id=draft.user_id,
                type=draft.type.value,
            )
        except Exception:
            logger.exception(
                "create_notification failed user_id=%s type=%s", draft.user_id, draft.type.value
            )
            return None
        logger.debug(
            "Notification %s created for user %s (%s)", notification.id, draft.user_id, draft.type.value
        )
        return notification

    async def create_order_status_notification(
        self,
        user_id: str,
        order_id: str,
        status: str,
        additional_info: Optional[str] = None,
    ) -> Optional[Notification]:
        return await self.create_notification(
            NotificationDraft(
                user_id=user_id,
                title=f"Order #{order_id[-6:]} - {status}",
                message=order_status_message(status, additional_info),
                type=NotificationType.ORDER_STATUS,
                metadata=metadata_for(NotificationType.ORDER_STATUS, order_id=order_id),
            )
        )

    async def create_delivery_notification(
        self,
        user_id: str,
        delivery_id: str,
        status: str,
        estimated_time: Optional[str] = None,
    ) -> Optional[Notification]:
        return await self.create_notification(
            NotificationDraft(
                user_id=user_id,
                title=DELIVERY_TITLE,
                message=delivery_status_message(status, estimated_time),
                type=NotificationType.DELIVERY,
                metadata=metadata_for(NotificationType.DELIVERY, delivery_id=delivery_id),
            )
        )

    async def create_promotion_notification(
        self,
        user_id: str,
        promotion_id: str,
        title: str,
        description: str,
    ) -> Optional[Notification]:
        return await self.create_notification(
            NotificationDraft(
                user_id=user_id,
                title=f"\U0001F389 {title}",
                message=description,
                type=NotificationType.PROMOTION,
                metadata=metadata_for(NotificationType.PROMOTION, promotion_id=promotion_id),
            )
        )

    async def create_system_notification(
        self,
        user_id: str,
        title: str,
        message: str,
    ) -> Optional[Notification]:
        return await self.create_notification(
            NotificationDraft(
                user_id=user_id,
                title=title,
                message=message,
                type=NotificationType.SYSTEM,
            )
        )

    async def send_bulk_notification(
        self,
        user_ids: list[str],
        title: str,
        message: str,
        type: NotificationType | str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        """Create the same notification for each user, one at a time.

        Runs sequentially; a failure for one user never stops the rest.
        Returns the number created; an unknown type creates nothing and returns 0.
        """
        try:
            notification_type = NotificationType(type)
        except ValueError:
            logger.warning("Bulk notification skipped: unknown type %r for %d users", type, len(user_ids))
            return 0
        success_count = 0
        for user_id in user_ids:
            notification = await self.create_notification(
                NotificationDraft(
                    user_id=user_id,
                    title=title,
                    message=message,
                    type=notification_type,
                    metadata=metadata,
                )
            )
            if notification is not None:
                success_count += 1
        logger.info("Bulk notification sent: %d/%d", success_count, len(user_ids))
        return success_count

    async def cleanup_old_notifications(self, days_old: Optional[int] = None) -> int:
        """Delete every user's notifications older than now - days_old.

        Idempotent: nothing eligible means 0. Returns 0 (logged) on store failure.
        """
        days = settings.notification_retention_days if days_old is None else days_old
        cutoff = utcnow() - timedelta(days=days)
        try:
            deleted = await retry_async(
                lambda: self.store.delete_older_than(cutoff),
                self.retry,
                "cleanup_old_notifications",
                days_old=days,
            )
        except Exception:
            logger.exception("cleanup_old_notifications failed days_old=%s", days)
            return 0
        logger.info("Removed %d notification(s) older than %d day(s)", deleted, days)
        return deleted
