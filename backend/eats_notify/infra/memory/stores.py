"""In-memory stores for local runs and tests. Same contracts as the SQL repositories."""
import logging
from datetime import datetime
from typing import Dict, Optional

from eats_notify.domain.common.types import as_utc, generate_id, utcnow
from eats_notify.domain.notifications.models import ChangeEvent, Notification, NotificationDraft
from eats_notify.domain.notifications.repositories import ChangePublisher
from eats_notify.domain.push.models import PushSubscription

logger = logging.getLogger(__name__)


class InMemoryNotificationStore:
    """Notification table in a dict; publishes a change event after every write."""

    def __init__(self, publisher: Optional[ChangePublisher] = None):
        self.publisher = publisher
        self.rows: Dict[str, Notification] = {}

    async def _emit(self, event: ChangeEvent) -> None:
        if self.publisher is not None:
            await self.publisher.publish(event)

    def seed(self, notification: Notification) -> Notification:
        """Insert a fully formed record without publishing (fixtures, backfills)."""
        self.rows[notification.id] = notification
        return notification

    async def create(self, draft: NotificationDraft) -> Notification:
        notification = Notification(
            id=generate_id(),
            user_id=draft.user_id,
            title=draft.title,
            message=draft.message,
            type=draft.type,
            metadata=draft.metadata,
            read=False,
            created_at=utcnow(),
        )
        self.rows[notification.id] = notification
        await self._emit(ChangeEvent.inserted(notification))
        return notification

    async def list_by_user(self, user_id: str, limit: int = 50) -> list[Notification]:
        owned = [n for n in self.rows.values() if n.user_id == user_id]
        owned.sort(key=lambda n: n.created_at, reverse=True)
        return owned[:limit]

    async def get(self, notification_id: str, user_id: str) -> Optional[Notification]:
        row = self.rows.get(notification_id)
        if row is None or row.user_id != user_id:
            return None
        return row

    async def _set_read(self, row: Notification, read: bool) -> Notification:
        updated = row.model_copy(update={"read": read})
        self.rows[row.id] = updated
        await self._emit(ChangeEvent.updated(updated))
        return updated

    async def set_read(self, notification_id: str, read: bool) -> Optional[Notification]:
        """Administrative read flag change in either direction."""
        row = self.rows.get(notification_id)
        if row is None:
            return None
        return await self._set_read(row, read)

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        row = await self.get(notification_id, user_id)
        if row is None:
            return False
        await self._set_read(row, True)
        return True

    async def mark_all_read(self, user_id: str) -> int:
        unread = [n for n in self.rows.values() if n.user_id == user_id and not n.read]
        for row in unread:
            await self._set_read(row, True)
        return len(unread)

    async def delete(self, notification_id: str, user_id: str) -> bool:
        row = await self.get(notification_id, user_id)
        if row is None:
            return False
        del self.rows[notification_id]
        await self._emit(ChangeEvent.deleted(user_id, notification_id))
        return True

    async def delete_all_for_user(self, user_id: str) -> int:
        owned = [n.id for n in self.rows.values() if n.user_id == user_id]
        for notification_id in owned:
            del self.rows[notification_id]
            await self._emit(ChangeEvent.deleted(user_id, notification_id))
        return len(owned)

    async def delete_older_than(self, cutoff: datetime) -> int:
        cutoff = as_utc(cutoff)
        expired = [n for n in self.rows.values() if n.created_at < cutoff]
        for row in expired:
            del self.rows[row.id]
            await self._emit(ChangeEvent.deleted(row.user_id, row.id))
        return len(expired)


class InMemoryPushSubscriptionStore:
    """One subscription per user."""

    def __init__(self):
        self.rows: Dict[str, PushSubscription] = {}

    async def upsert(self, subscription: PushSubscription) -> PushSubscription:
        self.rows[subscription.user_id] = subscription
        return subscription

    async def get_by_user(self, user_id: str) -> Optional[PushSubscription]:
        return self.rows.get(user_id)


class InMemoryAppSettingsStore:
    """Key/value settings."""

    def __init__(self, values: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(values or {})

    async def get_value(self, key: str) -> Optional[str]:
        return self.values.get(key)
