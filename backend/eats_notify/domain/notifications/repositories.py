"""Notification domain repository protocols."""
from datetime import datetime
from typing import AsyncIterator, Optional, Protocol

from eats_notify.domain.notifications.models import ChangeEvent, Notification, NotificationDraft


class NotificationStore(Protocol):
    """Persistent notification table scoped by user."""

    async def create(self, draft: NotificationDraft) -> Notification:
        """Insert an unread notification; the store assigns id and created_at."""
        ...

    async def list_by_user(self, user_id: str, limit: int = 50) -> list[Notification]:
        """Newest first."""
        ...

    async def get(self, notification_id: str, user_id: str) -> Optional[Notification]:
        ...

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        """Returns False if no such row for the user."""
        ...

    async def mark_all_read(self, user_id: str) -> int:
        """Mark only the unread rows read. Returns count updated."""
        ...

    async def delete(self, notification_id: str, user_id: str) -> bool:
        """Returns False if no such row for the user."""
        ...

    async def delete_all_for_user(self, user_id: str) -> int:
        ...

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete every user's rows created before cutoff."""
        ...


class ChangeSubscription(Protocol):
    """Open-ended stream of change events for one user."""

    channel: str

    async def ready(self) -> None:
        """Join the channel. Events published after this returns are delivered."""
        ...

    def __aiter__(self) -> AsyncIterator[ChangeEvent]:
        ...

    def unsubscribe(self) -> None:
        """Stop delivery. Synchronous so teardown can't interleave with a switch."""
        ...


class ChangePublisher(Protocol):
    """Receives change events from a store after each committed write."""

    async def publish(self, event: ChangeEvent) -> None:
        ...


class ChangeFeed(ChangePublisher, Protocol):
    """Publisher plus per-user subscriptions."""

    def subscribe(self, user_id: str) -> ChangeSubscription:
        ...
