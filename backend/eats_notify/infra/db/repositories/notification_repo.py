"""Notification repository (SQLAlchemy async)."""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eats_notify.domain.common.types import generate_id, utcnow
from eats_notify.domain.notifications.models import ChangeEvent, Notification, NotificationDraft
from eats_notify.domain.notifications.repositories import ChangePublisher
from eats_notify.infra.db.base import translate_errors
from eats_notify.infra.db.models.notification import NotificationModel

logger = logging.getLogger(__name__)


def to_domain(model: NotificationModel) -> Notification:
    return Notification(
        id=model.id,
        user_id=model.user_id,
        title=model.title,
        message=model.message,
        type=model.type,
        metadata=model.meta,
        read=model.read,
        created_at=model.created_at,
    )


class NotificationRepository:
    """Notification repository.

    Opens one session per call so overlapping callers never share a session.
    Publishes a ChangeEvent for every affected row once the write commits.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        publisher: Optional[ChangePublisher] = None,
    ):
        self.session_factory = session_factory
        self.publisher = publisher

    async def _emit(self, events: List[ChangeEvent]) -> None:
        if self.publisher is None:
            return
        for event in events:
            try:
                await self.publisher.publish(event)
            except Exception as e:
                # write already committed; other views converge on their next fetch
                logger.warning(
                    "Publishing %s for notification %s failed: %s", event.kind.value, event.notification_id, e
                )

    async def create(self, draft: NotificationDraft) -> Notification:
        """Create an unread notification."""
        async with translate_errors("notifications.create"):
            async with self.session_factory() as session:
                model = NotificationModel(
                    id=generate_id(),
                    user_id=draft.user_id,
                    type=draft.type.value,
                    title=draft.title,
                    message=draft.message,
                    meta=draft.metadata,
                    read=False,
                    created_at=utcnow(),
                )
                session.add(model)
                await session.commit()
                await session.refresh(model)
                notification = to_domain(model)
        await self._emit([ChangeEvent.inserted(notification)])
        return notification

    async def list_by_user(self, user_id: str, limit: int = 50) -> List[Notification]:
        """List notifications for a user, newest first."""
        async with translate_errors("notifications.list_by_user"):
            async with self.session_factory() as session:
                result = await session.execute(
                    select(NotificationModel)
                    .where(NotificationModel.user_id == user_id)
                    .order_by(NotificationModel.created_at.desc())
                    .limit(limit)
                )
                return [to_domain(m) for m in result.scalars().all()]

    async def get(self, notification_id: str, user_id: str) -> Optional[Notification]:
        """Get a notification by ID if it belongs to the user."""
        async with translate_errors("notifications.get"):
            async with self.session_factory() as session:
                result = await session.execute(
                    select(NotificationModel).where(
                        NotificationModel.id == notification_id,
                        NotificationModel.user_id == user_id,
                    )
                )
                model = result.scalar_one_or_none()
                return to_domain(model) if model else None

    async def _update_read(self, operation: str, read: bool, *criteria) -> List[Notification]:
        async with translate_errors(operation):
            async with self.session_factory() as session:
                result = await session.execute(select(NotificationModel).where(*criteria))
                rows = list(result.scalars().all())
                if not rows:
                    return []
                await session.execute(
                    update(NotificationModel)
                    .where(NotificationModel.id.in_([r.id for r in rows]))
                    .values(read=read)
                )
                await session.commit()
                changed = [to_domain(r).model_copy(update={"read": read}) for r in rows]
        await self._emit([ChangeEvent.updated(n) for n in changed])
        return changed

    async def mark_read(self, notification_id: str, user_id: str) -> bool:
        """Mark a notification as read. Returns True if found."""
        changed = await self._update_read(
            "notifications.mark_read",
            True,
            NotificationModel.id == notification_id,
            NotificationModel.user_id == user_id,
        )
        return bool(changed)

    async def set_read(self, notification_id: str, read: bool) -> Optional[Notification]:
        """Administrative read flag change in either direction, regardless of owner."""
        changed = await self._update_read("notifications.set_read", read, NotificationModel.id == notification_id)
        return changed[0] if changed else None

    async def mark_all_read(self, user_id: str) -> int:
        """Mark the user's unread notifications as read. Returns count updated."""
        changed = await self._update_read(
            "notifications.mark_all_read",
            True,
            NotificationModel.user_id == user_id,
            NotificationModel.read.is_(False),
        )
        return len(changed)

    async def _delete_where(self, operation: str, *criteria) -> List[ChangeEvent]:
        async with translate_errors(operation):
            async with self.session_factory() as session:
                result = await session.execute(
                    select(NotificationModel.id, NotificationModel.user_id).where(*criteria)
                )
                rows = list(result.all())
                if not rows:
                    return []
                await session.execute(
                    delete(NotificationModel).where(NotificationModel.id.in_([r.id for r in rows]))
                )
                await session.commit()
        events = [ChangeEvent.deleted(r.user_id, r.id) for r in rows]
        await self._emit(events)
        return events

    async def delete(self, notification_id: str, user_id: str) -> bool:
        """Delete a notification if it belongs to the user. Returns True if deleted."""
        events = await self._delete_where(
            "notifications.delete",
            NotificationModel.id == notification_id,
            NotificationModel.user_id == user_id,
        )
        return bool(events)

    async def delete_all_for_user(self, user_id: str) -> int:
        events = await self._delete_where("notifications.delete_all_for_user", NotificationModel.user_id == user_id)
        return len(events)

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Retention cleanup across all users."""
        events = await self._delete_where("notifications.delete_older_than", NotificationModel.created_at < cutoff)
        return len(events)
