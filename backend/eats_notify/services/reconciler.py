"""
Live notification reconciler: one user's notifications kept in memory and in
step with the store.

State is an ordered list (newest first) plus an unread counter, a loading
flag and the last fetch error. Every change to that state goes through
_apply(), which reads the current list immediately before mutating it and
derives unread_count from the result, so the counter always equals the
number of unread entries held.

Asynchronous completions are guarded by a session generation: switching
user (or closing) bumps the generation and synchronously unsubscribes the
previous live stream, and any fetch result, store acknowledgement or live
event that belongs to an older generation is discarded.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from eats_notify.domain.identity import CurrentUser
from eats_notify.domain.notifications.models import ChangeEvent, ChangeKind, Notification
from eats_notify.domain.notifications.repositories import (
    ChangeFeed,
    ChangeSubscription,
    NotificationStore,
)
from eats_notify.services.retry import RetryPolicy, retry_async
from eats_notify.settings import settings

logger = logging.getLogger(__name__)

StateListener = Callable[["NotificationsSnapshot"], None]

# Change recorded while a fetch is in flight: (kind, record); record is None for deletes
JournalEntry = Tuple[ChangeKind, Optional[Notification]]


@dataclass(frozen=True)
class NotificationsSnapshot:
    """Immutable view handed to UI listeners."""

    user_id: Optional[str]
    notifications: tuple[Notification, ...] = ()
    unread_count: int = 0
    loading: bool = False
    error: Optional[str] = None


def count_unread(notifications: List[Notification]) -> int:
    return sum(1 for n in notifications if not n.read)


def insert_sorted(notifications: List[Notification], record: Notification) -> List[Notification]:
    """Place record by created_at (newest first); a record with the same id is replaced."""
    result = [n for n in notifications if n.id != record.id]
    index = len(result)
    for i, existing in enumerate(result):
        if existing.created_at <= record.created_at:
            index = i
            break
    result.insert(index, record)
    return result


@dataclass
class _Session:
    """Everything tied to one user; replaced wholesale on identity change."""

    user_id: Optional[str]
    generation: int
    subscription: Optional[ChangeSubscription] = None
    consumer: Optional[asyncio.Task] = None
    # id -> latest change seen while a fetch is in flight
    journal: Optional[Dict[str, JournalEntry]] = None
    fetch_seq: int = 0
    in_flight_fetches: int = 0


class LiveNotificationReconciler:
    """Consistent, live-updating view of one user's notifications."""

    def __init__(
        self,
        store: NotificationStore,
        feed: ChangeFeed,
        retry: Optional[RetryPolicy] = None,
        fetch_limit: Optional[int] = None,
    ):
        self.store = store
        self.feed = feed
        self.retry = retry or RetryPolicy.from_settings()
        self.fetch_limit = fetch_limit or settings.notification_fetch_limit
        self._generation = 0
        self._session = _Session(user_id=None, generation=0)
        self._notifications: List[Notification] = []
        self._unread_count = 0
        self._loading = False
        self._error: Optional[str] = None
        self._listeners: List[StateListener] = []
        self._identity_unbind: Optional[Callable[[], None]] = None

    # -- state accessors ---------------------------------------------------

    @property
    def user_id(self) -> Optional[str]:
        return self._session.user_id

    @property
    def notifications(self) -> List[Notification]:
        return list(self._notifications)

    @property
    def unread_count(self) -> int:
        return self._unread_count

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def is_live(self) -> bool:
        return self._session.subscription is not None

    def snapshot(self) -> NotificationsSnapshot:
        return NotificationsSnapshot(
            user_id=self._session.user_id,
            notifications=tuple(self._notifications),
            unread_count=self._unread_count,
            loading=self._loading,
            error=self._error,
        )

    def on_change(self, listener: StateListener) -> Callable[[], None]:
        """Call listener with a snapshot after every state change. Returns a remover."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Notification state listener failed")

    # -- single writer -----------------------------------------------------

    def _apply(
        self,
        mutate: Callable[[List[Notification]], List[Notification]],
        *,
        journal: Optional[List[Tuple[str, JournalEntry]]] = None,
    ) -> None:
        """Replace the list with mutate(current list) and recompute unread_count."""
        updated = mutate(list(self._notifications))
        self._notifications = updated
        self._unread_count = count_unread(updated)
        for notification_id, entry in journal or ():
            self._record(notification_id, entry)
        self._notify()

    def _record(self, notification_id: str, entry: JournalEntry) -> None:
        """Journal a change for the in-flight fetch merge (no-op when no fetch is running)."""
        journal = self._session.journal
        if journal is None:
            return
        kind, record = entry
        previous = journal.get(notification_id)
        if kind == ChangeKind.UPDATE and previous is not None and previous[0] == ChangeKind.INSERT:
            kind = ChangeKind.INSERT
        journal[notification_id] = (kind, record)

    def _set_flags(self, *, loading: Optional[bool] = None, error: Optional[str] = ...) -> None:
        if loading is not None:
            self._loading = loading
        if error is not ...:
            self._error = error
        self._notify()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    # -- identity / lifecycle ----------------------------------------------

    def _teardown(self) -> None:
        """Synchronously stop the current session's live stream."""
        session = self._session
        if session.subscription is not None:
            session.subscription.unsubscribe()
            logger.debug("Unsubscribed live notifications for user %s", session.user_id)
        if session.consumer is not None and not session.consumer.done():
            session.consumer.cancel()
        session.subscription = None
        session.consumer = None

    async def set_user(self, user_id: Optional[str]) -> None:
        """Switch to user_id (None = signed out): tear down, reset, subscribe, fetch."""
        if user_id == self._session.user_id and (user_id is None or self.is_live):
            return
        self._teardown()
        self._generation += 1
        self._session = _Session(user_id=user_id, generation=self._generation)
        self._notifications = []
        self._unread_count = 0
        self._loading = False
        self._error = None
        self._notify()
        if user_id is None:
            return
        session = self._session
        await self._start_live(session)
        if not self._is_current(session.generation):
            return
        await self.fetch_notifications()

    async def _start_live(self, session: _Session) -> None:
        """Join the user's channel before the first fetch, then start consuming."""
        subscription = self.feed.subscribe(session.user_id)
        session.subscription = subscription
        try:
            await subscription.ready()
        except Exception as e:
            logger.error("Joining live notifications for user %s failed: %s", session.user_id, e)
            if session.subscription is subscription:
                subscription.unsubscribe()
                session.subscription = None
            return
        if not self._is_current(session.generation):
            return
        session.consumer = asyncio.create_task(
            self._consume(subscription, session.generation),
            name=f"notifications-live:{session.user_id}",
        )
        logger.debug("Live notifications started for user %s (%s)", session.user_id, subscription.channel)

    async def _consume(self, subscription: ChangeSubscription, generation: int) -> None:
        try:
            async for event in subscription:
                if not self._is_current(generation):
                    break
                try:
                    self.apply_event(event)
                except Exception:
                    logger.exception(
                        "Applying %s event failed user_id=%s notification_id=%s",
                        event.kind.value, event.user_id, event.notification_id,
                    )
        except Exception:
            logger.exception("Live notification stream for %s ended with an error", subscription.channel)

    def bind(self, identity: CurrentUser) -> Callable[[], None]:
        """Follow an identity source. Returns an unbind function."""
        if self._identity_unbind is not None:
            self._identity_unbind()
        self._identity_unbind = identity.add_listener(self.set_user)
        return self._identity_unbind

    async def close(self) -> None:
        """Dispose: stop the live stream and forget the user."""
        if self._identity_unbind is not None:
            self._identity_unbind()
            self._identity_unbind = None
        consumer = self._session.consumer
        self._teardown()
        self._generation += 1
        self._session = _Session(user_id=None, generation=self._generation)
        self._notifications = []
        self._unread_count = 0
        self._loading = False
        self._error = None
        self._notify()
        if consumer is not None:
            try:
                await consumer
            except asyncio.CancelledError:
                pass

    async def __aenter__(self) -> "LiveNotificationReconciler":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # -- live events -------------------------------------------------------

    def apply_event(self, event: ChangeEvent) -> None:
        """Apply one change event to the local view.

        Insert: placed by created_at; the counter follows the record's read flag.
        Update: replaces the held record (ids not held are ignored).
        Delete: removes the held record; the counter only drops if it was unread.
        """
        if event.user_id != self._session.user_id:
            logger.debug(
                "Ignoring %s event for user %s (current %s)", event.kind.value, event.user_id, self._session.user_id
            )
            return

        if event.kind == ChangeKind.INSERT:
            if event.record is None:
                return
            record = event.record
            self._apply(
                lambda items: insert_sorted(items, record),
                journal=[(record.id, (ChangeKind.INSERT, record))],
            )
        elif event.kind == ChangeKind.UPDATE:
            if event.record is None:
                return
            record = event.record

            def replace(items: List[Notification]) -> List[Notification]:
                return [record if n.id == record.id else n for n in items]

            if any(n.id == record.id for n in self._notifications):
                self._apply(replace, journal=[(record.id, (ChangeKind.UPDATE, record))])
            else:
                # not held; only an in-flight fetch result can still contain it
                self._record(record.id, (ChangeKind.UPDATE, record))
        elif event.kind == ChangeKind.DELETE:
            self._remove_local(event.notification_id)

    def _remove_local(self, notification_id: str) -> None:
        self._apply(
            lambda items: [n for n in items if n.id != notification_id],
            journal=[(notification_id, (ChangeKind.DELETE, None))],
        )

    # -- operations --------------------------------------------------------

    async def fetch_notifications(self) -> None:
        """Replace the local list with the newest records for the user.

        Overlapping fetches are version-stamped; only the latest applies.
        Changes that arrive while the fetch is in flight are merged in by id.
        """
        session = self._session
        user_id = session.user_id
        if not user_id:
            return
        generation = session.generation
        session.fetch_seq += 1
        seq = session.fetch_seq
        if session.journal is None:
            session.journal = {}
        session.in_flight_fetches += 1
        self._set_flags(loading=True, error=None)
        try:
            records = await retry_async(
                lambda: self.store.list_by_user(user_id, limit=self.fetch_limit),
                self.retry,
                "fetch_notifications",
                user_id=user_id,
            )
        except Exception as e:
            if self._is_current(generation) and seq == session.fetch_seq:
                logger.error("fetch_notifications failed user_id=%s: %s", user_id, e)
                self._set_flags(error=str(e) or "Failed to load notifications")
            return
        else:
            if not self._is_current(generation):
                logger.debug("Discarding fetch result for previous user %s", user_id)
                return
            if seq != session.fetch_seq:
                logger.debug("Discarding superseded fetch %d for user %s", seq, user_id)
                return
            journal = dict(session.journal or {})
            self._apply(lambda _: self._merge(records, journal))
        finally:
            session.in_flight_fetches -= 1
            if session.in_flight_fetches == 0:
                session.journal = None
                if self._is_current(generation):
                    self._set_flags(loading=False)

    @staticmethod
    def _merge(records: List[Notification], journal: Dict[str, JournalEntry]) -> List[Notification]:
        """Fetched rows overlaid with journaled changes: inserts add, updates replace held ids, deletes drop."""
        merged: Dict[str, Notification] = {n.id: n for n in records}
        for notification_id, (kind, record) in journal.items():
            if kind == ChangeKind.DELETE:
                merged.pop(notification_id, None)
            elif kind == ChangeKind.INSERT or notification_id in merged:
                merged[notification_id] = record
        return sorted(merged.values(), key=lambda n: n.created_at, reverse=True)

    async def mark_as_read(self, notification_id: str) -> bool:
        """Write read=True, then reflect it locally. Returns True if applied."""
        user_id = self._session.user_id
        if not user_id:
            return False
        generation = self._generation
        try:
            found = await retry_async(
                lambda: self.store.mark_read(notification_id, user_id),
                self.retry,
                "mark_as_read",
                user_id=user_id,
                notification_id=notification_id,
            )
        except Exception as e:
            logger.error("mark_as_read failed user_id=%s notification_id=%s: %s", user_id, notification_id, e)
            return False
        if not self._is_current(generation):
            return False
        if not found:
            logger.info("mark_as_read: notification %s already gone; dropping local copy", notification_id)
            self._remove_local(notification_id)
            return False

        def mark(items: List[Notification]) -> List[Notification]:
            return [n.model_copy(update={"read": True}) if n.id == notification_id else n for n in items]

        held = next((n for n in self._notifications if n.id == notification_id), None)
        journal = [(notification_id, (ChangeKind.UPDATE, held.model_copy(update={"read": True})))] if held else None
        self._apply(mark, journal=journal)
        return True

    async def mark_all_as_read(self) -> bool:
        """Mark every unread record read in the store, then locally."""
        user_id = self._session.user_id
        if not user_id:
            return False
        generation = self._generation
        try:
            await retry_async(
                lambda: self.store.mark_all_read(user_id),
                self.retry,
                "mark_all_as_read",
                user_id=user_id,
            )
        except Exception as e:
            logger.error("mark_all_as_read failed user_id=%s: %s", user_id, e)
            return False
        if not self._is_current(generation):
            return False

        def mark_all(items: List[Notification]) -> List[Notification]:
            return [n if n.read else n.model_copy(update={"read": True}) for n in items]

        journal = [
            (n.id, (ChangeKind.UPDATE, n.model_copy(update={"read": True}))) for n in self._notifications if not n.read
        ]
        self._apply(mark_all, journal=journal)
        return True

    async def delete_notification(self, notification_id: str) -> bool:
        """Delete in the store, then locally. Already-gone rows are dropped locally too."""
        user_id = self._session.user_id
        if not user_id:
            return False
        generation = self._generation
        try:
            deleted = await retry_async(
                lambda: self.store.delete(notification_id, user_id),
                self.retry,
                "delete_notification",
                user_id=user_id,
                notification_id=notification_id,
            )
        except Exception as e:
            logger.error(
                "delete_notification failed user_id=%s notification_id=%s: %s", user_id, notification_id, e
            )
            return False
        if not self._is_current(generation):
            return False
        if not deleted:
            logger.info("delete_notification: notification %s already gone", notification_id)
        self._remove_local(notification_id)
        return True

    async def clear_all_notifications(self) -> bool:
        """Delete every record for the user, then empty the local view."""
        user_id = self._session.user_id
        if not user_id:
            return False
        generation = self._generation
        try:
            await retry_async(
                lambda: self.store.delete_all_for_user(user_id),
                self.retry,
                "clear_all_notifications",
                user_id=user_id,
            )
        except Exception as e:
            logger.error("clear_all_notifications failed user_id=%s: %s", user_id, e)
            return False
        if not self._is_current(generation):
            return False
        journal = [(n.id, (ChangeKind.DELETE, None)) for n in self._notifications]
        self._apply(lambda _: [], journal=journal)
        return True
