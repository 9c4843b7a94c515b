"""Tests for background jobs and the job queue."""
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

from eats_notify.domain.common.types import utcnow
from eats_notify.infra.jobs.queue import JOBS_QUEUE, RedisJobQueue
from eats_notify.infra.jobs.tasks import handle_job, retention_loop, worker_loop
from helpers import make_notification


async def test_enqueue_wraps_type_and_data():
    bus = MagicMock()
    bus.enqueue_job = AsyncMock()
    queue = RedisJobQueue(bus)

    await queue.enqueue_cleanup(14)

    bus.enqueue_job.assert_awaited_once_with(
        JOBS_QUEUE, {"type": "cleanup_old_notifications", "data": {"days_old": 14}}
    )


async def test_cleanup_job(notification_service, store):
    store.seed(make_notification().model_copy(update={"created_at": utcnow() - timedelta(days=20)}))

    assert await handle_job({"type": "cleanup_old_notifications", "data": {"days_old": 10}}, notification_service) == 1


async def test_bulk_job(notification_service, store):
    job = {
        "type": "send_bulk_notification",
        "data": {"user_ids": ["user-a", "user-b"], "title": "Closed", "message": "Holiday", "type": "system"},
    }

    assert await handle_job(job, notification_service) == 2
    assert {n.user_id for n in store.rows.values()} == {"user-a", "user-b"}


async def test_bad_jobs_create_nothing(notification_service, store):
    assert await handle_job({"type": "reindex"}, notification_service) is None
    bad_type = {
        "type": "send_bulk_notification",
        "data": {"user_ids": ["user-a"], "title": "t", "message": "m", "type": "fax"},
    }
    assert await handle_job(bad_type, notification_service) == 0
    assert await handle_job({"type": "send_bulk_notification", "data": {}}, notification_service) == 0
    assert store.rows == {}


async def test_worker_loop_processes_jobs(notification_service, store):
    bus = MagicMock()
    bus.connect = AsyncMock()
    bus.get_job = AsyncMock(
        side_effect=[
            None,
            {"type": "send_bulk_notification", "data": {"user_ids": ["user-a"], "title": "t", "message": "m"}},
        ]
    )

    await worker_loop(notification_service, bus=bus, max_jobs=1)

    bus.connect.assert_awaited_once()
    assert len(store.rows) == 1


async def test_retention_loop_runs_cleanup():
    service = MagicMock()
    service.cleanup_old_notifications = AsyncMock(return_value=0)

    await retention_loop(service, interval=0, iterations=2)

    assert service.cleanup_old_notifications.await_count == 2
