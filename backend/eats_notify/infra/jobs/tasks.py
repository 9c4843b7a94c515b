"""Background job tasks: retention cleanup and bulk sends."""
import asyncio
import logging
from typing import Optional

from eats_notify.domain.notifications.services import NotificationService
from eats_notify.infra.jobs.queue import JOBS_QUEUE
from eats_notify.infra.messaging.redis_bus import RedisBus, redis_bus
from eats_notify.settings import settings

logger = logging.getLogger(__name__)


async def process_cleanup_job(service: NotificationService, job_data: dict) -> int:
    days_old = job_data.get("days_old")
    return await service.cleanup_old_notifications(int(days_old) if days_old is not None else None)


async def process_bulk_job(service: NotificationService, job_data: dict) -> int:
    user_ids = job_data.get("user_ids") or []
    title = job_data.get("title")
    message = job_data.get("message")
    if not user_ids or not title or message is None:
        logger.warning("send_bulk_notification job missing user_ids/title/message: %s", job_data)
        return 0
    return await service.send_bulk_notification(
        user_ids,
        title,
        message,
        job_data.get("type") or "system",
        job_data.get("metadata"),
    )


async def handle_job(job: dict, service: NotificationService) -> Optional[int]:
    """Run one job. Returns the job's count, or None for unknown or malformed jobs."""
    job_type = job.get("type")
    job_data = job.get("data") or {}
    try:
        if job_type == "cleanup_old_notifications":
            return await process_cleanup_job(service, job_data)
        if job_type == "send_bulk_notification":
            return await process_bulk_job(service, job_data)
    except (ValueError, TypeError) as e:
        logger.warning("Invalid %s job %s: %s", job_type, job_data, e)
        return None
    logger.warning("Unknown job type: %s", job_type)
    return None


async def worker_loop(
    service: NotificationService,
    bus: Optional[RedisBus] = None,
    queue_name: str = JOBS_QUEUE,
    max_jobs: Optional[int] = None,
) -> None:
    """Worker loop to process jobs. Runs until cancelled (or max_jobs handled)."""
    bus = bus or redis_bus
    await bus.connect()
    handled = 0
    while max_jobs is None or handled < max_jobs:
        job = await bus.get_job(queue_name)
        if job:
            result = await handle_job(job, service)
            logger.info("Job %s done: %s", job.get("type"), result)
            handled += 1


async def retention_loop(
    service: NotificationService,
    interval: Optional[float] = None,
    iterations: Optional[int] = None,
) -> None:
    """Periodically delete notifications past the retention window."""
    interval = settings.cleanup_interval_seconds if interval is None else interval
    runs = 0
    while iterations is None or runs < iterations:
        deleted = await service.cleanup_old_notifications()
        logger.info("Retention cleanup removed %d notification(s)", deleted)
        runs += 1
        if iterations is None or runs < iterations:
            await asyncio.sleep(interval)
