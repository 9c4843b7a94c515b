"""Job queue interface."""
from typing import Optional, Protocol

from eats_notify.infra.messaging.redis_bus import RedisBus, redis_bus

JOBS_QUEUE = "notification_jobs"


class JobQueue(Protocol):
    """Job queue protocol."""

    async def enqueue(self, job_type: str, job_data: dict) -> None:
        """Enqueue a job."""
        ...


class RedisJobQueue:
    """Redis-based job queue."""

    def __init__(self, bus: Optional[RedisBus] = None, queue_name: str = JOBS_QUEUE):
        self.bus = bus or redis_bus
        self.queue_name = queue_name

    async def enqueue(self, job_type: str, job_data: dict) -> None:
        """Enqueue a job."""
        await self.bus.enqueue_job(self.queue_name, {"type": job_type, "data": job_data})

    async def enqueue_cleanup(self, days_old: Optional[int] = None) -> None:
        await self.enqueue("cleanup_old_notifications", {"days_old": days_old})

    async def enqueue_bulk(
        self,
        user_ids: list[str],
        title: str,
        message: str,
        type: str,
        metadata: Optional[dict] = None,
    ) -> None:
        await self.enqueue(
            "send_bulk_notification",
            {"user_ids": user_ids, "title": title, "message": message, "type": type, "metadata": metadata},
        )


# Global instance
job_queue = RedisJobQueue()
