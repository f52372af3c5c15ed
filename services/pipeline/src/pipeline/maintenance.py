"""
Celery maintenance tasks for the FeedLens job queue.

Scheduled by Celery beat (see ``fl_common.messaging.celery_app``): drops
completed and failed jobs past their retention window and hands stalled
active jobs back to the queue.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog
from celery import shared_task

from fl_common.config import get_settings
from fl_common.messaging.redis_client import RedisClient

from pipeline.job_queue import JobQueue
from pipeline.retry_policy import RetentionPolicy, RetryPolicy

logger = structlog.get_logger(__name__)


async def run_maintenance(queue: JobQueue) -> dict[str, int]:
    """Sweep expired jobs and requeue stalled ones on *queue*."""
    removed = await queue.clean()
    requeued = await queue.requeue_stalled()
    promoted = await queue.promote_delayed()
    return {"removed": removed, "requeued": requeued, "promoted": promoted}


async def _run_once() -> dict[str, int]:
    settings = get_settings()
    redis = RedisClient(settings.redis_url)
    await redis.connect()
    try:
        queue = JobQueue(
            redis,
            settings.queue_name,
            retry_policy=RetryPolicy.from_settings(settings),
            retention=RetentionPolicy.from_settings(settings),
            lock_duration_s=settings.queue_lock_duration_s,
        )
        return await run_maintenance(queue)
    finally:
        await redis.close()


@shared_task(  # type: ignore[untyped-decorator]
    bind=True,
    name="pipeline.purge_expired_jobs",
    acks_late=True,
)
def purge_expired_jobs(self: Any) -> dict[str, int]:
    """Run one maintenance pass over the feedback queue.

    This is a **synchronous** Celery task; the queue is async so the
    pass is bridged with ``asyncio.run()``.
    """
    log = logger.bind(task_id=self.request.id)
    log.info("queue_maintenance_started")
    summary = asyncio.run(_run_once())
    log.info("queue_maintenance_completed", **summary)
    return summary
