"""
Queue health reporting for FeedLens.

Answers "is the queue reachable, and how many jobs are in each state?"
without ever raising. Broker reachability is cached: once a ping or a
count fails the reporter answers ``disconnected`` until :meth:`check`
succeeds again, so a dead broker is not hammered on every health poll.
"""

from __future__ import annotations

import structlog
from redis.exceptions import RedisError

from fl_common.messaging.redis_client import RedisClient
from fl_common.models import QueueHealth, QueueStatus

from pipeline.job_queue import JobQueue

logger = structlog.get_logger(__name__)

_UNREACHABLE_MESSAGE = "Queue broker unreachable"


class QueueHealthReporter:
    """Cached broker reachability plus live queue counts.

    Args:
        redis: The broker client shared with the queue.
        queue: Queue whose counts are reported.
    """

    def __init__(self, redis: RedisClient, queue: JobQueue) -> None:
        self._redis = redis
        self._queue = queue
        self._reachable: bool | None = None

    @property
    def reachable(self) -> bool | None:
        """Last known reachability; ``None`` before the first check."""
        return self._reachable

    async def check(self) -> bool:
        """Probe the broker and update the cached reachability."""
        ok = await self._redis.health_check()
        if ok != self._reachable:
            if ok:
                logger.info("queue_broker_reachable", queue=self._queue.name)
            else:
                logger.warning("queue_broker_unreachable", queue=self._queue.name)
        self._reachable = ok
        return ok

    def mark_unreachable(self, reason: str) -> None:
        """Flip the cached flag after a failed broker operation."""
        if self._reachable is not False:
            logger.warning("queue_broker_unreachable", queue=self._queue.name, error=reason)
        self._reachable = False

    async def queue_health(self) -> QueueHealth:
        """Snapshot of queue reachability and per-state counts."""
        if self._reachable is None:
            await self.check()
        if not self._reachable:
            return self._disconnected()

        try:
            counts = await self._queue.counts()
        except (RedisError, OSError, RuntimeError) as exc:
            self.mark_unreachable(str(exc))
            return self._disconnected()

        return QueueHealth(name=self._queue.name, status=QueueStatus.CONNECTED, counts=counts)

    def _disconnected(self) -> QueueHealth:
        return QueueHealth(
            name=self._queue.name,
            status=QueueStatus.DISCONNECTED,
            message=_UNREACHABLE_MESSAGE,
        )
