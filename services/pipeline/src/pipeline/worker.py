"""
Queue worker for FeedLens.

Runs a fixed number of consumer slots that reserve jobs from the
:class:`JobQueue`, hand them to the job handler (analysis + storage) and
acknowledge the outcome. A housekeeping loop promotes delayed retries
and requeues stalled jobs. Broker outages are logged and waited out;
the worker never exits on them.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable

import structlog
from redis.exceptions import RedisError

from fl_common.metrics import (
    feedback_job_duration_seconds,
    feedback_jobs_processed_total,
    feedback_sentiment_total,
)
from fl_common.models import AnalysisResult, Job, JobState

from pipeline.job_queue import JobQueue, QueueJob

logger = structlog.get_logger(__name__)

JobHandler = Callable[[Job], Awaitable[AnalysisResult]]

_BROKER_ERRORS = (RedisError, OSError)


class QueueWorker:
    """Concurrent consumer of the feedback job queue.

    Args:
        queue: Queue to consume.
        handler: Coroutine that analyses and stores one job.
        concurrency: Number of jobs processed in parallel.
        poll_timeout_s: How long one reserve call blocks.
        housekeeping_interval_s: Period of delayed-promotion and stall checks.
        reconnect_delay_s: Pause after a broker error.
        shutdown_grace_s: How long :meth:`stop` waits for in-flight jobs.
    """

    def __init__(
        self,
        queue: JobQueue,
        handler: JobHandler,
        *,
        concurrency: int = 5,
        poll_timeout_s: float = 1.0,
        housekeeping_interval_s: float = 1.0,
        reconnect_delay_s: float = 2.0,
        shutdown_grace_s: float = 15.0,
    ) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self._queue = queue
        self._handler = handler
        self._concurrency = concurrency
        self._poll_timeout_s = poll_timeout_s
        self._housekeeping_interval_s = housekeeping_interval_s
        self._reconnect_delay_s = reconnect_delay_s
        self._shutdown_grace_s = shutdown_grace_s
        self._running = False
        self._tasks: list[asyncio.Task[None]] = []
        self._active_jobs = 0
        self.completed_count = 0
        self.failed_count = 0

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def concurrency(self) -> int:
        return self._concurrency

    @property
    def active_jobs(self) -> int:
        return self._active_jobs

    # ── lifecycle ──

    async def start(self) -> None:
        """Spawn the consumer slots and the housekeeping loop."""
        if self._running:
            return
        self._running = True
        self._tasks = [
            asyncio.create_task(self._slot_loop(slot), name=f"worker-slot-{slot}")
            for slot in range(self._concurrency)
        ]
        self._tasks.append(asyncio.create_task(self._housekeeping_loop(), name="worker-housekeeping"))
        logger.info("worker_started", queue=self._queue.name, concurrency=self._concurrency)

    async def stop(self) -> None:
        """Stop reserving new jobs and wait briefly for in-flight ones."""
        if not self._running:
            return
        self._running = False
        if self._tasks:
            _, pending = await asyncio.wait(self._tasks, timeout=self._shutdown_grace_s)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
        self._tasks = []
        logger.info(
            "worker_stopped",
            completed=self.completed_count,
            failed=self.failed_count,
        )

    # ── loops ──

    async def _slot_loop(self, slot: int) -> None:
        while self._running:
            try:
                queued = await self._queue.reserve(timeout_s=self._poll_timeout_s)
            except _BROKER_ERRORS as exc:
                logger.warning("worker_reserve_failed", slot=slot, error=str(exc))
                await asyncio.sleep(self._reconnect_delay_s)
                continue
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "worker_reserve_error",
                    slot=slot,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                await asyncio.sleep(self._reconnect_delay_s)
                continue
            if queued is None:
                continue
            self._active_jobs += 1
            try:
                await self.process(queued)
            finally:
                self._active_jobs -= 1

    async def _housekeeping_loop(self) -> None:
        while self._running:
            try:
                await self._queue.promote_delayed()
                await self._queue.requeue_stalled()
            except _BROKER_ERRORS as exc:
                logger.warning("worker_housekeeping_failed", error=str(exc))
            await asyncio.sleep(self._housekeeping_interval_s)

    # ── one job ──

    async def process(self, queued: QueueJob) -> JobState:
        """Run the handler for *queued* and record the outcome in the queue.

        Returns:
            The job's resulting state. ``ACTIVE`` means the outcome could
            not be recorded; the stall check will redeliver the job.
        """
        log = logger.bind(job_id=queued.job_id, attempt=queued.attempt)
        log.info("job_started")
        started = time.perf_counter()

        try:
            job = Job.model_validate({**queued.payload, "job_id": queued.job_id})
            result = await self._handler(job)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            feedback_job_duration_seconds.observe(time.perf_counter() - started)
            return await self._record_failure(queued, exc, log)

        duration = time.perf_counter() - started
        feedback_job_duration_seconds.observe(duration)
        try:
            await self._queue.complete(queued)
        except _BROKER_ERRORS as exc:
            log.error("job_completion_not_recorded", error=str(exc))
            return JobState.ACTIVE

        self.completed_count += 1
        feedback_jobs_processed_total.labels(status="success").inc()
        feedback_sentiment_total.labels(sentiment=result.sentiment.value).inc()
        log.info(
            "job_completed",
            duration_s=round(duration, 3),
            sentiment=result.sentiment.value,
            ai_processed=result.ai_processed,
        )
        return JobState.COMPLETED

    async def _record_failure(
        self,
        queued: QueueJob,
        exc: Exception,
        log: structlog.stdlib.BoundLogger,
    ) -> JobState:
        reason = str(exc) or type(exc).__name__
        log.warning("job_attempt_error", error=reason, error_type=type(exc).__name__)
        try:
            state = await self._queue.fail(queued, reason)
        except _BROKER_ERRORS as broker_exc:
            log.error("job_failure_not_recorded", error=str(broker_exc))
            return JobState.ACTIVE
        if state is JobState.FAILED:
            self.failed_count += 1
            feedback_jobs_processed_total.labels(status="failed").inc()
        return state
