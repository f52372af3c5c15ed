"""
Feedback service facade for FeedLens.

The single entry point the HTTP layer talks to. Both submission paths
(inline and queued) validate input the same way and, once a job runs,
share the same orchestrator and result store through :meth:`process`.
Read operations degrade instead of failing when the store or the broker
is down; write operations surface the outage to the caller.
"""

from __future__ import annotations

from typing import Any

import structlog
from redis.exceptions import RedisError

from fl_common.errors import FeedbackValidationError, QueueUnavailableError, StoreUnavailableError
from fl_common.metrics import feedback_jobs_queued_total, feedback_sentiment_total
from fl_common.models import (
    AnalysisResult,
    ClearResponse,
    EnqueueResponse,
    EnqueueStatus,
    FeedbackStats,
    HistoryPage,
    Job,
    JobState,
    LookupStatus,
    Pagination,
    QueueHealth,
    ResultLookup,
    SubmissionAnalysis,
    SubmissionMetrics,
    SubmissionResponse,
    format_percentage,
    new_job_id,
)

from analysis.orchestrator import AnalysisOrchestrator
from pipeline.health_reporter import QueueHealthReporter
from pipeline.job_queue import JobQueue
from pipeline.result_store import ResultStore, page_count

logger = structlog.get_logger(__name__)

DEFAULT_MAX_TEXT_LENGTH = 5000
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50

_QUEUE_STATE_TO_LOOKUP = {
    JobState.WAITING: LookupStatus.WAITING,
    JobState.ACTIVE: LookupStatus.ACTIVE,
    JobState.DELAYED: LookupStatus.DELAYED,
}


class FeedbackService:
    """Submission, lookup, history and statistics over the analysis pipeline.

    Args:
        orchestrator: Shared analysis orchestrator.
        store: Shared result store.
        queue: Job queue for the asynchronous path.
        health_reporter: Broker reachability cache for ``queue``.
        max_text_length: Longest accepted feedback text.
    """

    def __init__(
        self,
        orchestrator: AnalysisOrchestrator,
        store: ResultStore,
        queue: JobQueue,
        health_reporter: QueueHealthReporter,
        *,
        max_text_length: int = DEFAULT_MAX_TEXT_LENGTH,
    ) -> None:
        self._orchestrator = orchestrator
        self._store = store
        self._queue = queue
        self._health = health_reporter
        self._max_text_length = max_text_length

    # ── validation ──

    def validate(self, user_id: str | None, text: str | None) -> str:
        """Check a submission and return the trimmed text.

        Raises:
            FeedbackValidationError: Missing user, empty text or text longer
                than the configured maximum.
        """
        _require_user(user_id)
        if text is None or not text.strip():
            raise FeedbackValidationError("Feedback text is required")
        if len(text) > self._max_text_length:
            raise FeedbackValidationError(
                f"Feedback text exceeds maximum length of {self._max_text_length} characters"
            )
        return text.strip()

    def _build_job(
        self,
        user_id: str,
        text: str,
        metadata: dict[str, Any] | None,
        job_id: str | None,
    ) -> Job:
        trimmed = self.validate(user_id, text)
        return Job(
            job_id=job_id or new_job_id(),
            user_id=user_id,
            text=trimmed,
            metadata=metadata or {},
        )

    # ── processing ──

    async def process(self, job: Job) -> AnalysisResult:
        """Analyse *job* and upsert its result.

        Raises:
            StoreUnavailableError: If the result cannot be persisted.
        """
        result = await self._orchestrator.analyze(job.text, job_id=job.job_id)
        await self._store.upsert(result, user_id=job.user_id, text=job.text)
        return result

    async def submit(
        self,
        user_id: str,
        text: str,
        metadata: dict[str, Any] | None = None,
        job_id: str | None = None,
    ) -> SubmissionResponse:
        """Analyse and store feedback inline and return the analysis."""
        job = self._build_job(user_id, text, metadata, job_id)
        log = logger.bind(job_id=job.job_id, user_id=user_id)
        log.info("feedback_submitted", path="inline", char_count=len(job.text))

        result = await self.process(job)
        feedback_sentiment_total.labels(sentiment=result.sentiment.value).inc()

        return SubmissionResponse(
            job_id=job.job_id,
            analysis=SubmissionAnalysis(
                sentiment=result.sentiment,
                confidence=result.confidence,
                confidence_percent=format_percentage(result.confidence),
                all_scores=result.all_scores,
                intents=result.intents,
                ai_processed=result.ai_processed,
            ),
            metrics=SubmissionMetrics(
                word_count=result.metadata.word_count,
                char_count=result.metadata.char_count,
                submitted_at=job.submitted_at,
            ),
        )

    async def enqueue(
        self,
        user_id: str,
        text: str,
        metadata: dict[str, Any] | None = None,
        job_id: str | None = None,
    ) -> EnqueueResponse:
        """Queue feedback for asynchronous analysis.

        Re-enqueueing a known ``job_id`` is a no-op reported as
        ``already_queued``.

        Raises:
            QueueUnavailableError: If the broker cannot be reached.
        """
        job = self._build_job(user_id, text, metadata, job_id)
        payload = job.model_dump(mode="json", exclude={"job_id"})
        try:
            outcome = await self._queue.enqueue(job.job_id, payload)
        except QueueUnavailableError as exc:
            self._health.mark_unreachable(str(exc))
            logger.error("feedback_enqueue_failed", job_id=job.job_id, error=str(exc))
            raise

        status = EnqueueStatus.QUEUED if outcome.created else EnqueueStatus.ALREADY_QUEUED
        feedback_jobs_queued_total.labels(outcome=status.value).inc()
        logger.info("feedback_submitted", path="queued", job_id=job.job_id, user_id=user_id, status=status.value)
        return EnqueueResponse(job_id=job.job_id, status=status)

    # ── reads ──

    async def get_result(self, job_id: str) -> ResultLookup:
        """Look a job up in the queue first, then in the result store."""
        if not job_id:
            raise FeedbackValidationError("Job ID is required")

        if self._health.reachable is None:
            await self._health.check()
        if self._health.reachable:
            try:
                queued = await self._queue.get_job(job_id)
            except (RedisError, OSError, RuntimeError) as exc:
                self._health.mark_unreachable(str(exc))
                queued = None

            if queued is not None and queued.state is JobState.FAILED:
                return ResultLookup(
                    job_id=job_id,
                    status=LookupStatus.FAILED,
                    failed_reason=queued.failed_reason,
                )
            if queued is not None and queued.state in _QUEUE_STATE_TO_LOOKUP:
                return ResultLookup(job_id=job_id, status=_QUEUE_STATE_TO_LOOKUP[queued.state])

        try:
            record = await self._store.get(job_id)
        except StoreUnavailableError:
            return ResultLookup(job_id=job_id, status=LookupStatus.NOT_FOUND)
        if record is None:
            return ResultLookup(job_id=job_id, status=LookupStatus.NOT_FOUND)
        return ResultLookup(job_id=job_id, status=LookupStatus.COMPLETED, result=record)

    async def list_history(
        self,
        user_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> HistoryPage:
        """Newest-first page of *user_id*'s results; empty if the store is down."""
        _require_user(user_id)
        page = max(page, 1)
        limit = min(max(limit, 1), MAX_PAGE_SIZE)
        try:
            records, total = await self._store.list_by_user(user_id, page, limit)
        except StoreUnavailableError:
            records, total = [], 0
        return HistoryPage(
            data=records,
            pagination=Pagination(page=page, limit=limit, total=total, pages=page_count(total, limit)),
        )

    async def get_stats(self, user_id: str) -> FeedbackStats:
        """Per-sentiment statistics of *user_id*; zero totals if the store is down."""
        _require_user(user_id)
        try:
            return await self._store.sentiment_breakdown(user_id)
        except StoreUnavailableError:
            return FeedbackStats(total=0)

    async def clear_history(self, user_id: str) -> ClearResponse:
        """Delete every stored result of *user_id*.

        Raises:
            StoreUnavailableError: If the store is down.
        """
        _require_user(user_id)
        return ClearResponse(deleted_count=await self._store.delete_all_by_user(user_id))

    async def get_queue_health(self) -> QueueHealth:
        return await self._health.queue_health()


def _require_user(user_id: str | None) -> None:
    if not user_id or not user_id.strip():
        raise FeedbackValidationError("User ID is required")
