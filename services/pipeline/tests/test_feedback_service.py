"""
Tests for the feedback service facade.

Collaborators are mocks; the tests pin down validation-before-work,
the inline and queued submission contracts, and how reads degrade
when the store or broker is down.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from fl_common.errors import FeedbackValidationError, QueueUnavailableError, StoreUnavailableError
from fl_common.models import (
    EnqueueStatus,
    FeedbackRecord,
    FeedbackStats,
    Job,
    JobState,
    LookupStatus,
    QueueHealth,
    QueueStatus,
)
from pipeline.feedback_service import FeedbackService
from pipeline.job_queue import EnqueueResult, QueueJob

TEXT = "This is a great product, I love it!"


# ─── fixtures ─────────────────────────────────────────────────


@pytest.fixture()
def orchestrator(make_result) -> AsyncMock:
    orch = AsyncMock()

    async def analyze(text: str, *, job_id: str):
        return make_result(job_id)

    orch.analyze = AsyncMock(side_effect=analyze)
    return orch


@pytest.fixture()
def store() -> AsyncMock:
    s = AsyncMock()
    s.upsert = AsyncMock()
    s.get = AsyncMock(return_value=None)
    s.list_by_user = AsyncMock(return_value=([], 0))
    s.sentiment_breakdown = AsyncMock(return_value=FeedbackStats(total=0))
    s.delete_all_by_user = AsyncMock(return_value=0)
    return s


@pytest.fixture()
def queue() -> MagicMock:
    q = MagicMock()
    q.enqueue = AsyncMock(side_effect=lambda job_id, payload: EnqueueResult(job_id, True, JobState.WAITING))
    q.get_job = AsyncMock(return_value=None)
    return q


@pytest.fixture()
def health() -> MagicMock:
    h = MagicMock()
    h.reachable = True
    h.check = AsyncMock(return_value=True)
    h.queue_health = AsyncMock(
        return_value=QueueHealth(name="feedback-processing", status=QueueStatus.DISCONNECTED)
    )
    return h


@pytest.fixture()
def service(orchestrator, store, queue, health) -> FeedbackService:
    return FeedbackService(orchestrator, store, queue, health, max_text_length=5000)


def _record(make_result, job_id: str = "job-1") -> FeedbackRecord:
    return FeedbackRecord(**make_result(job_id).model_dump(), user_id="u-1", text=TEXT)


# ─── validation ───────────────────────────────────────────────


class TestValidation:
    @pytest.mark.parametrize("text", ["", "   ", None])
    async def test_empty_text_rejected_before_work(self, service, orchestrator, store, queue, text) -> None:
        with pytest.raises(FeedbackValidationError, match="required"):
            await service.submit("u-1", text)
        with pytest.raises(FeedbackValidationError):
            await service.enqueue("u-1", text)
        orchestrator.analyze.assert_not_awaited()
        store.upsert.assert_not_awaited()
        queue.enqueue.assert_not_awaited()

    async def test_too_long_rejected(self, service, orchestrator) -> None:
        with pytest.raises(FeedbackValidationError, match="5000"):
            await service.submit("u-1", "x" * 5001)
        orchestrator.analyze.assert_not_awaited()

    async def test_exact_limit_accepted(self, service) -> None:
        await service.submit("u-1", "x" * 5000)

    async def test_missing_user_rejected(self, service, queue) -> None:
        with pytest.raises(FeedbackValidationError, match="User ID"):
            await service.enqueue("", TEXT)
        queue.enqueue.assert_not_awaited()

    def test_validate_trims(self, service) -> None:
        assert service.validate("u-1", "  hello  ") == "hello"


# ─── inline submission ────────────────────────────────────────


class TestSubmit:
    async def test_analyses_and_stores(self, service, orchestrator, store) -> None:
        response = await service.submit("u-1", f"  {TEXT}  ", {"source": "web"})

        orchestrator.analyze.assert_awaited_once()
        assert orchestrator.analyze.await_args.args[0] == TEXT
        result = store.upsert.await_args.args[0]
        assert store.upsert.await_args.kwargs == {"user_id": "u-1", "text": TEXT}
        assert result.job_id == response.job_id
        assert response.analysis.confidence_percent == "80.0%"
        assert response.analysis.sentiment.value == "positive"
        assert response.metrics.char_count == 35
        assert response.metrics.submitted_at.tzinfo is not None

    async def test_caller_job_id_reused(self, service, store) -> None:
        await service.submit("u-1", TEXT, job_id="fixed")
        await service.submit("u-1", TEXT, job_id="fixed")
        ids = [call.args[0].job_id for call in store.upsert.await_args_list]
        assert ids == ["fixed", "fixed"]

    async def test_store_failure_propagates(self, service, store) -> None:
        store.upsert.side_effect = StoreUnavailableError("down")
        with pytest.raises(StoreUnavailableError):
            await service.submit("u-1", TEXT)

    async def test_process_returns_result(self, service, store) -> None:
        job = Job(job_id="job-9", user_id="u-1", text=TEXT)
        result = await service.process(job)
        assert result.job_id == "job-9"
        store.upsert.assert_awaited_once()


# ─── queued submission ────────────────────────────────────────


class TestEnqueue:
    async def test_queues_job(self, service, queue, orchestrator) -> None:
        response = await service.enqueue("u-1", TEXT, {"source": "web"}, job_id="job-1")

        assert response.status is EnqueueStatus.QUEUED
        assert response.job_id == "job-1"
        job_id, payload = queue.enqueue.await_args.args
        assert job_id == "job-1"
        assert payload["user_id"] == "u-1"
        assert payload["text"] == TEXT
        assert payload["metadata"] == {"source": "web"}
        assert "submitted_at" in payload
        assert "job_id" not in payload
        orchestrator.analyze.assert_not_awaited()

    async def test_duplicate_reported(self, service, queue) -> None:
        queue.enqueue.side_effect = None
        queue.enqueue.return_value = EnqueueResult("job-1", False, JobState.ACTIVE)
        response = await service.enqueue("u-1", TEXT, job_id="job-1")
        assert response.status is EnqueueStatus.ALREADY_QUEUED

    async def test_broker_down(self, service, queue, health) -> None:
        queue.enqueue.side_effect = QueueUnavailableError("Job queue unavailable")
        with pytest.raises(QueueUnavailableError):
            await service.enqueue("u-1", TEXT)
        health.mark_unreachable.assert_called_once()


# ─── result lookup ────────────────────────────────────────────


class TestGetResult:
    @pytest.mark.parametrize(
        ("state", "status"),
        [
            (JobState.WAITING, LookupStatus.WAITING),
            (JobState.ACTIVE, LookupStatus.ACTIVE),
            (JobState.DELAYED, LookupStatus.DELAYED),
        ],
    )
    async def test_in_flight(self, service, queue, store, state, status) -> None:
        queue.get_job.return_value = QueueJob(job_id="job-1", state=state)
        lookup = await service.get_result("job-1")
        assert lookup.status is status
        assert lookup.result is None
        store.get.assert_not_awaited()

    async def test_failed_with_reason(self, service, queue) -> None:
        queue.get_job.return_value = QueueJob(job_id="job-1", state=JobState.FAILED, failed_reason="boom")
        lookup = await service.get_result("job-1")
        assert lookup.status is LookupStatus.FAILED
        assert lookup.failed_reason == "boom"

    async def test_completed_reads_store(self, service, queue, store, make_result) -> None:
        queue.get_job.return_value = QueueJob(job_id="job-1", state=JobState.COMPLETED)
        store.get.return_value = _record(make_result)
        lookup = await service.get_result("job-1")
        assert lookup.status is LookupStatus.COMPLETED
        assert lookup.result.sentiment.value == "positive"

    async def test_expired_from_queue_found_in_store(self, service, store, make_result) -> None:
        store.get.return_value = _record(make_result)
        assert (await service.get_result("job-1")).status is LookupStatus.COMPLETED

    async def test_unknown_job(self, service) -> None:
        assert (await service.get_result("nope")).status is LookupStatus.NOT_FOUND

    async def test_broker_unreachable_skips_queue(self, service, queue, health, store, make_result) -> None:
        health.reachable = False
        store.get.return_value = _record(make_result)
        lookup = await service.get_result("job-1")
        assert lookup.status is LookupStatus.COMPLETED
        queue.get_job.assert_not_awaited()

    async def test_broker_error_falls_back_to_store(self, service, queue, health) -> None:
        queue.get_job.side_effect = RedisConnectionError("reset")
        lookup = await service.get_result("job-1")
        assert lookup.status is LookupStatus.NOT_FOUND
        health.mark_unreachable.assert_called_once()

    async def test_store_down_degrades_to_not_found(self, service, store) -> None:
        store.get.side_effect = StoreUnavailableError("down")
        assert (await service.get_result("job-1")).status is LookupStatus.NOT_FOUND


# ─── history / stats / clear ──────────────────────────────────


class TestHistory:
    async def test_pagination(self, service, store, make_result) -> None:
        store.list_by_user.return_value = ([_record(make_result)], 21)
        page = await service.list_history("u-1", page=2, limit=10)
        store.list_by_user.assert_awaited_once_with("u-1", 2, 10)
        assert page.pagination.total == 21
        assert page.pagination.pages == 3
        assert len(page.data) == 1

    async def test_limit_clamped(self, service, store) -> None:
        page = await service.list_history("u-1", page=0, limit=500)
        store.list_by_user.assert_awaited_once_with("u-1", 1, 50)
        assert page.pagination.limit == 50

    async def test_store_down_returns_empty_page(self, service, store) -> None:
        store.list_by_user.side_effect = StoreUnavailableError("down")
        page = await service.list_history("u-1")
        assert page.data == []
        assert page.pagination.total == 0


class TestStatsAndClear:
    async def test_stats_delegates(self, service, store) -> None:
        await service.get_stats("u-1")
        store.sentiment_breakdown.assert_awaited_once_with("u-1")

    async def test_stats_store_down(self, service, store) -> None:
        store.sentiment_breakdown.side_effect = StoreUnavailableError("down")
        stats = await service.get_stats("u-1")
        assert stats.total == 0
        assert stats.breakdown == {}

    async def test_clear(self, service, store) -> None:
        store.delete_all_by_user.return_value = 4
        assert (await service.clear_history("u-1")).deleted_count == 4

    async def test_clear_store_down_propagates(self, service, store) -> None:
        store.delete_all_by_user.side_effect = StoreUnavailableError("down")
        with pytest.raises(StoreUnavailableError):
            await service.clear_history("u-1")


async def test_queue_health_never_raises(service, health) -> None:
    health_snapshot = await service.get_queue_health()
    assert health_snapshot.status is QueueStatus.DISCONNECTED
