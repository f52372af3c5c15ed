"""Shared fixtures for API gateway tests."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api.dependencies import get_feedback_service
from api.main import create_app
from fl_common.models import (
    AnalysisMetadata,
    AnalysisResult,
    AnalysisSource,
    ClearResponse,
    EnqueueResponse,
    EnqueueStatus,
    FeedbackStats,
    HistoryPage,
    LookupStatus,
    Pagination,
    QueueCounts,
    QueueHealth,
    QueueStatus,
    ResultLookup,
    SentimentLabel,
    SubmissionAnalysis,
    SubmissionMetrics,
    SubmissionResponse,
    ordered_scores,
)


def make_result(job_id: str = "job-1") -> AnalysisResult:
    return AnalysisResult(
        job_id=job_id,
        sentiment=SentimentLabel.POSITIVE,
        confidence=0.8,
        all_scores=ordered_scores({
            SentimentLabel.NEGATIVE: 0.0,
            SentimentLabel.NEUTRAL: 0.2,
            SentimentLabel.POSITIVE: 0.8,
        }),
        intents=["positive_feedback"],
        ai_processed=False,
        processed_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        metadata=AnalysisMetadata(source=AnalysisSource.FALLBACK, word_count=8, char_count=35),
    )


# ─── Core fixtures ────────────────────────────────────────────


@pytest.fixture()
def mock_service() -> AsyncMock:
    """Async mock for ``FeedbackService`` returning realistic models."""
    result = make_result()
    service = AsyncMock()
    service.submit = AsyncMock(
        return_value=SubmissionResponse(
            job_id="job-1",
            analysis=SubmissionAnalysis(
                sentiment=result.sentiment,
                confidence=result.confidence,
                confidence_percent="80.0%",
                all_scores=result.all_scores,
                intents=result.intents,
                ai_processed=False,
            ),
            metrics=SubmissionMetrics(
                word_count=8,
                char_count=35,
                submitted_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
            ),
        )
    )
    service.enqueue = AsyncMock(
        return_value=EnqueueResponse(job_id="job-1", status=EnqueueStatus.QUEUED)
    )
    service.get_result = AsyncMock(
        return_value=ResultLookup(job_id="job-1", status=LookupStatus.COMPLETED, result=result)
    )
    service.list_history = AsyncMock(
        return_value=HistoryPage(data=[], pagination=Pagination(page=1, limit=10, total=0, pages=0))
    )
    service.get_stats = AsyncMock(return_value=FeedbackStats(total=0))
    service.clear_history = AsyncMock(return_value=ClearResponse(deleted_count=0))
    service.get_queue_health = AsyncMock(
        return_value=QueueHealth(
            name="feedback-processing",
            status=QueueStatus.CONNECTED,
            counts=QueueCounts(waiting=1),
        )
    )
    return service


@pytest.fixture()
def app(mock_service: AsyncMock) -> FastAPI:
    """The real application with the service dependency overridden.

    The lifespan is not entered, so no connection is opened.
    """
    application = create_app()
    application.dependency_overrides[get_feedback_service] = lambda: mock_service
    return application


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app)
