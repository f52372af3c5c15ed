"""
Feedback API router for FeedLens.

Endpoints for inline and queued feedback submission, job result lookup,
per-user history, sentiment statistics, history deletion and queue
health. The caller is identified by the ``X-User-Id`` header.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from api.dependencies import get_feedback_service, get_user_id
from api.schemas.feedback_schemas import FeedbackSubmitRequest

from fl_common.models import (
    ClearResponse,
    EnqueueResponse,
    EnqueueStatus,
    FeedbackStats,
    HistoryPage,
    LookupStatus,
    QueueHealth,
    ResultLookup,
    SubmissionResponse,
)
from pipeline.feedback_service import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, FeedbackService

router = APIRouter(prefix="/feedback", tags=["feedback"])


@router.post("/submit", response_model=SubmissionResponse)
async def submit_feedback(
    body: FeedbackSubmitRequest,
    user_id: str = Depends(get_user_id),
    service: FeedbackService = Depends(get_feedback_service),
) -> SubmissionResponse:
    """Analyse feedback immediately and return the result."""
    return await service.submit(user_id, body.text, body.metadata, body.job_id)


@router.post("", status_code=202, response_model=EnqueueResponse)
@router.post("/", status_code=202, response_model=EnqueueResponse, include_in_schema=False)
async def enqueue_feedback(
    body: FeedbackSubmitRequest,
    response: Response,
    user_id: str = Depends(get_user_id),
    service: FeedbackService = Depends(get_feedback_service),
) -> EnqueueResponse:
    """Queue feedback for background analysis."""
    result = await service.enqueue(user_id, body.text, body.metadata, body.job_id)
    if result.status is EnqueueStatus.ALREADY_QUEUED:
        response.status_code = 200
    return result


@router.get("/result/{job_id}", response_model=ResultLookup)
async def get_result(
    job_id: str,
    service: FeedbackService = Depends(get_feedback_service),
) -> ResultLookup:
    lookup = await service.get_result(job_id)
    if lookup.status is LookupStatus.NOT_FOUND:
        raise HTTPException(status_code=404, detail="Job not found")
    return lookup


@router.get("/history", response_model=HistoryPage)
async def get_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user_id: str = Depends(get_user_id),
    service: FeedbackService = Depends(get_feedback_service),
) -> HistoryPage:
    return await service.list_history(user_id, page, limit)


@router.get("/stats", response_model=FeedbackStats)
async def get_stats(
    user_id: str = Depends(get_user_id),
    service: FeedbackService = Depends(get_feedback_service),
) -> FeedbackStats:
    return await service.get_stats(user_id)


@router.delete("/clear", response_model=ClearResponse)
async def clear_history(
    user_id: str = Depends(get_user_id),
    service: FeedbackService = Depends(get_feedback_service),
) -> ClearResponse:
    return await service.clear_history(user_id)


@router.get("/health", response_model=QueueHealth)
async def queue_health(
    service: FeedbackService = Depends(get_feedback_service),
) -> QueueHealth:
    """Queue reachability and job counts; never fails."""
    return await service.get_queue_health()
