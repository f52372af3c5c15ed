"""
Service-boundary response models for FeedLens.

Shapes returned by the feedback service facade to the HTTP layer:
submission acknowledgements, result lookups, history pages, and
per-user sentiment statistics.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from fl_common.models.analysis import AnalysisResult, ScoreEntry, SentimentLabel


class SubmissionAnalysis(BaseModel):
    """Subset of ``AnalysisResult`` returned right after an inline submission."""

    sentiment: SentimentLabel
    confidence: float
    confidence_percent: str
    all_scores: list[ScoreEntry]
    intents: list[str]
    ai_processed: bool


class SubmissionMetrics(BaseModel):
    word_count: int
    char_count: int
    submitted_at: datetime


class SubmissionResponse(BaseModel):
    job_id: str
    analysis: SubmissionAnalysis
    metrics: SubmissionMetrics


class EnqueueStatus(str, Enum):
    QUEUED = "queued"
    ALREADY_QUEUED = "already_queued"


class EnqueueResponse(BaseModel):
    job_id: str
    status: EnqueueStatus


class LookupStatus(str, Enum):
    """Status of a job as seen by a result lookup."""

    COMPLETED = "completed"
    FAILED = "failed"
    WAITING = "waiting"
    ACTIVE = "active"
    DELAYED = "delayed"
    NOT_FOUND = "not_found"


class ResultLookup(BaseModel):
    job_id: str
    status: LookupStatus
    result: AnalysisResult | None = None
    failed_reason: str | None = None


class FeedbackRecord(AnalysisResult):
    """A persisted analysis: the result plus its owner and text."""

    user_id: str = Field(..., min_length=1)
    text: str


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class HistoryPage(BaseModel):
    data: list[FeedbackRecord]
    pagination: Pagination


class SentimentBreakdown(BaseModel):
    """Aggregates for one sentiment label.

    Attributes:
        count: Number of records with this label.
        percentage: Share of the user's records, one decimal.
        avg_confidence: Mean confidence, three decimals.
    """

    count: int
    percentage: float
    avg_confidence: float


class FeedbackStats(BaseModel):
    total: int
    breakdown: dict[SentimentLabel, SentimentBreakdown] = Field(default_factory=dict)


class ClearResponse(BaseModel):
    deleted_count: int
