"""
Shared Pydantic data models for FeedLens.

This package contains all cross-service data models: jobs, queue
state, analysis results, and the service-boundary response shapes.
"""

from fl_common.models.analysis import (
    LABEL_ORDER,
    AnalysisMetadata,
    AnalysisResult,
    AnalysisSource,
    ScoreEntry,
    SentimentLabel,
    format_percentage,
    ordered_scores,
    round_distribution,
    top_label,
)
from fl_common.models.feedback import (
    ClearResponse,
    EnqueueResponse,
    EnqueueStatus,
    FeedbackRecord,
    FeedbackStats,
    HistoryPage,
    LookupStatus,
    Pagination,
    ResultLookup,
    SentimentBreakdown,
    SubmissionAnalysis,
    SubmissionMetrics,
    SubmissionResponse,
)
from fl_common.models.job import (
    Job,
    JobState,
    QueueCounts,
    QueueHealth,
    QueueStatus,
    new_job_id,
)

__all__ = [
    "LABEL_ORDER",
    "AnalysisMetadata",
    "AnalysisResult",
    "AnalysisSource",
    "ClearResponse",
    "EnqueueResponse",
    "EnqueueStatus",
    "FeedbackRecord",
    "FeedbackStats",
    "HistoryPage",
    "Job",
    "JobState",
    "LookupStatus",
    "Pagination",
    "QueueCounts",
    "QueueHealth",
    "QueueStatus",
    "ResultLookup",
    "ScoreEntry",
    "SentimentBreakdown",
    "SentimentLabel",
    "SubmissionAnalysis",
    "SubmissionMetrics",
    "SubmissionResponse",
    "format_percentage",
    "new_job_id",
    "ordered_scores",
    "round_distribution",
    "top_label",
]
