"""
Job and queue data models for FeedLens.

Defines the immutable ``Job`` created at submission time, the queue job
state machine, and the queue health snapshot reported to operators.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def new_job_id() -> str:
    """Generate a fresh opaque job identifier."""
    return str(uuid4())


class Job(BaseModel):
    """A feedback analysis request.

    Created once at submission and never mutated; ``job_id`` is the
    idempotency key for both the queue and the result store.

    Attributes:
        job_id: Opaque unique identifier.
        user_id: Owner of the feedback.
        text: Trimmed feedback text.
        metadata: Caller-supplied context, passed through untouched.
        submitted_at: Submission timestamp (UTC).
    """

    model_config = {"frozen": True}

    job_id: str = Field(default_factory=new_job_id, min_length=1, description="Job identifier.")
    user_id: str = Field(..., min_length=1, description="Owner of the feedback.")
    text: str = Field(..., description="Trimmed feedback text.")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Caller context.")
    submitted_at: datetime = Field(default_factory=_utc_now, description="Submission time (UTC).")


class JobState(str, Enum):
    """Lifecycle states of a queued job."""

    WAITING = "waiting"
    ACTIVE = "active"
    DELAYED = "delayed"
    COMPLETED = "completed"
    FAILED = "failed"


class QueueCounts(BaseModel):
    """Number of jobs per queue state."""

    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    delayed: int = 0


class QueueStatus(str, Enum):
    """Broker reachability as seen by the health reporter."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class QueueHealth(BaseModel):
    """Queue health snapshot.

    ``counts`` is ``None`` whenever the broker is unreachable.
    """

    name: str
    status: QueueStatus
    counts: QueueCounts | None = None
    message: str | None = None
