"""
Feedback API schemas for FeedLens.

Request bodies of the submission endpoints. Response bodies are the
service-boundary models from ``fl_common.models``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class FeedbackSubmitRequest(BaseModel):
    # Emptiness and length are validated by FeedbackService.
    text: str | None = Field(default=None, description="Feedback text.")
    metadata: dict[str, Any] | None = Field(default=None, description="Caller context.")
    job_id: str | None = Field(
        default=None,
        max_length=128,
        description="Idempotency key; generated when omitted.",
    )
