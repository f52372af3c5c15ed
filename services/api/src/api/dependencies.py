"""
FastAPI dependency injection providers for FeedLens API.

Resolves the shared :class:`FeedbackService` built during startup and
the caller's user id, which the upstream auth gateway forwards in the
``X-User-Id`` header.
"""

from __future__ import annotations

from fastapi import Header, Request

from fl_common.errors import FeedbackValidationError

from pipeline.feedback_service import FeedbackService


async def get_feedback_service(request: Request) -> FeedbackService:
    """Return the feedback service stored on ``app.state`` at startup."""
    return request.app.state.feedback_service


async def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Return the authenticated user's id.

    Raises:
        FeedbackValidationError: If the header is missing or blank.
    """
    if not x_user_id or not x_user_id.strip():
        raise FeedbackValidationError("User ID is required")
    return x_user_id.strip()
