"""
Health check endpoint for the FeedLens worker.

Reports whether the queue worker loop is running, its concurrency and
the number of jobs currently in flight.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Return worker liveness."""
    worker = getattr(request.app.state, "worker", None)
    if worker is None:
        return {"status": "starting", "service": "pipeline-worker", "worker_running": False}
    return {
        "status": "ok" if worker.is_running else "degraded",
        "service": "pipeline-worker",
        "worker_running": worker.is_running,
        "concurrency": worker.concurrency,
        "active_jobs": worker.active_jobs,
        "completed": worker.completed_count,
        "failed": worker.failed_count,
    }
