"""
Health check API router for FeedLens.

Liveness endpoint of the API gateway with the reachability of the
result store and the queue broker.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    services: dict[str, str]


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    services: dict[str, str] = {}
    resources = getattr(request.app.state, "resources", None)

    if resources is None:
        services["database"] = "not_configured"
        services["queue"] = "not_configured"
    else:
        services["database"] = "healthy" if await resources.store.health_check() else "unhealthy"
        services["queue"] = "healthy" if await resources.health.check() else "unhealthy"

    overall = "healthy" if all(
        v in ("healthy", "not_configured") for v in services.values()
    ) else "degraded"

    return HealthResponse(status=overall, services=services)
