"""
Request logging middleware for FeedLens API.

Logs every request with method, path, status and latency and records
the same in the shared Prometheus request metrics.
"""

from __future__ import annotations

import time

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from fl_common.metrics import http_request_duration_seconds, http_requests_total

logger = structlog.get_logger(__name__)


def _route_path(request: Request) -> str:
    """Route template (``/result/{job_id}``) so metric labels stay bounded."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log and meter every HTTP request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        duration = time.monotonic() - start
        path = _route_path(request)
        http_requests_total.labels(
            method=request.method, path=path, status=str(response.status_code),
        ).inc()
        http_request_duration_seconds.labels(method=request.method, path=path).observe(duration)
        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round(duration * 1000, 2),
        )
        return response
