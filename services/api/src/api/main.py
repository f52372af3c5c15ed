"""
FastAPI application entry point for FeedLens API gateway.

Creates and configures the FastAPI app, registers routers, middleware,
error handlers and the startup/shutdown lifespan that builds the shared
pipeline resources.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from api.middleware.logging import LoggingMiddleware
from api.routers import feedback, health

from fl_common.config import get_settings
from fl_common.errors import (
    FeedbackValidationError,
    QueueUnavailableError,
    StoreUnavailableError,
)
from fl_common.logging import configure_logging
from pipeline.resources import PipelineResources

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    settings = get_settings()
    configure_logging(settings.service_name, settings.log_level)

    resources = PipelineResources.from_settings(settings)
    await resources.open()
    app.state.resources = resources
    app.state.feedback_service = resources.service
    logger.info("api_started", port=settings.api_port)

    yield

    await resources.close()
    logger.info("api_stopped")


async def _validation_error_handler(request: Request, exc: FeedbackValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def _unavailable_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("dependency_unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=503, content={"detail": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    """Map pipeline errors onto HTTP status codes."""
    app.add_exception_handler(FeedbackValidationError, _validation_error_handler)
    app.add_exception_handler(QueueUnavailableError, _unavailable_error_handler)
    app.add_exception_handler(StoreUnavailableError, _unavailable_error_handler)


def create_app() -> FastAPI:
    """Build and return the fully-configured FastAPI application."""
    app = FastAPI(
        title="FeedLens API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.include_router(feedback.router, prefix="/api/v1")
    # Health is mounted at root (no /api/v1 prefix).
    app.include_router(health.router)

    app.mount("/metrics", make_asgi_app())

    register_error_handlers(app)
    app.add_middleware(LoggingMiddleware)

    return app


app = create_app()

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )
