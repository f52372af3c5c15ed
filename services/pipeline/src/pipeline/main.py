"""
Queue worker entry point for FeedLens.

Opens the pipeline resources, starts the :class:`QueueWorker` and exposes
health and Prometheus metrics endpoints.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
import uvicorn
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from fl_common.config import get_settings
from fl_common.logging import configure_logging

from pipeline.health import router as health_router
from pipeline.resources import PipelineResources
from pipeline.worker import QueueWorker

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open connections, run the worker, and tear both down on shutdown."""
    settings = get_settings()
    configure_logging("pipeline-worker", settings.log_level)
    logger.info("worker_service_starting", queue=settings.queue_name)

    resources = PipelineResources.from_settings(settings)
    await resources.open()
    worker = QueueWorker(
        resources.queue,
        resources.service.process,
        concurrency=settings.worker_concurrency,
    )
    app.state.resources = resources
    app.state.worker = worker
    await worker.start()
    try:
        yield
    finally:
        logger.info("worker_service_stopping")
        await worker.stop()
        await resources.close()


def create_app() -> FastAPI:
    """Build the worker's FastAPI application."""
    app = FastAPI(title="FeedLens Worker", lifespan=lifespan)
    app.include_router(health_router)
    app.mount("/metrics", make_asgi_app())
    return app


app = create_app()

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=settings.worker_port,
        log_level=settings.log_level.lower(),
    )
