"""
Process-wide pipeline resources for FeedLens.

Builds the broker client, database engine, inference client and the
objects layered on them exactly once, from :class:`Settings`, and owns
their ``open``/``close`` lifecycle. Both the API gateway and the worker
construct one :class:`PipelineResources` in their lifespan.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from fl_common.config import Settings
from fl_common.db import build_engine
from fl_common.messaging.redis_client import RedisClient

from analysis.inference_client import InferenceClient
from analysis.orchestrator import AnalysisOrchestrator
from pipeline.feedback_service import FeedbackService
from pipeline.health_reporter import QueueHealthReporter
from pipeline.job_queue import JobQueue
from pipeline.result_store import ResultStore
from pipeline.retry_policy import RetentionPolicy, RetryPolicy

logger = structlog.get_logger(__name__)


@dataclass
class PipelineResources:
    """Wired pipeline objects sharing one set of connections."""

    settings: Settings
    redis: RedisClient
    store: ResultStore
    queue: JobQueue
    health: QueueHealthReporter
    orchestrator: AnalysisOrchestrator
    service: FeedbackService

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineResources:
        """Construct every component; no connection is opened yet."""
        redis = RedisClient(settings.redis_url)
        store = ResultStore(build_engine(settings))
        queue = JobQueue(
            redis,
            settings.queue_name,
            retry_policy=RetryPolicy.from_settings(settings),
            retention=RetentionPolicy.from_settings(settings),
            lock_duration_s=settings.queue_lock_duration_s,
        )
        health = QueueHealthReporter(redis, queue)

        inference_client = None
        if settings.ai_enabled:
            inference_client = InferenceClient(
                settings.ai_endpoint,
                api_key=settings.ai_api_key,
                timeout=settings.ai_request_timeout_s,
            )
        else:
            logger.info("ai_analysis_disabled")
        orchestrator = AnalysisOrchestrator(inference_client, timeout_s=settings.analysis_timeout_s)

        service = FeedbackService(
            orchestrator,
            store,
            queue,
            health,
            max_text_length=settings.max_text_length,
        )
        return cls(
            settings=settings,
            redis=redis,
            store=store,
            queue=queue,
            health=health,
            orchestrator=orchestrator,
            service=service,
        )

    async def open(self) -> None:
        """Open connections and verify the store.

        Raises:
            StoreUnavailableError: If the database stays unreachable.
        """
        await self.redis.connect()
        await self.store.connect()
        await self.health.check()
        logger.info("pipeline_resources_opened", queue=self.queue.name)

    async def close(self) -> None:
        await self.orchestrator.aclose()
        await self.redis.close()
        await self.store.close()
        logger.info("pipeline_resources_closed")
