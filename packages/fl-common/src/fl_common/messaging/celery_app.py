"""
Celery application configuration for FeedLens.

Defines the shared Celery app instance running scheduled queue
maintenance: retention sweeps of completed/failed jobs and requeueing
of stalled active jobs. Broker, result backend and sweep period come
from :class:`Settings`.
"""

from __future__ import annotations

from celery import Celery

from fl_common.config import get_settings

_settings = get_settings()

celery = Celery(
    "feedlens",
    broker=_settings.celery_broker_url,
    backend=_settings.celery_result_backend,
)

celery.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "purge-expired-feedback-jobs": {
            "task": "pipeline.purge_expired_jobs",
            "schedule": _settings.maintenance_interval_s,
        },
    },
)

# Auto-discover tasks in the pipeline service package.
celery.autodiscover_tasks(["pipeline"], related_name="maintenance")
