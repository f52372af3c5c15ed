"""Tests for the worker health endpoint."""

from __future__ import annotations

from unittest.mock import MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from pipeline.health import router


def _client(worker=None) -> TestClient:
    app = FastAPI()
    app.include_router(router)
    if worker is not None:
        app.state.worker = worker
    return TestClient(app)


class TestWorkerHealth:
    def test_running_worker(self) -> None:
        worker = MagicMock(is_running=True, concurrency=5, active_jobs=2, completed_count=10, failed_count=1)
        data = _client(worker).get("/health").json()
        assert data["status"] == "ok"
        assert data["worker_running"] is True
        assert data["active_jobs"] == 2

    def test_stopped_worker(self) -> None:
        worker = MagicMock(is_running=False, concurrency=5, active_jobs=0, completed_count=0, failed_count=0)
        assert _client(worker).get("/health").json()["status"] == "degraded"

    def test_before_startup(self) -> None:
        resp = _client().get("/health")
        assert resp.status_code == 200
        assert resp.json()["worker_running"] is False
