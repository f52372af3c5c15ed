"""Tests for the cached queue health reporter."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from fl_common.models import QueueCounts, QueueStatus
from pipeline.health_reporter import QueueHealthReporter


@pytest.fixture()
def redis() -> MagicMock:
    client = MagicMock()
    client.health_check = AsyncMock(return_value=True)
    return client


@pytest.fixture()
def queue() -> MagicMock:
    q = MagicMock()
    q.name = "feedback-processing"
    q.counts = AsyncMock(return_value=QueueCounts(waiting=2, active=1, completed=10, failed=1, delayed=0))
    return q


class TestQueueHealth:
    async def test_connected_with_counts(self, redis: MagicMock, queue: MagicMock) -> None:
        health = await QueueHealthReporter(redis, queue).queue_health()
        assert health.status is QueueStatus.CONNECTED
        assert health.name == "feedback-processing"
        assert health.counts.waiting == 2

    async def test_broker_unreachable_reports_disconnected(self, redis: MagicMock, queue: MagicMock) -> None:
        redis.health_check.return_value = False

        health = await QueueHealthReporter(redis, queue).queue_health()

        assert health.status is QueueStatus.DISCONNECTED
        assert health.counts is None
        assert health.message
        queue.counts.assert_not_awaited()

    async def test_failing_counts_flip_cached_flag(self, redis: MagicMock, queue: MagicMock) -> None:
        queue.counts.side_effect = RedisConnectionError("connection reset")
        reporter = QueueHealthReporter(redis, queue)

        first = await reporter.queue_health()
        second = await reporter.queue_health()

        assert first.status is QueueStatus.DISCONNECTED
        assert second.status is QueueStatus.DISCONNECTED
        assert reporter.reachable is False
        # No reconnect attempt until check() is called.
        redis.health_check.assert_awaited_once()
        queue.counts.assert_awaited_once()

    async def test_check_restores_reachability(self, redis: MagicMock, queue: MagicMock) -> None:
        reporter = QueueHealthReporter(redis, queue)
        reporter.mark_unreachable("gone")
        assert (await reporter.queue_health()).status is QueueStatus.DISCONNECTED

        assert await reporter.check() is True
        assert (await reporter.queue_health()).status is QueueStatus.CONNECTED

    async def test_reachable_unknown_before_first_check(self, redis: MagicMock, queue: MagicMock) -> None:
        assert QueueHealthReporter(redis, queue).reachable is None
