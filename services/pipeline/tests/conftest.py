"""Shared fixtures for pipeline service tests."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from fl_common.messaging.redis_client import RedisClient
from fl_common.models import (
    AnalysisMetadata,
    AnalysisResult,
    AnalysisSource,
    SentimentLabel,
    ordered_scores,
)


# ─── Redis ────────────────────────────────────────────────────


@pytest.fixture()
def mock_pipe() -> MagicMock:
    """Redis pipeline: commands are buffered synchronously, ``execute`` is awaited."""
    pipe = MagicMock(name="pipeline")
    pipe.execute = AsyncMock(return_value=[])
    return pipe


@pytest.fixture()
def mock_script() -> AsyncMock:
    """A registered Lua script, awaited with ``keys`` and ``args``."""
    return AsyncMock(name="script", return_value=None)


@pytest.fixture()
def mock_redis(mock_pipe: MagicMock, mock_script: AsyncMock) -> AsyncMock:
    """Async mock standing in for ``redis.asyncio.Redis``."""
    r = AsyncMock()
    r.pipeline = MagicMock(return_value=mock_pipe)
    r.ping = AsyncMock(return_value=True)
    r.register_script = MagicMock(return_value=mock_script)
    r.hget = AsyncMock(return_value=None)
    r.hgetall = AsyncMock(return_value={})
    r.blmove = AsyncMock(return_value=None)
    r.hincrby = AsyncMock(return_value=1)
    r.zrangebyscore = AsyncMock(return_value=[])
    r.zadd = AsyncMock(return_value=1)
    r.zscore = AsyncMock(return_value=None)
    r.lrange = AsyncMock(return_value=[])
    r.lrem = AsyncMock(return_value=1)
    r.exists = AsyncMock(return_value=1)
    return r


@pytest.fixture()
def redis_client(mock_redis: AsyncMock) -> RedisClient:
    """A ``RedisClient`` with the internal connection pre-set."""
    client = RedisClient(url="redis://localhost:6379/0")
    client._redis = mock_redis
    return client


# ─── analysis results ─────────────────────────────────────────


@pytest.fixture()
def make_result() -> Callable[..., AnalysisResult]:
    def _make(job_id: str = "job-1", *, ai: bool = False, **overrides) -> AnalysisResult:
        defaults = dict(
            job_id=job_id,
            sentiment=SentimentLabel.POSITIVE,
            confidence=0.8,
            all_scores=ordered_scores({
                SentimentLabel.NEGATIVE: 0.0,
                SentimentLabel.NEUTRAL: 0.2,
                SentimentLabel.POSITIVE: 0.8,
            }),
            intents=["positive_feedback"],
            ai_processed=ai,
            processed_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
            metadata=AnalysisMetadata(
                source=AnalysisSource.AI if ai else AnalysisSource.FALLBACK,
                word_count=8,
                char_count=35,
            ),
        )
        defaults.update(overrides)
        return AnalysisResult(**defaults)

    return _make
