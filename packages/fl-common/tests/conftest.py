"""Shared fixtures for fl-common tests."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from fl_common.config import get_settings


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    """Isolate ``get_settings`` between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def mock_redis() -> AsyncMock:
    """Return a fully-mocked ``aioredis.Redis`` instance."""
    r = AsyncMock()
    r.ping = AsyncMock(return_value=True)
    r.aclose = AsyncMock()
    r.pipeline = MagicMock()
    return r
