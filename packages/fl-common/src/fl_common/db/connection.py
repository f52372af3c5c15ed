"""
Engine and session construction for the FeedLens result store.

Nothing here is cached at module level: the engine is created once per
process from :class:`Settings` and handed to the :class:`ResultStore`.
"""

from __future__ import annotations

import asyncio

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from fl_common.config import Settings

# Extra connections allowed above the pool size under burst load.
_MAX_OVERFLOW = 5


def build_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for ``settings.db_uri``.

    Stale pooled connections are detected with a pre-ping so a database
    restart does not surface as a failed upsert.
    """
    return create_async_engine(
        settings.db_uri,
        pool_size=settings.db_pool_size,
        max_overflow=_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Records are read after commit, so attributes must stay loaded.
    return async_sessionmaker(engine, expire_on_commit=False)


async def check_database_health(engine: AsyncEngine, timeout_s: float = 2.0) -> bool:
    """Return whether the database answers ``SELECT 1`` within *timeout_s*."""

    async def _ping() -> None:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    try:
        await asyncio.wait_for(_ping(), timeout=timeout_s)
    except (SQLAlchemyError, OSError, asyncio.TimeoutError):
        return False
    return True
