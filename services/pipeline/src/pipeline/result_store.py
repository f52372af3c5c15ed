"""
Result store for FeedLens.

Persists one analysis record per job to the PostgreSQL ``feedback_results``
table and serves the per-user history and statistics views. Writes are
upserts keyed by ``job_id``, so a redelivered job overwrites its earlier
record instead of duplicating it.
"""

from __future__ import annotations

import math
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_fixed

from fl_common.db import Base, FeedbackResultORM, build_session_factory, check_database_health
from fl_common.errors import StoreUnavailableError
from fl_common.models import (
    LABEL_ORDER,
    AnalysisResult,
    FeedbackRecord,
    FeedbackStats,
    SentimentBreakdown,
    SentimentLabel,
)

logger = structlog.get_logger(__name__)

_DEFAULT_CONNECT_ATTEMPTS = 3
_DEFAULT_CONNECT_WAIT_S = 2.0
_STORE_ERRORS = (SQLAlchemyError, OSError)


def _to_record(row: FeedbackResultORM) -> FeedbackRecord:
    return FeedbackRecord(
        job_id=row.job_id,
        user_id=row.user_id,
        text=row.text,
        sentiment=row.sentiment,
        confidence=row.confidence,
        all_scores=row.all_scores,
        intents=row.intents,
        ai_processed=row.ai_processed,
        processed_at=row.processed_at,
        metadata=row.metadata_,
    )


class ResultStore:
    """PostgreSQL-backed store of analysis results.

    Args:
        engine: Async engine built at process startup.
        session_factory: Session factory; built from *engine* when omitted.
        connect_attempts: Tries made by :meth:`connect`.
        connect_wait_s: Pause between those tries.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        connect_attempts: int = _DEFAULT_CONNECT_ATTEMPTS,
        connect_wait_s: float = _DEFAULT_CONNECT_WAIT_S,
    ) -> None:
        self._engine = engine
        self._session_factory = session_factory or build_session_factory(engine)
        self._connect_attempts = connect_attempts
        self._connect_wait_s = connect_wait_s

    # ── lifecycle ──

    async def connect(self) -> None:
        """Verify the database is reachable and create the table if needed.

        Raises:
            StoreUnavailableError: If every attempt fails.
        """

        @retry(
            stop=stop_after_attempt(self._connect_attempts),
            wait=wait_fixed(self._connect_wait_s),
            retry=retry_if_exception_type(_STORE_ERRORS),
            reraise=True,
        )
        async def _inner() -> None:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        try:
            await _inner()
        except _STORE_ERRORS as exc:
            logger.error("result_store_connect_failed", attempts=self._connect_attempts, error=str(exc))
            raise StoreUnavailableError(f"Result store unreachable: {exc}") from exc
        logger.info("result_store_connected")

    async def close(self) -> None:
        """Dispose of the engine's connection pool."""
        await self._engine.dispose()
        logger.info("result_store_closed")

    async def health_check(self) -> bool:
        return await check_database_health(self._engine)

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        session: AsyncSession = self._session_factory()
        try:
            yield session
        except _STORE_ERRORS as exc:
            logger.error("result_store_operation_failed", operation=operation, error=str(exc))
            raise StoreUnavailableError(f"Result store {operation} failed: {exc}") from exc
        finally:
            await session.close()

    # ── writes ──

    async def upsert(self, result: AnalysisResult, *, user_id: str, text: str) -> None:
        """Insert or overwrite the record for ``result.job_id``.

        Raises:
            StoreUnavailableError: On driver or connection failure.
        """
        values = {
            "job_id": result.job_id,
            "user_id": user_id,
            "text": text,
            "sentiment": result.sentiment.value,
            "confidence": result.confidence,
            "all_scores": [entry.model_dump(mode="json") for entry in result.all_scores],
            "intents": list(result.intents),
            "ai_processed": result.ai_processed,
            "processed_at": result.processed_at,
            "metadata": result.metadata.model_dump(mode="json"),
        }
        stmt = pg_insert(FeedbackResultORM.__table__).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["job_id"],
            set_={name: stmt.excluded[name] for name in values if name != "job_id"},
        )
        async with self._session("upsert") as session:
            await session.execute(stmt)
            await session.commit()
        logger.info(
            "result_stored",
            job_id=result.job_id,
            user_id=user_id,
            sentiment=result.sentiment.value,
        )

    async def delete_all_by_user(self, user_id: str) -> int:
        """Delete every record of *user_id*; returns the number removed."""
        async with self._session("delete") as session:
            result = await session.execute(
                delete(FeedbackResultORM).where(FeedbackResultORM.user_id == user_id)
            )
            await session.commit()
        deleted = result.rowcount or 0
        logger.info("history_cleared", user_id=user_id, deleted_count=deleted)
        return deleted

    # ── reads ──

    async def get(self, job_id: str) -> FeedbackRecord | None:
        async with self._session("get") as session:
            row = await session.get(FeedbackResultORM, job_id)
        return _to_record(row) if row is not None else None

    async def list_by_user(
        self,
        user_id: str,
        page: int = 1,
        page_size: int = 10,
    ) -> tuple[list[FeedbackRecord], int]:
        """Return one page of *user_id*'s records, newest first, and the total."""
        offset = (max(page, 1) - 1) * page_size
        count_stmt = (
            select(func.count())
            .select_from(FeedbackResultORM)
            .where(FeedbackResultORM.user_id == user_id)
        )
        page_stmt = (
            select(FeedbackResultORM)
            .where(FeedbackResultORM.user_id == user_id)
            .order_by(FeedbackResultORM.processed_at.desc())
            .offset(offset)
            .limit(page_size)
        )
        async with self._session("list") as session:
            total = await session.scalar(count_stmt) or 0
            rows = (await session.execute(page_stmt)).scalars().all()
        return [_to_record(row) for row in rows], int(total)

    async def sentiment_breakdown(self, user_id: str) -> FeedbackStats:
        """Count, share and mean confidence per sentiment for *user_id*."""
        stmt = (
            select(
                FeedbackResultORM.sentiment,
                func.count(),
                func.avg(FeedbackResultORM.confidence),
            )
            .where(FeedbackResultORM.user_id == user_id)
            .group_by(FeedbackResultORM.sentiment)
        )
        async with self._session("stats") as session:
            rows = (await session.execute(stmt)).all()

        grouped = {SentimentLabel(label): (int(count), float(avg or 0.0)) for label, count, avg in rows}
        total = sum(count for count, _ in grouped.values())
        breakdown = {
            label: SentimentBreakdown(
                count=grouped[label][0],
                percentage=round(grouped[label][0] / total * 100, 1),
                avg_confidence=round(grouped[label][1], 3),
            )
            for label in LABEL_ORDER
            if label in grouped
        }
        return FeedbackStats(total=total, breakdown=breakdown)


def page_count(total: int, limit: int) -> int:
    """Number of pages needed for *total* items at *limit* per page."""
    return math.ceil(total / limit) if limit > 0 else 0
