"""
SQLAlchemy ORM models for FeedLens.

Maps the ``feedback_results`` table: one row per job, keyed by the
unique ``job_id``, holding the analysis result fields plus the owning
user and the analysed text. Uses SQLAlchemy 2.0 declarative style.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Enum, Float, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utc_now() -> datetime:
    """Return timezone-aware UTC now for server defaults."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Declarative base for all FeedLens ORM models."""


SENTIMENT_ENUM = Enum(
    "negative", "neutral", "positive",
    name="sentiment_label_enum",
)


class FeedbackResultORM(Base):
    """ORM model for the ``feedback_results`` table."""

    __tablename__ = "feedback_results"
    __table_args__ = (
        Index("ix_feedback_results_user_processed", "user_id", "processed_at"),
    )

    job_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    sentiment: Mapped[str] = mapped_column(SENTIMENT_ENUM, nullable=False)
    confidence: Mapped[float] = mapped_column(Float, nullable=False)
    all_scores: Mapped[list] = mapped_column(JSONB, nullable=False)
    intents: Mapped[list] = mapped_column(JSONB, nullable=False)
    ai_processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utc_now,
    )
    # ``metadata`` is reserved on declarative classes.
    metadata_: Mapped[dict] = mapped_column("metadata", JSONB, nullable=False)
