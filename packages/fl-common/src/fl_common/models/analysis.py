"""
Analysis result data models for FeedLens.

Defines the canonical sentiment vocabulary, the three-way score
distribution, and the ``AnalysisResult`` record persisted per job.
The invariants on the score distribution are enforced at construction.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, model_validator

SCORE_SUM_TOLERANCE = 1e-3
# Float slack on top of the tolerance: 0.471 + 0.471 + 0.059 is not exactly 1.001.
_FLOAT_EPS = 1e-9


def _utc_now() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


class SentimentLabel(str, Enum):
    """Canonical sentiment labels."""

    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    POSITIVE = "positive"


# Presentation order of ``all_scores``; also the tie-break order for arg-max.
LABEL_ORDER: tuple[SentimentLabel, ...] = (
    SentimentLabel.NEGATIVE,
    SentimentLabel.NEUTRAL,
    SentimentLabel.POSITIVE,
)


class AnalysisSource(str, Enum):
    """Which path produced an analysis."""

    AI = "ai-analysis"
    FALLBACK = "fallback-analysis"


def format_percentage(score: float) -> str:
    """Render a 0–1 score as ``"NN.N%"``."""
    return f"{score * 100:.1f}%"


class ScoreEntry(BaseModel):
    """Score of one canonical label.

    Attributes:
        label: Canonical sentiment label.
        score: Normalized probability (0.0–1.0).
        percentage: ``score`` rendered for display.
    """

    model_config = {"from_attributes": True}

    label: SentimentLabel = Field(..., description="Canonical sentiment label.")
    score: float = Field(..., ge=0.0, le=1.0, description="Normalized score.")
    percentage: str = Field(..., description="Score rendered as a percentage.")

    @classmethod
    def from_score(cls, label: SentimentLabel, score: float) -> ScoreEntry:
        return cls(label=label, score=score, percentage=format_percentage(score))


def ordered_scores(scores: dict[SentimentLabel, float]) -> list[ScoreEntry]:
    """Build ``all_scores`` in the fixed negative, neutral, positive order."""
    return [ScoreEntry.from_score(label, scores.get(label, 0.0)) for label in LABEL_ORDER]


def top_label(scores: dict[SentimentLabel, float]) -> SentimentLabel:
    """Return the highest-scoring label; ties go to the earliest in ``LABEL_ORDER``."""
    best = LABEL_ORDER[0]
    for label in LABEL_ORDER[1:]:
        if scores.get(label, 0.0) > scores.get(best, 0.0):
            best = label
    return best


def round_distribution(
    scores: dict[SentimentLabel, float],
    ndigits: int = 3,
    prefer: SentimentLabel | None = None,
) -> dict[SentimentLabel, float]:
    """Round each score to *ndigits* and keep the sum within tolerance.

    For an input that sums to 1.0 the per-value rounded sum is off by at
    most 1e-3, which is within ``SCORE_SUM_TOLERANCE``; those values are
    returned as rounded. A larger drift is folded into one label: a
    positive drift goes to the maximum (to *prefer* when it is among the
    tied maxima), a negative drift is taken from the minimum. Either way
    the arg-max is unchanged.
    """
    rounded = {label: round(scores.get(label, 0.0), ndigits) for label in LABEL_ORDER}
    drift = round(1.0 - sum(rounded.values()), ndigits)
    if abs(drift) <= SCORE_SUM_TOLERANCE + _FLOAT_EPS:
        return rounded
    if drift > 0:
        peak = max(rounded.values())
        target = prefer if prefer is not None and rounded[prefer] == peak else top_label(rounded)
        rounded[target] = round(min(1.0, rounded[target] + drift), ndigits)
    elif drift < 0:
        target = min(LABEL_ORDER, key=lambda label: rounded[label])
        if rounded[target] + drift < 0:
            target = top_label(rounded)
        rounded[target] = round(rounded[target] + drift, ndigits)
    return rounded


class AnalysisMetadata(BaseModel):
    """Provenance and size of an analysed text.

    Attributes:
        source: Producing path.
        word_count: Whitespace-separated token count.
        char_count: Length of the analysed text.
    """

    model_config = {"from_attributes": True}

    source: AnalysisSource = Field(..., description="Producing path.")
    word_count: int = Field(..., ge=0, description="Whitespace token count.")
    char_count: int = Field(..., ge=0, description="Character count.")


class AnalysisResult(BaseModel):
    """Sentiment and intent analysis of one job.

    Attributes:
        job_id: Idempotency key of the originating job.
        sentiment: Winning label.
        confidence: Score of ``sentiment``; always the maximum score.
        all_scores: Exactly the three canonical labels, summing to 1.0.
        intents: Non-empty list of intent tags.
        ai_processed: ``True`` iff the AI classifier answered in time.
        processed_at: Completion timestamp (UTC).
        metadata: Provenance and text size.
    """

    model_config = {"from_attributes": True}

    job_id: str = Field(..., min_length=1, description="Job identifier.")
    sentiment: SentimentLabel = Field(..., description="Winning sentiment label.")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Score of the winning label.")
    all_scores: list[ScoreEntry] = Field(..., description="Three-way score distribution.")
    intents: list[str] = Field(..., min_length=1, description="Intent tags.")
    ai_processed: bool = Field(..., description="Whether the AI classifier produced this.")
    processed_at: datetime = Field(default_factory=_utc_now, description="Completion time (UTC).")
    metadata: AnalysisMetadata = Field(..., description="Provenance and text size.")

    @model_validator(mode="after")
    def _check_invariants(self) -> AnalysisResult:
        labels = [entry.label for entry in self.all_scores]
        if len(labels) != 3 or set(labels) != set(LABEL_ORDER):
            raise ValueError("all_scores must cover exactly the three canonical labels")
        total = sum(entry.score for entry in self.all_scores)
        if abs(total - 1.0) > SCORE_SUM_TOLERANCE + _FLOAT_EPS:
            raise ValueError(f"all_scores must sum to 1.0, got {total:.4f}")
        by_label = {entry.label: entry.score for entry in self.all_scores}
        if abs(by_label[self.sentiment] - self.confidence) > _FLOAT_EPS:
            raise ValueError("confidence must equal the score of the sentiment label")
        if self.confidence + _FLOAT_EPS < max(by_label.values()):
            raise ValueError("sentiment must be the highest-scoring label")
        expected_source = AnalysisSource.AI if self.ai_processed else AnalysisSource.FALLBACK
        if self.metadata.source != expected_source:
            raise ValueError("metadata.source does not match ai_processed")
        return self

    def score_of(self, label: SentimentLabel) -> float:
        """Return the score recorded for *label*."""
        for entry in self.all_scores:
            if entry.label == label:
                return entry.score
        return 0.0
