"""
Tests for fl-common shared data models.

Validates the score-distribution helpers and the invariants enforced by
``AnalysisResult``, plus the job and response models.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from fl_common.models import (
    LABEL_ORDER,
    AnalysisMetadata,
    AnalysisResult,
    AnalysisSource,
    FeedbackRecord,
    Job,
    QueueHealth,
    QueueStatus,
    ScoreEntry,
    SentimentLabel,
    format_percentage,
    ordered_scores,
    round_distribution,
    top_label,
)

NEG, NEU, POS = SentimentLabel.NEGATIVE, SentimentLabel.NEUTRAL, SentimentLabel.POSITIVE


# ─── helpers ──────────────────────────────────────────────────


def _make_result(**overrides) -> AnalysisResult:
    defaults = dict(
        job_id="job-1",
        sentiment=POS,
        confidence=0.8,
        all_scores=ordered_scores({NEG: 0.1, NEU: 0.1, POS: 0.8}),
        intents=["positive_feedback"],
        ai_processed=False,
        processed_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
        metadata=AnalysisMetadata(source=AnalysisSource.FALLBACK, word_count=2, char_count=13),
    )
    defaults.update(overrides)
    return AnalysisResult(**defaults)


# ─── score helpers ────────────────────────────────────────────


class TestScoreHelpers:
    def test_format_percentage(self) -> None:
        assert format_percentage(0.8) == "80.0%"
        assert format_percentage(0.334) == "33.4%"

    def test_ordered_scores_fixed_order(self) -> None:
        entries = ordered_scores({POS: 0.5, NEG: 0.2, NEU: 0.3})
        assert [e.label for e in entries] == list(LABEL_ORDER)
        assert entries[2].percentage == "50.0%"

    def test_top_label_tie_prefers_earliest(self) -> None:
        assert top_label({NEG: 0.4, NEU: 0.2, POS: 0.4}) is NEG
        assert top_label({NEG: 0.2, NEU: 0.4, POS: 0.4}) is NEU

    def test_score_entry_rejects_out_of_range(self) -> None:
        with pytest.raises(ValidationError):
            ScoreEntry(label=POS, score=1.2, percentage="120.0%")


class TestRoundDistribution:
    @pytest.mark.parametrize(
        "scores",
        [
            {NEG: 1 / 3, NEU: 1 / 3, POS: 1 / 3},
            {NEG: 0.12345, NEU: 0.45678, POS: 0.41977},
            {NEG: 0.0004, NEU: 0.0004, POS: 0.9992},
            {NEG: 0.6666666, NEU: 0.1666667, POS: 0.1666667},
        ],
    )
    def test_sums_to_one(self, scores) -> None:
        rounded = round_distribution(scores)
        assert sum(rounded.values()) == pytest.approx(1.0, abs=1.001e-3)
        assert all(0.0 <= v <= 1.0 for v in rounded.values())

    def test_keeps_arg_max(self) -> None:
        scores = {NEG: 0.12345, NEU: 0.45678, POS: 0.41977}
        assert top_label(round_distribution(scores)) is NEU

    def test_drift_within_tolerance_is_kept(self) -> None:
        rounded = round_distribution({NEG: 1 / 3, NEU: 1 / 3, POS: 1 / 3}, prefer=POS)
        assert rounded == {NEG: 0.333, NEU: 0.333, POS: 0.333}

    def test_positive_drift_goes_to_preferred_peak(self) -> None:
        rounded = round_distribution({NEG: 0.2, NEU: 0.399, POS: 0.399}, prefer=POS)
        assert rounded[POS] == pytest.approx(0.401)
        assert rounded[NEU] == pytest.approx(0.399)

    def test_negative_drift_taken_from_minimum(self) -> None:
        rounded = round_distribution({NEG: 0.1, NEU: 0.3, POS: 0.602})
        assert rounded[NEG] == pytest.approx(0.098)
        assert rounded[POS] == pytest.approx(0.602)


# ─── AnalysisResult invariants ────────────────────────────────


class TestAnalysisResult:
    def test_valid_result(self) -> None:
        result = _make_result()
        assert result.score_of(POS) == 0.8
        assert result.metadata.source is AnalysisSource.FALLBACK

    def test_scores_must_sum_to_one(self) -> None:
        with pytest.raises(ValidationError, match="sum to 1.0"):
            _make_result(all_scores=ordered_scores({NEG: 0.1, NEU: 0.1, POS: 0.7}), confidence=0.7)

    def test_all_three_labels_required(self) -> None:
        scores = [ScoreEntry.from_score(POS, 0.8), ScoreEntry.from_score(NEG, 0.2)]
        with pytest.raises(ValidationError, match="three canonical labels"):
            _make_result(all_scores=scores)

    def test_confidence_must_match_sentiment_score(self) -> None:
        with pytest.raises(ValidationError, match="confidence"):
            _make_result(confidence=0.75)

    def test_sentiment_must_be_max(self) -> None:
        with pytest.raises(ValidationError, match="highest-scoring"):
            _make_result(sentiment=NEG, confidence=0.1)

    def test_source_must_match_ai_processed(self) -> None:
        with pytest.raises(ValidationError, match="ai_processed"):
            _make_result(ai_processed=True)

    def test_intents_not_empty(self) -> None:
        with pytest.raises(ValidationError):
            _make_result(intents=[])

    def test_json_round_trip_keeps_labels(self) -> None:
        data = _make_result().model_dump(mode="json")
        assert data["sentiment"] == "positive"
        assert data["metadata"]["source"] == "fallback-analysis"
        assert [e["label"] for e in data["all_scores"]] == ["negative", "neutral", "positive"]


class TestFeedbackRecord:
    def test_requires_user(self) -> None:
        base = _make_result().model_dump()
        with pytest.raises(ValidationError):
            FeedbackRecord(**base, user_id="", text="hello")

    def test_carries_owner_and_text(self) -> None:
        record = FeedbackRecord(**_make_result().model_dump(), user_id="u-1", text="Great product!")
        assert record.user_id == "u-1"
        assert record.sentiment is POS


# ─── Job / queue models ───────────────────────────────────────


class TestJob:
    def test_generates_job_id(self) -> None:
        a = Job(user_id="u-1", text="hi")
        b = Job(user_id="u-1", text="hi")
        assert a.job_id and a.job_id != b.job_id
        assert a.submitted_at.tzinfo is not None

    def test_frozen(self) -> None:
        job = Job(user_id="u-1", text="hi")
        with pytest.raises(ValidationError):
            job.text = "changed"

    def test_requires_user(self) -> None:
        with pytest.raises(ValidationError):
            Job(user_id="", text="hi")


class TestQueueHealth:
    def test_disconnected_has_no_counts(self) -> None:
        health = QueueHealth(name="feedback-processing", status=QueueStatus.DISCONNECTED)
        assert health.counts is None
        assert health.model_dump(mode="json")["status"] == "disconnected"
