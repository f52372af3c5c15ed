"""Tests for the external → canonical label mapping."""

from __future__ import annotations

import pytest

from analysis.labels import LABEL_MAP, ExternalLabel, to_canonical
from fl_common.errors import NonRetryableInferenceError, UnmappedLabelError
from fl_common.models import SentimentLabel


class TestToCanonical:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("POSITIVE", SentimentLabel.POSITIVE),
            ("negative", SentimentLabel.NEGATIVE),
            ("NEUTRAL", SentimentLabel.NEUTRAL),
            ("LABEL_0", SentimentLabel.NEGATIVE),
            ("LABEL_1", SentimentLabel.NEUTRAL),
            ("LABEL_2", SentimentLabel.POSITIVE),
        ],
    )
    def test_known_labels(self, raw: str, expected: SentimentLabel) -> None:
        assert to_canonical(raw) is expected

    def test_mixed_case_canonical_passes_through(self) -> None:
        assert to_canonical("Positive") is SentimentLabel.POSITIVE

    @pytest.mark.parametrize("raw", ["joy", "LABEL_3", "", "mixed"])
    def test_unknown_label_fails_loudly(self, raw: str) -> None:
        with pytest.raises(UnmappedLabelError, match="Unmapped"):
            to_canonical(raw)

    def test_unmapped_is_not_retryable(self) -> None:
        with pytest.raises(NonRetryableInferenceError) as exc_info:
            to_canonical("joy")
        assert exc_info.value.retryable is False


def test_table_is_exhaustive() -> None:
    assert set(LABEL_MAP) == set(ExternalLabel)
    assert set(LABEL_MAP.values()) == set(SentimentLabel)
