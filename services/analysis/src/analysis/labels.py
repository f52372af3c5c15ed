"""
Closed mapping from external classifier labels to canonical sentiment labels.

Every label the hosted models are known to emit is listed here. A label
outside the table is accepted only when its lower-cased form is already
canonical; anything else raises so vocabulary changes surface immediately.
"""

from __future__ import annotations

from enum import Enum

from fl_common.errors import UnmappedLabelError
from fl_common.models import SentimentLabel


class ExternalLabel(str, Enum):
    """Labels emitted by supported sentiment models."""

    POSITIVE_UPPER = "POSITIVE"
    NEGATIVE_UPPER = "NEGATIVE"
    NEUTRAL_UPPER = "NEUTRAL"
    POSITIVE_LOWER = "positive"
    NEGATIVE_LOWER = "negative"
    NEUTRAL_LOWER = "neutral"
    # cardiffnlp/twitter-roberta-base-sentiment (unnamed head)
    LABEL_0 = "LABEL_0"
    LABEL_1 = "LABEL_1"
    LABEL_2 = "LABEL_2"


LABEL_MAP: dict[ExternalLabel, SentimentLabel] = {
    ExternalLabel.POSITIVE_UPPER: SentimentLabel.POSITIVE,
    ExternalLabel.NEGATIVE_UPPER: SentimentLabel.NEGATIVE,
    ExternalLabel.NEUTRAL_UPPER: SentimentLabel.NEUTRAL,
    ExternalLabel.POSITIVE_LOWER: SentimentLabel.POSITIVE,
    ExternalLabel.NEGATIVE_LOWER: SentimentLabel.NEGATIVE,
    ExternalLabel.NEUTRAL_LOWER: SentimentLabel.NEUTRAL,
    ExternalLabel.LABEL_0: SentimentLabel.NEGATIVE,
    ExternalLabel.LABEL_1: SentimentLabel.NEUTRAL,
    ExternalLabel.LABEL_2: SentimentLabel.POSITIVE,
}

# Import-time exhaustiveness check.
_missing = set(ExternalLabel) - set(LABEL_MAP)
if _missing:  # pragma: no cover
    raise RuntimeError(f"LABEL_MAP is missing entries for {sorted(m.value for m in _missing)}")


def to_canonical(label: str) -> SentimentLabel:
    """Map an external *label* onto the canonical vocabulary.

    Raises:
        UnmappedLabelError: If *label* is neither in the table nor a
            canonical label once lower-cased.
    """
    try:
        return LABEL_MAP[ExternalLabel(label)]
    except ValueError:
        pass
    try:
        return SentimentLabel(label.lower())
    except ValueError:
        raise UnmappedLabelError(f"Unmapped sentiment label: {label!r}") from None
