"""
Keyword-count sentiment classifier for FeedLens.

Deterministic fallback used whenever the AI classifier is unavailable or
too slow. Counts whole-word hits against fixed positive and negative word
lists and turns them into a normalized three-way score distribution.

Equal positive and negative counts give equal polar scores above the
neutral score. Older versions of this scorer reported such text as
``neutral``, but that label would then not carry the highest score, so
``sentiment`` follows the scores instead: ties go to the first label in
negative, neutral, positive order, which makes "good but slow" negative.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from fl_common.models import SentimentLabel, round_distribution, top_label

POSITIVE_WORDS: tuple[str, ...] = (
    "good",
    "great",
    "excellent",
    "amazing",
    "wonderful",
    "fantastic",
    "love",
    "best",
    "happy",
    "satisfied",
    "awesome",
    "perfect",
    "helpful",
    "friendly",
    "thank",
    "thanks",
    "appreciate",
    "brilliant",
    "outstanding",
    "superb",
    "impressed",
)

NEGATIVE_WORDS: tuple[str, ...] = (
    "bad",
    "terrible",
    "awful",
    "horrible",
    "hate",
    "worst",
    "disappointed",
    "angry",
    "frustrated",
    "poor",
    "slow",
    "broken",
    "useless",
    "annoying",
    "problem",
    "issue",
    "fail",
    "failure",
    "sad",
    "unhappy",
    "disappointing",
)

# Distribution returned when no sentiment word is present; neutral edges out.
NO_SIGNAL_SCORES: dict[SentimentLabel, float] = {
    SentimentLabel.POSITIVE: 0.33,
    SentimentLabel.NEGATIVE: 0.33,
    SentimentLabel.NEUTRAL: 0.34,
}

# Cap on a single polar score before renormalization.
POLAR_SCORE_CAP = 0.8
# Floor on the neutral score before renormalization.
NEUTRAL_FLOOR = 0.1


def _compile(words: tuple[str, ...]) -> list[re.Pattern[str]]:
    return [re.compile(rf"\b{re.escape(word)}\b") for word in words]


_POSITIVE_PATTERNS = _compile(POSITIVE_WORDS)
_NEGATIVE_PATTERNS = _compile(NEGATIVE_WORDS)


@dataclass(frozen=True)
class HeuristicScores:
    """Output of the heuristic classifier.

    Attributes:
        sentiment: Highest-scoring label.
        scores: Label → score, rounded to 3 decimals, summing to 1.0.
        positive_count: Positive word hits.
        negative_count: Negative word hits.
    """

    sentiment: SentimentLabel
    scores: dict[SentimentLabel, float]
    positive_count: int
    negative_count: int

    @property
    def confidence(self) -> float:
        return self.scores[self.sentiment]


def count_matches(text: str, patterns: list[re.Pattern[str]]) -> int:
    """Count whole-word hits of every pattern in lower-cased *text*."""
    lowered = text.lower()
    return sum(len(pattern.findall(lowered)) for pattern in patterns)


def score_counts(positive_count: int, negative_count: int) -> dict[SentimentLabel, float]:
    """Turn word counts into an unrounded distribution summing to 1.0."""
    if positive_count == 0 and negative_count == 0:
        return dict(NO_SIGNAL_SCORES)

    m = max(positive_count, negative_count, 1)
    positive = positive_count / m * POLAR_SCORE_CAP
    negative = negative_count / m * POLAR_SCORE_CAP
    neutral = max(NEUTRAL_FLOOR, 1 - positive - negative)

    total = positive + negative + neutral
    return {
        SentimentLabel.POSITIVE: positive / total,
        SentimentLabel.NEGATIVE: negative / total,
        SentimentLabel.NEUTRAL: neutral / total,
    }


def classify(text: str) -> HeuristicScores:
    """Classify *text* by keyword counts.

    Args:
        text: Trimmed feedback text.

    Returns:
        The winning label together with the full rounded distribution.
    """
    positive_count = count_matches(text, _POSITIVE_PATTERNS)
    negative_count = count_matches(text, _NEGATIVE_PATTERNS)
    scores = round_distribution(score_counts(positive_count, negative_count))
    return HeuristicScores(
        sentiment=top_label(scores),
        scores=scores,
        positive_count=positive_count,
        negative_count=negative_count,
    )
