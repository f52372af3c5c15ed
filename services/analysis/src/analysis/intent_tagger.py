"""
Keyword intent tagger for FeedLens.

Applies an ordered, non-exclusive list of substring rules to feedback
text. Several intents may fire at once; when none does, the text is
tagged ``general_feedback`` so the result is never empty.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_INTENT = "general_feedback"


@dataclass(frozen=True)
class IntentRule:
    """A tag and the substrings that trigger it."""

    intent: str
    keywords: tuple[str, ...]

    def matches(self, lowered: str) -> bool:
        return any(keyword in lowered for keyword in self.keywords)


INTENT_RULES: tuple[IntentRule, ...] = (
    IntentRule("support_request", ("help", "support")),
    IntentRule("bug_report", ("bug", "error", "broken")),
    IntentRule("feature_request", ("feature", "suggest", "wish")),
    IntentRule("churn_risk", ("cancel", "refund")),
    IntentRule("positive_feedback", ("love", "great", "amazing")),
    IntentRule("negative_feedback", ("hate", "terrible", "worst")),
    IntentRule("pricing_concern", ("price", "cost", "expensive")),
)


def tag(text: str, rules: tuple[IntentRule, ...] = INTENT_RULES) -> list[str]:
    """Return the intents detected in *text*, in rule order.

    Args:
        text: Trimmed feedback text.
        rules: Rule set to apply (defaults to :data:`INTENT_RULES`).

    Returns:
        A non-empty list of intent tags.
    """
    lowered = text.lower()
    intents = [rule.intent for rule in rules if rule.matches(lowered)]
    return intents or [DEFAULT_INTENT]
