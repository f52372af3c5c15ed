"""
Declarative retry and retention policy for the FeedLens job queue.
"""

from __future__ import annotations

from dataclasses import dataclass

from fl_common.config import Settings


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how late a failed job is retried.

    Attempt *n* (1-based) that fails is retried after
    ``base_delay_s * multiplier ** (n - 1)`` seconds: 1 s, 2 s, 4 s with
    the defaults.

    Attributes:
        max_attempts: Total delivery attempts before terminal failure.
        base_delay_s: Delay after the first failed attempt.
        multiplier: Growth factor per further attempt.
    """

    max_attempts: int = 3
    base_delay_s: float = 1.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_s < 0:
            raise ValueError("base_delay_s must not be negative")
        if self.multiplier < 1:
            raise ValueError("multiplier must be at least 1")

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed *attempt* before redelivery."""
        return self.base_delay_s * self.multiplier ** max(attempt - 1, 0)

    def should_retry(self, attempts_made: int) -> bool:
        """Whether a job that has failed *attempts_made* times gets another go."""
        return attempts_made < self.max_attempts

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_attempts=settings.queue_max_attempts,
            base_delay_s=settings.queue_backoff_base_s,
            multiplier=settings.queue_backoff_multiplier,
        )


@dataclass(frozen=True)
class RetentionPolicy:
    """How long finished jobs stay inspectable.

    Attributes:
        completed_s: Retention of completed jobs (24 h).
        failed_s: Retention of terminally failed jobs (7 days).
    """

    completed_s: int = 86_400
    failed_s: int = 604_800

    @classmethod
    def from_settings(cls, settings: Settings) -> RetentionPolicy:
        return cls(
            completed_s=settings.queue_completed_retention_s,
            failed_s=settings.queue_failed_retention_s,
        )
