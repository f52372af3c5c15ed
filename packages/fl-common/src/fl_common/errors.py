"""
Exception taxonomy shared by all FeedLens services.

Validation and store errors surface to callers; inference errors are
absorbed by the analysis orchestrator and only steer logging.
"""

from __future__ import annotations


class FeedLensError(Exception):
    """Base class for all FeedLens errors."""


class FeedbackValidationError(FeedLensError):
    """Submitted feedback is empty, oversized or lacks an owner."""


class StoreUnavailableError(FeedLensError):
    """The result store could not be reached or rejected the operation."""


class QueueUnavailableError(FeedLensError):
    """The job queue broker could not be reached."""


class InferenceError(FeedLensError):
    """The external AI classifier failed.

    Attributes:
        retryable: ``True`` for server errors and timeouts.
        status_code: HTTP status returned by the service, if any.
    """

    retryable: bool = False

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RetryableInferenceError(InferenceError):
    """Transient failure (HTTP 5xx or timeout)."""

    retryable = True


class NonRetryableInferenceError(InferenceError):
    """Permanent failure such as rejected credentials (HTTP 4xx)."""

    retryable = False


class InferenceResponseError(NonRetryableInferenceError):
    """The service answered with a body we cannot interpret."""


class UnmappedLabelError(NonRetryableInferenceError):
    """The service returned a label outside the known vocabulary."""
