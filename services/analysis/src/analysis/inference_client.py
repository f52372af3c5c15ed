"""
AI inference client for FeedLens.

Calls a hosted sentiment-classification model over HTTP and normalizes its
answer into the canonical three-label format: labels mapped through the
closed label table, scores renormalized to sum to 1.0, output ordered
negative, neutral, positive.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog

from fl_common.errors import (
    InferenceError,
    InferenceResponseError,
    NonRetryableInferenceError,
    RetryableInferenceError,
)
from fl_common.models import (
    LABEL_ORDER,
    ScoreEntry,
    SentimentLabel,
    ordered_scores,
    round_distribution,
    top_label,
)

from analysis.labels import to_canonical

logger = structlog.get_logger(__name__)

_DEFAULT_TIMEOUT_S = 30.0


@dataclass
class InferenceOutput:
    """Normalized classifier answer.

    Attributes:
        sentiment: Canonical label of the top prediction.
        confidence: Normalized score of ``sentiment``.
        all_scores: Three entries in presentation order, summing to 1.0.
        raw: Response body as returned by the service.
    """

    sentiment: SentimentLabel
    confidence: float
    all_scores: list[ScoreEntry]
    raw: Any = field(default=None, repr=False)


def _extract_predictions(raw: Any) -> list[tuple[str, float]]:
    """Pull ``(label, score)`` pairs out of a Hugging Face style body.

    Accepts ``[[{label, score}, ...]]`` and ``[{label, score}, ...]``.
    """
    entries = raw
    if isinstance(entries, list) and entries and isinstance(entries[0], list):
        entries = entries[0]
    if not isinstance(entries, list) or not entries:
        raise InferenceResponseError(f"Unexpected inference response shape: {type(raw).__name__}")

    predictions: list[tuple[str, float]] = []
    for entry in entries:
        if not isinstance(entry, dict) or "label" not in entry or "score" not in entry:
            raise InferenceResponseError("Inference response entry lacks label/score")
        try:
            score = float(entry["score"])
        except (TypeError, ValueError):
            raise InferenceResponseError(f"Non-numeric score: {entry['score']!r}") from None
        if score < 0:
            raise InferenceResponseError(f"Negative score: {score}")
        predictions.append((str(entry["label"]), score))
    return predictions


def normalize_predictions(raw: Any) -> InferenceOutput:
    """Normalize a raw classifier body into an :class:`InferenceOutput`.

    Raises:
        InferenceResponseError: If the body is malformed or all scores are zero.
        UnmappedLabelError: If a label is outside the known vocabulary.
    """
    predictions = _extract_predictions(raw)
    total = sum(score for _, score in predictions)
    if total <= 0:
        raise InferenceResponseError("Inference scores sum to zero")

    # First maximum over the service's own ordering.
    top_raw_label, _ = max(predictions, key=lambda p: p[1])
    sentiment = to_canonical(top_raw_label)

    aggregated: dict[SentimentLabel, float] = {label: 0.0 for label in LABEL_ORDER}
    for label, score in predictions:
        aggregated[to_canonical(label)] += score / total

    scores = round_distribution(aggregated, prefer=sentiment)
    if scores[sentiment] < max(scores.values()):
        # Only reachable when several raw labels map onto one canonical label.
        sentiment = top_label(scores)

    return InferenceOutput(
        sentiment=sentiment,
        confidence=scores[sentiment],
        all_scores=ordered_scores(scores),
        raw=raw,
    )


class InferenceClient:
    """Async client for the hosted sentiment model.

    The underlying ``httpx.AsyncClient`` carries its own timeout so a call
    the orchestrator has stopped waiting for still ends on its own.

    Args:
        endpoint: Full model URL.
        api_key: Bearer token; omitted from the request when empty.
        timeout: Transport timeout in seconds (default 30).
        http_client: Pre-built client, mainly for tests.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        api_key: str = "",
        timeout: float = _DEFAULT_TIMEOUT_S,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = endpoint
        self.timeout = timeout
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._headers = headers
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def classify(self, text: str) -> InferenceOutput:
        """Classify *text* with the hosted model.

        Raises:
            RetryableInferenceError: On HTTP 5xx or timeout.
            NonRetryableInferenceError: On HTTP 4xx, connection failure,
                or an uninterpretable body.
        """
        payload = {"inputs": text, "options": {"wait_for_model": True}}
        try:
            resp = await self._client.post(self.endpoint, json=payload, headers=self._headers)
            resp.raise_for_status()
        except httpx.TimeoutException as exc:
            raise RetryableInferenceError(f"AI API timeout: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            message = f"AI API error: {_error_message(exc.response)}"
            if status >= 500:
                raise RetryableInferenceError(message, status_code=status) from exc
            raise NonRetryableInferenceError(message, status_code=status) from exc
        except httpx.HTTPError as exc:
            raise NonRetryableInferenceError(f"AI API error: {exc}") from exc

        try:
            raw = resp.json()
        except ValueError as exc:
            raise InferenceResponseError("AI API returned non-JSON body") from exc

        output = normalize_predictions(raw)
        logger.debug(
            "inference_classified",
            sentiment=output.sentiment.value,
            confidence=output.confidence,
        )
        return output

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if not self._client.is_closed:
            await self._client.aclose()


def _error_message(response: httpx.Response) -> str:
    """Prefer the service's ``error`` field over the bare status line."""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"


__all__ = [
    "InferenceClient",
    "InferenceError",
    "InferenceOutput",
    "normalize_predictions",
]
