"""
Analysis orchestrator for FeedLens.

Races the AI inference call against a fixed budget and falls back to the
heuristic classifier when the AI call fails or is too slow. This is the
failure-absorbing boundary of the pipeline: :meth:`AnalysisOrchestrator.analyze`
always returns a result and never raises.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import structlog

from fl_common.errors import InferenceError
from fl_common.metrics import feedback_analysis_source_total
from fl_common.models import (
    AnalysisMetadata,
    AnalysisResult,
    AnalysisSource,
    ScoreEntry,
    SentimentLabel,
    ordered_scores,
)

from analysis import heuristic_classifier, intent_tagger
from analysis.inference_client import InferenceClient, InferenceOutput

logger = structlog.get_logger(__name__)

DEFAULT_ANALYSIS_TIMEOUT_S = 10.0


class AnalysisOrchestrator:
    """Produce an :class:`AnalysisResult` for a text, AI first.

    An AI call that loses the race is not cancelled; it keeps running in
    the background, bounded by the inference client's own transport
    timeout, and its outcome is discarded.

    Args:
        inference_client: AI client, or ``None`` to always use the heuristic.
        timeout_s: How long to wait for the AI answer.
    """

    def __init__(
        self,
        inference_client: InferenceClient | None,
        *,
        timeout_s: float = DEFAULT_ANALYSIS_TIMEOUT_S,
    ) -> None:
        self._client = inference_client
        self._timeout_s = timeout_s
        self._abandoned: set[asyncio.Task[InferenceOutput]] = set()
        self._logged_failures: set[tuple[str, int | None]] = set()

    @property
    def pending_background_calls(self) -> int:
        """AI calls still running after the orchestrator stopped waiting."""
        return len(self._abandoned)

    async def analyze(self, text: str, *, job_id: str) -> AnalysisResult:
        """Analyse *text* for *job_id*.

        Args:
            text: Trimmed, validated feedback text.
            job_id: Identifier copied onto the result.

        Returns:
            An AI-produced result when the classifier answered within the
            budget, otherwise a heuristic one.
        """
        log = logger.bind(job_id=job_id)
        intents = intent_tagger.tag(text)
        ai_output = await self._try_ai(text, log)

        result: AnalysisResult | None = None
        if ai_output is not None:
            try:
                result = _build_result(
                    job_id,
                    text,
                    intents,
                    source=AnalysisSource.AI,
                    sentiment=ai_output.sentiment,
                    confidence=ai_output.confidence,
                    all_scores=ai_output.all_scores,
                )
            except ValueError as exc:
                log.error("ai_analysis_rejected", error=str(exc))

        if result is None:
            heuristic = heuristic_classifier.classify(text)
            result = _build_result(
                job_id,
                text,
                intents,
                source=AnalysisSource.FALLBACK,
                sentiment=heuristic.sentiment,
                confidence=heuristic.confidence,
                all_scores=ordered_scores(heuristic.scores),
            )

        feedback_analysis_source_total.labels(source=result.metadata.source.value).inc()
        log.info(
            "analysis_completed",
            source=result.metadata.source.value,
            sentiment=result.sentiment.value,
            confidence=result.confidence,
        )
        return result

    async def _try_ai(
        self,
        text: str,
        log: structlog.stdlib.BoundLogger,
    ) -> InferenceOutput | None:
        """Return the AI answer if it arrives in time, else ``None``."""
        if self._client is None:
            return None

        task = asyncio.create_task(self._client.classify(text))
        done, _ = await asyncio.wait({task}, timeout=self._timeout_s)

        if task not in done:
            self._abandon(task)
            log.warning("ai_analysis_timeout", timeout_s=self._timeout_s)
            return None

        try:
            return task.result()
        except InferenceError as exc:
            self._log_failure(exc, log)
        except Exception as exc:  # noqa: BLE001
            log.exception("ai_analysis_unexpected_error", error=str(exc))
        return None

    def _abandon(self, task: asyncio.Task[InferenceOutput]) -> None:
        self._abandoned.add(task)
        task.add_done_callback(self._reap)

    def _reap(self, task: asyncio.Task[InferenceOutput]) -> None:
        self._abandoned.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.debug("abandoned_ai_call_failed", error=str(task.exception()))

    def _log_failure(self, exc: InferenceError, log: structlog.stdlib.BoundLogger) -> None:
        """Log each failure mode once at warning level, repeats at debug."""
        key = (type(exc).__name__, exc.status_code)
        fields = {
            "error": str(exc),
            "error_type": key[0],
            "status_code": exc.status_code,
            "retryable": exc.retryable,
        }
        if key in self._logged_failures:
            log.debug("ai_analysis_unavailable", **fields)
            return
        self._logged_failures.add(key)
        if exc.retryable:
            log.warning("ai_analysis_unavailable", **fields)
        else:
            # Credentials or contract problems need an operator.
            log.error("ai_analysis_unavailable", **fields)

    async def aclose(self) -> None:
        """Cancel background AI calls and close the inference client."""
        for task in list(self._abandoned):
            task.cancel()
        if self._abandoned:
            await asyncio.gather(*self._abandoned, return_exceptions=True)
        if self._client is not None:
            await self._client.aclose()


def _build_result(
    job_id: str,
    text: str,
    intents: list[str],
    *,
    source: AnalysisSource,
    sentiment: SentimentLabel,
    confidence: float,
    all_scores: list[ScoreEntry],
) -> AnalysisResult:
    return AnalysisResult(
        job_id=job_id,
        sentiment=sentiment,
        confidence=confidence,
        all_scores=all_scores,
        intents=intents,
        ai_processed=source is AnalysisSource.AI,
        processed_at=datetime.now(timezone.utc),
        metadata=AnalysisMetadata(
            source=source,
            word_count=len(text.split()),
            char_count=len(text),
        ),
    )
