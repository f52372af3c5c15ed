"""
Prometheus metrics helpers for FeedLens.

Provides shared metric definitions for exposing Prometheus-format metrics
from the API gateway and the queue worker: request counters, latency
histograms, job outcome counters and the sentiment distribution.
"""

from __future__ import annotations

from prometheus_client import Counter, Histogram

# ── HTTP ──
http_requests_total = Counter(
    "feedlens_http_requests_total",
    "Total HTTP requests received",
    ["method", "path", "status"],
)
http_request_duration_seconds = Histogram(
    "feedlens_http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["method", "path"],
    buckets=(0.01, 0.05, 0.1, 0.5, 1, 5, 10),
)

# ── Submission / queue ──
feedback_jobs_queued_total = Counter(
    "feedback_jobs_queued_total",
    "Total feedback jobs queued",
    ["outcome"],  # queued, already_queued
)
feedback_jobs_processed_total = Counter(
    "feedback_jobs_processed_total",
    "Total feedback jobs processed by the worker",
    ["status"],  # success, failed
)
feedback_job_duration_seconds = Histogram(
    "feedback_job_duration_seconds",
    "Job processing duration in seconds",
    buckets=(0.1, 0.5, 1, 2, 5, 10, 30),
)

# ── Analysis ──
feedback_sentiment_total = Counter(
    "feedback_sentiment_total",
    "Distribution of sentiment results",
    ["sentiment"],
)
feedback_analysis_source_total = Counter(
    "feedback_analysis_source_total",
    "Analyses by producing path",
    ["source"],  # ai-analysis, fallback-analysis
)
