"""Shared fixtures for analysis service tests."""

from __future__ import annotations

from typing import Any, Callable

import httpx
import pytest

from analysis.inference_client import InferenceClient

ENDPOINT = "https://inference.test/models/cardiffnlp/twitter-roberta-base-sentiment-latest"


@pytest.fixture()
def make_inference_client() -> Callable[..., InferenceClient]:
    """Build an ``InferenceClient`` whose transport is *handler*."""

    def _make(handler: Callable[[httpx.Request], Any], api_key: str = "test-token") -> InferenceClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return InferenceClient(ENDPOINT, api_key=api_key, http_client=http)

    return _make


@pytest.fixture()
def hf_body() -> list[list[dict[str, Any]]]:
    """A typical hosted-model answer (nested list, lower-case labels)."""
    return [[
        {"label": "positive", "score": 0.92},
        {"label": "neutral", "score": 0.06},
        {"label": "negative", "score": 0.02},
    ]]
