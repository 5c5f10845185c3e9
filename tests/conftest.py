import asyncio
import json

import httpx
import pytest

from app.analysis_client import AnalysisClient


SAMPLE_TRANSACTION = {
    "amount": 150.00,
    "merchantCategory": "Online Shopping",
    "time": "14:30",
    "location": "San Francisco, CA",
    "historicalSpendingAverage": 85.50,
}

SAMPLE_VERDICT = {
    "isFraudulent": True,
    "confidenceScore": 0.87,
    "reasoning": "Amount significantly exceeds historical average",
    "recommendation": "Flag for manual review",
}


def gemini_envelope(text: str, status_code: int = 200) -> httpx.Response:
    """Wrap generated text the way the generateContent endpoint does."""

    return httpx.Response(
        status_code,
        json={
            "candidates": [
                {"content": {"role": "model", "parts": [{"text": text}]}, "finishReason": "STOP"}
            ]
        },
    )


@pytest.fixture
def sample_transaction():
    return dict(SAMPLE_TRANSACTION)


@pytest.fixture
def sample_verdict():
    return dict(SAMPLE_VERDICT)


@pytest.fixture
def envelope():
    return gemini_envelope


@pytest.fixture
def run_analysis():
    """Run AnalysisClient.analyze against a mocked Gemini endpoint.

    ``handler`` receives each outgoing httpx.Request and returns the response.
    """

    def _run(transactions, handler, api_key="test-key"):
        async def _go():
            transport = httpx.MockTransport(handler)
            async with httpx.AsyncClient(transport=transport) as http:
                client = AnalysisClient(api_key=api_key, http_client=http)
                return [await client.analyze(txn) for txn in transactions]

        return asyncio.run(_go())

    return _run


@pytest.fixture
def verdict_handler():
    """Handler factory answering every request with the given verdict JSON."""

    def _factory(verdict):
        def _handler(request: httpx.Request) -> httpx.Response:
            return gemini_envelope(json.dumps(verdict))

        return _handler

    return _factory
