from __future__ import annotations

import json
import logging
import math
from typing import Any, Dict, Mapping, Optional, Union

import httpx

from app import config
from app.errors import InvalidConfidence, InvalidInput, MalformedResponse, ServiceUnavailable
from app.result import Err, Ok, Result
from app.schemas import FraudReport, TransactionInput, parse_transaction


logger = logging.getLogger(__name__)

# Output constraint sent with every request, in the Gemini OpenAPI-subset schema format.
RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "isFraudulent": {
            "type": "BOOLEAN",
            "description": "True if the transaction is likely fraudulent, false otherwise.",
        },
        "confidenceScore": {
            "type": "NUMBER",
            "description": "Confidence in the verdict, from 0.0 to 1.0.",
        },
        "reasoning": {
            "type": "STRING",
            "description": "Brief explanation of the factors behind the verdict.",
        },
        "recommendation": {
            "type": "STRING",
            "description": "Suggested next action, e.g. 'Approve' or 'Flag for manual review'.",
        },
    },
    "required": ["isFraudulent", "confidenceScore", "reasoning", "recommendation"],
    "propertyOrdering": ["isFraudulent", "confidenceScore", "reasoning", "recommendation"],
}

_STRING_FIELDS = ("reasoning", "recommendation")


def build_prompt(transaction: TransactionInput) -> str:
    """Describe a single transaction in plain language for the model."""

    return (
        "You are a fraud analyst reviewing a single card transaction. "
        "Assess how likely it is to be fraudulent.\n\n"
        "Transaction details:\n"
        f"- Amount: ${transaction.amount:.2f}\n"
        f"- Merchant category: {transaction.merchantCategory}\n"
        f"- Time of day (24h): {transaction.time}\n"
        f"- Location: {transaction.location}\n"
        f"- User's historical average spend: ${transaction.historicalSpendingAverage:.2f}\n\n"
        "Compare the amount with the historical average and weigh the merchant "
        "category, time of day and location. Respond only with the JSON object "
        "described by the response schema."
    )


def build_request_body(transaction: TransactionInput) -> Dict[str, Any]:
    return {
        "contents": [{"role": "user", "parts": [{"text": build_prompt(transaction)}]}],
        "generationConfig": {
            "responseMimeType": "application/json",
            "responseSchema": RESPONSE_SCHEMA,
        },
    }


def extract_text(envelope: Any) -> Result[str]:
    """Pull the generated text out of a generateContent response envelope."""

    try:
        text = envelope["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return Err(MalformedResponse("Model response contains no generated text", "candidates"))
    if not isinstance(text, str):
        return Err(MalformedResponse("Generated content is not text", "candidates"))
    return Ok(text)


def validate_report(payload: Mapping[str, Any]) -> Result[FraudReport]:
    """Check every field of a decoded verdict before building a FraudReport.

    Out-of-range confidence is reported as InvalidConfidence and never clamped;
    any other missing or mistyped field is a MalformedResponse naming that field.
    """

    if "isFraudulent" not in payload:
        return Err(MalformedResponse("Missing required field", "isFraudulent"))
    is_fraudulent = payload["isFraudulent"]
    if not isinstance(is_fraudulent, bool):
        return Err(MalformedResponse("Expected a boolean", "isFraudulent"))

    if "confidenceScore" not in payload:
        return Err(MalformedResponse("Missing required field", "confidenceScore"))
    confidence = payload["confidenceScore"]
    # bool is a subclass of int
    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        return Err(MalformedResponse("Expected a number", "confidenceScore"))
    # JSON integers are unbounded and may not fit in a float
    if isinstance(confidence, float) and not math.isfinite(confidence):
        return Err(MalformedResponse("Expected a finite number", "confidenceScore"))
    if not 0.0 <= confidence <= 1.0:
        return Err(InvalidConfidence(confidence))

    for name in _STRING_FIELDS:
        if name not in payload:
            return Err(MalformedResponse("Missing required field", name))
        value = payload[name]
        if not isinstance(value, str) or not value.strip():
            return Err(MalformedResponse("Expected a non-empty string", name))

    return Ok(
        FraudReport(
            isFraudulent=is_fraudulent,
            confidenceScore=float(confidence),
            reasoning=payload["reasoning"],
            recommendation=payload["recommendation"],
        )
    )


def parse_report(text: str) -> Result[FraudReport]:
    try:
        payload = json.loads(text)
    except (TypeError, ValueError):
        return Err(MalformedResponse("Model output is not valid JSON"))
    if not isinstance(payload, dict):
        return Err(MalformedResponse("Model output is not a JSON object"))
    return validate_report(payload)


class AnalysisClient:
    """Sends one transaction to the Gemini API and validates the verdict.

    The client keeps no per-request state. An injected ``http_client`` is
    reused across calls and left open; otherwise a client is opened and
    closed around each call.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.api_key = config.GEMINI_API_KEY if api_key is None else api_key
        self.model = model or config.GEMINI_MODEL
        self.base_url = (base_url or config.GEMINI_BASE_URL).rstrip("/")
        self.timeout = config.GEMINI_TIMEOUT_SECONDS if timeout is None else timeout
        self._http_client = http_client

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def _post(self, body: Dict[str, Any]) -> httpx.Response:
        headers = {"x-goog-api-key": self.api_key, "Content-Type": "application/json"}
        if self._http_client is not None:
            return await self._http_client.post(
                self.endpoint, json=body, headers=headers, timeout=self.timeout
            )
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.post(self.endpoint, json=body, headers=headers)

    async def analyze_result(
        self, transaction: Union[TransactionInput, Mapping[str, Any]]
    ) -> Result[FraudReport]:
        """Run one analysis and return ``Ok(FraudReport)`` or ``Err(error)``.

        Malformed input comes back as ``Err(InvalidInput)`` without a request.
        """

        if not isinstance(transaction, TransactionInput):
            try:
                transaction = parse_transaction(transaction)
            except InvalidInput as exc:
                return Err(exc)

        if not self.api_key:
            return Err(ServiceUnavailable("GEMINI_API_KEY is not configured"))

        body = build_request_body(transaction)
        logger.debug("Requesting fraud analysis from %s", self.endpoint)

        try:
            response = await self._post(body)
        except httpx.TimeoutException:
            logger.warning("Fraud analysis timed out after %ss", self.timeout)
            return Err(
                ServiceUnavailable(f"The analysis service did not respond within {self.timeout}s")
            )
        except httpx.HTTPError as exc:
            logger.warning("Fraud analysis request failed: %s", exc)
            return Err(ServiceUnavailable(f"Could not reach the analysis service: {exc}"))

        if not response.is_success:
            logger.warning("Fraud analysis service returned HTTP %s", response.status_code)
            return Err(
                ServiceUnavailable(
                    f"The analysis service returned HTTP {response.status_code}"
                )
            )

        try:
            envelope = response.json()
        except ValueError:
            return Err(MalformedResponse("Response body is not valid JSON"))

        text = extract_text(envelope)
        if isinstance(text, Err):
            return text
        return parse_report(text.value)

    async def analyze(
        self, transaction: Union[TransactionInput, Mapping[str, Any]]
    ) -> FraudReport:
        """Return a validated FraudReport or raise one of the AnalysisError kinds."""

        result = await self.analyze_result(transaction)
        return result.unwrap()
