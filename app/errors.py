from __future__ import annotations

from typing import Optional


class AnalysisError(Exception):
    """Base class for every failure the analysis boundary can surface."""

    kind = "analysis_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInput(AnalysisError):
    """Transaction attributes are not well-formed; no request was sent."""

    kind = "invalid_input"


class ServiceUnavailable(AnalysisError):
    """The external model call could not be completed."""

    kind = "service_unavailable"


class MalformedResponse(AnalysisError):
    """The model response could not be parsed into a fraud report."""

    kind = "malformed_response"

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        if field is not None:
            message = f"{message} (field: {field})"
        super().__init__(message)
        self.field = field


class InvalidConfidence(AnalysisError):
    kind = "invalid_confidence"

    def __init__(self, value: float) -> None:
        super().__init__(f"confidenceScore {value!r} is outside the range [0.0, 1.0]")
        self.value = value
