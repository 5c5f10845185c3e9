from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from app.schemas import DEFAULT_TRANSACTION, FraudReport


@dataclass(frozen=True)
class FormState:
    """Everything the page shows, as one immutable value.

    ``values`` holds the raw form fields as submitted so that an invalid
    submission can be redisplayed exactly as the user typed it.
    """

    values: Dict[str, Any]
    report: Optional[FraudReport] = None
    error: Optional[str] = None
    loading: bool = False


def initial_state() -> FormState:
    return FormState(values=DEFAULT_TRANSACTION.model_dump())


def submitted(state: FormState, values: Dict[str, Any]) -> FormState:
    """Start a new analysis; any previous verdict or error is cleared."""

    return replace(state, values=dict(values), report=None, error=None, loading=True)


def succeeded(state: FormState, report: FraudReport) -> FormState:
    return replace(state, report=report, error=None, loading=False)


def failed(state: FormState, message: str) -> FormState:
    return replace(state, report=None, error=message, loading=False)
