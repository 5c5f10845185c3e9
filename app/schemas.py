from typing import Any, Literal, Mapping

from pydantic import BaseModel, Field, StrictBool, ValidationError, confloat, constr

from app.errors import InvalidInput


MERCHANT_CATEGORIES = (
    "Groceries",
    "Restaurants",
    "Online Shopping",
    "Travel",
    "Electronics",
    "Gas Station",
    "Entertainment",
    "Utilities",
    "Healthcare",
    "Other",
)

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class TransactionInput(BaseModel):
    """Transaction attributes submitted by the user for a fraud assessment."""

    amount: confloat(gt=0, allow_inf_nan=False) = Field(
        ..., description="Transaction amount in currency units"
    )
    merchantCategory: Literal[MERCHANT_CATEGORIES] = Field(
        ..., description="Merchant category, e.g. 'Online Shopping'"
    )
    time: constr(pattern=TIME_PATTERN) = Field(
        ..., description="Time of day of the transaction, HH:MM in 24-hour format"
    )
    location: constr(strip_whitespace=True, min_length=1) = Field(
        ..., description="Free-text place descriptor, e.g. 'San Francisco, CA'"
    )
    historicalSpendingAverage: confloat(ge=0, allow_inf_nan=False) = Field(
        ..., description="The user's baseline spend per transaction"
    )


class FraudReport(BaseModel):
    """Validated verdict returned by the external model."""

    isFraudulent: StrictBool = Field(..., description="True if the transaction looks fraudulent")
    confidenceScore: confloat(ge=0.0, le=1.0, allow_inf_nan=False) = Field(
        ..., description="Model confidence in the verdict, between 0.0 and 1.0"
    )
    reasoning: constr(min_length=1) = Field(..., description="Explanation of the verdict")
    recommendation: constr(min_length=1) = Field(..., description="Suggested next action")


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Stable error kind, e.g. 'service_unavailable'")
    detail: str = Field(..., description="Human-readable error message")


DEFAULT_TRANSACTION = TransactionInput(
    amount=150.00,
    merchantCategory="Online Shopping",
    time="14:30",
    location="San Francisco, CA",
    historicalSpendingAverage=85.50,
)


def parse_transaction(data: Mapping[str, Any]) -> TransactionInput:
    """Build a TransactionInput from raw form data, raising InvalidInput on any problem."""

    try:
        return TransactionInput.model_validate(dict(data))
    except ValidationError as exc:
        problems = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"]) or "input"
            problems.append(f"{field}: {err['msg']}")
        raise InvalidInput("Invalid transaction: " + "; ".join(problems)) from exc
