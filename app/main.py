from __future__ import annotations

from typing import List
import logging
from logging.handlers import RotatingFileHandler

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from app import config
from app.analysis_client import AnalysisClient
from app.errors import (
    AnalysisError,
    InvalidConfidence,
    InvalidInput,
    MalformedResponse,
    ServiceUnavailable,
)
from app.render import render_page
from app.schemas import (
    MERCHANT_CATEGORIES,
    ErrorResponse,
    FraudReport,
    TransactionInput,
    parse_transaction,
)
from app.state import FormState, failed, initial_state, submitted, succeeded


app = FastAPI(
    title="Transaction Fraud Assessment",
    description=(
        "Collects transaction attributes, asks the Gemini API for a fraud "
        "assessment and returns the validated verdict."
    ),
    version="1.0.0",
)

# Allow local frontend or tools to call this API easily. Adjust origins in real deployments.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


logger = logging.getLogger("fraud_api")
logger.setLevel(logging.INFO)

# File-based logging for analyses
config.LOG_DIR.mkdir(parents=True, exist_ok=True)
log_file = config.LOG_DIR / "analyses.log"

file_handler = RotatingFileHandler(
    log_file,
    maxBytes=config.LOG_FILE_MAX_BYTES,
    backupCount=config.LOG_FILE_BACKUP_COUNT,
)
formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
file_handler.setFormatter(formatter)
logger.addHandler(file_handler)
logger.propagate = False


ERROR_STATUS = {
    InvalidInput: 422,
    ServiceUnavailable: 503,
    MalformedResponse: 502,
    InvalidConfidence: 502,
}


def get_analysis_client() -> AnalysisClient:
    """Build a client from the current configuration. Overridden in tests."""

    return AnalysisClient()


def _log_outcome(transaction: TransactionInput, report: FraudReport) -> None:
    logger.info(
        "analysis category=%s amount=%.2f time=%s is_fraudulent=%s confidence=%.2f",
        transaction.merchantCategory,
        transaction.amount,
        transaction.time,
        report.isFraudulent,
        report.confidenceScore,
    )


@app.exception_handler(AnalysisError)
async def analysis_error_handler(request: Request, exc: AnalysisError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), 500)
    logger.warning("analysis failed path=%s kind=%s detail=%s", request.url.path, exc.kind, exc.message)
    body = ErrorResponse(error=exc.kind, detail=exc.message)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@app.get("/health", summary="Health check")
async def health_check() -> dict:
    """Simple health endpoint to verify that the API is running."""

    return {"status": "ok"}


@app.get("/categories", summary="Supported merchant categories")
async def list_categories() -> List[str]:
    return list(MERCHANT_CATEGORIES)


@app.post(
    "/analyze",
    response_model=FraudReport,
    responses={422: {"model": ErrorResponse}, 502: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Assess a single transaction for fraud",
)
async def analyze_transaction(
    payload: TransactionInput,
    client: AnalysisClient = Depends(get_analysis_client),
) -> FraudReport:
    """Forward one transaction to the external model and return its validated verdict.

    Failures are rendered by ``analysis_error_handler`` as ``{"error", "detail"}``.
    """

    report = await client.analyze(payload)
    _log_outcome(payload, report)
    return report


@app.get("/", response_class=HTMLResponse, summary="Transaction form")
async def index() -> str:
    return render_page(initial_state())


@app.get("/report", response_class=HTMLResponse, summary="Transaction form with verdict")
async def report_page(
    amount: str = "",
    merchantCategory: str = "",
    time: str = "",
    location: str = "",
    historicalSpendingAverage: str = "",
    client: AnalysisClient = Depends(get_analysis_client),
) -> str:
    """Run the analysis for a submitted form and render the resulting page."""

    values = {
        "amount": amount,
        "merchantCategory": merchantCategory,
        "time": time,
        "location": location,
        "historicalSpendingAverage": historicalSpendingAverage,
    }
    state: FormState = submitted(initial_state(), values)
    try:
        transaction = parse_transaction(values)
        report = await client.analyze(transaction)
    except AnalysisError as exc:
        logger.warning("analysis failed path=/report kind=%s detail=%s", exc.kind, exc.message)
        state = failed(state, exc.message)
    else:
        _log_outcome(transaction, report)
        state = succeeded(state, report)
    return render_page(state)
