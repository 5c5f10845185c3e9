from __future__ import annotations

from html import escape
from typing import Any

from app.schemas import MERCHANT_CATEGORIES, FraudReport
from app.state import FormState


PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>AI Fraud Detection Model</title>
</head>
<body>
<header>
<h1>AI Fraud Detection Model</h1>
<p>Enter transaction details to assess the likelihood of fraud using Gemini.</p>
</header>
<main>
{form}
{error}
{report}
</main>
<footer><p>Powered by Google Gemini. For demonstration purposes only.</p></footer>
</body>
</html>
"""


def _value(state: FormState, name: str) -> str:
    value: Any = state.values.get(name, "")
    return escape(str(value), quote=True)


def _render_form(state: FormState) -> str:
    selected = state.values.get("merchantCategory")
    options = "\n".join(
        '<option value="{0}"{1}>{0}</option>'.format(
            escape(cat, quote=True), " selected" if cat == selected else ""
        )
        for cat in MERCHANT_CATEGORIES
    )
    button = "Analyzing..." if state.loading else "Check for Fraud"
    disabled = " disabled" if state.loading else ""
    return f"""<form method="get" action="/report">
<label for="amount">Transaction Amount ($)</label>
<input type="number" name="amount" id="amount" value="{_value(state, "amount")}" step="0.01" required>
<label for="merchantCategory">Merchant Category</label>
<select name="merchantCategory" id="merchantCategory">
{options}
</select>
<label for="time">Time of Transaction (24h)</label>
<input type="time" name="time" id="time" value="{_value(state, "time")}" required>
<label for="location">Location</label>
<input type="text" name="location" id="location" value="{_value(state, "location")}" required>
<label for="historicalSpendingAverage">Historical Average Spend ($)</label>
<input type="number" name="historicalSpendingAverage" id="historicalSpendingAverage" value="{_value(state, "historicalSpendingAverage")}" step="0.01" required>
<button type="submit"{disabled}>{button}</button>
</form>"""


def render_report(report: FraudReport) -> str:
    verdict = (
        "High Fraud Potential Detected"
        if report.isFraudulent
        else "Likely Legitimate Transaction"
    )
    css_class = "fraud" if report.isFraudulent else "legitimate"
    percentage = f"{report.confidenceScore * 100:.0f}"
    return f"""<section class="report {css_class}">
<h3>{verdict}</h3>
<p>Confidence Score: <strong>{percentage}%</strong></p>
<h4>Analysis Breakdown</h4>
<p>{escape(report.reasoning)}</p>
<h4>Recommendation</h4>
<p>{escape(report.recommendation)}</p>
</section>"""


def render_page(state: FormState) -> str:
    """Render the whole page from a single state value."""

    error = ""
    if state.error:
        error = f'<div class="error" role="alert"><strong>Error:</strong> {escape(state.error)}</div>'
    report = ""
    if state.report is not None and not state.loading:
        report = render_report(state.report)
    return PAGE_TEMPLATE.format(form=_render_form(state), error=error, report=report)
