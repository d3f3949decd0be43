"""Unit tests for report payload assembly"""

import pytest
from datetime import date
from decimal import Decimal
from rewards_analytics.domain.exceptions import ValidationError
from rewards_analytics.domain.models import AnalyticsAlert, DateRange, ExportOptions, SpendingTrend
from rewards_analytics.domain.reporting import build_report_payload, to_jsonable
from rewards_analytics.domain.forecasting import generate_forecast, project_cash_flow
from tests.factories import monthly_history

RANGE = DateRange(start_date=date(2026, 9, 1), end_date=date(2026, 9, 30))
AS_OF = date(2026, 10, 18)


def _alert() -> AnalyticsAlert:
    return AnalyticsAlert(
        id="a1",
        type="large_expense",
        severity="high",
        title="Large purchase",
        message="$600.00 spent",
        date=AS_OF,
        scope="transaction:t1",
        action_required=True,
    )


def test_to_jsonable_converts_money_and_dates():
    trend = SpendingTrend(month="2026-09", category="Dining", amount=Decimal("12.50"), percent_change=Decimal("-3.10"))

    assert to_jsonable(trend) == {"month": "2026-09", "category": "Dining", "amount": "12.50", "percent_change": "-3.10"}
    assert to_jsonable({"on": date(2026, 1, 2)}) == {"on": "2026-01-02"}


def test_payload_with_forecast_and_charts():
    forecast = generate_forecast(monthly_history(AS_OF), 3, as_of=AS_OF).forecast
    options = ExportOptions(format="pdf", date_range=RANGE)

    payload = build_report_payload(options, forecast=forecast, cash_flow=project_cash_flow(forecast))

    assert payload["format"] == "pdf"
    assert payload["date_range"]["start_date"] == "2026-09-01"
    assert len(payload["forecast"]) == 3
    assert payload["forecast"][0]["confidence_interval"]["lower"] == "1800.00"
    assert len(payload["cash_flow"]) == 3
    assert "alerts" not in payload
    assert any(c["series"] == "forecast" for c in payload["charts"])


def test_payload_respects_flags():
    options = ExportOptions(
        format="csv", date_range=RANGE, include_charts=False, include_forecasts=False, include_alerts=True
    )

    payload = build_report_payload(options, alerts=[_alert()])

    assert "forecast" not in payload
    assert "cash_flow" not in payload
    assert "charts" not in payload
    assert payload["alerts"][0]["scope"] == "transaction:t1"


def test_unknown_format_rejected():
    with pytest.raises(ValidationError) as exc:
        build_report_payload(ExportOptions(format="docx", date_range=RANGE))
    assert exc.value.field == "format"
