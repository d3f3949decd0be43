"""Report payload assembly from already-computed analytics series"""

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Sequence

from rewards_analytics.domain.exceptions import ValidationError
from rewards_analytics.domain.models import (
    AnalyticsAlert,
    BudgetVariance,
    CashFlowProjection,
    ExportOptions,
    ForecastMonth,
    SpendingTrend,
)

EXPORT_FORMATS = ("pdf", "excel", "csv")


def to_jsonable(value: Any) -> Any:
    """Recursively convert dataclasses, Decimals and dates to JSON-safe values"""
    if is_dataclass(value) and not isinstance(value, type):
        return to_jsonable(asdict(value))
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def _charts(forecast: Sequence[ForecastMonth], include_forecasts: bool) -> list:
    charts = [{"kind": "bar", "title": "Spending by category", "series": "spending_trends"}]
    charts.append({"kind": "bar", "title": "Budget vs actual", "series": "budget_variance"})
    if include_forecasts and forecast:
        charts.append({"kind": "line", "title": "Net income forecast", "series": "forecast"})
        charts.append({"kind": "line", "title": "Cumulative balance", "series": "cash_flow"})
    return charts


def build_report_payload(
    options: ExportOptions,
    trends: Sequence[SpendingTrend] = (),
    variances: Sequence[BudgetVariance] = (),
    forecast: Sequence[ForecastMonth] = (),
    cash_flow: Sequence[CashFlowProjection] = (),
    alerts: Sequence[AnalyticsAlert] = (),
) -> Dict[str, Any]:
    """
    Assemble the document handed to the report renderer.

    Forecast and cash-flow series are only included when requested, alerts
    likewise. Rendering into pdf/excel/csv happens downstream.

    Raises:
        ValidationError: unknown format
    """
    if options.format not in EXPORT_FORMATS:
        raise ValidationError("format", f"must be one of {', '.join(EXPORT_FORMATS)}")

    payload: Dict[str, Any] = {
        "format": options.format,
        "date_range": to_jsonable(options.date_range),
        "spending_trends": to_jsonable(list(trends)),
        "budget_variance": to_jsonable(list(variances)),
    }
    if options.include_forecasts:
        payload["forecast"] = to_jsonable(list(forecast))
        payload["cash_flow"] = to_jsonable(list(cash_flow))
    if options.include_alerts:
        payload["alerts"] = to_jsonable(list(alerts))
    if options.include_charts:
        payload["charts"] = _charts(forecast, options.include_forecasts)
    return payload
