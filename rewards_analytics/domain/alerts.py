"""Alert engine - derives notifications from trends, budgets, expenses and forecasts"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence

from rewards_analytics.domain.models import (
    AdhocExpense,
    AlertThresholds,
    AnalyticsAlert,
    BudgetVariance,
    ForecastMonth,
    SpendingTrend,
    Transaction,
)
from rewards_analytics.utils.date_utils import month_label
from rewards_analytics.utils.money import ZERO, percent, to_money

HUNDRED = Decimal("100")

# Fixed namespace so the same (type, scope, bucket) always maps to the same id
ALERT_NAMESPACE = uuid.UUID("6f1c1c52-3a8e-4d5b-9a43-0c8f2b7e5d11")


def alert_id(alert_type: str, scope: str, bucket: str, owner: str = "") -> str:
    """Deterministic id for a deduplication key"""
    return str(uuid.uuid5(ALERT_NAMESPACE, f"{owner}|{alert_type}|{scope}|{bucket}"))


class _AlertCollector:
    """Accumulates alerts, keeping the first alert per (type, scope) in a run"""

    def __init__(self, as_of: date, owner: str = ""):
        self.as_of = as_of
        self.owner = owner
        self.bucket = month_label(as_of)
        self._alerts: Dict[str, AnalyticsAlert] = {}

    def add(self, alert_type: str, scope: str, severity: str, title: str, message: str, action_required: bool) -> None:
        key = alert_id(alert_type, scope, self.bucket, self.owner)
        if key in self._alerts:
            return
        self._alerts[key] = AnalyticsAlert(
            id=key,
            type=alert_type,
            severity=severity,
            title=title,
            message=message,
            date=self.as_of,
            scope=scope,
            action_required=action_required,
        )

    def results(self) -> List[AnalyticsAlert]:
        return list(self._alerts.values())


def _spending_pattern(collector: _AlertCollector, trends: Sequence[SpendingTrend], thresholds: AlertThresholds) -> None:
    # month-over-month shifts only matter for each category's latest month
    latest: Dict[str, SpendingTrend] = {}
    for trend in trends:
        if trend.category not in latest or trend.month > latest[trend.category].month:
            latest[trend.category] = trend

    limit = thresholds.spending_pattern_percent
    for category, trend in sorted(latest.items()):
        if trend.percent_change <= limit:
            continue
        severity = "high" if trend.percent_change > 2 * limit else "medium"
        collector.add(
            "spending_pattern",
            category,
            severity,
            f"{category} spending up {trend.percent_change}%",
            f"{category} spending reached ${trend.amount} in {trend.month}, "
            f"{trend.percent_change}% more than the previous month.",
            action_required=False,
        )


def _budget_overrun(collector: _AlertCollector, variances: Sequence[BudgetVariance], thresholds: AlertThresholds) -> None:
    for v in variances:
        if v.budgeted <= 0:
            continue
        consumed = to_money(v.actual / v.budgeted * 100)
        if consumed < thresholds.budget_overrun_percent:
            continue
        if v.variance > 0:
            collector.add(
                "budget_overrun",
                v.category,
                "high",
                f"{v.category} over budget",
                f"You have spent ${v.actual} of a ${v.budgeted} {v.category} budget (${v.variance} over).",
                action_required=True,
            )
        else:
            collector.add(
                "budget_overrun",
                v.category,
                "medium",
                f"{v.category} budget {consumed}% used",
                f"You have spent ${v.actual} of a ${v.budgeted} {v.category} budget.",
                action_required=False,
            )


def _large_expenses(
    collector: _AlertCollector,
    transactions: Sequence[Transaction],
    adhoc_expenses: Sequence[AdhocExpense],
    thresholds: AlertThresholds,
) -> None:
    limit = thresholds.large_expense_amount
    for txn in transactions:
        if txn.type == "debit" and txn.amount >= limit:
            collector.add(
                "large_expense",
                f"transaction:{txn.id}",
                "high",
                f"Large purchase at {txn.merchant_name}",
                f"${txn.amount} spent at {txn.merchant_name} on {txn.date.isoformat()} ({txn.category.name}).",
                action_required=True,
            )
    for expense in adhoc_expenses:
        if expense.amount >= limit:
            when = (
                f"{expense.frequency} from {expense.date.isoformat()}"
                if expense.is_recurring
                else f"for {expense.date.isoformat()}"
            )
            collector.add(
                "large_expense",
                f"adhoc:{expense.id}",
                "high",
                f"Large planned expense: {expense.title}",
                f"${expense.amount} planned {when} ({expense.category}).",
                action_required=True,
            )


def _deviation_percent(realized: Decimal, projected: Decimal) -> Decimal:
    if projected == 0:
        return ZERO if realized == 0 else HUNDRED
    return percent(abs(realized - projected), abs(projected))


def _forecast_deviation(
    collector: _AlertCollector,
    forecast: Sequence[ForecastMonth],
    realized_net_income: Mapping[str, Decimal],
    thresholds: AlertThresholds,
) -> None:
    by_month = {m.month: m for m in forecast}
    for month, realized in sorted(realized_net_income.items()):
        projected = by_month.get(month)
        if projected is None:
            continue
        band = projected.confidence_interval
        if band.lower <= realized <= band.upper:
            continue
        deviation = _deviation_percent(realized, projected.net_income)
        if deviation < thresholds.forecast_deviation_percent:
            continue
        collector.add(
            "forecast_deviation",
            month,
            "high",
            f"Forecast missed for {month}",
            f"Actual net income ${realized} fell outside the forecast range "
            f"${band.lower} to ${band.upper} ({deviation}% off). The forecast needs recalibrating.",
            action_required=True,
        )


def evaluate_alerts(
    trends: Sequence[SpendingTrend],
    variances: Sequence[BudgetVariance],
    forecast: Sequence[ForecastMonth],
    thresholds: Optional[AlertThresholds] = None,
    transactions: Sequence[Transaction] = (),
    adhoc_expenses: Sequence[AdhocExpense] = (),
    realized_net_income: Optional[Mapping[str, Decimal]] = None,
    as_of: Optional[date] = None,
    owner: str = "",
) -> List[AnalyticsAlert]:
    """
    Run every alert rule against one evaluation snapshot.

    Rules:
    - spending_pattern: latest month-over-month category increase above the
      threshold (medium), or above twice the threshold (high)
    - budget_overrun: budget consumption at or above the threshold; high and
      action required once the budget is exceeded
    - large_expense: any debit or planned expense at or above the amount
    - forecast_deviation: realized net income outside a forecast month's band
      and off the projected net income by at least the deviation percent

    Alerts are keyed by (type, scope, month of as_of), so a run emits at most
    one alert per key and re-runs in the same month reproduce the same ids.
    `owner` (the user id) is folded into the id so users never share alerts.
    """
    thresholds = thresholds or AlertThresholds()
    collector = _AlertCollector(as_of or date.today(), owner)

    _spending_pattern(collector, trends, thresholds)
    _budget_overrun(collector, variances, thresholds)
    _large_expenses(collector, transactions, adhoc_expenses, thresholds)
    if realized_net_income:
        _forecast_deviation(collector, forecast, realized_net_income, thresholds)

    return collector.results()
