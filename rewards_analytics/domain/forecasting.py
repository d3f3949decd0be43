"""Forecast engine - multi-month income/expense projections with confidence bands"""

import math
import random
from collections import defaultdict
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from rewards_analytics.domain.adhoc import monthly_impacts
from rewards_analytics.domain.exceptions import ValidationError
from rewards_analytics.domain.models import (
    AdhocExpense,
    CashFlowProjection,
    ConfidenceInterval,
    FORECAST_PERIODS,
    ForecastConfig,
    ForecastMonth,
    ForecastResult,
    ManualAdjustments,
    Transaction,
)
from rewards_analytics.utils.date_utils import add_months, month_label, month_start, months_between, parse_month_label
from rewards_analytics.utils.money import ZERO, to_decimal, to_money


def compute_baselines(
    transactions: Iterable[Transaction],
    as_of: date,
    window_months: int,
) -> Tuple[Decimal, Decimal, float]:
    """
    Trailing-window monthly means of income (credits) and expenses (debits).

    The window is the `window_months` complete calendar months before the
    month containing `as_of`. The mean divides by the months from the first
    month with any activity to the end of the window, so a user with two
    months of history is not averaged over six.

    Returns: (baseline_income, baseline_expenses, coverage) where coverage is
    the observed share of the window in [0, 1].
    """
    window_end = month_start(as_of)
    window_start = add_months(window_end, -window_months)

    income_by_month: Dict[str, Decimal] = defaultdict(Decimal)
    spend_by_month: Dict[str, Decimal] = defaultdict(Decimal)
    first_seen: Optional[date] = None

    for txn in transactions:
        if not (window_start <= txn.date < window_end):
            continue
        label = month_label(txn.date)
        if txn.type == "credit":
            income_by_month[label] += txn.amount
        else:
            spend_by_month[label] += txn.amount
        first = month_start(txn.date)
        if first_seen is None or first < first_seen:
            first_seen = first

    if first_seen is None:
        return ZERO, ZERO, 0.0

    observed = months_between(first_seen, window_end)
    baseline_income = to_money(sum(income_by_month.values(), ZERO) / observed)
    baseline_expenses = to_money(sum(spend_by_month.values(), ZERO) / observed)
    return baseline_income, baseline_expenses, observed / window_months


def seasonal_factor(month_index: int, amplitude: float) -> Decimal:
    """1 + amplitude * sin(2*pi*i/12), a 12-month cycle centred at 1.0"""
    value = 1 + amplitude * math.sin(2 * math.pi * month_index / 12)
    return Decimal(str(round(value, 4)))


def confidence_spread(month_index: int, config: ForecastConfig) -> Decimal:
    """Relative half-width of the band; grows linearly with distance"""
    spread = config.confidence_base_spread + config.confidence_spread_growth * month_index
    return Decimal(str(round(spread, 6)))


def forecast_accuracy(period: int, coverage: float, config: ForecastConfig) -> float:
    """Single accuracy score for a run; longer horizons always score lower"""
    score = (config.accuracy_base - config.accuracy_decay * (period - 1)) * coverage
    return round(min(max(score, 0.0), 1.0), 4)


def _validate_inputs(period: int, adjustments: ManualAdjustments, config: ForecastConfig) -> float:
    if period not in FORECAST_PERIODS:
        raise ValidationError("period", f"must be one of {', '.join(map(str, FORECAST_PERIODS))}")
    if adjustments.income_multiplier <= 0:
        raise ValidationError("income_multiplier", "must be greater than zero")
    if adjustments.expense_multiplier <= 0:
        raise ValidationError("expense_multiplier", "must be greater than zero")
    amplitude = config.seasonal_amplitude + float(adjustments.seasonal_adjustment)
    if not -1 < amplitude < 1:
        raise ValidationError("seasonal_adjustment", "effective seasonal amplitude must be between -1 and 1")
    return amplitude


def generate_forecast(
    transactions: Sequence[Transaction],
    period: int,
    include_adhoc_expenses: bool = True,
    adhoc_expenses: Sequence[AdhocExpense] = (),
    manual_adjustments: Optional[ManualAdjustments] = None,
    config: Optional[ForecastConfig] = None,
    as_of: Optional[date] = None,
    rng: Optional[random.Random] = None,
) -> ForecastResult:
    """
    Project income, expenses and net income for `period` months from the current month.

    Per month i (0 = month of `as_of`):
    - seasonal_factor = 1 + (A + seasonal_adjustment) * sin(2*pi*i/12)
    - projected_income = baseline_income * factor * income_multiplier
    - projected_expenses = baseline_expenses * factor * expense_multiplier (+ ad-hoc impact)
    - confidence band = net_income +/- spread(i) * (adjusted income + adjusted expenses)

    The band half-width uses one scale for the whole run, so its width never
    shrinks as i grows. Adjustments are applied to the baseline on every call
    and never compound. Empty history yields an all-zero series with
    accuracy 0 instead of an error.

    Raises:
        ValidationError: unsupported period, non-positive multiplier, or a
            seasonal amplitude that would make a factor non-positive
    """
    config = config or ForecastConfig()
    adjustments = manual_adjustments or ManualAdjustments()
    as_of = as_of or date.today()
    amplitude = _validate_inputs(period, adjustments, config)

    baseline_income, baseline_expenses, coverage = compute_baselines(
        transactions, as_of, config.baseline_window_months
    )

    if rng is not None and config.noise_pct > 0:
        baseline_income = to_money(baseline_income * to_decimal(1 + rng.uniform(-config.noise_pct, config.noise_pct)))
        baseline_expenses = to_money(baseline_expenses * to_decimal(1 + rng.uniform(-config.noise_pct, config.noise_pct)))

    income_multiplier = to_decimal(adjustments.income_multiplier)
    expense_multiplier = to_decimal(adjustments.expense_multiplier)
    adjusted_income = baseline_income * income_multiplier
    adjusted_expenses = baseline_expenses * expense_multiplier
    band_scale = adjusted_income + adjusted_expenses

    horizon_start = month_start(as_of)
    adhoc = (
        monthly_impacts(adhoc_expenses, period, horizon_start)
        if include_adhoc_expenses
        else [ZERO] * period
    )

    months: List[ForecastMonth] = []
    for i in range(period):
        factor = seasonal_factor(i, amplitude)
        income = to_money(adjusted_income * factor)
        expenses = to_money(adjusted_expenses * factor + adhoc[i])
        net = income - expenses
        half_width = to_money(band_scale * confidence_spread(i, config))

        months.append(
            ForecastMonth(
                month=month_label(add_months(horizon_start, i)),
                projected_income=income,
                projected_expenses=expenses,
                net_income=net,
                confidence_interval=ConfidenceInterval(lower=net - half_width, upper=net + half_width),
                seasonal_factor=factor,
            )
        )

    return ForecastResult(
        forecast=months,
        accuracy=forecast_accuracy(period, coverage, config),
        baseline_income=baseline_income,
        baseline_expenses=baseline_expenses,
        last_updated=datetime.now(timezone.utc),
    )


def project_cash_flow(forecast: Sequence[ForecastMonth], opening_balance: Decimal = ZERO) -> List[CashFlowProjection]:
    """Month-by-month inflow/outflow with a running balance seeded by `opening_balance`"""
    balance = to_money(opening_balance)
    projections = []
    for month in forecast:
        net_flow = month.projected_income - month.projected_expenses
        balance += net_flow
        projections.append(
            CashFlowProjection(
                date=parse_month_label(month.month),
                inflow=month.projected_income,
                outflow=month.projected_expenses,
                net_flow=net_flow,
                cumulative_balance=balance,
            )
        )
    return projections


def summarize_cash_flow(projections: Sequence[CashFlowProjection]) -> Dict[str, Decimal]:
    if not projections:
        return {"minimum_balance": ZERO, "maximum_balance": ZERO, "average_monthly_flow": ZERO}
    balances = [p.cumulative_balance for p in projections]
    return {
        "minimum_balance": min(balances),
        "maximum_balance": max(balances),
        "average_monthly_flow": to_money(sum((p.net_flow for p in projections), ZERO) / len(projections)),
    }


def realized_net_income(transactions: Iterable[Transaction], months: Iterable[str]) -> Dict[str, Decimal]:
    """Actual credits minus debits for each requested month label"""
    wanted = set(months)
    totals: Dict[str, Decimal] = {label: ZERO for label in wanted}
    for txn in transactions:
        label = month_label(txn.date)
        if label not in wanted:
            continue
        totals[label] += txn.amount if txn.type == "credit" else -txn.amount
    return totals
