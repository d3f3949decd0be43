"""Financial health indicators derived from recent spending and budgets"""

from datetime import date
from decimal import Decimal
from statistics import mean, pstdev
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from rewards_analytics.domain.models import BudgetVariance, FinancialHealthIndicator, Transaction
from rewards_analytics.utils.date_utils import add_months, month_start

STATUS_SCORES = {"excellent": 100, "good": 75, "fair": 50, "poor": 25}

# Minimum change (in indicator points) before a trend is reported as up/down
TREND_TOLERANCE = 1.0

RECOMMENDATIONS = {
    "Savings Rate": "Spending is close to or above income; review discretionary categories.",
    "Budget Adherence": "Several categories are over budget; adjust limits or cut back.",
    "Spending Stability": "Monthly spend swings widely; plan large purchases as ad-hoc expenses.",
    "Recurring Spend Share": "Recurring charges take a large share of spend; audit subscriptions.",
}


def _months_back(as_of: date, count: int) -> Tuple[date, date]:
    """[start, end) covering the `count` complete months before as_of's month"""
    end = month_start(as_of)
    return add_months(end, -count), end


def _between(transactions: Sequence[Transaction], start: date, end: date) -> List[Transaction]:
    return [t for t in transactions if start <= t.date < end]


def _totals(transactions: Sequence[Transaction]) -> Tuple[Decimal, Decimal]:
    income = sum((t.amount for t in transactions if t.type == "credit"), Decimal("0"))
    spend = sum((t.amount for t in transactions if t.type == "debit"), Decimal("0"))
    return income, spend


def savings_rate(transactions: Sequence[Transaction]) -> float:
    income, spend = _totals(transactions)
    if income == 0:
        return 0.0
    return round(float((income - spend) / income * 100), 2)


def recurring_share(transactions: Sequence[Transaction]) -> float:
    _, spend = _totals(transactions)
    if spend == 0:
        return 0.0
    recurring = sum((t.amount for t in transactions if t.type == "debit" and t.is_recurring), Decimal("0"))
    return round(float(recurring / spend * 100), 2)


def spending_stability(transactions: Sequence[Transaction], as_of: date, months: int = 6) -> Optional[float]:
    """100 minus the coefficient of variation (in %) of monthly spend; None with < 2 months"""
    end = month_start(as_of)
    monthly = []
    for i in range(months, 0, -1):
        start = add_months(end, -i)
        _, spend = _totals(_between(transactions, start, add_months(start, 1)))
        monthly.append(float(spend))
    # ignore leading months before the account had any activity
    while monthly and monthly[0] == 0:
        monthly.pop(0)
    if len(monthly) < 2 or mean(monthly) == 0:
        return None
    cv = pstdev(monthly) / mean(monthly) * 100
    return round(max(0.0, 100 - cv), 2)


def budget_adherence(variances: Sequence[BudgetVariance]) -> Optional[float]:
    if not variances:
        return None
    within = sum(1 for v in variances if v.variance <= 0)
    return round(within / len(variances) * 100, 2)


def _status(value: float, cutoffs: Tuple[float, float, float], higher_is_better: bool = True) -> str:
    excellent, good, fair = cutoffs
    if higher_is_better:
        if value >= excellent:
            return "excellent"
        if value >= good:
            return "good"
        if value >= fair:
            return "fair"
        return "poor"
    if value <= excellent:
        return "excellent"
    if value <= good:
        return "good"
    if value <= fair:
        return "fair"
    return "poor"


def _trend(metric: Callable[[Sequence[Transaction]], float], transactions: Sequence[Transaction], as_of: date) -> str:
    """Compare the metric on the last complete month against the month before"""
    last_start, end = _months_back(as_of, 1)
    prior_start, _ = _months_back(as_of, 2)
    last = metric(_between(transactions, last_start, end))
    prior = metric(_between(transactions, prior_start, last_start))
    if last - prior > TREND_TOLERANCE:
        return "up"
    if prior - last > TREND_TOLERANCE:
        return "down"
    return "stable"


def financial_health(
    transactions: Sequence[Transaction],
    variances: Sequence[BudgetVariance] = (),
    as_of: Optional[date] = None,
) -> Dict[str, object]:
    """
    Score recent financial behaviour.

    Indicators use the three complete months before `as_of` (six for
    stability). Indicators without enough data are omitted. The overall score
    is the mean status score of the indicators present, 0 when none are.
    """
    as_of = as_of or date.today()
    start, end = _months_back(as_of, 3)
    recent = _between(transactions, start, end)
    indicators: List[FinancialHealthIndicator] = []

    if recent:
        rate = savings_rate(recent)
        indicators.append(
            FinancialHealthIndicator(
                name="Savings Rate",
                value=rate,
                status=_status(rate, (20, 10, 0)),
                description="Share of income left after card spending, last 3 months",
                trend=_trend(savings_rate, transactions, as_of),
            )
        )
        share = recurring_share(recent)
        indicators.append(
            FinancialHealthIndicator(
                name="Recurring Spend Share",
                value=share,
                status=_status(share, (20, 35, 50), higher_is_better=False),
                description="Share of spending on recurring charges, last 3 months",
                trend=_trend(recurring_share, transactions, as_of),
            )
        )

    adherence = budget_adherence(variances)
    if adherence is not None:
        indicators.append(
            FinancialHealthIndicator(
                name="Budget Adherence",
                value=adherence,
                status=_status(adherence, (90, 75, 50)),
                description="Share of budgeted categories within budget",
                trend="stable",
            )
        )

    stability = spending_stability(transactions, as_of)
    if stability is not None:
        previous = spending_stability(transactions, add_months(month_start(as_of), -1))
        trend = "stable"
        if previous is not None and abs(stability - previous) > TREND_TOLERANCE:
            trend = "up" if stability > previous else "down"
        indicators.append(
            FinancialHealthIndicator(
                name="Spending Stability",
                value=stability,
                status=_status(stability, (85, 70, 50)),
                description="How steady monthly spending has been, last 6 months",
                trend=trend,
            )
        )

    overall = round(mean(STATUS_SCORES[i.status] for i in indicators), 1) if indicators else 0.0
    recommendations = [RECOMMENDATIONS[i.name] for i in indicators if i.status in ("fair", "poor")]
    return {"indicators": indicators, "overall_score": overall, "recommendations": recommendations}
