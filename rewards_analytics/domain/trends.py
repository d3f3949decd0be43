"""Spending trends, budget variance, category breakdowns and period comparisons"""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from rewards_analytics.domain.models import (
    BudgetVariance,
    CategoryBreakdown,
    DateRange,
    PeriodComparison,
    SpendingTrend,
    Transaction,
)
from rewards_analytics.utils.date_utils import add_months, month_label, parse_month_label
from rewards_analytics.utils.money import ZERO, percent, to_money

# Relative change between halves of a range below which a category is "stable"
STABLE_BAND_PERCENT = Decimal("5")
TOP_CATEGORY_COUNT = 3


def _spending(transactions: Iterable[Transaction]) -> List[Transaction]:
    return [t for t in transactions if t.type == "debit"]


def monthly_category_totals(transactions: Iterable[Transaction]) -> Dict[Tuple[str, str], Decimal]:
    """Summed spend keyed by (month label, category name)"""
    totals: Dict[Tuple[str, str], Decimal] = defaultdict(lambda: ZERO)
    for txn in _spending(transactions):
        totals[(month_label(txn.date), txn.category.name)] += txn.amount
    return totals


def spending_trends(
    transactions: Sequence[Transaction],
    date_range: DateRange,
    categories: Optional[Iterable[str]] = None,
) -> List[SpendingTrend]:
    """
    Per (month, category) spend inside `date_range` with month-over-month change.

    Each partition is compared with the same category in the preceding
    calendar month. Transactions from that month may sit before the range
    start; they are used only as the comparison base, never reported.
    percent_change is 0 when the prior total is 0.
    """
    wanted = set(categories) if categories else None
    totals = monthly_category_totals(transactions)

    in_range = {
        (month_label(t.date), t.category.name)
        for t in _spending(transactions)
        if date_range.contains(t.date) and (wanted is None or t.category.name in wanted)
    }
    # only the in-range portion of each month counts toward its reported amount
    range_totals = monthly_category_totals(t for t in transactions if date_range.contains(t.date))

    trends = []
    for month, category in sorted(in_range):
        previous_month = month_label(add_months(parse_month_label(month), -1))
        current = range_totals[(month, category)]
        previous = totals.get((previous_month, category), ZERO)
        trends.append(
            SpendingTrend(
                month=month,
                category=category,
                amount=to_money(current),
                percent_change=percent(current - previous, previous),
            )
        )
    return trends


def summarize_trends(trends: Sequence[SpendingTrend]) -> Dict[str, Decimal]:
    total = sum((t.amount for t in trends), ZERO)
    months = {t.month for t in trends}
    return {
        "total_spending": to_money(total),
        "average_monthly": to_money(total / len(months)) if months else ZERO,
    }


def budget_variance(
    transactions: Sequence[Transaction],
    date_range: DateRange,
    budgets: Mapping[str, Decimal],
) -> List[BudgetVariance]:
    """
    Actual vs budgeted spend for each budgeted category.

    Categories without a configured budget are left out rather than
    compared against a zero budget.
    """
    actuals: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for txn in _spending(transactions):
        if date_range.contains(txn.date) and txn.category.name in budgets:
            actuals[txn.category.name] += txn.amount

    variances = []
    for category in sorted(budgets):
        budgeted = to_money(budgets[category])
        actual = to_money(actuals[category])
        variance = actual - budgeted
        variances.append(
            BudgetVariance(
                category=category,
                budgeted=budgeted,
                actual=actual,
                variance=variance,
                percent_variance=percent(variance, budgeted),
            )
        )
    return variances


def summarize_variance(variances: Sequence[BudgetVariance]) -> Dict[str, object]:
    return {
        "overall_variance": sum((v.variance for v in variances), ZERO),
        "categories_over_budget": sum(1 for v in variances if v.variance > 0),
    }


def _direction(first: Decimal, second: Decimal) -> str:
    if first == 0:
        return "up" if second > 0 else "stable"
    change = percent(second - first, first)
    if change > STABLE_BAND_PERCENT:
        return "up"
    if change < -STABLE_BAND_PERCENT:
        return "down"
    return "stable"


def category_analysis(transactions: Sequence[Transaction], date_range: DateRange) -> Dict[str, object]:
    """Share of spend per category with a first-half vs second-half trend"""
    spend = [t for t in _spending(transactions) if date_range.contains(t.date)]
    midpoint = date_range.start_date + (date_range.end_date - date_range.start_date) / 2

    amounts: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    halves: Dict[str, List[Decimal]] = defaultdict(lambda: [ZERO, ZERO])
    counts: Dict[str, int] = defaultdict(int)
    for txn in spend:
        name = txn.category.name
        amounts[name] += txn.amount
        counts[name] += 1
        halves[name][0 if txn.date <= midpoint else 1] += txn.amount

    total = sum(amounts.values(), ZERO)
    breakdown = [
        CategoryBreakdown(
            name=name,
            amount=to_money(amount),
            percentage=percent(amount, total),
            trend=_direction(*halves[name]),
            transactions=counts[name],
        )
        for name, amount in sorted(amounts.items(), key=lambda item: item[1], reverse=True)
    ]
    return {
        "categories": breakdown,
        "top_categories": [c.name for c in breakdown[:TOP_CATEGORY_COUNT]],
        "growing_categories": [c.name for c in breakdown if c.trend == "up"],
    }


def _totals(transactions: Iterable[Transaction], date_range: DateRange) -> Tuple[Decimal, Decimal]:
    """(income, expenses) inside the range"""
    income = expenses = ZERO
    for txn in transactions:
        if not date_range.contains(txn.date):
            continue
        if txn.type == "credit":
            income += txn.amount
        elif txn.type == "debit":
            expenses += txn.amount
    return to_money(income), to_money(expenses)


def _period_label(date_range: DateRange) -> str:
    return date_range.label or f"{date_range.start_date.isoformat()} to {date_range.end_date.isoformat()}"


def _comparison_insights(comparison: Sequence[PeriodComparison]) -> List[str]:
    if len(comparison) < 2:
        return []
    insights = []
    first, last = comparison[0], comparison[-1]
    if first.expenses > 0:
        change = percent(last.expenses - first.expenses, first.expenses)
        if change > STABLE_BAND_PERCENT:
            insights.append(f"Spending rose {change}% from {first.period} to {last.period}.")
        elif change < -STABLE_BAND_PERCENT:
            insights.append(f"Spending fell {-change}% from {first.period} to {last.period}.")
        else:
            insights.append(f"Spending held steady from {first.period} to {last.period}.")
    highest = max(comparison, key=lambda c: c.expenses)
    if highest.expenses > 0:
        insights.append(f"Highest spending was in {highest.period} (${highest.expenses}).")
    short = [c.period for c in comparison if c.net_income < 0]
    if short:
        insights.append(f"Spending exceeded income in {', '.join(short)}.")
    return insights


def comparative_analysis(transactions: Sequence[Transaction], ranges: Sequence[DateRange]) -> Dict[str, object]:
    """
    Income, spend, net income and top categories for each range, in the
    order given, plus plain-language insights across them.

    growth_rate is the percent change in expenses from the previous range;
    0 for the first range or when the previous range had no spend.
    """
    comparison = []
    previous: Optional[Decimal] = None
    for date_range in ranges:
        income, expenses = _totals(transactions, date_range)
        comparison.append(
            PeriodComparison(
                period=_period_label(date_range),
                income=income,
                expenses=expenses,
                net_income=income - expenses,
                top_categories=category_analysis(transactions, date_range)["top_categories"],
                growth_rate=percent(expenses - previous, previous) if previous is not None else ZERO,
            )
        )
        previous = expenses
    return {"comparison": comparison, "insights": _comparison_insights(comparison)}
