"""Ad-hoc expense planning: validation and monthly impact of planned expenses"""

from dataclasses import asdict
from datetime import date, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List

from rewards_analytics.domain.exceptions import ValidationError
from rewards_analytics.domain.models import AdhocExpense, FREQUENCIES
from rewards_analytics.utils.date_utils import add_months, month_end, month_label, month_start, months_between
from rewards_analytics.utils.money import ZERO, to_money

# Months between occurrences; weekly is handled as a 7-day step
FREQUENCY_MONTHS = {"monthly": 1, "quarterly": 3, "yearly": 12}

OCCURRENCES_PER_YEAR = {"weekly": 52, "monthly": 12, "quarterly": 4, "yearly": 1}


def _parse_date(value: Any, field: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise ValidationError(field, "must be an ISO date (YYYY-MM-DD)") from e


def validate_adhoc_expense(data: Dict[str, Any]) -> AdhocExpense:
    """
    Build a validated AdhocExpense from raw field values.

    Rules:
    - title, amount and date are required; amount must be > 0
    - frequency is required when is_recurring, and must be a known cadence
    - end_date, when given, must not precede date
    - one-off expenses carry neither frequency nor end_date

    Raises:
        ValidationError: naming the first offending field
    """
    title = (data.get("title") or "").strip()
    if not title:
        raise ValidationError("title", "is required")

    raw_amount = data.get("amount")
    if raw_amount is None or raw_amount == "":
        raise ValidationError("amount", "is required")
    try:
        amount = to_money(raw_amount)
        if not amount.is_finite():
            raise ValidationError("amount", "must be a finite number")
    except (InvalidOperation, ValueError) as e:
        raise ValidationError("amount", "must be a number") from e
    if amount <= 0:
        raise ValidationError("amount", "must be greater than zero")

    if not data.get("date"):
        raise ValidationError("date", "is required")
    occurs_on = _parse_date(data["date"], "date")

    is_recurring = bool(data.get("is_recurring", False))
    frequency = data.get("frequency") if is_recurring else None
    end_date = None
    if is_recurring:
        if not frequency:
            raise ValidationError("frequency", "is required for recurring expenses")
        if frequency not in FREQUENCIES:
            raise ValidationError("frequency", f"must be one of {', '.join(FREQUENCIES)}")
        if data.get("end_date"):
            end_date = _parse_date(data["end_date"], "end_date")
            if end_date < occurs_on:
                raise ValidationError("end_date", "must be on or after date")

    return AdhocExpense(
        id=data.get("id"),
        title=title,
        amount=amount,
        date=occurs_on,
        category=data.get("category") or "Other",
        is_recurring=is_recurring,
        frequency=frequency,
        end_date=end_date,
        description=data.get("description"),
    )


def apply_patch(expense: AdhocExpense, patch: Dict[str, Any]) -> AdhocExpense:
    """Merge a partial update into an expense and re-validate the result"""
    merged = asdict(expense)
    merged.update({k: v for k, v in patch.items() if k != "id"})
    return validate_adhoc_expense(merged)


def occurrences(expense: AdhocExpense, start: date, end: date) -> List[date]:
    """Dates in [start, end] on which the expense falls due"""
    if not expense.is_recurring:
        return [expense.date] if start <= expense.date <= end else []

    last = min(end, expense.end_date) if expense.end_date else end
    dates = []

    if expense.frequency == "weekly":
        current = expense.date
        if current < start:
            # jump to the first weekly occurrence on or after start
            weeks = -(-(start - current).days // 7)
            current = current + timedelta(weeks=weeks)
        while current <= last:
            dates.append(current)
            current += timedelta(weeks=1)
        return dates

    step = FREQUENCY_MONTHS[expense.frequency]
    n = 0
    while True:
        # always offset from the anchor so a 31st anchor is not eroded by short months
        current = add_months(expense.date, n * step)
        if current > last:
            break
        if current >= start:
            dates.append(current)
        n += 1
    return dates


def is_active_from(expense: AdhocExpense, day: date) -> bool:
    """True when the expense still falls due on or after `day`"""
    if expense.date >= day:
        return True
    if not expense.is_recurring:
        return False
    # the next occurrence is at most one cadence step away
    horizon = add_months(day, FREQUENCY_MONTHS.get(expense.frequency, 1))
    return bool(occurrences(expense, day, horizon))


def _weekly_share(expense: AdhocExpense, first: date) -> Decimal:
    """
    Weekly cost booked to the month starting at `first`.

    Each active month carries amount x 52 / 12. Rounding is done on the
    running total from the anchor month, so any twelve consecutive active
    months add up to exactly amount x 52.
    """
    anchor = month_start(expense.date)
    if first < anchor:
        return ZERO
    if expense.end_date and first > month_start(expense.end_date):
        return ZERO
    per_year = expense.amount * OCCURRENCES_PER_YEAR["weekly"]
    elapsed = months_between(anchor, first)
    return to_money(per_year * (elapsed + 1) / 12) - to_money(per_year * elapsed / 12)


def impact_for_month(expense: AdhocExpense, month_index: int, horizon_start: date) -> Decimal:
    """Amount the expense adds to month `month_index` of a horizon starting at `horizon_start`"""
    first = add_months(month_start(horizon_start), month_index)
    if expense.is_recurring and expense.frequency == "weekly":
        return _weekly_share(expense, first)
    hits = occurrences(expense, first, month_end(first))
    return to_money(expense.amount * len(hits))


def monthly_impacts(expenses: Iterable[AdhocExpense], period: int, horizon_start: date) -> List[Decimal]:
    """Total ad-hoc impact for each month of the horizon"""
    totals = [ZERO] * period
    for expense in expenses:
        for i in range(period):
            totals[i] += impact_for_month(expense, i, horizon_start)
    return totals


def expense_impact(expense: AdhocExpense, months: int, horizon_start: date) -> Dict[str, Any]:
    """Per-month breakdown of one expense over a horizon"""
    impacts = [impact_for_month(expense, i, horizon_start) for i in range(months)]
    first = month_start(horizon_start)
    return {
        "monthly_impact": impacts,
        "total_impact": sum(impacts, ZERO),
        "affected_months": [
            month_label(add_months(first, i)) for i, amount in enumerate(impacts) if amount > 0
        ],
    }


def annualized_impact(expense: AdhocExpense) -> Decimal:
    """Yearly cost: amount x occurrences per year (one-off expenses count once)"""
    if not expense.is_recurring:
        return expense.amount
    return to_money(expense.amount * OCCURRENCES_PER_YEAR[expense.frequency])


def total_planned(expenses: Iterable[AdhocExpense]) -> Decimal:
    return sum((annualized_impact(e) for e in expenses), ZERO)


def upcoming(expenses: Iterable[AdhocExpense], today: date, limit: int = 5) -> List[AdhocExpense]:
    """Next expenses dated after today, soonest first"""
    future = [e for e in expenses if e.date > today]
    return sorted(future, key=lambda e: e.date)[:limit]
