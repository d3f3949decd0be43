"""Date manipulation utilities"""

import calendar
from datetime import date


def month_start(day: date) -> date:
    """First day of the month containing `day`"""
    return day.replace(day=1)


def month_end(day: date) -> date:
    """Last day of the month containing `day`"""
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def add_months(day: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month's length"""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    last_day = calendar.monthrange(year, month + 1)[1]
    return date(year, month + 1, min(day.day, last_day))


def month_label(day: date) -> str:
    """ISO month label, e.g. 2026-10"""
    return f"{day.year:04d}-{day.month:02d}"


def parse_month_label(label: str) -> date:
    """First day of the month named by an ISO month label"""
    year, month = label.split("-")
    return date(int(year), int(month), 1)


def months_between(start: date, end: date) -> int:
    """Number of calendar months from start's month to end's month"""
    return (end.year - start.year) * 12 + (end.month - start.month)
