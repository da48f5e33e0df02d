from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import List

MONTHS_SHORT = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
DAYS_SHORT = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def day_string(d: date) -> str:
    """Canonical YYYY-MM-DD form of a local calendar date."""
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def parse_day(s: str) -> date:
    return date.fromisoformat(s)


def today() -> date:
    return datetime.now().date()


def add_days(d: date, n: int) -> date:
    return d + timedelta(days=n)


def weekday_of(d: date) -> int:
    # 1=Monday .. 7=Sunday
    return d.isoweekday()


def days_in_range(start: date, end: date) -> List[str]:
    """Day strings from start to end, both inclusive. Empty when end < start."""
    days = []
    current = start
    while current <= end:
        days.append(day_string(current))
        current = current + timedelta(days=1)
    return days


def last_n_days(end: date, n: int) -> List[str]:
    return days_in_range(add_days(end, -(n - 1)), end)


def week_start(d: date) -> date:
    # weeks start on Monday
    return d - timedelta(days=d.isoweekday() - 1)


def month_start(d: date) -> date:
    return date(d.year, d.month, 1)


def year_start(d: date) -> date:
    return date(d.year, 1, 1)


def weeks_in_year(year: int) -> List[List[date]]:
    """Sunday-first week columns covering the whole year, as drawn by the year heatmap.

    The first column starts on the Sunday on/before January 1st; columns keep
    coming until one ends inside the following year.
    """
    weeks = []
    first = date(year, 1, 1)
    current = first - timedelta(days=(first.isoweekday() % 7))
    while current.year <= year:
        week = [current + timedelta(days=i) for i in range(7)]
        weeks.append(week)
        current = current + timedelta(days=7)
    return weeks


def month_short(month: int) -> str:
    return MONTHS_SHORT[month - 1]


def day_short(weekday: int) -> str:
    return DAYS_SHORT[weekday - 1]
