"""Due-date rules for routines.

Every function here is total: an unrecognised frequency variant is never due,
has a max count of 1, an expected count of 0 and no next due day.
"""
from __future__ import annotations

from datetime import date
from typing import Iterable, List, NamedTuple, Optional, Sequence

from .dates import add_days, day_string, parse_day, weekday_of
from .ledger import CompletionLedger


def _kind(frequency) -> Optional[str]:
    return getattr(frequency, "type", None)


def first_preferred_on_or_after(start: date, preferred_days: Sequence[int]) -> Optional[date]:
    for i in range(7):
        d = add_days(start, i)
        if weekday_of(d) in preferred_days:
            return d
    return None


def _interval_due(routine, target: date, ledger: CompletionLedger) -> bool:
    last = ledger.last_completed_day(routine.id)
    if last is None:
        return True

    earliest = add_days(parse_day(last), routine.frequency.days)
    if target < earliest:
        return False

    preferred = routine.preferred_days
    if not preferred or weekday_of(target) in preferred:
        return True

    # once the preferred slot has passed, stay due every day until completed
    slot = first_preferred_on_or_after(earliest, preferred)
    return slot is None or target > slot


def is_due(routine, day: str, ledger: CompletionLedger) -> bool:
    if routine.paused:
        return False

    kind = _kind(routine.frequency)
    if kind in ("daily", "weekly"):
        return True
    if kind == "weekdays":
        return weekday_of(parse_day(day)) in routine.frequency.days
    if kind == "interval":
        return _interval_due(routine, parse_day(day), ledger)
    return False


def get_max_count(routine) -> int:
    if _kind(routine.frequency) == "daily":
        return routine.frequency.times_per_day
    return 1


def get_expected_count(frequency, day: str) -> float:
    kind = _kind(frequency)
    if kind == "daily":
        return frequency.times_per_day
    if kind == "weekly":
        return frequency.times_per_week / 7
    if kind == "weekdays":
        return 1 if weekday_of(parse_day(day)) in frequency.days else 0
    if kind == "interval":
        return 1 / frequency.days
    return 0


def is_fully_completed(routine, day: str, ledger: CompletionLedger) -> bool:
    return ledger.count(routine.id, day) >= get_max_count(routine)


def due_routines(routines: Iterable, day: str, ledger: CompletionLedger) -> List:
    return [r for r in routines if is_due(r, day, ledger)]


class NextDue(NamedTuple):
    day: Optional[str]
    urgent: bool


def next_due(routine, ledger: CompletionLedger, today: date) -> NextDue:
    """When a routine next needs doing, seen from `today`.

    Daily and weekly routines are always open today (only daily ones are
    urgent). Weekday routines roll over to the next listed weekday. Interval
    routines become due on the first preferred day on/after the earliest day,
    and stay due from then on; a far-off slot is still urgent when the earliest
    day is within three days.
    """
    if routine.paused:
        return NextDue(None, False)

    kind = _kind(routine.frequency)
    if kind == "daily":
        return NextDue(day_string(today), True)
    if kind == "weekly":
        return NextDue(day_string(today), False)
    if kind == "weekdays":
        d = first_preferred_on_or_after(today, routine.frequency.days)
        if d is None:
            return NextDue(None, False)
        return NextDue(day_string(d), d == today)
    if kind == "interval":
        last = ledger.last_completed_day(routine.id)
        if last is None:
            return NextDue(day_string(today), True)
        earliest = add_days(parse_day(last), routine.frequency.days)
        visible = earliest
        if routine.preferred_days:
            visible = first_preferred_on_or_after(earliest, routine.preferred_days) or earliest
        if today >= visible:
            return NextDue(day_string(today), True)
        days_until = (visible - today).days
        urgent = days_until >= 7 and (earliest - today).days <= 3
        return NextDue(day_string(visible), urgent)
    return NextDue(None, False)
