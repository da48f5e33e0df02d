from __future__ import annotations

from datetime import date
from typing import Dict, List, Literal, Sequence, Tuple, get_args

from .dates import day_string, days_in_range, last_n_days, month_start, week_start, year_start
from .ledger import CompletionLedger
from .scheduling import due_routines, get_expected_count, get_max_count, is_fully_completed
from .schemas import TodayStats

WINDOW_DAYS = {"week": 7, "month": 30, "year": 365}
# rolling windows end today; the *-to-date ones start at the first day of the current period
Window = Literal["week", "month", "year", "wtd", "mtd", "ytd"]
WINDOWS = get_args(Window)
PERIOD_STARTS = {"wtd": week_start, "mtd": month_start, "ytd": year_start}

DEFAULT_STREAK_LOOKBACK = 400


def _totals(routines: Sequence, ledger: CompletionLedger, day: str) -> Tuple[List, int, int]:
    due = due_routines(routines, day, ledger)
    expected = 0
    completed = 0
    for r in due:
        max_count = get_max_count(r)
        expected += max_count
        completed += min(ledger.count(r.id, day), max_count)
    return due, expected, completed


def daily_ratio(routines: Sequence, ledger: CompletionLedger, day: str) -> float:
    """Unrounded completion percentage for a day; 0.0 when nothing is due."""
    _, expected, completed = _totals(routines, ledger, day)
    if expected <= 0:
        return 0.0
    return completed / expected * 100


def _percent(completed: int, expected: int) -> int:
    if expected <= 0:
        return 0
    # round half up
    return (200 * completed + expected) // (2 * expected)


def daily_percentage(routines: Sequence, ledger: CompletionLedger, day: str) -> int:
    _, expected, completed = _totals(routines, ledger, day)
    return _percent(completed, expected)


def day_stats(routines: Sequence, ledger: CompletionLedger, day: str) -> TodayStats:
    due, expected, completed = _totals(routines, ledger, day)
    return TodayStats(
        total=len(due),
        completed=sum(1 for r in due if is_fully_completed(r, day, ledger)),
        percentage=_percent(completed, expected),
    )


def today_stats(routines: Sequence, ledger: CompletionLedger, today: date) -> TodayStats:
    return day_stats(routines, ledger, day_string(today))


def streak(
    routines: Sequence,
    ledger: CompletionLedger,
    today: date,
    max_days: int = DEFAULT_STREAK_LOOKBACK,
) -> int:
    """Consecutive fully completed days, walking back from today.

    Days with nothing due are skipped. An incomplete today does not break the
    streak since the day is still in progress; any earlier incomplete day does.
    """
    if not routines:
        return 0

    today_s = day_string(today)
    current = 0
    for day in reversed(last_n_days(today, max_days)):
        due = due_routines(routines, day, ledger)
        if not due:
            continue
        if all(is_fully_completed(r, day, ledger) for r in due):
            current += 1
            continue
        if day == today_s:
            continue
        break
    return current


def window_days(window: str, today: date) -> List[str]:
    if window not in WINDOWS:
        raise ValueError(f"unknown window: {window}")
    if window in PERIOD_STARTS:
        return days_in_range(PERIOD_STARTS[window](today), today)
    return last_n_days(today, WINDOW_DAYS[window])


def percentage_map(routines: Sequence, ledger: CompletionLedger, window: str, today: date) -> Dict[str, float]:
    return {day: daily_ratio(routines, ledger, day) for day in window_days(window, today)}


def routine_heatmap(
    routines: Sequence,
    ledger: CompletionLedger,
    window: str,
    today: date,
) -> Dict[str, Dict[str, dict]]:
    days = window_days(window, today)
    return {
        r.id: {
            day: {"count": ledger.count(r.id, day), "expected": get_expected_count(r.frequency, day)}
            for day in days
        }
        for r in routines
    }
