from __future__ import annotations

from datetime import datetime, time
from typing import List, Sequence

from .schemas import ReminderOut

APP_TITLE = "Habit Hamster"
STREAK_CHECK_AT = time(20, 0)


def _at(now: datetime, hhmm: str) -> datetime:
    h, m = (int(p) for p in hhmm.split(":"))
    return now.replace(hour=h, minute=m, second=0, microsecond=0)


def build_reminders(routines: Sequence, now: datetime, total_due: int, completed: int) -> List[ReminderOut]:
    """Today's pending reminders: one per routine start time still ahead of `now`,
    plus an evening nudge while due routines remain open."""
    out = []
    for r in routines:
        if r.paused or r.time_range is None:
            continue
        fire_at = _at(now, r.time_range.start)
        if fire_at > now:
            out.append(ReminderOut(title=APP_TITLE, body=f"Time for: {r.name}", fire_at=fire_at))

    if completed < total_due:
        check = now.replace(hour=STREAK_CHECK_AT.hour, minute=STREAK_CHECK_AT.minute, second=0, microsecond=0)
        if check > now:
            remaining = total_due - completed
            plural = "" if remaining == 1 else "s"
            out.append(ReminderOut(
                title=f"{APP_TITLE} \U0001F439",
                body=f"You still have {remaining} routine{plural} to complete today!",
                fire_at=check,
            ))

    out.sort(key=lambda rem: rem.fire_at)
    return out
