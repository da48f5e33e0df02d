from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .schemas import Completion

logger = logging.getLogger(__name__)


class CompletionLedger:
    """Sparse (routine_id, day) -> count mapping.

    A zero count is never stored: setting or toggling a count down to zero
    removes the key, so "never toggled" and "toggled back to zero" look the same.
    """

    def __init__(self, records: Iterable[Completion] = ()):
        self._counts: Dict[Tuple[str, str], int] = {}
        for rec in records:
            if rec.count > 0:
                self._counts[(rec.routine_id, rec.day)] = rec.count

    def __len__(self) -> int:
        return len(self._counts)

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._counts

    def count(self, routine_id: str, day: str) -> int:
        return self._counts.get((routine_id, day), 0)

    def toggle(self, routine_id: str, day: str, max_count: int = 1) -> int:
        """Cycle the count 0 -> 1 -> ... -> max_count -> 0 and return the new value."""
        key = (routine_id, day)
        current = self._counts.get(key)
        if current is None:
            self._counts[key] = 1
        elif current < max_count:
            self._counts[key] = current + 1
        else:
            del self._counts[key]
        new = self._counts.get(key, 0)
        logger.debug("toggle %s on %s: %s -> %s", routine_id, day, current or 0, new)
        return new

    def set_count(self, routine_id: str, day: str, count: int) -> int:
        key = (routine_id, day)
        if count <= 0:
            self._counts.pop(key, None)
            count = 0
        else:
            self._counts[key] = count
        logger.debug("set %s on %s to %s", routine_id, day, count)
        return count

    def for_day(self, day: str) -> List[Completion]:
        return [
            Completion(routine_id=rid, day=d, count=c)
            for (rid, d), c in sorted(self._counts.items())
            if d == day
        ]

    def last_completed_day(self, routine_id: str) -> Optional[str]:
        days = [d for (rid, d) in self._counts if rid == routine_id]
        return max(days) if days else None

    def records(self) -> List[Completion]:
        return [Completion(routine_id=rid, day=d, count=c) for (rid, d), c in sorted(self._counts.items())]
