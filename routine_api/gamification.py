from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Sequence

from .dates import last_n_days
from .ledger import CompletionLedger
from .scheduling import due_routines, is_fully_completed
from .schemas import Achievement, GamificationState

XP_PER_COMPLETION = 10
XP_PERFECT_DAY_BONUS = 25
XP_STREAK_MILESTONE = 100
XP_PER_LEVEL = 500
MAX_LEVEL = 50
STREAK_MILESTONES = (7, 30, 100)


def calculate_level(xp: int) -> int:
    return min(xp // XP_PER_LEVEL + 1, MAX_LEVEL)


def xp_for_next_level(level: int) -> int:
    return level * XP_PER_LEVEL


def xp_progress_in_level(xp: int) -> int:
    return xp % XP_PER_LEVEL


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    name: str
    description: str
    icon: str

    def unlocked(self, at: datetime) -> Achievement:
        return Achievement(id=self.id, name=self.name, description=self.description, icon=self.icon, unlocked_at=at)


ACHIEVEMENT_DEFINITIONS = [
    AchievementDefinition("first_completion", "First Step", "Complete any routine for the first time", "Footprints"),
    AchievementDefinition("perfect_day", "Perfect Day", "Complete 100% of routines in a single day", "Star"),
    AchievementDefinition("week_streak", "Week Warrior", "Maintain a 7-day streak", "Flame"),
    AchievementDefinition("perfect_week", "Perfect Week", "7 consecutive days at 100% completion", "Trophy"),
    AchievementDefinition("month_streak", "Month Master", "Maintain a 30-day streak", "Crown"),
    AchievementDefinition("century", "Century", "Maintain a 100-day streak", "Gem"),
    AchievementDefinition("supplement_master", "Supplement Master", "Complete all Supplements for 30 days", "Pill"),
    AchievementDefinition("fitness_fanatic", "Fitness Fanatic", "Complete 20 Fitness routines", "Dumbbell"),
    AchievementDefinition("skincare_queen", "Glow Up", "Complete all Skincare routines for 30 days", "Sparkles"),
]
ACHIEVEMENTS_BY_ID = {d.id: d for d in ACHIEVEMENT_DEFINITIONS}


@dataclass
class AchievementContext:
    ledger: CompletionLedger
    routines: Sequence
    streak: int
    today_percentage: int
    today: date


def _all_due_done(routines: Sequence, ledger: CompletionLedger, days: Iterable[str]) -> bool:
    # days with nothing due pass
    for day in days:
        due = due_routines(routines, day, ledger)
        if not all(is_fully_completed(r, day, ledger) for r in due):
            return False
    return True


def _category_perfect(ctx: AchievementContext, category: str, days: int = 30) -> bool:
    in_category = [r for r in ctx.routines if r.category == category]
    if not in_category:
        return False
    return _all_due_done(in_category, ctx.ledger, last_n_days(ctx.today, days))


def _fitness_count(ctx: AchievementContext) -> int:
    fitness_ids = {r.id for r in ctx.routines if r.category == "Fitness"}
    return sum(1 for c in ctx.ledger.records() if c.routine_id in fitness_ids and c.count > 0)


ACHIEVEMENT_RULES = {
    "first_completion": lambda ctx: len(ctx.ledger) > 0,
    "perfect_day": lambda ctx: ctx.today_percentage == 100,
    "week_streak": lambda ctx: ctx.streak >= 7,
    "month_streak": lambda ctx: ctx.streak >= 30,
    "century": lambda ctx: ctx.streak >= 100,
    "perfect_week": lambda ctx: _all_due_done(ctx.routines, ctx.ledger, last_n_days(ctx.today, 7)),
    "supplement_master": lambda ctx: _category_perfect(ctx, "Supplements"),
    "skincare_queen": lambda ctx: _category_perfect(ctx, "Skincare"),
    "fitness_fanatic": lambda ctx: _fitness_count(ctx) >= 20,
}


def newly_unlocked_achievements(already_unlocked: Iterable[str], ctx: AchievementContext) -> List[str]:
    """Ids of catalog achievements that qualify now and are not unlocked yet, in catalog order."""
    unlocked = set(already_unlocked)
    return [
        d.id for d in ACHIEVEMENT_DEFINITIONS
        if d.id not in unlocked and ACHIEVEMENT_RULES[d.id](ctx)
    ]


def award_xp(state: GamificationState, amount: int) -> GamificationState:
    xp = state.xp + max(amount, 0)
    return state.model_copy(update={"xp": xp, "level": calculate_level(xp)})


def crossed_milestones(prev_streak: int, new_streak: int) -> List[int]:
    return [m for m in STREAK_MILESTONES if prev_streak < m <= new_streak]


def unlock_achievements(state: GamificationState, ids: Sequence[str], now: datetime):
    new = [ACHIEVEMENTS_BY_ID[i].unlocked(now) for i in ids]
    return state.model_copy(update={"achievements": list(state.achievements) + new}), new


@dataclass
class GamificationOutcome:
    state: GamificationState
    xp_awarded: int = 0
    level_up: bool = False
    perfect_day_bonus_awarded: bool = False
    milestones: List[int] = field(default_factory=list)
    new_achievements: List[Achievement] = field(default_factory=list)

    @property
    def new_achievement(self):
        return self.new_achievements[0] if self.new_achievements else None


def process_completion_change(
    state: GamificationState,
    *,
    completed_now: bool,
    perfect_day_bonus_available: bool,
    prev_streak: int,
    ctx: AchievementContext,
    now: datetime,
) -> GamificationOutcome:
    """Apply the XP and achievement rules that follow a completion change.

    `completed_now` is true only when the change moved a routine from
    incomplete to complete. `perfect_day_bonus_available` is true when today
    sits at 100% and the per-day bonus marker has not been set; the caller
    sets the marker when `perfect_day_bonus_awarded` comes back true.
    """
    start_level = calculate_level(state.xp)
    outcome = GamificationOutcome(state=state)

    if completed_now:
        outcome.xp_awarded += XP_PER_COMPLETION
    if perfect_day_bonus_available and ctx.today_percentage == 100:
        outcome.xp_awarded += XP_PERFECT_DAY_BONUS
        outcome.perfect_day_bonus_awarded = True
    outcome.milestones = crossed_milestones(prev_streak, ctx.streak)
    outcome.xp_awarded += XP_STREAK_MILESTONE * len(outcome.milestones)

    state = award_xp(state, outcome.xp_awarded)
    outcome.level_up = calculate_level(state.xp) > start_level

    ids = newly_unlocked_achievements((a.id for a in state.achievements), ctx)
    outcome.state, outcome.new_achievements = unlock_achievements(state, ids, now)
    return outcome
