import logging
import uuid
from datetime import date, datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from . import gamification, schemas, stats, store
from .config import settings
from .dates import day_string, days_in_range, today as local_today
from .ledger import CompletionLedger
from .reminders import build_reminders
from .scheduling import due_routines, get_max_count, next_due

logger = logging.getLogger(__name__)


class RoutineNotFound(LookupError):
    def __init__(self, routine_id: str):
        super().__init__(f"routine {routine_id} not found")
        self.routine_id = routine_id


def _find(routines: List[schemas.Routine], routine_id: str) -> schemas.Routine:
    for r in routines:
        if r.id == routine_id:
            return r
    raise RoutineNotFound(routine_id)


def _load(db: Session):
    return store.get_all_routines(db), CompletionLedger(store.get_all_completions(db))


# --- routines ---

def list_routines(db: Session) -> List[schemas.Routine]:
    return store.get_all_routines(db)


def get_routine(db: Session, routine_id: str) -> schemas.Routine:
    return _find(store.get_all_routines(db), routine_id)


def create_routine(db: Session, payload: schemas.RoutineCreate) -> schemas.Routine:
    routine = schemas.Routine(**payload.model_dump(), id=str(uuid.uuid4()), created_at=datetime.utcnow())
    routines = store.get_all_routines(db)
    store.replace_routines(db, routines + [routine])
    logger.info("created routine %s (%s)", routine.id, routine.name)
    return routine


def update_routine(db: Session, routine_id: str, payload: schemas.RoutineUpdate) -> schemas.Routine:
    routines = store.get_all_routines(db)
    current = _find(routines, routine_id)
    changes = payload.model_dump(exclude_unset=True)
    # name/category/frequency/paused cannot be cleared
    for key in ("name", "category", "frequency", "paused"):
        if changes.get(key, ...) is None:
            changes.pop(key)
    updated = schemas.Routine.model_validate({**current.model_dump(), **changes})
    store.replace_routines(db, [updated if r.id == routine_id else r for r in routines])
    logger.info("updated routine %s: %s", routine_id, ", ".join(sorted(changes)) or "no changes")
    return updated


def set_paused(db: Session, routine_id: str, paused: bool) -> schemas.Routine:
    return update_routine(db, routine_id, schemas.RoutineUpdate(paused=paused))


def delete_routine(db: Session, routine_id: str) -> None:
    routines = store.get_all_routines(db)
    _find(routines, routine_id)
    store.replace_routines(db, [r for r in routines if r.id != routine_id])
    logger.info("deleted routine %s", routine_id)


def _category_order(category: str):
    # known categories first, in their fixed order, then the rest alphabetically
    if category in schemas.CATEGORIES:
        return (0, schemas.CATEGORIES.index(category), "")
    return (1, 0, category)


def routines_by_category(routines: List[schemas.Routine]) -> Dict[str, List[schemas.Routine]]:
    grouped: Dict[str, List[schemas.Routine]] = {}
    for r in routines:
        grouped.setdefault(r.category, []).append(r)
    for items in grouped.values():
        # routines without a start time go last
        items.sort(key=lambda r: (r.time_range is None, r.time_range.start if r.time_range else ""))
    return {c: grouped[c] for c in sorted(grouped, key=_category_order)}


def next_due_for(db: Session, today: Optional[date] = None) -> List[schemas.NextDueOut]:
    routines, ledger = _load(db)
    today = today or local_today()
    out = []
    for r in routines:
        day, urgent = next_due(r, ledger, today)
        out.append(schemas.NextDueOut(routine_id=r.id, next_due=day, urgent=urgent))
    return out


# --- day views ---

def due_for_day(db: Session, day: str) -> List[schemas.DueRoutineOut]:
    routines, ledger = _load(db)
    out = []
    for r in due_routines(routines, day, ledger):
        count = ledger.count(r.id, day)
        max_count = get_max_count(r)
        out.append(schemas.DueRoutineOut(routine=r, count=count, max_count=max_count, completed=count >= max_count))
    return out


def completions_for_day(db: Session, day: str) -> List[schemas.Completion]:
    _, ledger = _load(db)
    return ledger.for_day(day)


# --- completion changes ---

def toggle_completion(
    db: Session,
    routine_id: str,
    day: str,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> schemas.ToggleOut:
    routines, ledger = _load(db)
    routine = _find(routines, routine_id)
    today = today or local_today()
    prev_streak = stats.streak(routines, ledger, today, settings.streak_lookback_days)

    max_count = get_max_count(routine)
    before = ledger.count(routine_id, day)
    after = ledger.toggle(routine_id, day, max_count)
    store.replace_completions(db, ledger.records())

    return _after_change(db, routines, ledger, routine, day, before, after, prev_streak, today, now)


def set_completion_count(
    db: Session,
    routine_id: str,
    day: str,
    count: int,
    today: Optional[date] = None,
    now: Optional[datetime] = None,
) -> schemas.ToggleOut:
    routines, ledger = _load(db)
    routine = _find(routines, routine_id)
    today = today or local_today()
    prev_streak = stats.streak(routines, ledger, today, settings.streak_lookback_days)

    before = ledger.count(routine_id, day)
    after = ledger.set_count(routine_id, day, count)
    store.replace_completions(db, ledger.records())

    return _after_change(db, routines, ledger, routine, day, before, after, prev_streak, today, now)


def _after_change(db, routines, ledger, routine, day, before, after, prev_streak, today, now):
    today_s = day_string(today)
    max_count = get_max_count(routine)
    new_streak = stats.streak(routines, ledger, today, settings.streak_lookback_days)
    today_stats = stats.today_stats(routines, ledger, today)

    bonus_available = today_stats.percentage == 100 and not store.has_perfect_day_bonus(db, today_s)
    ctx = gamification.AchievementContext(
        ledger=ledger,
        routines=routines,
        streak=new_streak,
        today_percentage=today_stats.percentage,
        today=today,
    )
    outcome = gamification.process_completion_change(
        store.get_gamification_state(db),
        completed_now=before < max_count <= after,
        perfect_day_bonus_available=bonus_available,
        prev_streak=prev_streak,
        ctx=ctx,
        now=now or datetime.utcnow(),
    )
    # the bonus marker lands with the xp that pays for it, or not at all
    bonus_day = today_s if outcome.perfect_day_bonus_awarded else None
    store.save_gamification_state(db, outcome.state, perfect_day=bonus_day)
    if bonus_day:
        logger.info("perfect day bonus awarded for %s", bonus_day)
    for m in outcome.milestones:
        logger.info("streak milestone %d reached", m)

    if outcome.level_up:
        logger.info("level up: now level %d (%d xp)", outcome.state.level, outcome.state.xp)
    for a in outcome.new_achievements:
        logger.info("achievement unlocked: %s", a.id)

    return schemas.ToggleOut(
        routine_id=routine.id,
        day=day,
        count=after,
        max_count=max_count,
        completed=after >= max_count,
        today=today_stats,
        streak=new_streak,
        xp_awarded=outcome.xp_awarded,
        level_up=outcome.level_up,
        gamification=gamification_out(outcome.state),
        new_achievement=outcome.new_achievement,
        new_achievements=outcome.new_achievements,
    )


# --- stats & gamification ---

def today_summary(db: Session, today: Optional[date] = None) -> schemas.TodayStats:
    routines, ledger = _load(db)
    return stats.today_stats(routines, ledger, today or local_today())


def current_streak(db: Session, today: Optional[date] = None) -> int:
    routines, ledger = _load(db)
    return stats.streak(routines, ledger, today or local_today(), settings.streak_lookback_days)


def heatmap(db: Session, window: str, today: Optional[date] = None) -> Dict[str, float]:
    routines, ledger = _load(db)
    return stats.percentage_map(routines, ledger, window, today or local_today())


def routines_heatmap(db: Session, window: str, today: Optional[date] = None) -> schemas.RoutineHeatmapOut:
    routines, ledger = _load(db)
    today = today or local_today()
    return schemas.RoutineHeatmapOut(
        window=window,
        days=stats.window_days(window, today),
        routines=stats.routine_heatmap(routines, ledger, window, today),
    )


def gamification_out(state: schemas.GamificationState) -> schemas.GamificationOut:
    return schemas.GamificationOut(
        **state.model_dump(),
        xp_in_level=gamification.xp_progress_in_level(state.xp),
        xp_for_next_level=gamification.xp_for_next_level(state.level),
    )


def get_gamification(db: Session) -> schemas.GamificationOut:
    return gamification_out(store.get_gamification_state(db))


def list_achievements(db: Session) -> List[schemas.Achievement]:
    """The full catalog, with unlock timestamps filled in for earned entries."""
    unlocked = {a.id: a.unlocked_at for a in store.get_gamification_state(db).achievements}
    return [
        schemas.Achievement(
            id=d.id,
            name=d.name,
            description=d.description,
            icon=d.icon,
            unlocked_at=unlocked.get(d.id),
        )
        for d in gamification.ACHIEVEMENT_DEFINITIONS
    ]


def year_heatmap(db: Session, year: int, today: Optional[date] = None) -> Dict[str, float]:
    routines, ledger = _load(db)
    end = min(today or local_today(), date(year, 12, 31))
    return {d: stats.daily_ratio(routines, ledger, d) for d in days_in_range(date(year, 1, 1), end)}


def today_reminders(db: Session, now: Optional[datetime] = None) -> List[schemas.ReminderOut]:
    routines, ledger = _load(db)
    now = now or datetime.now()
    summary = stats.today_stats(routines, ledger, now.date())
    return build_reminders(routines, now, summary.total, summary.completed)
