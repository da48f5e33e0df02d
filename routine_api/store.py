"""Key-addressed persistence for routines, completions and gamification state.

Reads return full snapshots; each replace/save is a single transaction that
either lands completely or is rolled back.
"""
import logging
import uuid
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from . import models, schemas

logger = logging.getLogger(__name__)

GAMIFICATION_KEY = "current"

DEFAULT_ROUTINES = [
    dict(name="Gym", category="Fitness", frequency={"type": "weekly", "times_per_week": 3},
         time_range={"start": "07:00", "end": "08:30"}, preferred_days=[1, 3, 5]),
    dict(name="Run", category="Fitness", frequency={"type": "weekly", "times_per_week": 2},
         time_range={"start": "18:00", "end": "18:30"}, preferred_days=[3, 7]),
    dict(name="5000 steps", category="Fitness", frequency={"type": "daily", "times_per_day": 1}),
    dict(name="Clean eating", category="Nutrition", frequency={"type": "daily", "times_per_day": 1}),
    dict(name="Meal prep", category="Nutrition", frequency={"type": "weekly", "times_per_week": 1},
         preferred_days=[7], time_range={"start": "11:00", "end": "13:00"}),
    dict(name="Water 1.5L", category="Nutrition", frequency={"type": "daily", "times_per_day": 1}),
    dict(name="Morning Skin care", category="Skincare", description="Vitamin C serum, moisturizer, sunscreen",
         frequency={"type": "daily", "times_per_day": 1}, time_range={"start": "08:30", "end": "08:45"}),
    dict(name="Evening Skin care", category="Skincare", description="Cleanser, retinol, moisturizer",
         frequency={"type": "daily", "times_per_day": 1}, time_range={"start": "22:30", "end": "22:45"}),
    dict(name="Micro current", category="Skincare", frequency={"type": "daily", "times_per_day": 1},
         time_range={"start": "08:30", "end": "08:45"}),
    dict(name="Luce pulsata", category="Skincare", frequency={"type": "weekly", "times_per_week": 1},
         time_range={"start": "11:00", "end": "11:30"}),
    dict(name="Hair dye - root", category="Skincare", frequency={"type": "interval", "days": 45},
         preferred_days=[6]),
    dict(name="Bromelina", category="Supplements", frequency={"type": "daily", "times_per_day": 2},
         time_range={"start": "09:00"}),
    dict(name="Centella asiatica", category="Supplements", frequency={"type": "daily", "times_per_day": 1},
         time_range={"start": "09:00"}),
    dict(name="Dbase", category="Supplements", frequency={"type": "daily", "times_per_day": 1},
         time_range={"start": "09:00"}),
    dict(name="B12", category="Supplements", frequency={"type": "daily", "times_per_day": 1},
         time_range={"start": "09:00"}),
]


@contextmanager
def _transaction(db: Session):
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


# --- routines ---

def routine_from_row(row: models.Routine) -> schemas.Routine:
    # raises pydantic.ValidationError on a malformed row, e.g. an unknown frequency type
    time_range = None
    if row.time_start:
        time_range = {"start": row.time_start, "end": row.time_end}
    return schemas.Routine.model_validate(dict(
        id=row.id,
        name=row.name,
        category=row.category,
        frequency=row.frequency,
        description=row.description,
        time_range=time_range,
        preferred_days=row.preferred_days,
        paused=bool(row.paused),
        created_at=row.created_at,
    ))


def _routine_row(r: schemas.Routine) -> models.Routine:
    return models.Routine(
        id=r.id,
        name=r.name,
        category=r.category,
        frequency=r.frequency.model_dump(),
        description=r.description,
        time_start=r.time_range.start if r.time_range else None,
        time_end=r.time_range.end if r.time_range else None,
        preferred_days=list(r.preferred_days) if r.preferred_days is not None else None,
        paused=r.paused,
        created_at=r.created_at,
    )


def get_all_routines(db: Session) -> List[schemas.Routine]:
    rows = db.query(models.Routine).order_by(models.Routine.created_at, models.Routine.id).all()
    return [routine_from_row(r) for r in rows]


def replace_routines(db: Session, routines: Iterable[schemas.Routine]) -> None:
    routines = list(routines)
    keep = {r.id for r in routines}
    with _transaction(db):
        for r in routines:
            db.merge(_routine_row(r))
        for row in db.query(models.Routine).filter(models.Routine.id.notin_(list(keep))).all():
            db.delete(row)


# --- completions ---

def get_all_completions(db: Session) -> List[schemas.Completion]:
    rows = db.query(models.Completion).filter(models.Completion.count > 0).all()
    return [schemas.Completion(routine_id=r.routine_id, day=r.day, count=r.count) for r in rows]


def replace_completions(db: Session, completions: Iterable[schemas.Completion]) -> None:
    wanted = {(c.routine_id, c.day): c.count for c in completions if c.count > 0}
    with _transaction(db):
        for row in db.query(models.Completion).all():
            key = (row.routine_id, row.day)
            if key not in wanted:
                db.delete(row)
            elif row.count != wanted[key]:
                row.count = wanted[key]
            wanted.pop(key, None)
        for (routine_id, day), count in wanted.items():
            db.add(models.Completion(routine_id=routine_id, day=day, count=count))


# --- gamification ---

def get_gamification_state(db: Session) -> schemas.GamificationState:
    row = db.get(models.Gamification, GAMIFICATION_KEY)
    if row is None:
        return schemas.GamificationState()
    unlocks = db.query(models.AchievementUnlock).order_by(models.AchievementUnlock.position).all()
    return schemas.GamificationState(
        xp=row.xp,
        level=row.level,
        streak_freezes=row.streak_freezes,
        achievements=[
            schemas.Achievement(
                id=u.achievement_id,
                name=u.name,
                description=u.description,
                icon=u.icon,
                unlocked_at=u.unlocked_at,
            )
            for u in unlocks
        ],
    )


def save_gamification_state(
    db: Session,
    state: schemas.GamificationState,
    perfect_day: Optional[str] = None,
) -> None:
    """Persist the state; `perfect_day` also marks that day's bonus as paid in the same transaction."""
    with _transaction(db):
        if perfect_day is not None:
            db.merge(models.PerfectDayBonus(day=perfect_day))
        db.merge(models.Gamification(
            id=GAMIFICATION_KEY,
            xp=state.xp,
            level=state.level,
            streak_freezes=state.streak_freezes,
        ))
        for row in db.query(models.AchievementUnlock).all():
            db.delete(row)
        db.flush()
        for pos, a in enumerate(state.achievements):
            db.add(models.AchievementUnlock(
                achievement_id=a.id,
                position=pos,
                name=a.name,
                description=a.description,
                icon=a.icon,
                unlocked_at=a.unlocked_at,
            ))


# --- perfect day bonus markers ---

def has_perfect_day_bonus(db: Session, day: str) -> bool:
    return db.get(models.PerfectDayBonus, day) is not None


def set_perfect_day_bonus(db: Session, day: str) -> None:
    with _transaction(db):
        db.merge(models.PerfectDayBonus(day=day))


# --- seeding ---

def seed_default_routines(db: Session) -> int:
    if db.query(models.Routine.id).first() is not None:
        return 0
    now = datetime.utcnow()
    routines = [
        schemas.Routine.model_validate(dict(r, id=str(uuid.uuid4()), created_at=now))
        for r in DEFAULT_ROUTINES
    ]
    replace_routines(db, routines)
    logger.info("seeded %d default routines", len(routines))
    return len(routines)
