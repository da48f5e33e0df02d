import logging
from datetime import date
from typing import Optional

from fastapi import FastAPI, Depends, HTTPException, Header
from fastapi.responses import Response
from sqlalchemy.orm import Session

from .config import settings
from .db import Base, SessionLocal, engine, get_db
from . import gamification, schemas, services, stats, store
from .charts import StatsCard, render_stats_card_png, render_year_heatmap_png
from .dates import day_string, today as local_today

logger = logging.getLogger(__name__)

app = FastAPI(title="Habit Hamster API", version="1.0.0")


@app.on_event("startup")
def on_startup():
    logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    Base.metadata.create_all(bind=engine)
    if settings.seed_defaults:
        db = SessionLocal()
        try:
            store.seed_default_routines(db)
        finally:
            db.close()
    logger.info("started (%s)", settings.app_env)


def require_api_key(x_api_key: str | None = Header(default=None)) -> None:
    if not x_api_key or x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="Unauthorized")


def _get_routine_or_404(db: Session, routine_id: str) -> schemas.Routine:
    try:
        return services.get_routine(db, routine_id)
    except services.RoutineNotFound:
        raise HTTPException(status_code=404, detail="Routine not found")


@app.get("/health")
def health():
    return {"status": "ok"}


# --- routines ---

@app.get("/routines", response_model=list[schemas.Routine], dependencies=[Depends(require_api_key)])
def list_routines(db: Session = Depends(get_db)):
    return services.list_routines(db)


@app.post("/routines", response_model=schemas.Routine, status_code=201, dependencies=[Depends(require_api_key)])
def create_routine(payload: schemas.RoutineCreate, db: Session = Depends(get_db)):
    return services.create_routine(db, payload)


@app.get("/routines/by-category", response_model=dict[str, list[schemas.Routine]],
         dependencies=[Depends(require_api_key)])
def routines_by_category(db: Session = Depends(get_db)):
    return services.routines_by_category(services.list_routines(db))


@app.get("/routines/next-due", response_model=list[schemas.NextDueOut], dependencies=[Depends(require_api_key)])
def next_due(db: Session = Depends(get_db)):
    return services.next_due_for(db)


@app.get("/routines/{routine_id}", response_model=schemas.Routine, dependencies=[Depends(require_api_key)])
def get_routine(routine_id: str, db: Session = Depends(get_db)):
    return _get_routine_or_404(db, routine_id)


@app.patch("/routines/{routine_id}", response_model=schemas.Routine, dependencies=[Depends(require_api_key)])
def update_routine(routine_id: str, payload: schemas.RoutineUpdate, db: Session = Depends(get_db)):
    _get_routine_or_404(db, routine_id)
    return services.update_routine(db, routine_id, payload)


@app.put("/routines/{routine_id}/paused", response_model=schemas.Routine, dependencies=[Depends(require_api_key)])
def set_paused(routine_id: str, payload: schemas.PausedIn, db: Session = Depends(get_db)):
    _get_routine_or_404(db, routine_id)
    return services.set_paused(db, routine_id, payload.paused)


@app.delete("/routines/{routine_id}", status_code=204, dependencies=[Depends(require_api_key)])
def delete_routine(routine_id: str, db: Session = Depends(get_db)):
    _get_routine_or_404(db, routine_id)
    services.delete_routine(db, routine_id)
    return Response(status_code=204)


# --- days & completions ---

@app.get("/days/{day}/due", response_model=list[schemas.DueRoutineOut], dependencies=[Depends(require_api_key)])
def due_routines(day: date, db: Session = Depends(get_db)):
    return services.due_for_day(db, day_string(day))


@app.get("/days/{day}/completions", response_model=list[schemas.Completion],
         dependencies=[Depends(require_api_key)])
def day_completions(day: date, db: Session = Depends(get_db)):
    return services.completions_for_day(db, day_string(day))


@app.post("/days/{day}/routines/{routine_id}/toggle", response_model=schemas.ToggleOut,
          dependencies=[Depends(require_api_key)])
def toggle_completion(day: date, routine_id: str, db: Session = Depends(get_db)):
    _get_routine_or_404(db, routine_id)
    return services.toggle_completion(db, routine_id, day_string(day))


@app.put("/days/{day}/routines/{routine_id}/count", response_model=schemas.ToggleOut,
         dependencies=[Depends(require_api_key)])
def set_completion_count(day: date, routine_id: str, payload: schemas.CountIn, db: Session = Depends(get_db)):
    _get_routine_or_404(db, routine_id)
    return services.set_completion_count(db, routine_id, day_string(day), payload.count)


# --- stats ---

@app.get("/stats/today", response_model=schemas.TodayStats, dependencies=[Depends(require_api_key)])
def today_stats(db: Session = Depends(get_db)):
    return services.today_summary(db)


@app.get("/stats/streak", response_model=schemas.StreakOut, dependencies=[Depends(require_api_key)])
def streak(db: Session = Depends(get_db)):
    return {"streak": services.current_streak(db)}


@app.get("/stats/heatmap", response_model=schemas.HeatmapOut, dependencies=[Depends(require_api_key)])
def heatmap(window: stats.Window = "year", db: Session = Depends(get_db)):
    return {"window": window, "days": services.heatmap(db, window)}


@app.get("/stats/routines-heatmap", response_model=schemas.RoutineHeatmapOut,
         dependencies=[Depends(require_api_key)])
def routines_heatmap(window: stats.Window = "week", db: Session = Depends(get_db)):
    return services.routines_heatmap(db, window)


# --- gamification ---

@app.get("/gamification", response_model=schemas.GamificationOut, dependencies=[Depends(require_api_key)])
def get_gamification(db: Session = Depends(get_db)):
    return services.get_gamification(db)


@app.get("/achievements", response_model=list[schemas.Achievement], dependencies=[Depends(require_api_key)])
def get_achievements(db: Session = Depends(get_db)):
    return services.list_achievements(db)


@app.get("/reminders", response_model=list[schemas.ReminderOut], dependencies=[Depends(require_api_key)])
def get_reminders(db: Session = Depends(get_db)):
    return services.today_reminders(db)


# --- images ---

@app.get("/stats.png", dependencies=[Depends(require_api_key)])
def get_stats_png(db: Session = Depends(get_db)):
    today = services.today_summary(db)
    state = services.get_gamification(db)
    card = StatsCard(
        title="Habit Hamster",
        period_label=day_string(local_today()),
        streak=services.current_streak(db),
        today_percentage=today.percentage,
        completed=today.completed,
        total=today.total,
        level=state.level,
        xp=state.xp,
        achievements_unlocked=len(state.achievements),
        achievements_total=len(gamification.ACHIEVEMENT_DEFINITIONS),
    )
    png = render_stats_card_png(card)
    return Response(content=png, media_type="image/png")


@app.get("/heatmap.png", dependencies=[Depends(require_api_key)])
def get_heatmap_png(year: Optional[int] = None, db: Session = Depends(get_db)):
    year = year or local_today().year
    if year < 1970 or year > local_today().year:
        raise HTTPException(status_code=422, detail="Year out of range")
    png = render_year_heatmap_png(services.year_heatmap(db, year), year)
    return Response(content=png, media_type="image/png")
