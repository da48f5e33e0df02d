from pydantic import BaseModel, Field
from typing import Annotated, Dict, List, Literal, Optional, Union
from datetime import datetime

CATEGORIES = ["Fitness", "Nutrition", "Skincare", "Supplements"]

Weekday = Annotated[int, Field(ge=1, le=7)]
ClockTime = Annotated[str, Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")]
DayString = Annotated[str, Field(pattern=r"^\d{4}-\d{2}-\d{2}$")]


class DailyFrequency(BaseModel):
    type: Literal["daily"] = "daily"
    times_per_day: int = Field(1, ge=1)


class WeeklyFrequency(BaseModel):
    type: Literal["weekly"] = "weekly"
    times_per_week: int = Field(1, ge=1)


class WeekdaysFrequency(BaseModel):
    type: Literal["weekdays"] = "weekdays"
    days: List[Weekday] = Field(min_length=1)


class IntervalFrequency(BaseModel):
    type: Literal["interval"] = "interval"
    days: int = Field(ge=1)


Frequency = Annotated[
    Union[DailyFrequency, WeeklyFrequency, WeekdaysFrequency, IntervalFrequency],
    Field(discriminator="type"),
]


class TimeRange(BaseModel):
    start: ClockTime
    end: Optional[ClockTime] = None


class RoutineCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    category: str = Field(min_length=1, max_length=64)
    frequency: Frequency
    description: Optional[str] = Field(None, max_length=500)
    time_range: Optional[TimeRange] = None
    preferred_days: Optional[List[Weekday]] = None
    paused: bool = False


class RoutineUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    category: Optional[str] = Field(None, min_length=1, max_length=64)
    frequency: Optional[Frequency] = None
    description: Optional[str] = Field(None, max_length=500)
    time_range: Optional[TimeRange] = None
    preferred_days: Optional[List[Weekday]] = None
    paused: Optional[bool] = None


class Routine(RoutineCreate):
    id: str
    created_at: datetime


class PausedIn(BaseModel):
    paused: bool


class Completion(BaseModel):
    routine_id: str
    day: DayString
    count: int = Field(ge=0)


class CountIn(BaseModel):
    count: int = Field(ge=0)


class Achievement(BaseModel):
    id: str
    name: str
    description: str
    icon: str
    unlocked_at: Optional[datetime] = None


class GamificationState(BaseModel):
    xp: int = Field(0, ge=0)
    level: int = Field(1, ge=1)
    achievements: List[Achievement] = Field(default_factory=list)
    streak_freezes: int = Field(0, ge=0)


class GamificationOut(GamificationState):
    xp_in_level: int
    xp_for_next_level: int


class TodayStats(BaseModel):
    total: int
    completed: int
    percentage: int


class StreakOut(BaseModel):
    streak: int


class HeatmapOut(BaseModel):
    window: str
    days: Dict[str, float]


class HeatmapCell(BaseModel):
    count: int
    expected: float


class RoutineHeatmapOut(BaseModel):
    window: str
    days: List[str]
    routines: Dict[str, Dict[str, HeatmapCell]]


class DueRoutineOut(BaseModel):
    routine: Routine
    count: int
    max_count: int
    completed: bool


class NextDueOut(BaseModel):
    routine_id: str
    next_due: Optional[str] = None
    urgent: bool = False


class ToggleOut(BaseModel):
    routine_id: str
    day: str
    count: int
    max_count: int
    completed: bool
    today: TodayStats
    streak: int
    xp_awarded: int
    level_up: bool
    gamification: GamificationOut
    new_achievement: Optional[Achievement] = None
    new_achievements: List[Achievement] = Field(default_factory=list)


class ReminderOut(BaseModel):
    title: str
    body: str
    fire_at: datetime
