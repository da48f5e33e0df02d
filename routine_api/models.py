from sqlalchemy import Column, Integer, String, Boolean, DateTime, JSON, Text, Index
from datetime import datetime
from .db import Base


class Routine(Base):
    __tablename__ = "routines"

    id = Column(String(36), primary_key=True)
    name = Column(String(120), nullable=False)
    category = Column(String(64), nullable=False)
    frequency = Column(JSON, nullable=False)              # {"type": "daily", "times_per_day": 2}
    description = Column(Text, nullable=True)
    time_start = Column(String(5), nullable=True)         # "HH:MM"
    time_end = Column(String(5), nullable=True)
    preferred_days = Column(JSON, nullable=True)          # [1..7], Monday=1
    paused = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_routines_category", "category"),
    )


class Completion(Base):
    __tablename__ = "completions"

    routine_id = Column(String(36), primary_key=True)
    day = Column(String(10), primary_key=True)            # "YYYY-MM-DD"
    count = Column(Integer, nullable=False)

    __table_args__ = (
        Index("ix_completions_day", "day"),
    )


class Gamification(Base):
    __tablename__ = "gamification"

    id = Column(String(16), primary_key=True)             # always "current"
    xp = Column(Integer, default=0, nullable=False)
    level = Column(Integer, default=1, nullable=False)
    streak_freezes = Column(Integer, default=0, nullable=False)


class AchievementUnlock(Base):
    __tablename__ = "achievement_unlocks"

    achievement_id = Column(String(64), primary_key=True)
    position = Column(Integer, nullable=False)
    name = Column(String(120), nullable=False)
    description = Column(String(240), nullable=False)
    icon = Column(String(64), nullable=False)
    unlocked_at = Column(DateTime, nullable=True)


class PerfectDayBonus(Base):
    __tablename__ = "perfect_day_bonuses"

    day = Column(String(10), primary_key=True)
