from __future__ import annotations
import datetime as dt
from sqlalchemy import (
    String, Integer, Float, DateTime, Boolean, Text, ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from .db import Base

UTC = dt.timezone.utc
def utcnow() -> dt.datetime:
    return dt.datetime.now(tz=UTC)

class Player(Base):
    __tablename__ = "players"
    id: Mapped[int] = mapped_column(Integer, primary_key=True)  # tg user id
    username: Mapped[str | None] = mapped_column(String(64), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    ui_lang: Mapped[str] = mapped_column(String(8), default="en")  # en/uk
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

class PlayerSettings(Base):
    __tablename__ = "player_settings"
    tg_user_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    difficulty: Mapped[str] = mapped_column(String(16), default="easy")  # easy | medium | hard
    problem_count: Mapped[int] = mapped_column(Integer, default=10)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

class PlayerProgress(Base):
    __tablename__ = "player_progress"
    tg_user_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    total_problems: Mapped[int] = mapped_column(Integer, default=0)
    correct_answers: Mapped[int] = mapped_column(Integer, default=0)
    current_streak: Mapped[int] = mapped_column(Integer, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0)
    favorite_activity: Mapped[str] = mapped_column(String(32), default="counting")
    last_active_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

class PracticeSession(Base):
    __tablename__ = "practice_sessions"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # session-<hex>
    tg_user_id: Mapped[int] = mapped_column(Integer, index=True)
    activity: Mapped[str] = mapped_column(String(32))
    difficulty: Mapped[str] = mapped_column(String(16))
    started_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    ended_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    duration_s: Mapped[int] = mapped_column(Integer, default=0)
    total: Mapped[int] = mapped_column(Integer, default=0)
    correct: Mapped[int] = mapped_column(Integer, default=0)
    score: Mapped[int] = mapped_column(Integer, default=0)  # 0..100
    streak_at_start: Mapped[int] = mapped_column(Integer, default=0)

    attempts: Mapped[list["ProblemAttemptRecord"]] = relationship(
        "ProblemAttemptRecord", back_populates="session", order_by="ProblemAttemptRecord.id"
    )

    __table_args__ = (Index("ix_sessions_user_started", "tg_user_id", "started_at"),)

class ProblemAttemptRecord(Base):
    __tablename__ = "attempts"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(64), ForeignKey("practice_sessions.id"), index=True)
    tg_user_id: Mapped[int] = mapped_column(Integer, index=True)
    problem_id: Mapped[str] = mapped_column(String(64))
    problem_type: Mapped[str] = mapped_column(String(32))
    difficulty: Mapped[str] = mapped_column(String(16))
    question: Mapped[str] = mapped_column(Text)
    correct_answer: Mapped[str] = mapped_column(Text)
    user_answer: Mapped[str] = mapped_column(Text)
    is_correct: Mapped[bool] = mapped_column(Boolean, default=False)
    time_spent_ms: Mapped[int] = mapped_column(Integer, default=0)
    attempts: Mapped[int] = mapped_column(Integer, default=1)
    hints_used: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    session: Mapped[PracticeSession] = relationship("PracticeSession", back_populates="attempts")

class AchievementRecord(Base):
    __tablename__ = "achievements"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tg_user_id: Mapped[int] = mapped_column(Integer, index=True)
    key: Mapped[str] = mapped_column(String(32))  # first-problem | ten-problems | perfect-session | streak-5
    name: Mapped[str] = mapped_column(String(64))
    description: Mapped[str] = mapped_column(Text)
    icon: Mapped[str] = mapped_column(String(16))
    unlocked_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    __table_args__ = (UniqueConstraint("tg_user_id", "key", name="uq_achievement_user_key"),)

class MasteryLevel(Base):
    __tablename__ = "mastery_levels"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tg_user_id: Mapped[int] = mapped_column(Integer, index=True)
    problem_type: Mapped[str] = mapped_column(String(32))
    level: Mapped[int] = mapped_column(Integer, default=0)  # 0..100
    attempted: Mapped[int] = mapped_column(Integer, default=0)
    correct: Mapped[int] = mapped_column(Integer, default=0)
    average_time_ms: Mapped[float] = mapped_column(Float, default=0.0)  # EMA
    last_practiced_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    __table_args__ = (UniqueConstraint("tg_user_id", "problem_type", name="uq_mastery_user_type"),)

class ActivityPreference(Base):
    __tablename__ = "activity_preferences"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tg_user_id: Mapped[int] = mapped_column(Integer, index=True)
    problem_type: Mapped[str] = mapped_column(String(32))
    times_selected: Mapped[int] = mapped_column(Integer, default=0)
    __table_args__ = (UniqueConstraint("tg_user_id", "problem_type", name="uq_pref_user_type"),)

class AnalyticsEvent(Base):
    __tablename__ = "analytics_events"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    tg_user_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    event: Mapped[str] = mapped_column(String(48))
    activity: Mapped[str | None] = mapped_column(String(32), nullable=True)
    payload_json: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON object
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
