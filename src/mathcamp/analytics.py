from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .generation.types import AttemptedProblem, SessionSummary
from .models import ActivityPreference, AnalyticsEvent, MasteryLevel, utcnow

logger = logging.getLogger(__name__)

APP_VERSION = "1.0.0"
EMA_ALPHA = 0.3

@dataclass(frozen=True)
class MasterySnapshot:
    problem_type: str
    level: int
    attempted: int
    correct: int
    average_time_ms: float

def update_average(previous: float, sample: float, alpha: float = EMA_ALPHA) -> float:
    if previous == 0:
        return float(sample)
    return alpha * sample + (1 - alpha) * previous

def mastery_level(attempted: int, correct: int) -> int:
    if attempted <= 0:
        return 0
    return min(100, round(correct / attempted * 100))

def duration_bucket(ms: int) -> str:
    minutes = ms / 60000
    if minutes < 5:
        return "0-5min"
    if minutes < 10:
        return "5-10min"
    if minutes < 20:
        return "10-20min"
    return "20+min"

class AnalyticsService:
    """Local learning analytics for one player.

    Every `track_*` call is fire-and-forget: storage failures are logged
    and swallowed so a broken analytics table never interrupts a game.
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession] | None, tg_user_id: int | None = None):
        self._sessionmaker = sessionmaker
        self.tg_user_id = tg_user_id

    async def _store(self, event: str, *, activity: str | None = None, payload: dict[str, Any] | None = None) -> None:
        logger.info("analytics_event event=%s user=%s activity=%s", event, self.tg_user_id, activity)
        if self._sessionmaker is None:
            return
        async with self._sessionmaker() as s:
            s.add(AnalyticsEvent(
                tg_user_id=self.tg_user_id,
                event=event,
                activity=activity,
                payload_json=json.dumps(payload, ensure_ascii=False) if payload else None,
            ))
            await s.commit()

    async def track_app_started(self) -> None:
        try:
            await self._store("app_started", payload={"version": APP_VERSION, "platform": "telegram"})
        except Exception:
            logger.exception("analytics_failed event=app_started")

    async def track_session_start(self, activity: str) -> None:
        try:
            await self._store("session_started", activity=activity)
        except Exception:
            logger.exception("analytics_failed event=session_started")

    async def track_activity_selected(self, activity: str, question_count: int) -> None:
        try:
            await self._store("activity_selected", activity=activity, payload={"question_count": question_count})
            if self._sessionmaker is None or self.tg_user_id is None:
                return
            async with self._sessionmaker() as s:
                pref = (await s.execute(
                    select(ActivityPreference).where(
                        ActivityPreference.tg_user_id == self.tg_user_id,
                        ActivityPreference.problem_type == activity,
                    )
                )).scalar_one_or_none()
                if not pref:
                    pref = ActivityPreference(tg_user_id=self.tg_user_id, problem_type=activity, times_selected=0)
                    s.add(pref)
                pref.times_selected += 1
                await s.commit()
        except Exception:
            logger.exception("analytics_failed event=activity_selected")

    async def track_problem_answered(self, attempt: AttemptedProblem) -> None:
        try:
            await self._store(
                "problem_answered",
                activity=attempt.type,
                payload={
                    "problem_id": attempt.problem.id,
                    "correct": attempt.is_correct,
                    "time_ms": attempt.time_spent_ms,
                    "hints_used": attempt.hints_used,
                },
            )
            await self._update_mastery(attempt)
        except Exception:
            logger.exception("analytics_failed event=problem_answered")

    async def track_session_completed(self, summary: SessionSummary) -> None:
        try:
            await self._store(
                "session_completed",
                activity=summary.problem_type,
                payload={
                    "session_id": summary.session_id,
                    "total": summary.total,
                    "correct": summary.correct,
                    "score": summary.score,
                    "duration_bucket": duration_bucket(summary.duration_ms),
                },
            )
        except Exception:
            logger.exception("analytics_failed event=session_completed")

    async def track_error(self, error: BaseException, context: dict[str, Any] | None = None) -> None:
        try:
            await self._store(
                "error_occurred",
                payload={"error": repr(error)[:500], "context": context or {}, "version": APP_VERSION},
            )
        except Exception:
            logger.exception("analytics_failed event=error_occurred")

    async def _update_mastery(self, attempt: AttemptedProblem) -> None:
        if self._sessionmaker is None or self.tg_user_id is None:
            return
        async with self._sessionmaker() as s:
            m = (await s.execute(
                select(MasteryLevel).where(
                    MasteryLevel.tg_user_id == self.tg_user_id,
                    MasteryLevel.problem_type == attempt.type,
                )
            )).scalar_one_or_none()
            if not m:
                m = MasteryLevel(
                    tg_user_id=self.tg_user_id,
                    problem_type=attempt.type,
                    level=0,
                    attempted=0,
                    correct=0,
                    average_time_ms=0.0,
                )
                s.add(m)
            m.attempted += 1
            if attempt.is_correct:
                m.correct += 1
            m.average_time_ms = update_average(m.average_time_ms, attempt.time_spent_ms)
            m.level = mastery_level(m.attempted, m.correct)
            m.last_practiced_at = utcnow()
            await s.commit()

    async def mastery(self) -> list[MasterySnapshot]:
        if self._sessionmaker is None or self.tg_user_id is None:
            return []
        async with self._sessionmaker() as s:
            rows = (await s.execute(
                select(MasteryLevel)
                .where(MasteryLevel.tg_user_id == self.tg_user_id)
                .order_by(MasteryLevel.problem_type)
            )).scalars().all()
        return [
            MasterySnapshot(r.problem_type, r.level, r.attempted, r.correct, r.average_time_ms)
            for r in rows
        ]
