from __future__ import annotations
import logging
import secrets
from collections import Counter
from dataclasses import dataclass, field

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .generation.types import AttemptedProblem
from .models import (
    AchievementRecord, PlayerProgress, PracticeSession, ProblemAttemptRecord, utcnow
)

logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class Achievement:
    key: str
    name: str
    description: str
    icon: str

ACHIEVEMENTS: dict[str, Achievement] = {
    "first-problem": Achievement("first-problem", "First Steps", "Completed your first problem!", "🌟"),
    "ten-problems": Achievement("ten-problems", "Problem Solver", "Completed 10 problems!", "🏆"),
    "perfect-session": Achievement("perfect-session", "Perfect Score", "Got 100% in a session!", "💯"),
    "streak-5": Achievement("streak-5", "On Fire", "5 correct answers in a row!", "🔥"),
}

PERFECT_SESSION_MIN_PROBLEMS = 5
STREAK_ACHIEVEMENT = 5

@dataclass
class ProgressSummary:
    total_problems: int = 0
    correct_answers: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    favorite_activity: str = "counting"
    sessions: int = 0
    achievements: list[Achievement] = field(default_factory=list)

    @property
    def accuracy(self) -> int:
        if not self.total_problems:
            return 0
        return round(self.correct_answers / self.total_problems * 100)

async def _get_or_create_progress(s: AsyncSession, tg_user_id: int) -> PlayerProgress:
    pr = await s.get(PlayerProgress, tg_user_id)
    if pr:
        return pr
    pr = PlayerProgress(
        tg_user_id=tg_user_id,
        total_problems=0,
        correct_answers=0,
        current_streak=0,
        longest_streak=0,
        favorite_activity="counting",
    )
    s.add(pr)
    await s.flush()
    return pr

class ProgressTracker:
    """Per-player progress store: sessions, attempts, streaks and achievements.

    One tracker serves one player. At most one session is open at a time;
    calls that need an open session log a warning and do nothing without one.
    """

    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession], tg_user_id: int):
        self._sessionmaker = sessionmaker
        self.tg_user_id = tg_user_id
        self.current_session_id: str | None = None

    async def start_session(self, activity: str, difficulty: str) -> str:
        session_id = f"session-{secrets.token_hex(8)}"
        async with self._sessionmaker() as s:
            pr = await _get_or_create_progress(s, self.tg_user_id)
            s.add(PracticeSession(
                id=session_id,
                tg_user_id=self.tg_user_id,
                activity=activity,
                difficulty=difficulty,
                started_at=utcnow(),
                total=0,
                correct=0,
                score=0,
                streak_at_start=pr.current_streak,
            ))
            await s.commit()
        if self.current_session_id:
            logger.info("progress_session_replaced user=%s old=%s new=%s",
                        self.tg_user_id, self.current_session_id, session_id)
        self.current_session_id = session_id
        logger.info("progress_session_started user=%s session=%s activity=%s",
                    self.tg_user_id, session_id, activity)
        return session_id

    async def add_problem_attempt(self, attempt: AttemptedProblem) -> None:
        session_id = self.current_session_id
        if not session_id:
            logger.warning("progress_attempt_without_session user=%s problem=%s",
                           self.tg_user_id, attempt.problem.id)
            return
        problem = attempt.problem
        async with self._sessionmaker() as s:
            ps = await s.get(PracticeSession, session_id)
            if not ps:
                logger.warning("progress_session_missing user=%s session=%s", self.tg_user_id, session_id)
                return
            pr = await _get_or_create_progress(s, self.tg_user_id)
            pr.total_problems += 1
            if attempt.is_correct:
                pr.correct_answers += 1
                pr.current_streak += 1
                pr.longest_streak = max(pr.longest_streak, pr.current_streak)
            else:
                pr.current_streak = 0
            pr.last_active_at = utcnow()

            s.add(ProblemAttemptRecord(
                session_id=session_id,
                tg_user_id=self.tg_user_id,
                problem_id=problem.id,
                problem_type=problem.type,
                difficulty=problem.difficulty,
                question=problem.question,
                correct_answer=str(problem.correct_answer),
                user_answer=attempt.user_answer,
                is_correct=attempt.is_correct,
                time_spent_ms=attempt.time_spent_ms,
                attempts=attempt.attempts,
                hints_used=attempt.hints_used,
            ))
            ps.total += 1
            if attempt.is_correct:
                ps.correct += 1
            ps.score = round(ps.correct / ps.total * 100)
            await s.flush()

            rows = (await s.execute(
                select(ProblemAttemptRecord.problem_type, func.count())
                .where(ProblemAttemptRecord.tg_user_id == self.tg_user_id)
                .group_by(ProblemAttemptRecord.problem_type)
            )).all()
            counts = Counter({ptype: n for ptype, n in rows})
            if counts:
                pr.favorite_activity = counts.most_common(1)[0][0]
            await s.commit()

    async def end_session(self, session_id: str) -> PracticeSession | None:
        if not self.current_session_id or self.current_session_id != session_id:
            logger.warning("progress_end_unknown_session user=%s session=%s current=%s",
                           self.tg_user_id, session_id, self.current_session_id)
            return None
        async with self._sessionmaker() as s:
            ps = await s.get(PracticeSession, session_id)
            if not ps:
                logger.warning("progress_session_missing user=%s session=%s", self.tg_user_id, session_id)
                self.current_session_id = None
                return None
            now = utcnow()
            started = ps.started_at
            if started.tzinfo is None:
                # sqlite hands back naive datetimes
                started = started.replace(tzinfo=now.tzinfo)
            ps.ended_at = now
            ps.duration_s = max(0, int((now - started).total_seconds()))
            await s.commit()
        self.current_session_id = None
        logger.info("progress_session_ended user=%s session=%s total=%s correct=%s score=%s",
                    self.tg_user_id, session_id, ps.total, ps.correct, ps.score)
        return ps

    async def check_achievements(self) -> list[Achievement]:
        unlocked: list[Achievement] = []
        async with self._sessionmaker() as s:
            pr = await s.get(PlayerProgress, self.tg_user_id)
            if not pr:
                return []
            have = set((await s.execute(
                select(AchievementRecord.key).where(AchievementRecord.tg_user_id == self.tg_user_id)
            )).scalars().all())

            perfect = (await s.execute(
                select(func.count()).select_from(PracticeSession).where(
                    PracticeSession.tg_user_id == self.tg_user_id,
                    PracticeSession.ended_at.is_not(None),
                    PracticeSession.score == 100,
                    PracticeSession.total >= PERFECT_SESSION_MIN_PROBLEMS,
                )
            )).scalar_one()

            earned = {
                "first-problem": pr.total_problems >= 1,
                "ten-problems": pr.total_problems >= 10,
                "perfect-session": perfect > 0,
                "streak-5": pr.current_streak >= STREAK_ACHIEVEMENT,
            }
            for key, ok in earned.items():
                if not ok or key in have:
                    continue
                ach = ACHIEVEMENTS[key]
                s.add(AchievementRecord(
                    tg_user_id=self.tg_user_id,
                    key=ach.key,
                    name=ach.name,
                    description=ach.description,
                    icon=ach.icon,
                ))
                unlocked.append(ach)
            if unlocked:
                await s.commit()
        for ach in unlocked:
            logger.info("achievement_unlocked user=%s key=%s", self.tg_user_id, ach.key)
        return unlocked

    async def summary(self) -> ProgressSummary:
        async with self._sessionmaker() as s:
            pr = await s.get(PlayerProgress, self.tg_user_id)
            sessions = (await s.execute(
                select(func.count()).select_from(PracticeSession).where(
                    PracticeSession.tg_user_id == self.tg_user_id,
                    PracticeSession.ended_at.is_not(None),
                )
            )).scalar_one()
            keys = (await s.execute(
                select(AchievementRecord.key)
                .where(AchievementRecord.tg_user_id == self.tg_user_id)
                .order_by(AchievementRecord.id)
            )).scalars().all()
        out = ProgressSummary(sessions=sessions, achievements=[ACHIEVEMENTS[k] for k in keys if k in ACHIEVEMENTS])
        if pr:
            out.total_problems = pr.total_problems
            out.correct_answers = pr.correct_answers
            out.current_streak = pr.current_streak
            out.longest_streak = pr.longest_streak
            out.favorite_activity = pr.favorite_activity
        return out

    async def reset(self) -> None:
        async with self._sessionmaker() as s:
            await s.execute(delete(ProblemAttemptRecord).where(ProblemAttemptRecord.tg_user_id == self.tg_user_id))
            await s.execute(delete(PracticeSession).where(PracticeSession.tg_user_id == self.tg_user_id))
            await s.execute(delete(AchievementRecord).where(AchievementRecord.tg_user_id == self.tg_user_id))
            await s.execute(delete(PlayerProgress).where(PlayerProgress.tg_user_id == self.tg_user_id))
            await s.commit()
        self.current_session_id = None
        logger.info("progress_reset user=%s", self.tg_user_id)
