import asyncio
import pytest

sqlalchemy = pytest.importorskip("sqlalchemy")
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker

from mathcamp.analytics import AnalyticsService, duration_bucket, mastery_level, update_average
from mathcamp.generation.types import AttemptedProblem, Problem, SessionSummary
from mathcamp.models import (
    AchievementRecord, ActivityPreference, AnalyticsEvent, Base, PlayerProgress, PracticeSession,
    ProblemAttemptRecord,
)
from mathcamp.progress import ProgressTracker

async def _setup_session():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    Session = async_sessionmaker(engine, expire_on_commit=False)
    return engine, Session

def _attempt(n: int, correct: bool = True, ptype: str = "addition", time_ms: int = 1000) -> AttemptedProblem:
    problem = Problem(
        id=f"p-{n}",
        type=ptype,
        question=f"{n} + 1",
        correct_answer=n + 1,
        options=(n + 1, n + 2, n + 3, n + 4),
        difficulty="easy",
    )
    answer = str(n + 1) if correct else str(n + 2)
    return AttemptedProblem(problem, answer, correct, time_spent_ms=time_ms)

def test_attempt_without_session_is_ignored():
    async def _run():
        engine, Session = await _setup_session()
        tracker = ProgressTracker(Session, 1)
        await tracker.add_problem_attempt(_attempt(1))
        async with Session() as s:
            rows = (await s.execute(select(ProblemAttemptRecord))).scalars().all()
            assert rows == []
            assert await s.get(PlayerProgress, 1) is None
        assert await tracker.end_session("session-missing") is None
        await engine.dispose()
    asyncio.run(_run())

def test_session_records_score_and_streaks():
    async def _run():
        engine, Session = await _setup_session()
        tracker = ProgressTracker(Session, 1)
        sid = await tracker.start_session("addition", "easy")
        for n, ok in enumerate([True, True, False, True]):
            await tracker.add_problem_attempt(_attempt(n, ok))
        ended = await tracker.end_session(sid)
        assert ended.total == 4
        assert ended.correct == 3
        assert ended.score == 75
        assert ended.ended_at is not None
        assert tracker.current_session_id is None

        summary = await tracker.summary()
        assert summary.total_problems == 4
        assert summary.correct_answers == 3
        assert summary.current_streak == 1
        assert summary.longest_streak == 2
        assert summary.accuracy == 75
        assert summary.sessions == 1
        assert summary.favorite_activity == "addition"
        await engine.dispose()
    asyncio.run(_run())

def test_streak_carried_into_next_session():
    async def _run():
        engine, Session = await _setup_session()
        tracker = ProgressTracker(Session, 1)
        sid = await tracker.start_session("addition", "easy")
        await tracker.add_problem_attempt(_attempt(1))
        await tracker.add_problem_attempt(_attempt(2))
        await tracker.end_session(sid)
        sid2 = await tracker.start_session("counting", "easy")
        async with Session() as s:
            ps = await s.get(PracticeSession, sid2)
            assert ps.streak_at_start == 2
        await engine.dispose()
    asyncio.run(_run())

def test_achievements_unlock_once():
    async def _run():
        engine, Session = await _setup_session()
        tracker = ProgressTracker(Session, 7)
        sid = await tracker.start_session("addition", "easy")
        for n in range(5):
            await tracker.add_problem_attempt(_attempt(n))
        await tracker.end_session(sid)

        unlocked = {a.key for a in await tracker.check_achievements()}
        assert unlocked == {"first-problem", "perfect-session", "streak-5"}
        assert await tracker.check_achievements() == []

        sid = await tracker.start_session("addition", "easy")
        for n in range(5, 10):
            await tracker.add_problem_attempt(_attempt(n))
        await tracker.end_session(sid)
        assert [a.key for a in await tracker.check_achievements()] == ["ten-problems"]

        async with Session() as s:
            keys = (await s.execute(select(AchievementRecord.key))).scalars().all()
        assert sorted(keys) == ["first-problem", "perfect-session", "streak-5", "ten-problems"]
        await engine.dispose()
    asyncio.run(_run())

def test_short_perfect_session_earns_no_badge():
    async def _run():
        engine, Session = await _setup_session()
        tracker = ProgressTracker(Session, 3)
        sid = await tracker.start_session("addition", "easy")
        for n in range(3):
            await tracker.add_problem_attempt(_attempt(n))
        await tracker.end_session(sid)
        keys = {a.key for a in await tracker.check_achievements()}
        assert "perfect-session" not in keys
        assert "first-problem" in keys
        await engine.dispose()
    asyncio.run(_run())

def test_favorite_activity_follows_most_played():
    async def _run():
        engine, Session = await _setup_session()
        tracker = ProgressTracker(Session, 1)
        await tracker.start_session("mixed", "easy")
        await tracker.add_problem_attempt(_attempt(1, ptype="addition"))
        for n in range(3):
            await tracker.add_problem_attempt(_attempt(n, ptype="counting"))
        summary = await tracker.summary()
        assert summary.favorite_activity == "counting"
        await engine.dispose()
    asyncio.run(_run())

def test_reset_clears_player_data():
    async def _run():
        engine, Session = await _setup_session()
        tracker = ProgressTracker(Session, 1)
        other = ProgressTracker(Session, 2)
        sid = await tracker.start_session("addition", "easy")
        await tracker.add_problem_attempt(_attempt(1))
        await tracker.end_session(sid)
        await tracker.check_achievements()
        sid2 = await other.start_session("addition", "easy")
        await other.add_problem_attempt(_attempt(1))

        await tracker.reset()
        summary = await tracker.summary()
        assert summary.total_problems == 0
        assert summary.achievements == []
        assert (await other.summary()).total_problems == 1
        await engine.dispose()
    asyncio.run(_run())

def test_analytics_records_events_and_mastery():
    async def _run():
        engine, Session = await _setup_session()
        analytics = AnalyticsService(Session, 1)
        await analytics.track_session_start("addition")
        await analytics.track_activity_selected("addition", 5)
        await analytics.track_activity_selected("addition", 5)
        await analytics.track_problem_answered(_attempt(1, True, time_ms=1000))
        await analytics.track_problem_answered(_attempt(2, False, time_ms=2000))
        await analytics.track_session_completed(SessionSummary("session-1", "addition", 2, 1, 30_000))

        mastery = await analytics.mastery()
        assert len(mastery) == 1
        assert mastery[0].attempted == 2
        assert mastery[0].correct == 1
        assert mastery[0].level == 50
        assert mastery[0].average_time_ms == pytest.approx(1300.0)

        async with Session() as s:
            events = (await s.execute(select(AnalyticsEvent.event).order_by(AnalyticsEvent.id))).scalars().all()
            pref = (await s.execute(select(ActivityPreference))).scalar_one()
        assert events == [
            "session_started",
            "activity_selected",
            "activity_selected",
            "problem_answered",
            "problem_answered",
            "session_completed",
        ]
        assert pref.times_selected == 2
        await engine.dispose()
    asyncio.run(_run())

def test_analytics_failures_are_swallowed():
    class Broken:
        def __call__(self):
            raise RuntimeError("db down")

    async def _run():
        analytics = AnalyticsService(Broken(), 1)
        await analytics.track_app_started()
        await analytics.track_problem_answered(_attempt(1))
        await analytics.track_error(ValueError("boom"))
    asyncio.run(_run())

def test_analytics_helpers():
    assert update_average(0, 1000) == 1000
    assert update_average(1000, 2000) == pytest.approx(1300.0)
    assert mastery_level(0, 0) == 0
    assert mastery_level(4, 3) == 75
    assert duration_bucket(60_000) == "0-5min"
    assert duration_bucket(6 * 60_000) == "5-10min"
    assert duration_bucket(15 * 60_000) == "10-20min"
    assert duration_bucket(25 * 60_000) == "20+min"
