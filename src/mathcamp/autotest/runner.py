from __future__ import annotations

import datetime as dt
import json
import logging
import random
import traceback
from collections import Counter, deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ..analytics import AnalyticsService
from ..choices import option_label
from ..db import ensure_sqlite_schema
from ..generation.types import Problem
from ..orchestrator import SESSION_COMPLETE, OrchestratorConfig, SessionOrchestrator
from ..progress import ProgressTracker
from .checks import gather_issues, gather_session_issues
from .types import AnswerAttempt, Issue, QuestionContext

logger = logging.getLogger(__name__)


def format_bot_message(ctx: QuestionContext) -> str:
    problem = ctx.problem
    header = f"[{ctx.question_key}] {ctx.index + 1}/{ctx.session_length}"
    parts = [header]
    if problem.story:
        parts.append(problem.story)
    parts.append(problem.question)
    for idx, opt in enumerate(problem.options):
        parts.append(f"{option_label(idx)}) {opt}")
    return "\n".join(parts)


def solve(problem: Problem) -> str:
    """Answer the way a careful player would: by letter when there are options."""
    if problem.type == "fact-family":
        return ", ".join(str(x) for x in problem.expected_values)
    if problem.is_multiple_choice:
        return option_label(problem.options.index(problem.correct_answer))
    return str(problem.correct_answer)


def force_wrong(problem: Problem, rng: random.Random) -> AnswerAttempt:
    if problem.type == "fact-family":
        values = list(problem.expected_values)
        slot = rng.randrange(len(values))
        values[slot] += 1
        return AnswerAttempt(", ".join(str(x) for x in values), True, f"blank_{slot + 1}_off_by_one")
    if problem.is_multiple_choice:
        wrong = [idx for idx, opt in enumerate(problem.options) if opt != problem.correct_answer]
        idx = rng.choice(wrong)
        return AnswerAttempt(option_label(idx), True, "distractor")
    if isinstance(problem.correct_answer, str):
        other = next(s for s in (">", "<", "=") if s != problem.correct_answer)
        return AnswerAttempt(other, True, "other_symbol")
    return AnswerAttempt(str(problem.correct_answer + 1), True, "off_by_one")


@dataclass
class RunnerConfig:
    db_url: str
    sessions: int
    problem_count: int
    activities: list[str]
    difficulties: list[str]
    user_id: int
    mistake_min: int
    mistake_max: int
    seed: int | None
    max_same_question: int
    log_dir: Path
    run_id: str
    shortfall: str = "repeat"
    option_count: int = 4


@dataclass
class AttemptStats:
    sessions: int = 0
    attempts: int = 0
    correct: int = 0
    wrong: int = 0
    invalid: int = 0
    forced_wrong: int = 0
    forced_wrong_accepted: int = 0
    achievements: Counter = field(default_factory=Counter)


class MistakeScheduler:
    def __init__(self, *, mistake_min: int, mistake_max: int, rng: random.Random) -> None:
        if mistake_min <= 0 or mistake_max <= 0:
            raise ValueError("mistake bounds must be positive")
        if mistake_min > mistake_max:
            raise ValueError("mistake_min must be <= mistake_max")
        self._rng = rng
        self._min = mistake_min
        self._max = mistake_max
        self._counter = rng.randint(mistake_min, mistake_max)

    def should_force_wrong(self) -> bool:
        self._counter -= 1
        if self._counter <= 0:
            self._counter = self._rng.randint(self._min, self._max)
            return True
        return False


class StuckDetector:
    """Flags a question that keeps coming back without the session moving on."""

    def __init__(self, *, max_same_question: int) -> None:
        self._max_same = max_same_question
        self._same_count = 0
        self._last_key: str | None = None

    def record(self, question_key: str) -> int | None:
        if question_key == self._last_key:
            self._same_count += 1
        else:
            self._same_count = 1
            self._last_key = question_key
        if self._same_count > self._max_same:
            return self._same_count
        return None


class StuckError(RuntimeError):
    pass


class AutotestRunner:
    def __init__(self, config: RunnerConfig) -> None:
        self.config = config
        self._engine = create_async_engine(config.db_url, future=True)
        self._sessionmaker: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine,
            expire_on_commit=False,
        )
        self._rng = random.Random(config.seed)
        self._mistake_scheduler = MistakeScheduler(
            mistake_min=config.mistake_min,
            mistake_max=config.mistake_max,
            rng=self._rng,
        )
        self._stuck = StuckDetector(max_same_question=config.max_same_question)
        self._events: deque[dict[str, Any]] = deque(maxlen=50)
        self._issues: Counter[str] = Counter()
        self._issue_examples: dict[str, list[dict[str, Any]]] = {}
        self._error_count = 0
        self._stats = AttemptStats()
        self._log_path = config.log_dir / f"autotest_{config.run_id}.jsonl"
        self._summary_path = config.log_dir / f"autotest_{config.run_id}_summary.json"

    async def run(self) -> int:
        logger.info(
            "autotest_started run_id=%s sessions=%s activities=%s",
            self.config.run_id,
            self.config.sessions,
            ",".join(self.config.activities),
        )
        if self.config.seed is not None:
            # generators draw from the module-level random
            random.seed(self.config.seed)
        try:
            await ensure_sqlite_schema(self._engine)
            try:
                await self._run_sweep()
            except StuckError:
                logger.warning("autotest_stopped reason=stuck")
                await self._write_summary(reason="stuck")
                return 2
            except Exception as exc:
                logger.exception("autotest_stopped reason=exception")
                await self._log_exception("runner_exception", exc)
                await self._write_summary(reason="exception", exception=exc)
                return 3
            await self._write_summary(reason=None)
        finally:
            await self._engine.dispose()
        logger.info(
            "autotest_completed sessions=%s attempts=%s correct=%s wrong=%s errors=%s",
            self._stats.sessions,
            self._stats.attempts,
            self._stats.correct,
            self._stats.wrong,
            self._error_count,
        )
        return 1 if self._error_count else 0

    async def _run_sweep(self) -> None:
        combos = [(a, d) for a in self.config.activities for d in self.config.difficulties]
        if not combos:
            return
        for session_no in range(self.config.sessions):
            activity, difficulty = combos[session_no % len(combos)]
            await self._play_session(session_no, activity, difficulty)

    async def _play_session(self, session_no: int, activity: str, difficulty: str) -> None:
        allow_repeats = self.config.shortfall == "repeat"
        orch = SessionOrchestrator(
            ProgressTracker(self._sessionmaker, self.config.user_id),
            AnalyticsService(self._sessionmaker, self.config.user_id),
            OrchestratorConfig(
                difficulty=difficulty,
                problem_count=self.config.problem_count,
                shortfall=self.config.shortfall,
                option_count=self.config.option_count,
            ),
        )
        problem = await orch.start_game(activity)
        self._stats.sessions += 1
        played: list[Problem] = []
        while problem is not None:
            ctx = QuestionContext(activity, difficulty, session_no, orch.index, orch.session_length, problem)
            if self._stuck.record(ctx.question_key) is not None:
                await self._log_event("stuck", ctx)
                raise StuckError(ctx.question_key)
            if not played or played[-1].id != problem.id:
                played.append(problem)
                await self._log_event("question_loaded", ctx, details={"message": format_bot_message(ctx)})
                for issue in gather_issues(ctx):
                    await self._record_issue(issue, ctx)

            attempt = AnswerAttempt(solve(problem))
            if self._mistake_scheduler.should_force_wrong():
                attempt = force_wrong(problem, self._rng)
                self._stats.forced_wrong += 1

            outcome = await orch.handle_answer(attempt.raw)
            if outcome is None:
                await self._record_issue(Issue("ANSWER_IGNORED", "error", "orchestrator was not awaiting"), ctx)
                break
            self._stats.attempts += 1
            verdict = outcome.grade.verdict
            await self._log_event(
                "answer_graded",
                ctx,
                details={
                    "answer_raw": attempt.raw,
                    "forced_wrong": attempt.forced_wrong,
                    "verdict": verdict,
                    "canonical": outcome.grade.canonical,
                },
            )
            if verdict == "invalid":
                self._stats.invalid += 1
                await self._record_issue(Issue("ANSWER_UNREADABLE", "error", f"{attempt.raw!r} was not understood"), ctx)
                break
            if verdict == "correct":
                self._stats.correct += 1
                if attempt.forced_wrong:
                    self._stats.forced_wrong_accepted += 1
                    await self._record_issue(
                        Issue("FORCED_WRONG_ACCEPTED", "error", f"{attempt.raw!r} ({attempt.force_reason}) graded correct"),
                        ctx,
                    )
            else:
                self._stats.wrong += 1
                if not attempt.forced_wrong:
                    await self._record_issue(Issue("CORRECT_REJECTED", "error", f"{attempt.raw!r} graded wrong"), ctx)

            if outcome.is_complete:
                for ach in outcome.new_achievements:
                    self._stats.achievements[ach.key] += 1
                break
            problem = outcome.next_problem

        if orch.state != SESSION_COMPLETE:
            orch.abandon()
        summary_ctx = {"activity": activity, "difficulty": difficulty, "session_no": session_no}
        for issue in gather_session_issues(
            activity,
            difficulty,
            orch.plan,
            played,
            requested=self.config.problem_count,
            session_length=orch.session_length,
            allow_repeats=allow_repeats,
        ):
            await self._record_issue(issue, None, extra=summary_ctx)

    async def _record_issue(
        self,
        issue: Issue,
        ctx: QuestionContext | None,
        *,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self._issues[issue.issue_type] += 1
        if issue.severity == "error":
            self._error_count += 1
        examples = self._issue_examples.setdefault(issue.issue_type, [])
        where = ctx.question_key if ctx else json.dumps(extra or {}, ensure_ascii=False)
        if len(examples) < 3:
            examples.append({"where": where, "details": issue.details})
        logger.info("autotest_issue type=%s severity=%s where=%s", issue.issue_type, issue.severity, where)
        payload = {"issue_type": issue.issue_type, "severity": issue.severity, "details": issue.details}
        if issue.metadata:
            payload["metadata"] = issue.metadata
        if extra:
            payload.update(extra)
        await self._log_event("issue_detected", ctx, details=payload)

    async def _log_event(self, event: str, ctx: QuestionContext | None, *, details: dict[str, Any] | None = None) -> None:
        payload: dict[str, Any] = {
            "ts": dt.datetime.now(tz=dt.timezone.utc).isoformat(),
            "run_id": self.config.run_id,
            "event": event,
        }
        if ctx is not None:
            payload.update({
                "question_key": ctx.question_key,
                "problem_id": ctx.problem.id,
                "activity": ctx.activity,
                "difficulty": ctx.difficulty,
                "index": ctx.index,
            })
        if details:
            payload.update(details)
        self._events.append(payload)
        self._log_path.parent.mkdir(parents=True, exist_ok=True)
        with self._log_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, ensure_ascii=False) + "\n")

    async def _log_exception(self, event: str, exc: Exception) -> None:
        payload = {
            "ts": dt.datetime.now(tz=dt.timezone.utc).isoformat(),
            "run_id": self.config.run_id,
            "event": event,
            "exception": str(exc),
            "trace": traceback.format_exc(),
        }
        self._events.append(payload)
        self._log_path.parent.mkdir(parents=True, exist_ok=True)
        with self._log_path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(payload, ensure_ascii=False) + "\n")

    async def _write_summary(self, *, reason: str | None, exception: Exception | None = None) -> None:
        summary: dict[str, Any] = {
            "run_id": self.config.run_id,
            "totals": {
                "sessions": self._stats.sessions,
                "attempts": self._stats.attempts,
                "correct": self._stats.correct,
                "wrong": self._stats.wrong,
                "invalid": self._stats.invalid,
            },
            "forced_wrong": {
                "total": self._stats.forced_wrong,
                "accepted": self._stats.forced_wrong_accepted,
            },
            "achievements": dict(self._stats.achievements),
            "issues": {
                issue_type: {
                    "count": count,
                    "examples": self._issue_examples.get(issue_type, []),
                }
                for issue_type, count in self._issues.items()
            },
            "stop_reason": reason,
            "last_events": list(self._events),
        }
        if exception:
            summary["exception"] = {
                "type": type(exception).__name__,
                "message": str(exception),
                "trace": traceback.format_exc(),
            }
        self._summary_path.parent.mkdir(parents=True, exist_ok=True)
        self._summary_path.write_text(json.dumps(summary, ensure_ascii=False, indent=2), encoding="utf-8")
