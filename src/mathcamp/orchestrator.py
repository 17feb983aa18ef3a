from __future__ import annotations
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from .generation.plans import PLANNED_TYPES, generate_session_plan
from .generation.problems import generate_problem
from .generation.types import (
    AttemptedProblem,
    GenerationFailed,
    Problem,
    SessionPlanItem,
    SessionSummary,
    check_difficulty,
    check_problem_type,
)
from .grader import GradeResult, grade_answer

logger = logging.getLogger(__name__)

IDLE = "idle"
AWAITING_ANSWER = "awaiting_answer"
SESSION_COMPLETE = "session_complete"
# answer accepted, collaborators still recording it
RECORDING = "recording"

@dataclass(frozen=True)
class OrchestratorConfig:
    difficulty: str = "easy"
    problem_count: int = 10
    shortfall: str = "repeat"  # repeat | truncate
    option_count: int = 4

@dataclass
class AnswerOutcome:
    problem: Problem
    grade: GradeResult
    index: int
    session_length: int
    attempt: AttemptedProblem | None = None  # None when the answer could not be read
    next_problem: Problem | None = None
    summary: SessionSummary | None = None
    new_achievements: list[Any] = field(default_factory=list)

    @property
    def is_correct(self) -> bool:
        return self.grade.is_correct

    @property
    def is_invalid(self) -> bool:
        return self.grade.verdict == "invalid"

    @property
    def is_complete(self) -> bool:
        return self.summary is not None

class SessionOrchestrator:
    """Drives one play-through: plan, render, grade, record, advance.

    `progress` must provide async start_session / add_problem_attempt /
    end_session / check_achievements; `analytics` the async track_* calls.
    """

    def __init__(
        self,
        progress,
        analytics,
        config: OrchestratorConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.progress = progress
        self.analytics = analytics
        self.config = config or OrchestratorConfig()
        self._clock = clock
        self._reset(None)

    def _reset(self, problem_type: str | None) -> None:
        self.state = IDLE
        self.problem_type = problem_type
        self.plan: list[SessionPlanItem] = []
        self.session_length = 0
        self.index = 0
        self.current_problem: Problem | None = None
        self.history: list[AttemptedProblem] = []
        self.session_id: str | None = None
        self.summary: SessionSummary | None = None
        self._started_at = 0.0
        self._shown_at = 0.0
        self._attempts = 0
        self._hints_used = 0

    @property
    def correct_count(self) -> int:
        return sum(1 for a in self.history if a.is_correct)

    async def start_game(self, problem_type: str) -> Problem | None:
        """Start a fresh session. Returns the first question, or None when the plan is empty."""
        check_problem_type(problem_type)
        difficulty = check_difficulty(self.config.difficulty)
        if self.state == AWAITING_ANSWER:
            logger.info("session_discarded type=%s index=%s", self.problem_type, self.index)
        self._reset(problem_type)

        count = self.config.problem_count
        if problem_type in PLANNED_TYPES:
            self.plan = generate_session_plan(
                problem_type,
                count,
                difficulty,
                allow_repeats=self.config.shortfall == "repeat",
            )
            self.session_length = len(self.plan)
            if self.session_length < count:
                logger.warning(
                    "session_plan_short type=%s difficulty=%s planned=%s requested=%s",
                    problem_type, difficulty, self.session_length, count,
                )
        else:
            self.session_length = count

        self._started_at = self._clock()
        self.session_id = await self.progress.start_session(problem_type, difficulty)
        await self.analytics.track_session_start(problem_type)
        await self.analytics.track_activity_selected(problem_type, self.session_length)
        logger.info(
            "session_started type=%s difficulty=%s length=%s session=%s",
            problem_type, difficulty, self.session_length, self.session_id,
        )

        if self.session_length == 0:
            await self._complete()
            return None
        return await self._show(0)

    async def _render(self, index: int) -> Problem:
        plan_item = self.plan[index] if self.plan else None
        result = generate_problem(
            self.problem_type,
            self.config.difficulty,
            plan_item=plan_item,
            option_count=self.config.option_count,
        )
        if isinstance(result, GenerationFailed):
            logger.warning(
                "question_free_form_fallback type=%s index=%s reason=%s",
                result.problem_type, index, result.reason,
            )
            await self.analytics.track_error(
                RuntimeError(result.reason),
                {"problem_type": result.problem_type, "index": index},
            )
            result = generate_problem(
                self.problem_type,
                self.config.difficulty,
                plan_item=plan_item,
                option_count=0,
            )
        if isinstance(result, GenerationFailed):
            raise RuntimeError(f"could not generate a {self.problem_type} question: {result.reason}")
        return result

    async def _show(self, index: int) -> Problem:
        self.index = index
        self.current_problem = await self._render(index)
        self.state = AWAITING_ANSWER
        self._shown_at = self._clock()
        self._attempts = 0
        self._hints_used = 0
        return self.current_problem

    async def handle_answer(self, answer: str) -> AnswerOutcome | None:
        if self.state != AWAITING_ANSWER or self.current_problem is None:
            logger.warning("answer_ignored state=%s type=%s", self.state, self.problem_type)
            return None

        problem = self.current_problem
        grade = grade_answer(problem, answer)
        self._attempts += 1
        if grade.verdict == "invalid":
            return AnswerOutcome(problem, grade, self.index, self.session_length)

        self.state = RECORDING
        self.current_problem = None

        attempt = AttemptedProblem(
            problem=problem,
            user_answer=grade.user_answer_norm,
            is_correct=grade.is_correct,
            time_spent_ms=max(0, int((self._clock() - self._shown_at) * 1000)),
            attempts=self._attempts,
            hints_used=self._hints_used,
        )
        self.history.append(attempt)
        await self.progress.add_problem_attempt(attempt)
        await self.analytics.track_problem_answered(attempt)

        outcome = AnswerOutcome(problem, grade, self.index, self.session_length, attempt=attempt)
        if self.index + 1 >= self.session_length:
            outcome.summary, outcome.new_achievements = await self._complete()
        else:
            outcome.next_problem = await self._show(self.index + 1)
        return outcome

    async def _complete(self) -> tuple[SessionSummary, list[Any]]:
        self.state = SESSION_COMPLETE
        self.current_problem = None
        duration_ms = max(0, int((self._clock() - self._started_at) * 1000))
        summary = SessionSummary(
            session_id=self.session_id,
            problem_type=self.problem_type,
            total=len(self.history),
            correct=self.correct_count,
            duration_ms=duration_ms,
        )
        achievements: list[Any] = []
        if self.session_id:
            await self.progress.end_session(self.session_id)
            achievements = list(await self.progress.check_achievements())
        summary.achievements = [a.key for a in achievements]
        await self.analytics.track_session_completed(summary)
        self.summary = summary
        logger.info(
            "session_completed type=%s total=%s correct=%s score=%s session=%s",
            summary.problem_type, summary.total, summary.correct, summary.score, summary.session_id,
        )
        return summary, achievements

    def mark_shown(self) -> None:
        """Restart the answer timer when the current question actually reaches the player."""
        if self.state == AWAITING_ANSWER:
            self._shown_at = self._clock()

    def use_hint(self) -> str | None:
        if self.state != AWAITING_ANSWER or self.current_problem is None:
            return None
        self._hints_used += 1
        return self.current_problem.hint

    def abandon(self) -> None:
        if self.state == AWAITING_ANSWER:
            logger.info(
                "session_abandoned type=%s index=%s session=%s",
                self.problem_type, self.index, self.session_id,
            )
        self._reset(None)
