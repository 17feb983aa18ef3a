from __future__ import annotations

from collections import Counter
from typing import Iterable, Sequence

from ..generation.plans import coverage_guaranteed, coverage_steps
from ..generation.types import Problem, SequencePlanItem, SessionPlanItem
from ..validation import validate_problem, validate_session_plan
from .types import Issue, QuestionContext

# activities whose plans keep the correct answer itself unique
UNIQUE_ANSWER_TYPES = frozenset({"addition", "subtraction", "fact-family", "counting-sequence"})


def check_problem_structure(ctx: QuestionContext) -> Iterable[Issue]:
    problem = ctx.problem
    if not problem.question.strip():
        yield Issue("MALFORMED_PROBLEM", "error", "empty question")
    if problem.type != ctx.activity:
        yield Issue("MALFORMED_PROBLEM", "error", f"type {problem.type} in a {ctx.activity} session")
    if problem.difficulty != ctx.difficulty:
        yield Issue("MALFORMED_PROBLEM", "error", f"difficulty {problem.difficulty} != {ctx.difficulty}")


def check_problem_options(ctx: QuestionContext) -> Iterable[Issue]:
    for v in validate_problem(ctx.problem):
        yield Issue("INVALID_OPTIONS", v.severity, v.message)


def check_fact_family(ctx: QuestionContext) -> Iterable[Issue]:
    problem = ctx.problem
    if problem.type != "fact-family" or len(problem.expected_values) != 4:
        return
    s1, s2, b, a = problem.expected_values
    if s1 != s2 or s1 != a + b:
        yield Issue(
            "FACT_FAMILY_INCONSISTENT",
            "error",
            f"blanks {problem.expected_values} do not form a family",
        )


def gather_issues(ctx: QuestionContext) -> list[Issue]:
    issues: list[Issue] = []
    for check in (
        check_problem_structure,
        check_problem_options,
        check_fact_family,
    ):
        issues.extend(list(check(ctx)))
    return issues


def check_plan(plan: Sequence[SessionPlanItem], requested: int, *, allow_repeats: bool) -> Iterable[Issue]:
    for v in validate_session_plan(plan, requested=requested):
        if v.severity == "warning":
            yield Issue("PLAN_SHORT", "warning", v.message)
        elif allow_repeats and "repeats" in v.message:
            yield Issue("PLAN_REPEAT", "warning", v.message, metadata={"slot": v.slot})
        else:
            yield Issue("PLAN_INVALID", "error", v.message, metadata={"slot": v.slot})


def check_answers_unique(activity: str, problems: Sequence[Problem], *, allow_repeats: bool) -> Iterable[Issue]:
    if activity not in UNIQUE_ANSWER_TYPES:
        return
    counts = Counter(str(p.correct_answer) for p in problems)
    dupes = sorted(answer for answer, n in counts.items() if n > 1)
    if dupes:
        yield Issue(
            "DUPLICATE_ANSWER",
            "warning" if allow_repeats else "error",
            f"answers repeated in one session: {', '.join(dupes)}",
        )


def check_sequence_coverage(plan: Sequence[SessionPlanItem], difficulty: str) -> Iterable[Issue]:
    items = [item for item in plan if isinstance(item, SequencePlanItem)]
    if not items or not coverage_guaranteed(len(items), difficulty):
        return
    seen = {item.step_size for item in items}
    missing = [step for step in coverage_steps(difficulty) if step not in seen]
    if missing:
        yield Issue(
            "COVERAGE_MISSING",
            "error",
            f"step sizes never used: {', '.join(str(s) for s in missing)}",
        )


def check_session_length(played: int, session_length: int) -> Iterable[Issue]:
    if played != session_length:
        yield Issue(
            "SESSION_LENGTH_MISMATCH",
            "error",
            f"played {played} questions, session length {session_length}",
        )


def gather_session_issues(
    activity: str,
    difficulty: str,
    plan: Sequence[SessionPlanItem],
    problems: Sequence[Problem],
    *,
    requested: int,
    session_length: int,
    allow_repeats: bool,
) -> list[Issue]:
    issues: list[Issue] = []
    if plan:
        issues.extend(check_plan(plan, requested, allow_repeats=allow_repeats))
        issues.extend(check_sequence_coverage(plan, difficulty))
    issues.extend(check_answers_unique(activity, problems, allow_repeats=allow_repeats))
    issues.extend(check_session_length(len(problems), session_length))
    return issues
