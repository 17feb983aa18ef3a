from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from .generation.answer_options import validate_answer_options
from .generation.plans import SEQUENCE_STARTS
from .generation.types import Problem, SequencePlanItem, SessionPlanItem


@dataclass(frozen=True)
class ValidationIssue:
    severity: str  # "error" | "warning"
    message: str
    slot: int | None = None


def validate_session_plan(
    plan: Iterable[SessionPlanItem],
    *,
    requested: int | None = None,
) -> list[ValidationIssue]:
    items = list(plan)
    issues: list[ValidationIssue] = []
    if requested is not None and len(items) < requested:
        issues.append(
            ValidationIssue("warning", f"plan has {len(items)} of {requested} requested items")
        )

    counts = Counter(item.answer_key for item in items)
    seen: set = set()
    for idx, item in enumerate(items):
        key = item.answer_key
        if counts[key] > 1 and key in seen:
            issues.append(ValidationIssue("error", f"answer {key!r} repeats an earlier slot", idx))
        seen.add(key)
        if isinstance(item, SequencePlanItem):
            starts = SEQUENCE_STARTS.get(item.step_size)
            if starts is None:
                issues.append(ValidationIssue("error", f"unsupported step size {item.step_size}", idx))
            elif item.start_num not in starts:
                issues.append(
                    ValidationIssue(
                        "error",
                        f"start {item.start_num} is off the counting boundary for step {item.step_size}",
                        idx,
                    )
                )
    return issues


def validate_problem(problem: Problem) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    if not problem.is_multiple_choice:
        if problem.type == "fact-family" and len(problem.expected_values) != 4:
            issues.append(ValidationIssue("error", "fact family needs four expected values"))
        return issues
    if isinstance(problem.correct_answer, str):
        occurrences = sum(1 for opt in problem.options if opt == problem.correct_answer)
        if occurrences != 1:
            issues.append(ValidationIssue("error", "symbol answer must appear exactly once"))
        return issues
    check = validate_answer_options(list(problem.options), problem.correct_answer)
    for err in check.errors:
        issues.append(ValidationIssue("error", err))
    if problem.type in ("subtraction", "division", "word-problem") and problem.correct_answer < 0:
        issues.append(ValidationIssue("error", "negative answer"))
    return issues
