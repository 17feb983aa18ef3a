"""
Session plans: the parameters for every question of a session, drawn up
front so that no two questions share a correct answer.
"""

from __future__ import annotations

import logging
import random
from typing import Callable, TypeVar

from .types import (
    ArithmeticPlanItem,
    CountingPlanItem,
    FactFamilyPlanItem,
    SequencePlanItem,
    SessionPlanItem,
    WordProblemPlanItem,
    check_difficulty,
    check_problem_type,
)
from .word_problems import OPERATIONS, THEMES

logger = logging.getLogger(__name__)

ARITHMETIC_ATTEMPTS = 30
SEQUENCE_ATTEMPTS = 50

_ARITHMETIC_MAX = {"easy": (5, 5), "medium": (10, 10), "hard": (15, 10)}
_FACT_FAMILY_MAX = {"easy": 10, "medium": 15, "hard": 20}

COUNTING_LAYOUTS = {
    "easy": ("line", "scattered"),
    "medium": ("line", "scattered", "grid"),
    "hard": ("scattered", "line", "grid"),
}

SEQUENCE_LENGTH = {"easy": 4, "medium": 5, "hard": 6}

# starts stay on the step's counting boundary so sequences look clean
SEQUENCE_STARTS: dict[int, tuple[int, ...]] = {
    1: tuple(range(1, 51)),
    2: tuple(range(2, 41, 2)),
    3: tuple(range(3, 31, 3)),
    5: tuple(range(5, 51, 5)),
    10: tuple(range(5, 51, 5)),
}

# step sizes that must show up at least once, and how many trailing slots
# are left to the weighted draw
_SEQUENCE_COVERAGE = {
    "easy": ((), 0),
    "medium": ((2, 3, 5), 2),
    "hard": ((2, 3, 5, 10), 3),
}

_SEQUENCE_WEIGHTS = {
    "easy": ((1, 2), (30, 70)),
    "medium": ((1, 2, 3, 5), (15, 20, 20, 45)),
    "hard": ((1, 2, 3, 5, 10), (10, 15, 15, 25, 35)),
}

T = TypeVar("T", bound=SessionPlanItem)


def _fill_unique(
    problem_count: int,
    draw: Callable[[int], T],
    *,
    max_attempts: int,
    allow_repeats: bool,
    activity: str,
    on_accept: Callable[[T], None] | None = None,
) -> list[T]:
    plan: list[T] = []
    used: set = set()
    for slot in range(problem_count):
        accepted: T | None = None
        candidate: T | None = None
        for _ in range(max_attempts):
            candidate = draw(slot)
            if candidate.answer_key not in used:
                accepted = candidate
                break
        if accepted is None and allow_repeats and candidate is not None:
            logger.warning(
                "session_plan_repeat activity=%s slot=%s answer_key=%s",
                activity,
                slot,
                candidate.answer_key,
            )
            accepted = candidate
        if accepted is None:
            logger.info("session_plan_slot_dropped activity=%s slot=%s", activity, slot)
            continue
        used.add(accepted.answer_key)
        plan.append(accepted)
        if on_accept is not None:
            on_accept(accepted)
    return plan


def generate_arithmetic_plan(
    problem_count: int,
    difficulty: str,
    activity: str,
    *,
    allow_repeats: bool = False,
) -> list[ArithmeticPlanItem]:
    max1, max2 = _ARITHMETIC_MAX[difficulty]

    def draw(_slot: int) -> ArithmeticPlanItem:
        num1 = random.randint(1, max1)
        num2 = random.randint(1, max2)
        if activity == "subtraction":
            num1, num2 = max(num1, num2), min(num1, num2)
            return ArithmeticPlanItem(num1, num2, num1 - num2)
        return ArithmeticPlanItem(num1, num2, num1 + num2)

    return _fill_unique(
        problem_count,
        draw,
        max_attempts=ARITHMETIC_ATTEMPTS,
        allow_repeats=allow_repeats,
        activity=activity,
    )


def generate_fact_family_plan(
    problem_count: int,
    difficulty: str,
    *,
    allow_repeats: bool = False,
) -> list[FactFamilyPlanItem]:
    max_num = _FACT_FAMILY_MAX[difficulty]

    def draw(_slot: int) -> FactFamilyPlanItem:
        num1 = random.randint(1, max_num)
        num2 = random.randint(1, max_num)
        return FactFamilyPlanItem(num1, num2, num1 + num2)

    return _fill_unique(
        problem_count,
        draw,
        max_attempts=ARITHMETIC_ATTEMPTS,
        allow_repeats=allow_repeats,
        activity="fact-family",
    )


def generate_word_problem_plan(
    problem_count: int,
    difficulty: str,
    *,
    allow_repeats: bool = False,
) -> list[WordProblemPlanItem]:
    # numbers are drawn when the question is rendered, so difficulty does not
    # shape the plan itself
    def draw(_slot: int) -> WordProblemPlanItem:
        return WordProblemPlanItem(random.choice(THEMES), random.choice(OPERATIONS))

    return _fill_unique(
        problem_count,
        draw,
        max_attempts=ARITHMETIC_ATTEMPTS,
        allow_repeats=allow_repeats,
        activity="word-problem",
    )


def generate_counting_plan(problem_count: int, difficulty: str) -> list[CountingPlanItem]:
    layouts = COUNTING_LAYOUTS[difficulty]
    return [CountingPlanItem(random.choice(layouts), idx) for idx in range(problem_count)]


def pick_sequence_start(step_size: int) -> int:
    return random.choice(SEQUENCE_STARTS.get(step_size, SEQUENCE_STARTS[1]))


def sequence_next_value(start_num: int, step_size: int, difficulty: str) -> int:
    last_shown = start_num + (SEQUENCE_LENGTH[difficulty] - 1) * step_size
    return last_shown + step_size


def draw_step_size(difficulty: str) -> int:
    steps, weights = _SEQUENCE_WEIGHTS[difficulty]
    return random.choices(steps, weights=weights, k=1)[0]


def coverage_steps(difficulty: str) -> tuple[int, ...]:
    """Step sizes a full counting-sequence plan must contain at least once."""
    return _SEQUENCE_COVERAGE[difficulty][0]


def coverage_guaranteed(problem_count: int, difficulty: str) -> bool:
    required, reserve = _SEQUENCE_COVERAGE[difficulty]
    return problem_count >= len(required) + reserve


def generate_counting_sequence_plan(
    problem_count: int,
    difficulty: str,
    *,
    allow_repeats: bool = False,
) -> list[SequencePlanItem]:
    required, reserve = _SEQUENCE_COVERAGE[difficulty]
    step_counts: dict[int, int] = {step: 0 for step in required}
    accepted_so_far = [0]

    def draw(slot: int) -> SequencePlanItem:
        missing = next(
            (
                step
                for step in required
                if step_counts[step] == 0 and accepted_so_far[0] < problem_count - 1
            ),
            None,
        )
        if missing is not None and slot < problem_count - reserve:
            step_size = missing
        else:
            step_size = draw_step_size(difficulty)
        start_num = pick_sequence_start(step_size)
        return SequencePlanItem(
            step_size=step_size,
            start_num=start_num,
            correct_answer=sequence_next_value(start_num, step_size, difficulty),
        )

    def on_accept(item: SequencePlanItem) -> None:
        accepted_so_far[0] += 1
        if item.step_size in step_counts:
            step_counts[item.step_size] += 1

    return _fill_unique(
        problem_count,
        draw,
        max_attempts=SEQUENCE_ATTEMPTS,
        allow_repeats=allow_repeats,
        activity="counting-sequence",
        on_accept=on_accept,
    )


_PLANNERS: dict[str, Callable[[int, str, bool], list]] = {
    "addition": lambda n, d, r: generate_arithmetic_plan(n, d, "addition", allow_repeats=r),
    "subtraction": lambda n, d, r: generate_arithmetic_plan(n, d, "subtraction", allow_repeats=r),
    "fact-family": lambda n, d, r: generate_fact_family_plan(n, d, allow_repeats=r),
    "word-problem": lambda n, d, r: generate_word_problem_plan(n, d, allow_repeats=r),
    "counting": lambda n, d, r: generate_counting_plan(n, d),
    "counting-sequence": lambda n, d, r: generate_counting_sequence_plan(n, d, allow_repeats=r),
}

PLANNED_TYPES: frozenset[str] = frozenset(_PLANNERS)


def generate_session_plan(
    activity_type: str,
    problem_count: int,
    difficulty: str,
    *,
    allow_repeats: bool = False,
) -> list[SessionPlanItem]:
    """
    Plan a whole session. Types that are generated fresh per question
    (multiplication, division, comparison) get an empty plan.

    With ``allow_repeats=False`` the plan may come back shorter than
    ``problem_count`` when the uniqueness search runs dry; with
    ``allow_repeats=True`` the slot takes a repeated answer instead.
    """
    check_problem_type(activity_type)
    check_difficulty(difficulty)
    if problem_count < 0:
        raise ValueError("problem_count must not be negative")

    planner = _PLANNERS.get(activity_type)
    if planner is None:
        return []
    return planner(problem_count, difficulty, allow_repeats)
