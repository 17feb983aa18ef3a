from __future__ import annotations

import logging
import math
import random
import uuid
from typing import Callable, Optional

from .answer_options import generate_answer_options, shuffle_in_place
from .plans import (
    COUNTING_LAYOUTS,
    SEQUENCE_LENGTH,
    draw_step_size,
    pick_sequence_start,
    sequence_next_value,
)
from .types import (
    ArithmeticPlanItem,
    CountingPlanItem,
    FactFamilyPlanItem,
    GenerationFailed,
    Problem,
    SequencePlanItem,
    SessionPlanItem,
    WordProblemPlanItem,
    check_difficulty,
    check_problem_type,
)
from .word_problems import TEMPLATES, templates_for

logger = logging.getLogger(__name__)

MAX_GENERATION_ATTEMPTS = 10
COMPARISON_OPTIONS: tuple[str, ...] = (">", "<", "=")

_ADDITION_MAX = {"easy": (5, 5), "medium": (10, 10), "hard": (15, 15)}
_SUBTRACTION_MAX = {"easy": (10, 5), "medium": (15, 10), "hard": (20, 15)}
_MULTIPLICATION_RANGES = {
    "easy": ((1, 5), (1, 3)),
    "medium": ((1, 10), (1, 5)),
    "hard": ((2, 12), (2, 10)),
}
# (divisor range, quotient range)
_DIVISION_RANGES = {
    "easy": ((1, 5), (1, 5)),
    "medium": ((2, 10), (1, 10)),
    "hard": ((2, 12), (2, 12)),
}
_COMPARISON_MAX = {"easy": 10, "medium": 20, "hard": 50}
_WORD_PROBLEM_MAX = {"easy": (5, 5), "medium": (10, 10), "hard": (15, 10)}
_FACT_FAMILY_MAX = {"easy": 10, "medium": 15, "hard": 20}
# (target range, extra items range)
_COUNTING_RANGES = {
    "easy": ((2, 5), (2, 4)),
    "medium": ((4, 8), (3, 6)),
    "hard": ((6, 11), (5, 10)),
}
COUNTING_ITEMS: tuple[tuple[str, str], ...] = (
    ("pizza", "🍕"),
    ("pie", "🥧"),
    ("cookie", "🍪"),
    ("star", "⭐"),
    ("heart", "❤️"),
    ("flower", "🌸"),
    ("apple", "🍎"),
    ("banana", "🍌"),
)

Builder = Callable[[str, Optional[SessionPlanItem], int], Optional[Problem]]


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _options_for(correct: int, option_count: int, min_value: int) -> tuple[int, ...] | None:
    if option_count <= 0:
        return ()
    result = generate_answer_options(correct, option_count, min_value)
    if not result.is_valid:
        return None
    return tuple(result.options)


def _build_addition(difficulty: str, plan_item, option_count: int) -> Problem | None:
    if isinstance(plan_item, ArithmeticPlanItem):
        num1, num2 = plan_item.num1, plan_item.num2
    else:
        max1, max2 = _ADDITION_MAX[difficulty]
        num1, num2 = random.randint(1, max1), random.randint(1, max2)
    answer = num1 + num2
    options = _options_for(answer, option_count, 1)
    if options is None:
        return None
    return Problem(
        id=_new_id("add"),
        type="addition",
        question=f"{num1} + {num2}",
        correct_answer=answer,
        options=options,
        difficulty=difficulty,
        hint=f"Count {num1} objects, then add {num2} more!",
    )


def _build_subtraction(difficulty: str, plan_item, option_count: int) -> Problem | None:
    if isinstance(plan_item, ArithmeticPlanItem):
        num1, num2 = plan_item.num1, plan_item.num2
    else:
        max1, max2 = _SUBTRACTION_MAX[difficulty]
        num1, num2 = random.randint(1, max1), random.randint(1, max2)
    if num2 > num1:
        num1, num2 = num2, num1
    answer = num1 - num2
    options = _options_for(answer, option_count, 0)
    if options is None:
        return None
    return Problem(
        id=_new_id("sub"),
        type="subtraction",
        question=f"{num1} - {num2}",
        correct_answer=answer,
        options=options,
        difficulty=difficulty,
        hint=f"Start with {num1} objects and take away {num2}!",
    )


def _build_multiplication(difficulty: str, plan_item, option_count: int) -> Problem | None:
    (lo1, hi1), (lo2, hi2) = _MULTIPLICATION_RANGES[difficulty]
    num1, num2 = random.randint(lo1, hi1), random.randint(lo2, hi2)
    answer = num1 * num2
    options = _options_for(answer, option_count, 1)
    if options is None:
        return None
    return Problem(
        id=_new_id("mul"),
        type="multiplication",
        question=f"{num1} × {num2}",
        correct_answer=answer,
        options=options,
        difficulty=difficulty,
        hint=f"Make {num1} groups of {num2} and count them all!",
    )


def _build_division(difficulty: str, plan_item, option_count: int) -> Problem | None:
    (dlo, dhi), (qlo, qhi) = _DIVISION_RANGES[difficulty]
    divisor = random.randint(dlo, dhi)
    quotient = random.randint(qlo, qhi)
    dividend = divisor * quotient
    options = _options_for(quotient, option_count, 0)
    if options is None:
        return None
    return Problem(
        id=_new_id("div"),
        type="division",
        question=f"{dividend} ÷ {divisor}",
        correct_answer=quotient,
        options=options,
        difficulty=difficulty,
        hint=f"Share {dividend} things equally between {divisor} friends!",
    )


def _build_comparison(difficulty: str, plan_item, option_count: int) -> Problem:
    max_num = _COMPARISON_MAX[difficulty]
    num1, num2 = random.randint(1, max_num), random.randint(1, max_num)
    if num1 > num2:
        symbol = ">"
    elif num1 < num2:
        symbol = "<"
    else:
        symbol = "="
    return Problem(
        id=_new_id("comp"),
        type="comparison",
        question=f"{num1} ? {num2}",
        correct_answer=symbol,
        options=COMPARISON_OPTIONS,
        difficulty=difficulty,
        hint="Which number is bigger? Use > for bigger, < for smaller, = for same!",
    )


def _build_word_problem(difficulty: str, plan_item, option_count: int) -> Problem | None:
    if isinstance(plan_item, WordProblemPlanItem):
        candidates = templates_for(plan_item.theme, plan_item.operation) or list(TEMPLATES)
    else:
        candidates = list(TEMPLATES)
    template = random.choice(candidates)

    max1, max2 = _WORD_PROBLEM_MAX[difficulty]
    num1, num2 = random.randint(1, max1), random.randint(1, max2)
    if template.operation == "subtract" and num2 > num1:
        num1, num2 = num2, num1
    if template.operation == "compare":
        while num1 == num2:
            num2 = random.randint(1, max2)

    if template.operation == "add":
        answer = num1 + num2
        hint = "Put both groups together and count them all."
    elif template.operation == "subtract":
        answer = num1 - num2
        hint = "Start with the first number and take some away."
    else:
        answer = abs(num1 - num2)
        hint = "Find the difference between the two numbers."

    options = _options_for(answer, option_count, 0)
    if options is None:
        return None
    return Problem(
        id=_new_id("wp"),
        type="word-problem",
        question=template.question(num1, num2),
        correct_answer=answer,
        options=options,
        difficulty=difficulty,
        hint=hint,
        story=template.story(num1, num2),
        visual=template.visual,
    )


def _build_fact_family(difficulty: str, plan_item, option_count: int) -> Problem:
    if isinstance(plan_item, FactFamilyPlanItem):
        num1, num2 = plan_item.num1, plan_item.num2
    else:
        half = math.ceil(_FACT_FAMILY_MAX[difficulty] / 2)
        num1, num2 = random.randint(1, half), random.randint(1, half)
    total = num1 + num2
    equations = (
        f"{num1} + {num2} = ?",
        f"{num2} + {num1} = ?",
        f"{total} - {num1} = ?",
        f"{total} - {num2} = ?",
    )
    expected = (total, total, num2, num1)
    return Problem(
        id=_new_id("ff"),
        type="fact-family",
        question="\n".join(equations),
        correct_answer=", ".join(str(x) for x in expected),
        options=(),
        difficulty=difficulty,
        hint=f"{num1} and {num2} together make {total}. The house always uses the same three numbers!",
        story=f"🏠 {num1}, {num2}, {total}",
        expected_values=expected,
    )


def render_counting_scene(emojis: list[str], layout: str) -> str:
    if not emojis:
        return ""
    if layout == "line":
        return " ".join(emojis)
    if layout == "grid":
        cols = math.ceil(math.sqrt(len(emojis)))
        rows = [emojis[i : i + cols] for i in range(0, len(emojis), cols)]
        return "\n".join(" ".join(row) for row in rows)
    # scattered: uneven rows with random gaps
    lines: list[str] = []
    pos = 0
    while pos < len(emojis):
        width = random.randint(1, 4)
        chunk = emojis[pos : pos + width]
        pos += width
        indent = "  " * random.randint(0, 3)
        lines.append(indent + "   ".join(chunk))
    return "\n".join(lines)


def _build_counting(difficulty: str, plan_item, option_count: int) -> Problem | None:
    if isinstance(plan_item, CountingPlanItem):
        layout = plan_item.layout
    else:
        layout = random.choice(COUNTING_LAYOUTS[difficulty])
    (tlo, thi), (xlo, xhi) = _COUNTING_RANGES[difficulty]
    target_count = random.randint(tlo, thi)
    extra_count = random.randint(xlo, xhi)

    target_name, target_emoji = random.choice(COUNTING_ITEMS)
    others = [emoji for name, emoji in COUNTING_ITEMS if name != target_name]
    scene = [target_emoji] * target_count + [random.choice(others) for _ in range(extra_count)]
    shuffle_in_place(scene)

    options = _options_for(target_count, option_count, 1)
    if options is None:
        return None
    return Problem(
        id=_new_id("count"),
        type="counting",
        question=f"How many {target_emoji} can you find?",
        correct_answer=target_count,
        options=options,
        difficulty=difficulty,
        hint=f"Point at each {target_emoji} as you count it!",
        visual=render_counting_scene(scene, layout),
    )


def _sequence_options(correct: int, step: int, last_shown: int, option_count: int) -> tuple[int, ...] | None:
    if option_count <= 0:
        return ()
    # common mistakes first: off by a step, repeating the last number, off by one
    candidates = [correct - step, correct + step * 2, last_shown, correct - 1, correct + 1]
    if step > 1:
        candidates.append(correct - step // 2)
    wrong: list[int] = []
    for value in candidates:
        if value > 0 and value != correct and value not in wrong and len(wrong) < option_count - 1:
            wrong.append(value)
    if len(wrong) < option_count - 1:
        filler = generate_answer_options(correct, option_count + len(wrong), 1)
        for value in filler.options:
            if value != correct and value not in wrong and len(wrong) < option_count - 1:
                wrong.append(value)
    options = [correct] + wrong
    if len(options) != option_count:
        return None
    shuffle_in_place(options)
    return tuple(options)


def _build_counting_sequence(difficulty: str, plan_item, option_count: int) -> Problem | None:
    if isinstance(plan_item, SequencePlanItem):
        step, start = plan_item.step_size, plan_item.start_num
    else:
        step = draw_step_size(difficulty)
        start = pick_sequence_start(step)
    length = SEQUENCE_LENGTH[difficulty]
    shown = [start + i * step for i in range(length)]
    correct = sequence_next_value(start, step, difficulty)

    options = _sequence_options(correct, step, shown[-1], option_count)
    if options is None:
        return None
    return Problem(
        id=_new_id("seq"),
        type="counting-sequence",
        question=", ".join(str(x) for x in shown) + ", ?",
        correct_answer=correct,
        options=options,
        difficulty=difficulty,
        hint=f"Count by {step}s!" if step > 1 else "Count by ones!",
    )


_BUILDERS: dict[str, Builder] = {
    "addition": _build_addition,
    "subtraction": _build_subtraction,
    "multiplication": _build_multiplication,
    "division": _build_division,
    "comparison": _build_comparison,
    "fact-family": _build_fact_family,
    "word-problem": _build_word_problem,
    "counting": _build_counting,
    "counting-sequence": _build_counting_sequence,
}


def generate_problem(
    problem_type: str,
    difficulty: str,
    *,
    plan_item: SessionPlanItem | None = None,
    option_count: int = 4,
) -> Problem | GenerationFailed:
    """
    Build one problem. A problem whose options could not be validated is
    thrown away and rebuilt, at most ``MAX_GENERATION_ATTEMPTS`` times.
    ``option_count=0`` asks for a free-form (typed answer) problem.
    """
    check_problem_type(problem_type)
    check_difficulty(difficulty)
    builder = _BUILDERS[problem_type]
    for _ in range(MAX_GENERATION_ATTEMPTS):
        problem = builder(difficulty, plan_item, option_count)
        if problem is not None:
            return problem
    logger.warning(
        "problem_generation_failed type=%s difficulty=%s attempts=%s",
        problem_type,
        difficulty,
        MAX_GENERATION_ATTEMPTS,
    )
    return GenerationFailed(
        problem_type=problem_type,
        difficulty=difficulty,
        attempts=MAX_GENERATION_ATTEMPTS,
        reason="answer options could not be validated",
    )
