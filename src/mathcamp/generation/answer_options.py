"""
Multiple-choice option generation shared by every numeric activity.

The generator never raises: when it cannot build a clean option set it
reports ``is_valid=False`` and the caller throws the whole problem away.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass

MAX_ATTEMPTS = 100
FALLBACK_SPAN = 20


@dataclass(frozen=True)
class AnswerOptions:
    options: list[int]
    is_valid: bool


@dataclass(frozen=True)
class OptionCheck:
    is_valid: bool
    errors: list[str]


def shuffle_in_place(items: list) -> None:
    # Fisher-Yates
    for i in range(len(items) - 1, 0, -1):
        j = random.randint(0, i)
        items[i], items[j] = items[j], items[i]


def generate_answer_options(
    correct_answer: int,
    count: int = 4,
    min_value: int = 0,
) -> AnswerOptions:
    """
    Build ``count`` unique options (the correct answer plus distractors),
    all ``>= min_value``, in random order.
    """
    if count < 1:
        raise ValueError("count must be positive")
    options: list[int] = [correct_answer]
    seen = {correct_answer}
    max_offset = max(5, math.ceil(correct_answer * 0.5))

    attempts = 0
    while len(options) < count and attempts < MAX_ATTEMPTS:
        attempts += 1
        magnitude = random.randint(1, max_offset)
        sign = 1 if random.random() > 0.5 else -1
        wrong = correct_answer + sign * magnitude
        if wrong >= min_value and wrong not in seen:
            seen.add(wrong)
            options.append(wrong)

    if len(options) < count:
        fallback = correct_answer + 1
        while len(options) < count and fallback <= correct_answer + FALLBACK_SPAN:
            if fallback not in seen and fallback >= min_value:
                seen.add(fallback)
                options.append(fallback)
            fallback += 1

    shuffle_in_place(options)
    correct_count = sum(1 for opt in options if opt == correct_answer)
    return AnswerOptions(
        options=options,
        is_valid=correct_count == 1 and len(options) == count,
    )


def _is_number(value: object) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not (isinstance(value, float) and math.isnan(value))


def validate_answer_options(options: list, correct_answer) -> OptionCheck:
    errors: list[str] = []
    correct_count = sum(1 for opt in options if opt == correct_answer)
    if correct_count == 0:
        errors.append("No correct answer in options")
    elif correct_count > 1:
        errors.append(f"Multiple correct answers found ({correct_count})")

    duplicates = sum(1 for i, opt in enumerate(options) if opt in options[:i])
    if duplicates:
        errors.append(f"Duplicate options found ({duplicates} duplicates)")

    if any(not _is_number(opt) for opt in options):
        errors.append("Invalid option values (non-number or NaN)")
    return OptionCheck(is_valid=not errors, errors=errors)
