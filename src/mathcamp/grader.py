from __future__ import annotations
from dataclasses import dataclass

from .choices import resolve_choice
from .generation.types import Problem
from .normalize import norm_answer_text, parse_int, split_tokens

_SYMBOL_ALIASES = {
    ">": ">",
    "gt": ">",
    "greater": ">",
    "bigger": ">",
    "more": ">",
    "<": "<",
    "lt": "<",
    "less": "<",
    "smaller": "<",
    "fewer": "<",
    "=": "=",
    "==": "=",
    "eq": "=",
    "equal": "=",
    "same": "=",
}

@dataclass
class GradeResult:
    verdict: str            # correct | wrong | invalid
    user_answer_norm: str
    canonical: str
    note: str = ""
    missing: list[int] | None = None  # fact-family blanks (1-based) answered wrong

    @property
    def is_correct(self) -> bool:
        return self.verdict == "correct"

def grade_number(user: str, correct: int, options: list[int] | None = None) -> GradeResult:
    raw = user
    if options:
        resolved = resolve_choice(user, [str(x) for x in options])
        if resolved is not None:
            raw = resolved
    value = parse_int(raw)
    user_norm = norm_answer_text(raw)
    if value is None:
        return GradeResult("invalid", user_norm, str(correct), note="not a number")
    user_norm = str(value)
    if value == correct:
        return GradeResult("correct", user_norm, str(correct))
    return GradeResult("wrong", user_norm, str(correct))

def grade_symbol(user: str, correct: str, options: list[str]) -> GradeResult:
    resolved = resolve_choice(user, options)
    text = resolved if resolved is not None else norm_answer_text(user).casefold()
    symbol = _SYMBOL_ALIASES.get(text)
    if symbol is None:
        return GradeResult("invalid", norm_answer_text(user), correct, note="not a comparison symbol")
    if symbol == correct:
        return GradeResult("correct", symbol, correct)
    return GradeResult("wrong", symbol, correct)

def grade_fact_family(user: str, expected: tuple[int, ...] | list[int]) -> GradeResult:
    canonical = ", ".join(str(x) for x in expected)
    tokens = split_tokens(user)
    values = [parse_int(tok) for tok in tokens]
    if len(values) != len(expected) or any(v is None for v in values):
        return GradeResult(
            "invalid",
            norm_answer_text(user),
            canonical,
            note=f"expected {len(expected)} numbers",
        )
    user_norm = ", ".join(str(v) for v in values)
    missing = [idx for idx, (got, want) in enumerate(zip(values, expected), start=1) if got != want]
    if not missing:
        return GradeResult("correct", user_norm, canonical)
    return GradeResult("wrong", user_norm, canonical, missing=missing)

def grade_answer(problem: Problem, user: str) -> GradeResult:
    if problem.type == "fact-family":
        return grade_fact_family(user, problem.expected_values)
    if isinstance(problem.correct_answer, str):
        return grade_symbol(user, problem.correct_answer, [str(x) for x in problem.options])
    return grade_number(user, int(problem.correct_answer), [int(x) for x in problem.options])
