from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

Difficulty = Literal["easy", "medium", "hard"]
ProblemType = Literal[
    "addition",
    "subtraction",
    "multiplication",
    "division",
    "comparison",
    "fact-family",
    "word-problem",
    "counting",
    "counting-sequence",
]
Answer = Union[int, str]

DIFFICULTIES: tuple[str, ...] = ("easy", "medium", "hard")
PROBLEM_TYPES: tuple[str, ...] = (
    "addition",
    "subtraction",
    "multiplication",
    "division",
    "comparison",
    "fact-family",
    "word-problem",
    "counting",
    "counting-sequence",
)


def check_difficulty(difficulty: str) -> str:
    if difficulty not in DIFFICULTIES:
        raise ValueError(f"unknown difficulty: {difficulty!r}")
    return difficulty


def check_problem_type(problem_type: str) -> str:
    if problem_type not in PROBLEM_TYPES:
        raise ValueError(f"unknown problem type: {problem_type!r}")
    return problem_type


@dataclass(frozen=True)
class Problem:
    id: str
    type: str
    question: str
    correct_answer: Answer
    options: tuple[Answer, ...]
    difficulty: str
    hint: str | None = None
    story: str | None = None
    visual: str | None = None
    # fact-family: values for the blanks, in question order
    expected_values: tuple[int, ...] = ()

    @property
    def is_multiple_choice(self) -> bool:
        return bool(self.options)


@dataclass(frozen=True)
class AttemptedProblem:
    problem: Problem
    user_answer: str
    is_correct: bool
    time_spent_ms: int = 0
    attempts: int = 1
    hints_used: int = 0

    @property
    def type(self) -> str:
        return self.problem.type


@dataclass(frozen=True)
class GenerationFailed:
    """Returned instead of a Problem when bounded regeneration runs out."""

    problem_type: str
    difficulty: str
    attempts: int
    reason: str


# ---------------- session plan items ----------------
@dataclass(frozen=True)
class ArithmeticPlanItem:
    num1: int
    num2: int
    answer: int

    @property
    def answer_key(self) -> int:
        return self.answer


@dataclass(frozen=True)
class FactFamilyPlanItem:
    num1: int
    num2: int
    total: int

    @property
    def numbers(self) -> tuple[int, int, int]:
        return (self.num1, self.num2, self.total)

    @property
    def answer_key(self) -> int:
        return self.total


@dataclass(frozen=True)
class WordProblemPlanItem:
    theme: str
    operation: str  # add | subtract | compare

    @property
    def answer_key(self) -> str:
        return f"{self.theme}-{self.operation}"


@dataclass(frozen=True)
class CountingPlanItem:
    layout: str  # line | scattered | grid
    index: int

    @property
    def answer_key(self) -> int:
        return self.index


@dataclass(frozen=True)
class SequencePlanItem:
    step_size: int
    start_num: int
    correct_answer: int

    @property
    def answer_key(self) -> int:
        return self.correct_answer


SessionPlanItem = Union[
    ArithmeticPlanItem,
    FactFamilyPlanItem,
    WordProblemPlanItem,
    CountingPlanItem,
    SequencePlanItem,
]


@dataclass
class SessionSummary:
    session_id: str | None
    problem_type: str
    total: int
    correct: int
    duration_ms: int
    achievements: list[str] = field(default_factory=list)

    @property
    def score(self) -> int:
        if self.total <= 0:
            return 0
        return round(self.correct / self.total * 100)

    @property
    def is_perfect(self) -> bool:
        return self.total > 0 and self.correct == self.total
