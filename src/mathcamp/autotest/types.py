from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..generation.types import Problem


@dataclass(frozen=True)
class QuestionContext:
    activity: str
    difficulty: str
    session_no: int
    index: int
    session_length: int
    problem: Problem

    @property
    def question_key(self) -> str:
        return f"{self.activity}:{self.difficulty}:s{self.session_no}:q{self.index}"


@dataclass(frozen=True)
class AnswerAttempt:
    raw: str
    forced_wrong: bool = False
    force_reason: str | None = None


@dataclass(frozen=True)
class Issue:
    issue_type: str
    severity: str
    details: str
    metadata: dict[str, Any] | None = None
