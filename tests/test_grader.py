import pytest

from mathcamp.generation.types import Problem
from mathcamp.grader import grade_answer, grade_fact_family, grade_number, grade_symbol
from mathcamp.normalize import norm_text, parse_int, split_tokens


def _problem(**overrides) -> Problem:
    data = dict(
        id="add-1",
        type="addition",
        question="2 + 5",
        correct_answer=7,
        options=(4, 7, 9, 6),
        difficulty="easy",
    )
    data.update(overrides)
    return Problem(**data)


@pytest.mark.parametrize("answer", ["7", " 7 ", "7.", "seven", "B", "b)"])
def test_number_answers_accepted(answer):
    assert grade_answer(_problem(), answer).verdict == "correct"


def test_wrong_letter_is_wrong():
    result = grade_answer(_problem(), "A")
    assert result.verdict == "wrong"
    assert result.user_answer_norm == "4"
    assert result.canonical == "7"


def test_unreadable_answer_is_invalid():
    result = grade_number("lots", 7)
    assert result.verdict == "invalid"
    assert not result.is_correct


def test_free_form_number():
    assert grade_number("12", 12).is_correct
    assert grade_number("11", 12).verdict == "wrong"


@pytest.mark.parametrize("answer,verdict", [
    (">", "correct"),
    ("greater", "correct"),
    ("A", "correct"),
    ("<", "wrong"),
    ("C", "wrong"),
    ("maybe", "invalid"),
])
def test_symbol_grading(answer, verdict):
    assert grade_symbol(answer, ">", [">", "<", "="]).verdict == verdict


def test_fact_family_all_blanks():
    result = grade_fact_family("8, 8, 5, 3", (8, 8, 5, 3))
    assert result.is_correct
    result = grade_fact_family("8 8 5 3", (8, 8, 5, 3))
    assert result.is_correct


def test_fact_family_reports_wrong_blanks():
    result = grade_fact_family("8, 7, 5, 4", (8, 8, 5, 3))
    assert result.verdict == "wrong"
    assert result.missing == [2, 4]


def test_fact_family_needs_four_numbers():
    result = grade_fact_family("8, 8", (8, 8, 5, 3))
    assert result.verdict == "invalid"


def test_grade_answer_dispatches_fact_family():
    problem = _problem(
        type="fact-family",
        question="3 + 5 = ?",
        correct_answer="8, 8, 5, 3",
        options=(),
        expected_values=(8, 8, 5, 3),
    )
    assert grade_answer(problem, "8,8,5,3").is_correct


def test_normalisation_helpers():
    assert norm_text("  a   b ") == "a b"
    assert parse_int("−3") == -3
    assert parse_int("Twelve") == 12
    assert parse_int("") is None
    assert split_tokens("1, 2  3,4") == ["1", "2", "3", "4"]
