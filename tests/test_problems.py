import pytest

from mathcamp.generation import problems as problems_mod
from mathcamp.generation.problems import generate_problem, render_counting_scene
from mathcamp.generation.types import (
    DIFFICULTIES,
    PROBLEM_TYPES,
    ArithmeticPlanItem,
    CountingPlanItem,
    FactFamilyPlanItem,
    GenerationFailed,
    Problem,
    SequencePlanItem,
    WordProblemPlanItem,
)
from mathcamp.validation import validate_problem


@pytest.mark.parametrize("problem_type", PROBLEM_TYPES)
@pytest.mark.parametrize("difficulty", DIFFICULTIES)
def test_every_problem_validates(problem_type, difficulty):
    for _ in range(20):
        problem = generate_problem(problem_type, difficulty)
        assert isinstance(problem, Problem)
        assert problem.type == problem_type
        assert problem.difficulty == difficulty
        assert problem.question
        assert [v.message for v in validate_problem(problem)] == []


@pytest.mark.parametrize("problem_type", ["subtraction", "division", "word-problem"])
def test_no_negative_answers(problem_type):
    for difficulty in DIFFICULTIES:
        for _ in range(50):
            problem = generate_problem(problem_type, difficulty)
            assert problem.correct_answer >= 0


def test_easy_addition_ranges():
    for _ in range(100):
        problem = generate_problem("addition", "easy")
        left, right = problem.question.split(" = ")[0].split(" + ")
        assert 1 <= int(left) <= 5
        assert 1 <= int(right) <= 5
        assert problem.correct_answer == int(left) + int(right)


def test_division_is_exact():
    for difficulty in DIFFICULTIES:
        for _ in range(50):
            problem = generate_problem("division", difficulty)
            dividend, divisor = problem.question.split(" = ")[0].split(" ÷ ")
            assert int(dividend) % int(divisor) == 0
            assert int(dividend) // int(divisor) == problem.correct_answer


def test_plan_item_drives_arithmetic():
    problem = generate_problem("addition", "easy", plan_item=ArithmeticPlanItem(2, 3, 5))
    assert problem.correct_answer == 5
    assert problem.question.startswith("2 + 3")

    problem = generate_problem("subtraction", "medium", plan_item=ArithmeticPlanItem(9, 4, 5))
    assert problem.correct_answer == 5
    assert problem.question.startswith("9 - 4")


def test_comparison_has_symbol_options():
    for _ in range(30):
        problem = generate_problem("comparison", "medium")
        assert sorted(problem.options) == sorted([">", "<", "="])
        left, right = problem.question.split(" ? ")
        a, b = int(left), int(right)
        expected = ">" if a > b else "<" if a < b else "="
        assert problem.correct_answer == expected


def test_fact_family_expected_values():
    problem = generate_problem("fact-family", "easy", plan_item=FactFamilyPlanItem(3, 5, 8))
    assert problem.expected_values == (8, 8, 5, 3)
    assert problem.correct_answer == "8, 8, 5, 3"
    assert problem.options == ()
    assert problem.question.splitlines() == ["3 + 5 = ?", "5 + 3 = ?", "8 - 3 = ?", "8 - 5 = ?"]


def test_word_problem_follows_plan_operation():
    for _ in range(20):
        problem = generate_problem(
            "word-problem", "medium", plan_item=WordProblemPlanItem("food", "compare")
        )
        assert problem.story
        assert problem.correct_answer > 0


def test_counting_scene_matches_answer():
    for _ in range(30):
        problem = generate_problem("counting", "hard", plan_item=CountingPlanItem("grid", 0))
        target = problem.question.split("How many ")[1].split(" can")[0]
        assert problem.visual.count(target) == problem.correct_answer


def test_counting_sequence_from_plan():
    item = SequencePlanItem(step_size=5, start_num=10, correct_answer=30)
    problem = generate_problem("counting-sequence", "easy", plan_item=item)
    assert problem.question == "10, 15, 20, 25, ?"
    assert problem.correct_answer == 30
    assert 30 in problem.options


def test_free_form_problem_has_no_options():
    problem = generate_problem("addition", "easy", option_count=0)
    assert problem.options == ()
    assert not problem.is_multiple_choice


def test_render_counting_scene_line_and_grid():
    assert render_counting_scene(["a", "b", "c"], "line") == "a b c"
    assert render_counting_scene(["a", "b", "c", "d"], "grid") == "a b\nc d"
    assert render_counting_scene([], "line") == ""


def test_exhausted_regeneration_returns_failure(monkeypatch):
    monkeypatch.setattr(problems_mod, "_options_for", lambda *a, **k: None)
    result = generate_problem("addition", "easy")
    assert isinstance(result, GenerationFailed)
    assert result.attempts == problems_mod.MAX_GENERATION_ATTEMPTS
    assert result.problem_type == "addition"


def test_unknown_inputs_raise():
    with pytest.raises(ValueError):
        generate_problem("fractions", "easy")
    with pytest.raises(ValueError):
        generate_problem("addition", "impossible")
