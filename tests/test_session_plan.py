import pytest

from mathcamp.generation.plans import (
    SEQUENCE_STARTS,
    coverage_steps,
    generate_session_plan,
    sequence_next_value,
)
from mathcamp.generation.types import (
    ArithmeticPlanItem,
    CountingPlanItem,
    FactFamilyPlanItem,
    SequencePlanItem,
    WordProblemPlanItem,
)
from mathcamp.validation import validate_session_plan


def _keys(plan):
    return [item.answer_key for item in plan]


def test_easy_addition_plan_is_unique_and_in_range():
    for _ in range(30):
        plan = generate_session_plan("addition", 10, "easy")
        assert len(plan) <= 10
        assert len(set(_keys(plan))) == len(plan)
        for item in plan:
            assert isinstance(item, ArithmeticPlanItem)
            assert 1 <= item.num1 <= 5
            assert 1 <= item.num2 <= 5
            assert item.answer == item.num1 + item.num2


def test_easy_addition_cannot_fill_ten_unique_slots():
    # sums of [1,5] + [1,5] only reach 2..10, nine values
    plan = generate_session_plan("addition", 10, "easy")
    assert len(plan) <= 9


def test_repeats_fill_the_requested_count():
    plan = generate_session_plan("addition", 10, "easy", allow_repeats=True)
    assert len(plan) == 10


def test_subtraction_plan_never_negative():
    for difficulty in ("easy", "medium", "hard"):
        plan = generate_session_plan("subtraction", 10, difficulty)
        assert all(item.answer >= 0 for item in plan)
        assert all(item.num1 >= item.num2 for item in plan)
        assert len(set(_keys(plan))) == len(plan)


def test_fact_family_plan_unique_totals():
    plan = generate_session_plan("fact-family", 8, "hard")
    assert all(isinstance(item, FactFamilyPlanItem) for item in plan)
    totals = [item.total for item in plan]
    assert len(set(totals)) == len(totals)
    assert all(item.total == item.num1 + item.num2 for item in plan)


def test_word_problem_plan_unique_theme_operation():
    plan = generate_session_plan("word-problem", 10, "medium")
    assert len(plan) == 10
    assert all(isinstance(item, WordProblemPlanItem) for item in plan)
    assert len(set(_keys(plan))) == 10


def test_counting_plan_always_full_length():
    plan = generate_session_plan("counting", 12, "easy")
    assert len(plan) == 12
    assert all(isinstance(item, CountingPlanItem) for item in plan)
    assert {item.layout for item in plan} <= {"line", "scattered"}
    assert _keys(plan) == list(range(12))


@pytest.mark.parametrize("difficulty", ["easy", "medium", "hard"])
def test_sequence_starts_on_boundaries(difficulty):
    for _ in range(20):
        plan = generate_session_plan("counting-sequence", 10, difficulty)
        for item in plan:
            assert isinstance(item, SequencePlanItem)
            assert item.start_num in SEQUENCE_STARTS[item.step_size]
            assert item.correct_answer == sequence_next_value(item.start_num, item.step_size, difficulty)
        assert len(set(_keys(plan))) == len(plan)


def test_hard_sequence_plan_covers_required_steps():
    for _ in range(30):
        plan = generate_session_plan("counting-sequence", 10, "hard")
        steps = {item.step_size for item in plan}
        assert set(coverage_steps("hard")) <= steps
        assert {2, 3, 5, 10} <= steps


def test_medium_sequence_plan_covers_required_steps():
    for _ in range(30):
        plan = generate_session_plan("counting-sequence", 10, "medium")
        assert {2, 3, 5} <= {item.step_size for item in plan}


def test_easy_sequence_uses_small_steps():
    plan = generate_session_plan("counting-sequence", 10, "easy")
    assert {item.step_size for item in plan} <= {1, 2}


@pytest.mark.parametrize("activity", ["multiplication", "division", "comparison"])
def test_unplanned_activities_get_empty_plan(activity):
    assert generate_session_plan(activity, 10, "easy") == []


def test_zero_count_gives_empty_plan():
    assert generate_session_plan("addition", 0, "easy") == []


def test_invalid_arguments_raise():
    with pytest.raises(ValueError):
        generate_session_plan("addition", -1, "easy")
    with pytest.raises(ValueError):
        generate_session_plan("addition", 5, "extreme")
    with pytest.raises(ValueError):
        generate_session_plan("pattern", 5, "easy")


def test_generated_plans_pass_validation():
    for activity in ("addition", "subtraction", "fact-family", "word-problem", "counting", "counting-sequence"):
        plan = generate_session_plan(activity, 6, "medium")
        errors = [v for v in validate_session_plan(plan) if v.severity == "error"]
        assert errors == []
