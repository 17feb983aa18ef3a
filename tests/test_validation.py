from mathcamp.generation.types import (
    ArithmeticPlanItem,
    CountingPlanItem,
    Problem,
    SequencePlanItem,
)
from mathcamp.validation import validate_problem, validate_session_plan


def _problem(**overrides) -> Problem:
    data = dict(
        id="add-1",
        type="addition",
        question="2 + 3",
        correct_answer=5,
        options=(5, 4, 6, 7),
        difficulty="easy",
    )
    data.update(overrides)
    return Problem(**data)


def test_plan_short_is_a_warning():
    plan = [ArithmeticPlanItem(1, 1, 2), ArithmeticPlanItem(1, 2, 3)]
    issues = validate_session_plan(plan, requested=5)
    assert [i.severity for i in issues] == ["warning"]


def test_plan_repeat_is_flagged_on_second_slot():
    plan = [ArithmeticPlanItem(1, 1, 2), ArithmeticPlanItem(2, 3, 5), ArithmeticPlanItem(2, 0, 2)]
    issues = validate_session_plan(plan)
    assert len(issues) == 1
    assert issues[0].severity == "error"
    assert issues[0].slot == 2


def test_counting_plan_never_repeats_index():
    plan = [CountingPlanItem("line", i) for i in range(5)]
    assert validate_session_plan(plan, requested=5) == []


def test_sequence_start_off_boundary():
    plan = [SequencePlanItem(step_size=3, start_num=4, correct_answer=16)]
    issues = validate_session_plan(plan)
    assert issues and "boundary" in issues[0].message


def test_sequence_unsupported_step():
    plan = [SequencePlanItem(step_size=4, start_num=4, correct_answer=20)]
    issues = validate_session_plan(plan)
    assert issues and "unsupported step" in issues[0].message


def test_problem_with_clean_options_passes():
    assert validate_problem(_problem()) == []


def test_problem_missing_answer_in_options():
    issues = validate_problem(_problem(options=(1, 2, 3, 4)))
    assert [i.message for i in issues] == ["No correct answer in options"]


def test_negative_subtraction_answer_flagged():
    issues = validate_problem(_problem(type="subtraction", correct_answer=-1, options=(-1, 0, 1, 2)))
    assert any(i.message == "negative answer" for i in issues)


def test_symbol_must_appear_once():
    problem = _problem(type="comparison", correct_answer=">", options=(">", ">", "="))
    issues = validate_problem(problem)
    assert issues[0].message == "symbol answer must appear exactly once"


def test_fact_family_needs_four_values():
    problem = _problem(type="fact-family", correct_answer="5, 5", options=(), expected_values=(5, 5))
    issues = validate_problem(problem)
    assert issues[0].message == "fact family needs four expected values"


def test_free_form_problem_skips_option_checks():
    assert validate_problem(_problem(options=())) == []
