from mathcamp.autotest.checks import gather_issues, gather_session_issues
from mathcamp.autotest.types import QuestionContext
from mathcamp.generation.types import ArithmeticPlanItem, Problem, SequencePlanItem


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


def _ctx(problem: Problem, activity: str = "addition") -> QuestionContext:
    return QuestionContext(activity, "easy", 0, 0, 5, problem)


def _types(issues):
    return [issue.issue_type for issue in issues]


def test_clean_problem_has_no_issues() -> None:
    assert gather_issues(_ctx(_problem())) == []


def test_missing_answer_in_options_is_flagged() -> None:
    issues = gather_issues(_ctx(_problem(options=(1, 2, 3, 4))))
    assert "INVALID_OPTIONS" in _types(issues)


def test_wrong_activity_is_malformed() -> None:
    issues = gather_issues(_ctx(_problem(), activity="subtraction"))
    assert "MALFORMED_PROBLEM" in _types(issues)


def test_broken_fact_family_is_flagged() -> None:
    problem = _problem(
        type="fact-family",
        question="3 + 5 = ?",
        correct_answer="8, 8, 5, 3",
        options=(),
        expected_values=(8, 9, 5, 3),
    )
    issues = gather_issues(_ctx(problem, activity="fact-family"))
    assert "FACT_FAMILY_INCONSISTENT" in _types(issues)


def test_duplicate_answers_error_without_repeats() -> None:
    problems = [_problem(id="a"), _problem(id="b")]
    plan = [ArithmeticPlanItem(2, 3, 5), ArithmeticPlanItem(1, 4, 5)]
    issues = gather_session_issues(
        "addition", "easy", plan, problems, requested=2, session_length=2, allow_repeats=False
    )
    by_type = {issue.issue_type: issue.severity for issue in issues}
    assert by_type["DUPLICATE_ANSWER"] == "error"
    assert by_type["PLAN_INVALID"] == "error"


def test_duplicate_answers_warn_under_repeat_policy() -> None:
    problems = [_problem(id="a"), _problem(id="b")]
    plan = [ArithmeticPlanItem(2, 3, 5), ArithmeticPlanItem(1, 4, 5)]
    issues = gather_session_issues(
        "addition", "easy", plan, problems, requested=2, session_length=2, allow_repeats=True
    )
    assert all(issue.severity == "warning" for issue in issues)
    assert "PLAN_REPEAT" in _types(issues)


def test_short_plan_and_length_mismatch() -> None:
    plan = [ArithmeticPlanItem(2, 3, 5)]
    issues = gather_session_issues(
        "addition", "easy", plan, [_problem()], requested=4, session_length=2, allow_repeats=False
    )
    assert "PLAN_SHORT" in _types(issues)
    assert "SESSION_LENGTH_MISMATCH" in _types(issues)


def test_sequence_coverage_missing_step() -> None:
    plan = [SequencePlanItem(2, start, start + 10) for start in range(2, 21, 2)]
    issues = gather_session_issues(
        "counting-sequence", "hard", plan, [], requested=10, session_length=0, allow_repeats=False
    )
    assert "COVERAGE_MISSING" in _types(issues)


def test_short_sequence_plan_skips_coverage() -> None:
    plan = [SequencePlanItem(2, 2, 12)]
    issues = gather_session_issues(
        "counting-sequence", "hard", plan, [], requested=1, session_length=0, allow_repeats=False
    )
    assert "COVERAGE_MISSING" not in _types(issues)
