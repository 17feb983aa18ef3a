import asyncio
import json

import pytest

pytest.importorskip("aiosqlite")
from mathcamp.autotest.runner import AutotestRunner, RunnerConfig, force_wrong, solve
from mathcamp.generation.types import Problem
from mathcamp.grader import grade_answer


def _config(tmp_path, **overrides) -> RunnerConfig:
    data = dict(
        db_url=f"sqlite+aiosqlite:///{tmp_path / 'autotest.db'}",
        sessions=3,
        problem_count=5,
        activities=["addition", "counting", "comparison"],
        difficulties=["easy"],
        user_id=42,
        mistake_min=2,
        mistake_max=4,
        seed=7,
        max_same_question=3,
        log_dir=tmp_path / "logs",
        run_id="smoke",
    )
    data.update(overrides)
    return RunnerConfig(**data)


def test_runner_plays_sessions_and_writes_summary(tmp_path):
    code = asyncio.run(AutotestRunner(_config(tmp_path)).run())
    assert code == 0
    summary = json.loads((tmp_path / "logs" / "autotest_smoke_summary.json").read_text(encoding="utf-8"))
    assert summary["totals"]["sessions"] == 3
    assert summary["totals"]["attempts"] == 15
    assert summary["totals"]["invalid"] == 0
    assert summary["forced_wrong"]["accepted"] == 0
    assert summary["stop_reason"] is None
    assert "first-problem" in summary["achievements"]
    lines = (tmp_path / "logs" / "autotest_smoke.jsonl").read_text(encoding="utf-8").splitlines()
    events = {json.loads(line)["event"] for line in lines}
    assert {"question_loaded", "answer_graded"} <= events


def test_runner_free_form_answers(tmp_path):
    config = _config(tmp_path, activities=["fact-family", "counting-sequence"], option_count=0, run_id="typed")
    assert asyncio.run(AutotestRunner(config).run()) == 0


def test_solver_and_forced_wrong_agree_with_grader():
    import random

    rng = random.Random(1)
    problems = [
        Problem("a", "addition", "2 + 3", 5, (4, 5, 6, 7), "easy"),
        Problem("b", "multiplication", "2 × 3", 6, (), "easy"),
        Problem("c", "comparison", "4 ? 2", ">", (">", "<", "="), "easy"),
        Problem("d", "fact-family", "3 + 5 = ?", "8, 8, 5, 3", (), "easy", expected_values=(8, 8, 5, 3)),
    ]
    for problem in problems:
        assert grade_answer(problem, solve(problem)).is_correct
        attempt = force_wrong(problem, rng)
        assert attempt.forced_wrong
        assert grade_answer(problem, attempt.raw).verdict == "wrong"
