import argparse
import json
import random
import sys

from mathcamp.generation.plans import PLANNED_TYPES, generate_session_plan
from mathcamp.generation.problems import generate_problem
from mathcamp.generation.types import DIFFICULTIES, GenerationFailed
from mathcamp.validation import validate_problem, validate_session_plan

def _item_to_dict(item) -> dict:
    out = {"kind": type(item).__name__, "answer_key": item.answer_key}
    out.update(vars(item))
    return out

def sample(activity: str, difficulty: str, count: int, *, allow_repeats: bool, show_problems: bool) -> int:
    errors: list[str] = []
    plan = generate_session_plan(activity, count, difficulty, allow_repeats=allow_repeats)
    for issue in validate_session_plan(plan, requested=count):
        line = f"plan slot {issue.slot}: {issue.message}" if issue.slot is not None else f"plan: {issue.message}"
        if issue.severity == "error":
            errors.append(line)
        else:
            print(f"WARNING: {line}")

    print(f"# {activity} / {difficulty}: {len(plan)} of {count} planned")
    for idx, item in enumerate(plan):
        row = _item_to_dict(item)
        if show_problems:
            problem = generate_problem(activity, difficulty, plan_item=item)
            if isinstance(problem, GenerationFailed):
                errors.append(f"slot {idx}: {problem.reason}")
            else:
                row["question"] = problem.question
                row["options"] = list(problem.options)
                row["correct_answer"] = problem.correct_answer
                errors.extend(f"slot {idx}: {v.message}" for v in validate_problem(problem) if v.severity == "error")
        print(json.dumps(row, ensure_ascii=False))

    if errors:
        for err in errors:
            print(f"ERROR: {err}")
        return 1
    return 0

def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser(description="Print session plans for inspection.")
    parser.add_argument("activity", choices=sorted(PLANNED_TYPES))
    parser.add_argument("--difficulty", choices=DIFFICULTIES, default="easy")
    parser.add_argument("--count", type=int, default=10)
    parser.add_argument("--seed", type=int)
    parser.add_argument("--allow-repeats", action="store_true", default=False)
    parser.add_argument("--problems", action="store_true", default=False, help="also render each slot")
    args = parser.parse_args(argv)
    if args.count < 0:
        print("ERROR: --count must not be negative")
        return 1
    if args.seed is not None:
        random.seed(args.seed)
    return sample(
        args.activity,
        args.difficulty,
        args.count,
        allow_repeats=args.allow_repeats,
        show_problems=args.problems,
    )

if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
