import argparse
import asyncio
import datetime as dt
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from mathcamp.autotest.runner import AutotestRunner, RunnerConfig
from mathcamp.generation.types import DIFFICULTIES, PROBLEM_TYPES


def _timestamp() -> str:
    return dt.datetime.now(tz=dt.timezone.utc).strftime("%Y%m%d_%H%M%S")


def _build_db_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


def _csv(raw: str, allowed: tuple[str, ...], name: str) -> list[str]:
    values = [v.strip() for v in raw.split(",") if v.strip()]
    bad = [v for v in values if v not in allowed]
    if bad:
        raise argparse.ArgumentTypeError(f"unknown {name}: {', '.join(bad)}")
    return values


def main(argv: list[str]) -> int:
    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(message)s",
    )
    logger = logging.getLogger(__name__)
    parser = argparse.ArgumentParser(description="Play practice sessions against the orchestrator and report issues.")
    parser.add_argument("--db", help="sqlite file to record into (default: a fresh file under --log-dir)")
    parser.add_argument("--sessions", type=int, default=54)
    parser.add_argument("--count", type=int, default=10, help="questions per session")
    parser.add_argument("--activities", default=",".join(PROBLEM_TYPES))
    parser.add_argument("--difficulties", default=",".join(DIFFICULTIES))
    parser.add_argument("--user-id", type=int, default=999000111)
    parser.add_argument("--mistake-min", type=int, default=3)
    parser.add_argument("--mistake-max", type=int, default=8)
    parser.add_argument("--seed", type=int)
    parser.add_argument("--max-same-question", type=int, default=3)
    parser.add_argument("--shortfall", choices=["repeat", "truncate"], default="repeat")
    parser.add_argument("--options", type=int, default=4, help="answer options per question, 0 for typed answers")
    parser.add_argument("--log-dir", default="./logs")
    args = parser.parse_args(argv)

    try:
        activities = _csv(args.activities, PROBLEM_TYPES, "activity")
        difficulties = _csv(args.difficulties, DIFFICULTIES, "difficulty")
    except argparse.ArgumentTypeError as exc:
        print(f"ERROR: {exc}")
        return 1
    if args.count < 1:
        print("ERROR: --count must be positive")
        return 1

    timestamp = _timestamp()
    log_dir = Path(args.log_dir)
    db_path = Path(args.db).resolve() if args.db else (log_dir / f"autotest_{timestamp}.db").resolve()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    logger.info("autotest_starting sessions=%s count=%s db=%s", args.sessions, args.count, db_path)
    config = RunnerConfig(
        db_url=_build_db_url(db_path),
        sessions=args.sessions,
        problem_count=args.count,
        activities=activities,
        difficulties=difficulties,
        user_id=args.user_id,
        mistake_min=args.mistake_min,
        mistake_max=args.mistake_max,
        seed=args.seed,
        max_same_question=args.max_same_question,
        log_dir=log_dir,
        run_id=timestamp,
        shortfall=args.shortfall,
        option_count=args.options,
    )
    runner = AutotestRunner(config)
    return asyncio.run(runner.run())


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
