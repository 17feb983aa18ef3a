from __future__ import annotations
import os
from dataclasses import dataclass
from dotenv import load_dotenv

from .generation.types import DIFFICULTIES

load_dotenv()

MAX_PROBLEM_COUNT = 30

def _parse_int(raw: str | None, default: int, name: str) -> int:
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise RuntimeError(f"{name} must be an integer") from None

def _parse_float(raw: str | None, default: float, name: str) -> float:
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        raise RuntimeError(f"{name} must be a number") from None

@dataclass(frozen=True)
class Settings:
    bot_token: str
    database_url: str
    gemini_api_key: str | None
    llm_model: str
    ui_default_lang: str = "en"  # en/uk
    default_difficulty: str = "easy"  # easy|medium|hard
    default_problem_count: int = 10
    plan_shortfall: str = "repeat"  # repeat|truncate
    answer_delay_s: float = 1.5
    feature_flags: str = ""  # name=on,other=off

def load_settings() -> Settings:
    load_dotenv()
    bot_token = os.getenv("BOT_TOKEN")
    if not bot_token:
        raise RuntimeError("BOT_TOKEN is required")

    database_url = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./data/mathcamp.db")
    gemini_api_key = os.getenv("GOOGLE_API_KEY") or os.getenv("GEMINI_API_KEY") or None
    llm_model = os.getenv("LLM_MODEL", "gemini-3-flash-preview").strip()

    ui_default_lang = os.getenv("UI_DEFAULT_LANG", "en").strip().lower()
    if ui_default_lang not in {"en", "uk"}:
        raise RuntimeError("UI_DEFAULT_LANG must be en or uk")

    default_difficulty = os.getenv("DEFAULT_DIFFICULTY", "easy").strip().lower()
    if default_difficulty not in DIFFICULTIES:
        raise RuntimeError("DEFAULT_DIFFICULTY must be easy, medium, or hard")

    default_problem_count = _parse_int(os.getenv("DEFAULT_PROBLEM_COUNT"), 10, "DEFAULT_PROBLEM_COUNT")
    if not 1 <= default_problem_count <= MAX_PROBLEM_COUNT:
        raise RuntimeError(f"DEFAULT_PROBLEM_COUNT must be between 1 and {MAX_PROBLEM_COUNT}")

    plan_shortfall = os.getenv("PLAN_SHORTFALL", "repeat").strip().lower()
    if plan_shortfall not in {"repeat", "truncate"}:
        raise RuntimeError("PLAN_SHORTFALL must be repeat or truncate")

    answer_delay_s = _parse_float(os.getenv("ANSWER_DELAY_S"), 1.5, "ANSWER_DELAY_S")
    if answer_delay_s < 0:
        raise RuntimeError("ANSWER_DELAY_S must not be negative")

    return Settings(
        bot_token=bot_token,
        database_url=database_url,
        gemini_api_key=gemini_api_key,
        llm_model=llm_model,
        ui_default_lang=ui_default_lang,
        default_difficulty=default_difficulty,
        default_problem_count=default_problem_count,
        plan_shortfall=plan_shortfall,
        answer_delay_s=answer_delay_s,
        feature_flags=os.getenv("FEATURE_FLAGS", "").strip(),
    )
