from __future__ import annotations
from aiogram.types import InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from .choices import option_label
from .generation.types import DIFFICULTIES, PROBLEM_TYPES, Problem
from .i18n import t

def kb_activities(ui_lang: str, enabled: set[str] | None = None) -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    for activity in PROBLEM_TYPES:
        if enabled is not None and activity not in enabled:
            continue
        b.button(text=t(f"act_{activity}", ui_lang), callback_data=f"activity:{activity}")
    b.adjust(2)
    return b.as_markup()

def kb_difficulty(ui_lang: str, current: str | None = None) -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    for diff in DIFFICULTIES:
        mark = "• " if diff == current else ""
        b.button(text=mark + t(f"diff_{diff}", ui_lang), callback_data=f"difficulty:{diff}")
    b.adjust(3)
    return b.as_markup()

def kb_answer_options(problem: Problem, ui_lang: str) -> InlineKeyboardMarkup:
    # callback: answer:<problem_id>:<option index>
    b = InlineKeyboardBuilder()
    for idx, opt in enumerate(problem.options):
        b.button(text=f"{option_label(idx)}) {opt}", callback_data=f"answer:{problem.id}:{idx}")
    hint_row = 0
    if problem.hint:
        b.button(text=t("btn_hint", ui_lang), callback_data=f"hint:{problem.id}")
        hint_row = 1
    sizes = [2] * ((len(problem.options) + 1) // 2)
    if hint_row:
        sizes.append(1)
    b.adjust(*sizes)
    return b.as_markup()

def kb_hint_only(problem: Problem, ui_lang: str) -> InlineKeyboardMarkup | None:
    if not problem.hint:
        return None
    b = InlineKeyboardBuilder()
    b.button(text=t("btn_hint", ui_lang), callback_data=f"hint:{problem.id}")
    b.adjust(1)
    return b.as_markup()

def kb_why(problem_id: str, ui_lang: str) -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    b.button(text=t("btn_why", ui_lang), callback_data=f"why:{problem_id}")
    b.adjust(1)
    return b.as_markup()

def kb_play_again(activity: str, ui_lang: str) -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    b.button(text=t("btn_play_again", ui_lang), callback_data=f"activity:{activity}")
    b.button(text=t("btn_menu", ui_lang), callback_data="menu")
    b.adjust(2)
    return b.as_markup()

def kb_lang() -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    b.button(text="Українська", callback_data="lang:uk")
    b.button(text="English", callback_data="lang:en")
    b.adjust(2)
    return b.as_markup()
