from __future__ import annotations
import asyncio
import logging

from aiogram import Bot, Dispatcher, F
from aiogram.enums import ParseMode
from aiogram.filters import Command, CommandStart
from aiogram.types import CallbackQuery, Message
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .analytics import AnalyticsService
from .config import MAX_PROBLEM_COUNT, Settings
from .feature_flags import FeatureFlagService
from .generation.types import DIFFICULTIES, PROBLEM_TYPES, Problem, SessionSummary
from .i18n import t
from .keyboards import (
    kb_activities, kb_answer_options, kb_difficulty, kb_hint_only, kb_lang, kb_play_again, kb_why
)
from .llm import LLMClient, maybe_explain
from .models import Player, PlayerSettings, utcnow
from .orchestrator import AnswerOutcome, OrchestratorConfig, SessionOrchestrator
from .pacing import PacingScheduler
from .progress import ProgressTracker

logger = logging.getLogger(__name__)

class _BotMessenger:
    def __init__(self, bot: Bot, chat_id: int):
        self._bot = bot
        self.chat_id = chat_id

    async def answer(self, text: str, **kwargs):
        return await self._bot.send_message(self.chat_id, text, **kwargs)

# ---------------- MarkdownV2 escape ----------------
def esc_md2(text: str) -> str:
    if text is None:
        return ""
    for ch in r"_*[]()~`>#+-=|{}.!":
        text = text.replace(ch, "\\" + ch)
    return text

# ---------------- rendering ----------------
def format_question(problem: Problem, index: int, total: int, ui_lang: str) -> str:
    parts = [t("question_header", ui_lang).format(n=index + 1, total=total)]
    if problem.visual:
        parts.append(problem.visual)
    if problem.story:
        parts.append(problem.story)
    parts.append(problem.question)
    if problem.type == "fact-family":
        parts.append(t("type_fact_family", ui_lang))
    elif not problem.is_multiple_choice:
        parts.append(t("type_answer", ui_lang))
    return "\n\n".join(parts)

def format_feedback(outcome: AnswerOutcome, ui_lang: str) -> str:
    if outcome.is_invalid:
        if outcome.problem.type == "fact-family":
            return t("invalid_fact_family", ui_lang)
        if isinstance(outcome.problem.correct_answer, str):
            return t("invalid_symbol", ui_lang)
        return t("invalid_number", ui_lang)
    if outcome.is_correct:
        return t("correct", ui_lang)
    return t("wrong", ui_lang).format(answer=outcome.grade.canonical)

def format_summary(summary: SessionSummary, achievements: list, ui_lang: str) -> str:
    lines = [
        t("session_complete", ui_lang).format(
            correct=summary.correct, total=summary.total, score=summary.score
        )
    ]
    if summary.is_perfect:
        lines.append(t("perfect", ui_lang))
    for ach in achievements:
        lines.append(t("achievement", ui_lang).format(icon=ach.icon, name=ach.name))
    return "\n".join(lines)

def parse_count_arg(text: str | None) -> int | None:
    parts = (text or "").split(maxsplit=1)
    if len(parts) < 2:
        return None
    try:
        n = int(parts[1].strip())
    except ValueError:
        return None
    if not 1 <= n <= MAX_PROBLEM_COUNT:
        return None
    return n

# ---------------- helpers ----------------
def _build_llm(settings: Settings) -> LLMClient | None:
    if not settings.gemini_api_key:
        return None
    return LLMClient(settings.gemini_api_key, model=settings.llm_model)

async def _get_or_create_player(s: AsyncSession, from_user, default_lang: str) -> Player:
    p = await s.get(Player, from_user.id)
    if p:
        return p
    p = Player(
        id=from_user.id,
        username=from_user.username,
        first_name=from_user.first_name,
        ui_lang=default_lang,
    )
    s.add(p)
    await s.commit()
    return p

async def _get_or_create_settings(s: AsyncSession, tg_user_id: int, settings: Settings) -> PlayerSettings:
    ps = await s.get(PlayerSettings, tg_user_id)
    if ps:
        if ps.difficulty not in DIFFICULTIES:
            ps.difficulty = settings.default_difficulty
            ps.updated_at = utcnow()
            await s.commit()
        return ps
    ps = PlayerSettings(
        tg_user_id=tg_user_id,
        difficulty=settings.default_difficulty,
        problem_count=settings.default_problem_count,
    )
    s.add(ps)
    await s.commit()
    return ps

def register_handlers(
    dp: Dispatcher,
    *,
    settings: Settings,
    sessionmaker: async_sessionmaker[AsyncSession],
    flags: FeatureFlagService | None = None,
) -> PacingScheduler:
    flags = flags or FeatureFlagService.from_env_value(settings.feature_flags)
    llm = _build_llm(settings) if flags.is_enabled("ai-hints") else None
    pacing = PacingScheduler(settings.answer_delay_s)
    games: dict[int, SessionOrchestrator] = {}

    def enabled_activities() -> set[str]:
        return {a for a in PROBLEM_TYPES if flags.activity_enabled(a)}

    async def player_lang(tg_user_id: int) -> str:
        async with sessionmaker() as s:
            p = await s.get(Player, tg_user_id)
        return p.ui_lang if p else settings.ui_default_lang

    async def send_question(target, problem: Problem, index: int, total: int, ui_lang: str) -> None:
        markup = kb_answer_options(problem, ui_lang) if problem.is_multiple_choice else kb_hint_only(problem, ui_lang)
        await target.answer(
            esc_md2(format_question(problem, index, total, ui_lang)),
            reply_markup=markup,
            parse_mode=ParseMode.MARKDOWN_V2,
        )

    async def process_answer(target, bot: Bot, chat_id: int, tg_user_id: int, text: str) -> None:
        orch = games.get(tg_user_id)
        if orch is None:
            return
        ui_lang = await player_lang(tg_user_id)
        outcome = await orch.handle_answer(text)
        if outcome is None:
            return
        logger.info(
            "answer_graded user=%s problem=%s verdict=%s index=%s",
            tg_user_id, outcome.problem.id, outcome.grade.verdict, outcome.index,
        )
        feedback = esc_md2(format_feedback(outcome, ui_lang))
        if outcome.is_invalid or outcome.is_correct:
            await target.answer(feedback, parse_mode=ParseMode.MARKDOWN_V2)
        else:
            await target.answer(
                feedback,
                reply_markup=kb_why(outcome.problem.id, ui_lang),
                parse_mode=ParseMode.MARKDOWN_V2,
            )
        if outcome.is_invalid:
            return

        if outcome.is_complete:
            await target.answer(
                esc_md2(format_summary(outcome.summary, outcome.new_achievements, ui_lang)),
                reply_markup=kb_play_again(outcome.summary.problem_type, ui_lang),
                parse_mode=ParseMode.MARKDOWN_V2,
            )
            return

        next_problem = outcome.next_problem
        messenger = _BotMessenger(bot, chat_id)

        async def show_next() -> None:
            await send_question(messenger, next_problem, outcome.index + 1, outcome.session_length, ui_lang)
            if orch.current_problem is next_problem:
                orch.mark_shown()

        pacing.schedule(chat_id, show_next)

    async def start_activity(target, chat_id: int, from_user, activity: str) -> None:
        async with sessionmaker() as s:
            player = await _get_or_create_player(s, from_user, settings.ui_default_lang)
            ps = await _get_or_create_settings(s, player.id, settings)
            ui_lang = player.ui_lang
            difficulty = ps.difficulty
            count = ps.problem_count
        if activity not in PROBLEM_TYPES or not flags.activity_enabled(activity):
            await target.answer(esc_md2(t("activity_off", ui_lang)), parse_mode=ParseMode.MARKDOWN_V2)
            return

        pacing.cancel(chat_id)
        previous = games.pop(player.id, None)
        if previous is not None:
            previous.abandon()

        orch = SessionOrchestrator(
            ProgressTracker(sessionmaker, player.id),
            AnalyticsService(sessionmaker, player.id),
            OrchestratorConfig(
                difficulty=difficulty,
                problem_count=count,
                shortfall=settings.plan_shortfall,
            ),
        )
        games[player.id] = orch
        problem = await orch.start_game(activity)
        if problem is None:
            await target.answer(
                esc_md2(t("empty_session", ui_lang)),
                reply_markup=kb_play_again(activity, ui_lang),
                parse_mode=ParseMode.MARKDOWN_V2,
            )
            return
        await send_question(target, problem, 0, orch.session_length, ui_lang)

    async def on_shutdown() -> None:
        cancelled = pacing.cancel_all()
        for orch in games.values():
            orch.abandon()
        games.clear()
        logger.info("handlers_shutdown pacing_cancelled=%s", cancelled)

    dp.shutdown.register(on_shutdown)

    @dp.message(CommandStart())
    async def on_start(m: Message):
        async with sessionmaker() as s:
            player = await _get_or_create_player(s, m.from_user, settings.ui_default_lang)
            await _get_or_create_settings(s, player.id, settings)
        name = m.from_user.first_name or m.from_user.username or "friend"
        await m.answer(
            esc_md2(t("welcome", player.ui_lang).format(name=name)),
            reply_markup=kb_activities(player.ui_lang, enabled_activities()),
            parse_mode=ParseMode.MARKDOWN_V2,
        )

    @dp.message(Command("lang"))
    async def on_lang(m: Message):
        await m.answer("Choose language / Оберіть мову:", reply_markup=kb_lang(), parse_mode=None)

    @dp.callback_query(F.data.startswith("lang:"))
    async def on_lang_chosen(c: CallbackQuery):
        lang = c.data.split(":", 1)[1]
        if lang not in ("en", "uk"):
            await c.answer()
            return
        async with sessionmaker() as s:
            player = await _get_or_create_player(s, c.from_user, settings.ui_default_lang)
            player.ui_lang = lang
            await s.commit()
        await c.message.answer(
            esc_md2(t("choose_activity", lang)),
            reply_markup=kb_activities(lang, enabled_activities()),
            parse_mode=ParseMode.MARKDOWN_V2,
        )
        await c.answer()

    @dp.message(Command("difficulty"))
    async def on_difficulty(m: Message):
        parts = (m.text or "").split(maxsplit=1)
        choice = parts[1].strip().lower() if len(parts) > 1 else ""
        async with sessionmaker() as s:
            player = await _get_or_create_player(s, m.from_user, settings.ui_default_lang)
            ps = await _get_or_create_settings(s, player.id, settings)
            if choice in DIFFICULTIES:
                ps.difficulty = choice
                ps.updated_at = utcnow()
                await s.commit()
        if choice in DIFFICULTIES:
            await m.answer(
                esc_md2(t("difficulty_set", player.ui_lang).format(difficulty=t(f"diff_{choice}", player.ui_lang))),
                parse_mode=ParseMode.MARKDOWN_V2,
            )
            return
        await m.answer(
            esc_md2(t("choose_difficulty", player.ui_lang)),
            reply_markup=kb_difficulty(player.ui_lang, ps.difficulty),
            parse_mode=ParseMode.MARKDOWN_V2,
        )

    @dp.callback_query(F.data.startswith("difficulty:"))
    async def on_difficulty_chosen(c: CallbackQuery):
        choice = c.data.split(":", 1)[1]
        if choice not in DIFFICULTIES:
            await c.answer()
            return
        async with sessionmaker() as s:
            player = await _get_or_create_player(s, c.from_user, settings.ui_default_lang)
            ps = await _get_or_create_settings(s, player.id, settings)
            ps.difficulty = choice
            ps.updated_at = utcnow()
            await s.commit()
        await c.message.answer(
            esc_md2(t("difficulty_set", player.ui_lang).format(difficulty=t(f"diff_{choice}", player.ui_lang))),
            parse_mode=ParseMode.MARKDOWN_V2,
        )
        await c.answer()

    @dp.message(Command("count"))
    async def on_count(m: Message):
        n = parse_count_arg(m.text)
        async with sessionmaker() as s:
            player = await _get_or_create_player(s, m.from_user, settings.ui_default_lang)
            ps = await _get_or_create_settings(s, player.id, settings)
            if n is not None:
                ps.problem_count = n
                ps.updated_at = utcnow()
                await s.commit()
        if n is None:
            await m.answer(
                esc_md2(t("count_usage", player.ui_lang).format(max=MAX_PROBLEM_COUNT)),
                parse_mode=ParseMode.MARKDOWN_V2,
            )
            return
        await m.answer(esc_md2(t("count_set", player.ui_lang).format(count=n)), parse_mode=ParseMode.MARKDOWN_V2)

    @dp.message(Command("progress"))
    async def on_progress(m: Message):
        ui_lang = await player_lang(m.from_user.id)
        summary = await ProgressTracker(sessionmaker, m.from_user.id).summary()
        mastery = await AnalyticsService(sessionmaker, m.from_user.id).mastery()
        lines = [
            t("progress", ui_lang).format(
                total=summary.total_problems,
                correct=summary.correct_answers,
                accuracy=summary.accuracy,
                streak=summary.current_streak,
                best=summary.longest_streak,
                sessions=summary.sessions,
                favorite=t(f"act_{summary.favorite_activity}", ui_lang),
            )
        ]
        for ml in mastery:
            lines.append(t("mastery_line", ui_lang).format(activity=t(f"act_{ml.problem_type}", ui_lang), level=ml.level))
        badges = " ".join(a.icon for a in summary.achievements)
        if badges:
            lines.append(badges)
        await m.answer(esc_md2("\n".join(lines)), parse_mode=ParseMode.MARKDOWN_V2)

    @dp.message(Command(commands=["reset_progress", "reset"]))
    async def on_reset(m: Message):
        pacing.cancel(m.chat.id)
        orch = games.pop(m.from_user.id, None)
        if orch is not None:
            orch.abandon()
        await ProgressTracker(sessionmaker, m.from_user.id).reset()
        ui_lang = await player_lang(m.from_user.id)
        await m.answer(esc_md2(t("progress_reset", ui_lang)), parse_mode=ParseMode.MARKDOWN_V2)

    @dp.message(Command("stop"))
    async def on_stop(m: Message):
        pacing.cancel(m.chat.id)
        orch = games.pop(m.from_user.id, None)
        ui_lang = await player_lang(m.from_user.id)
        if orch is None:
            await m.answer(
                esc_md2(t("no_game", ui_lang)),
                reply_markup=kb_activities(ui_lang, enabled_activities()),
                parse_mode=ParseMode.MARKDOWN_V2,
            )
            return
        orch.abandon()
        await m.answer(
            esc_md2(t("stopped", ui_lang)),
            reply_markup=kb_activities(ui_lang, enabled_activities()),
            parse_mode=ParseMode.MARKDOWN_V2,
        )

    @dp.callback_query(F.data == "menu")
    async def on_menu(c: CallbackQuery):
        ui_lang = await player_lang(c.from_user.id)
        await c.message.answer(
            esc_md2(t("choose_activity", ui_lang)),
            reply_markup=kb_activities(ui_lang, enabled_activities()),
            parse_mode=ParseMode.MARKDOWN_V2,
        )
        await c.answer()

    @dp.callback_query(F.data.startswith("activity:"))
    async def on_activity(c: CallbackQuery):
        activity = c.data.split(":", 1)[1]
        await start_activity(c.message, c.message.chat.id, c.from_user, activity)
        await c.answer()

    @dp.callback_query(F.data.startswith("answer:"))
    async def on_answer_button(c: CallbackQuery):
        _, problem_id, idx_str = c.data.split(":", 2)
        orch = games.get(c.from_user.id)
        chat_id = c.message.chat.id
        problem = orch.current_problem if orch else None
        # stale buttons and taps during the pause before the next question
        if problem is None or problem.id != problem_id or pacing.pending(chat_id):
            await c.answer()
            return
        try:
            answer = str(problem.options[int(idx_str)])
        except (ValueError, IndexError):
            await c.answer()
            return
        await process_answer(c.message, c.bot, chat_id, c.from_user.id, answer)
        await c.answer()

    @dp.callback_query(F.data.startswith("hint:"))
    async def on_hint(c: CallbackQuery):
        problem_id = c.data.split(":", 1)[1]
        orch = games.get(c.from_user.id)
        if orch is None or orch.current_problem is None or orch.current_problem.id != problem_id:
            await c.answer()
            return
        ui_lang = await player_lang(c.from_user.id)
        hint = orch.use_hint()
        text = t("hint", ui_lang).format(hint=hint) if hint else t("hint_none", ui_lang)
        await c.message.answer(esc_md2(text), parse_mode=ParseMode.MARKDOWN_V2)
        await c.answer()

    @dp.callback_query(F.data.startswith("why:"))
    async def on_why(c: CallbackQuery):
        problem_id = c.data.split(":", 1)[1]
        orch = games.get(c.from_user.id)
        attempt = None
        if orch is not None:
            attempt = next((a for a in reversed(orch.history) if a.problem.id == problem_id), None)
        if attempt is None:
            await c.answer()
            return
        ui_lang = await player_lang(c.from_user.id)
        problem = attempt.problem
        explanation = await asyncio.to_thread(
            maybe_explain,
            llm,
            problem_type=problem.type,
            question=problem.question,
            story=problem.story,
            canonical=str(problem.correct_answer),
            user_answer=attempt.user_answer,
            difficulty=problem.difficulty,
            ui_lang=ui_lang,
        )
        if not explanation:
            explanation = t("hint", ui_lang).format(hint=problem.hint) if problem.hint else t("why_unavailable", ui_lang)
        await c.message.answer(esc_md2(explanation), parse_mode=ParseMode.MARKDOWN_V2)
        await c.answer()

    @dp.message(F.text)
    async def on_text(m: Message):
        if (m.text or "").startswith("/"):
            return
        orch = games.get(m.from_user.id)
        if orch is None or orch.current_problem is None:
            ui_lang = await player_lang(m.from_user.id)
            await m.answer(
                esc_md2(t("no_game", ui_lang)),
                reply_markup=kb_activities(ui_lang, enabled_activities()),
                parse_mode=ParseMode.MARKDOWN_V2,
            )
            return
        if pacing.pending(m.chat.id):
            return
        await process_answer(m, m.bot, m.chat.id, m.from_user.id, m.text)

    return pacing
