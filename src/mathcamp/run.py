import asyncio
import logging
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from .analytics import AnalyticsService
from .config import load_settings
from .db import ensure_sqlite_dir, ensure_sqlite_schema, make_engine, make_sessionmaker
from .feature_flags import FeatureFlagService
from .handlers import register_handlers

async def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = load_settings()
    bot = Bot(
        settings.bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.MARKDOWN_V2),
    )
    engine = None
    try:
        if settings.database_url.startswith("sqlite"):
            ensure_sqlite_dir(settings.database_url)
        engine = make_engine(settings)
        if settings.database_url.startswith("sqlite"):
            await ensure_sqlite_schema(engine)
        sessionmaker = make_sessionmaker(engine)

        flags = FeatureFlagService.from_env_value(settings.feature_flags)
        logging.getLogger(__name__).info("feature_flags enabled=%s", ",".join(flags.enabled_flags()))
        await AnalyticsService(sessionmaker).track_app_started()

        dp = Dispatcher()
        register_handlers(dp, settings=settings, sessionmaker=sessionmaker, flags=flags)

        await dp.start_polling(bot)
    except Exception:
        logging.getLogger(__name__).exception("bot_run_failed")
        raise
    finally:
        await bot.session.close()
        if engine is not None:
            await engine.dispose()

if __name__ == "__main__":
    asyncio.run(main())
