import asyncio
import logging
import sys

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiohttp import web

from .config import Settings
from .context import build_context
from .db import create_engine, create_session_factory, init_models
from .middlewares.db import DataBaseSessionMiddleware
from .handlers import start, share
from .web.app import create_web_app

logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


async def main():
    settings = Settings()
    setup_logging(settings.log_level)

    engine = create_engine(settings.db_dsn)
    await init_models(engine)

    bot = Bot(
        token=settings.bot_token,
        default=DefaultBotProperties(parse_mode="HTML"),
    )
    ctx = build_context(settings, bot, create_session_factory(engine))

    dp = Dispatcher(ctx=ctx)

    # Middleware для сессии
    dp.update.middleware(DataBaseSessionMiddleware(ctx.session_factory))

    # Роутеры
    dp.include_router(start.router)
    dp.include_router(share.router)

    runner = web.AppRunner(create_web_app(ctx))
    await runner.setup()
    site = web.TCPSite(runner, settings.web_host, settings.web_port)
    await site.start()

    logger.info("🚀 Бот запускается, HTTP на %s:%s", settings.web_host, settings.web_port)

    try:
        await dp.start_polling(bot, allowed_updates=dp.resolve_used_update_types())
    finally:
        logger.info("🛑 Остановка бота...")
        await runner.cleanup()
        await ctx.close()
        await bot.session.close()
        await engine.dispose()
        logger.info("✅ Сессия закрыта")


def run():
    try:
        asyncio.run(main())
    except (KeyboardInterrupt, SystemExit):
        logger.info("⚠️ Бот был остановлен вручную")


if __name__ == "__main__":
    run()
