"""
Club registration bot.
Entry point: creates the bot, registers routers + middleware, handles graceful shutdown.
"""
import asyncio
import logging
import signal
import sys

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import ErrorEvent
from sqlalchemy.exc import SQLAlchemyError

from clubreg.config import settings
from clubreg.middlewares import DatabaseMiddleware, SessionMiddleware
from clubreg.models.base import AsyncSessionFactory, Base, engine
from clubreg.session.registry import SessionRegistry

# ── Handlers ──────────────────────────────────────────────────────────────────
from clubreg.handlers.common import router as common_router
from clubreg.handlers.auth import router as auth_router
from clubreg.handlers.profile import router as profile_router
from clubreg.handlers.programs import router as programs_router
from clubreg.handlers.participants import router as participants_router
from clubreg.handlers.admin.panel import router as admin_panel_router
from clubreg.handlers.admin.programs import router as admin_programs_router
from clubreg.handlers.fallback import router as fallback_router

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


async def create_tables() -> None:
    """Create missing tables on startup (alembic handles upgrades of existing ones)."""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ready.")
    except (SQLAlchemyError, OSError) as e:
        logger.critical(
            "❌ Cannot connect to database!\n"
            "   URL: %s\n"
            "   Error: %s\n\n"
            "   → Start PostgreSQL or use SQLite locally "
            "(DATABASE_URL=sqlite+aiosqlite:///./clubreg.db)",
            settings.DATABASE_URL.split("@")[-1],   # hide credentials in log
            e,
        )
        sys.exit(1)


def build_dispatcher(registry: SessionRegistry) -> Dispatcher:
    dp = Dispatcher(storage=MemoryStorage())

    # ── Global error handler — ensures callbacks are always answered ──────────
    @dp.errors()
    async def handle_error(event: ErrorEvent) -> None:
        logger.exception("Unhandled error: %s", event.exception)
        update = event.update
        try:
            if update.callback_query:
                await update.callback_query.answer(
                    "⚠️ Something went wrong. Please try again.", show_alert=True
                )
            elif update.message:
                await update.message.answer("⚠️ Something went wrong. Please try again.")
        except TelegramAPIError:
            logger.warning("Could not report the error to the user", exc_info=True)

    # ── Global middlewares (order matters: session needs the DB session) ─────
    dp.update.middleware(DatabaseMiddleware())
    dp.update.middleware(SessionMiddleware(registry))

    # ── Routers — order matters for handler priority ──────────────────────────
    dp.include_router(common_router)
    dp.include_router(auth_router)
    dp.include_router(profile_router)
    dp.include_router(programs_router)
    dp.include_router(participants_router)

    # Admin routers
    dp.include_router(admin_panel_router)
    dp.include_router(admin_programs_router)

    # !! Must be last — catches any update not handled above !!
    dp.include_router(fallback_router)

    return dp


async def main() -> None:
    logger.info("Starting club registration bot…")
    await create_tables()

    bot = Bot(
        token=settings.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    registry = SessionRegistry.from_settings(AsyncSessionFactory, settings)
    dp = build_dispatcher(registry)

    # ── Graceful shutdown on SIGTERM (Docker / systemd) ───────────────────────
    loop = asyncio.get_running_loop()

    def _handle_signal():
        logger.info("Received shutdown signal, stopping…")
        asyncio.ensure_future(dp.stop_polling())

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _handle_signal)
        except NotImplementedError:
            # Windows does not support add_signal_handler
            pass

    try:
        logger.info("Bot is running. Press Ctrl+C to stop.")
        await dp.start_polling(
            bot,
            allowed_updates=dp.resolve_used_update_types(),
            handle_signals=False,
        )
    finally:
        logger.info("Shutting down…")
        registry.shutdown()
        await bot.session.close()
        await engine.dispose()
        logger.info("Shutdown complete.")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
