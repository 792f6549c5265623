"""Incoterms® 2020 Calculator Bot — entry point.

Resilience features:
1. Auto-restart polling on crash (up to 100 retries with backoff).
2. Health-check HTTP server for container platforms.
3. Bot description / commands set on every start.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import BotCommand

from incoterms_bot.config import settings
from incoterms_bot.handlers import common, wizard
from incoterms_bot.handlers.common import fallback_router
from incoterms_bot.middleware import ThrottleMiddleware

MAX_RETRIES = 100


def _setup_logging() -> None:
    fmt = logging.Formatter(
        "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(fmt)
    logging.root.handlers = [handler]
    logging.root.setLevel(settings.LOG_LEVEL)


def build_dispatcher() -> Dispatcher:
    dp = Dispatcher(storage=MemoryStorage())
    throttle = ThrottleMiddleware()
    dp.message.middleware(throttle)
    dp.callback_query.middleware(throttle)

    # Router order matters: common first, then the wizard, fallback last.
    dp.include_router(common.router)
    dp.include_router(wizard.router)
    dp.include_router(fallback_router)
    return dp


def _retry_delay(attempt: int) -> int:
    """5s → 10s → … → cap at 60s."""
    return min(attempt * 5, 60)


# ═══════════════════════════════════════════════════════════════
# HTTP health server
# ═══════════════════════════════════════════════════════════════

async def _start_health_server() -> None:
    """Minimal HTTP server so the hosting platform knows the service is alive."""
    from aiohttp import web

    async def _health(_r: web.Request) -> web.Response:
        return web.Response(text="ok")

    app = web.Application()
    app.router.add_get("/", _health)
    app.router.add_get("/health", _health)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", settings.PORT)
    await site.start()


# ═══════════════════════════════════════════════════════════════
# Bot branding
# ═══════════════════════════════════════════════════════════════

async def _set_bot_branding(bot: Bot) -> None:
    logger = logging.getLogger("bot")
    try:
        await bot.set_my_commands([
            BotCommand(command="start", description="🧭 New calculation"),
            BotCommand(command="help", description="ℹ️ Help"),
        ])
        await bot.set_my_description(
            "Incoterms® 2020 Calculator.\n"
            "Find the right Incoterms® 2020 rule for your international "
            "shipment in six taps.\n\n"
            f"📞 {settings.contact_display}\n\n"
            "Press «Start» to begin."
        )
        await bot.set_my_short_description(
            "Find the right Incoterms® 2020 rule for your shipment"
        )
        logger.info("Bot branding set")
    except Exception as exc:
        logger.warning("Could not set bot description: %s", exc)


# ═══════════════════════════════════════════════════════════════
# MAIN
# ═══════════════════════════════════════════════════════════════

async def main() -> None:
    _setup_logging()
    logger = logging.getLogger("bot")

    if not settings.BOT_TOKEN:
        logger.critical("BOT_TOKEN is not set — exiting")
        sys.exit(1)

    logger.info("Starting Incoterms Calculator Bot")

    bot = Bot(
        token=settings.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML),
    )
    await _set_bot_branding(bot)

    dp = build_dispatcher()

    if settings.HEALTH_SERVER_ENABLED:
        await _start_health_server()
        logger.info("Health server on :%s", settings.PORT)

    # ── Polling with auto-restart ─────────────────────────────
    for attempt in range(1, MAX_RETRIES + 1):
        try:
            await bot.delete_webhook(drop_pending_updates=False)
            logger.info("Polling started (attempt #%d)", attempt)
            await dp.start_polling(
                bot,
                polling_timeout=30,
                handle_signals=False,
            )
            logger.info("Polling stopped cleanly")
            break

        except Exception as exc:
            logger.error(
                "Polling crashed (attempt #%d/%d): %s",
                attempt, MAX_RETRIES, exc,
                exc_info=True,
            )
            if attempt < MAX_RETRIES:
                wait = _retry_delay(attempt)
                logger.info("Restarting polling in %ds…", wait)
                await asyncio.sleep(wait)
            else:
                logger.critical("Max retries (%d) reached — exiting", MAX_RETRIES)

    await bot.session.close()
    logger.info("Bot stopped")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
