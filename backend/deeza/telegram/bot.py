"""
Telegram bot runner.

Runs python-telegram-bot polling on its own event loop in a daemon thread,
started from the FastAPI lifespan, or standalone with:
    python -m deeza.telegram.bot
"""
import asyncio
import logging
import threading
from typing import Optional, Union

from telegram import error
from telegram.ext import Application, CommandHandler, MessageHandler, filters

from deeza.agent.factory import get_orchestrator
from deeza.core.config import settings
from deeza.telegram.handlers import handle_cancel, handle_error, handle_message, handle_start

logger = logging.getLogger(__name__)

_bot_app: Optional[Application] = None


async def _start_polling_with_retry(app, max_retries=3, initial_backoff=2):
    for attempt in range(max_retries):
        try:
            logger.info(f"[Telegram] Starting polling (attempt {attempt + 1}/{max_retries})...")
            await app.updater.start_polling(drop_pending_updates=True)
            logger.info("[Telegram] ✓ Polling started successfully")
            return True
        except error.Conflict as e:
            if attempt < max_retries - 1:
                backoff = initial_backoff * (2 ** attempt)
                logger.warning(f"[Telegram] ⚠ Conflict detected: {e}. Retrying in {backoff}s...")
                await asyncio.sleep(backoff)
            else:
                logger.error(f"[Telegram] ✗ Failed after {max_retries} retries. Bot disabled. Error: {e}")
                return False
        except Exception as e:
            logger.error(f"[Telegram] Unexpected error: {e}")
            return False
    return False


def build_application() -> Application:
    # Updates run concurrently; the orchestrator serialises each chat with its own lock
    app = Application.builder().token(settings.TELEGRAM_BOT_TOKEN).concurrent_updates(True).build()
    app.add_handler(CommandHandler(["start", "help"], handle_start))
    app.add_handler(CommandHandler("cancel", handle_cancel))
    app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))
    app.add_error_handler(handle_error)
    return app


def _run_bot():
    global _bot_app
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)

    try:
        _bot_app = build_application()
        get_orchestrator().notifier = send_telegram_message

        loop.run_until_complete(_bot_app.initialize())
        loop.run_until_complete(_bot_app.start())
        if not loop.run_until_complete(_start_polling_with_retry(_bot_app)):
            return

        loop.run_forever()
    except Exception as e:
        logger.error(f"[Telegram] Bot error: {e}", exc_info=True)
    finally:
        try:
            if _bot_app:
                loop.run_until_complete(_bot_app.shutdown())
        except Exception as e:
            logger.debug(f"[Telegram] Shutdown error: {e}")
        loop.close()


def start_bot_background():
    if not settings.TELEGRAM_BOT_TOKEN:
        logger.warning("[Telegram] TELEGRAM_BOT_TOKEN not set - bot disabled")
        return
    t = threading.Thread(target=_run_bot, daemon=True, name="telegram-bot")
    t.start()


def stop_bot_background():
    """Called on FastAPI shutdown. The daemon thread exits with the process."""
    logger.info("[Telegram] Shutting down with the API process")


async def send_telegram_message(chat_id: Union[int, str], message: str) -> bool:
    """Send a message to a Telegram chat. Returns False instead of raising."""
    if not _bot_app:
        logger.warning("[Telegram] Bot not initialized")
        return False

    try:
        await _bot_app.bot.send_message(chat_id=int(chat_id), text=message)
        return True
    except Exception as e:
        logger.error(f"[Telegram] Failed to send message to {chat_id}: {e}")
        return False


def main():
    from deeza.db.init_db import init_db

    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not settings.TELEGRAM_BOT_TOKEN:
        raise SystemExit("TELEGRAM_BOT_TOKEN is not set")
    init_db()

    app = build_application()

    async def _wire(application: Application):
        global _bot_app
        _bot_app = application
        get_orchestrator().notifier = send_telegram_message

    app.post_init = _wire
    app.run_polling(drop_pending_updates=True)


if __name__ == "__main__":
    main()
