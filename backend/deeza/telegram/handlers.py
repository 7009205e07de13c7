"""
Telegram handlers — thin bridge between python-telegram-bot and the orchestrator.

Every handler:
1. Derives chat id + display name from the update
2. Hands the text to the orchestrator
3. Sends back each reply, threaded to the user's message
"""
import logging
from typing import List, Optional

from telegram import Update
from telegram.constants import ChatAction
from telegram.ext import ContextTypes

from deeza.agent.factory import get_orchestrator

logger = logging.getLogger(__name__)

FAILURE_REPLY = "Something went wrong!"


def display_name_for(update: Update) -> Optional[str]:
    """Lower-cased username, else first name."""
    user = update.effective_user
    if user is None:
        return None
    if user.username:
        return user.username.lower()
    return user.first_name


async def _reply_all(update: Update, replies: List[str]) -> None:
    for text in replies:
        if text:
            await update.message.reply_text(
                text,
                reply_to_message_id=update.message.message_id,
                disable_web_page_preview=True,
            )


async def handle_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start and /help - register the user and show help."""
    if not update.message or not update.effective_chat:
        return
    replies = await get_orchestrator().handle_start(update.effective_chat.id, display_name_for(update))
    await _reply_all(update, replies)


async def handle_cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /cancel - clear any active flow."""
    if not update.message or not update.effective_chat:
        return
    replies = await get_orchestrator().handle_cancel(update.effective_chat.id)
    await _reply_all(update, replies)


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Route every plain text message through the gift state machine."""
    if not update.message or not update.message.text or not update.effective_chat:
        return

    chat_id = update.effective_chat.id
    text = update.message.text
    logger.info(f"[Telegram] chat_id={chat_id} message: {text[:50]}")

    try:
        await context.bot.send_chat_action(chat_id=chat_id, action=ChatAction.TYPING)
    except Exception as e:
        logger.debug(f"[Telegram] Typing action failed: {e}")

    try:
        replies = await get_orchestrator().handle_message(chat_id, text, display_name_for(update))
    except Exception:
        logger.exception(f"[Telegram] Unhandled error for chat_id={chat_id}")
        await update.message.reply_text(FAILURE_REPLY)
        return

    await _reply_all(update, replies)


async def handle_error(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    logger.error(f"[Telegram] Update error: {context.error}", exc_info=context.error)
