# bot.py
import logging

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import Application, CommandHandler, ContextTypes, filters

import crud
import schemas
from database import get_async_db

logger = logging.getLogger(__name__)

WELCOME_TEXT = (
    "📊 *Welcome to Top Holders Tracker!*\n\n"
    "You're now subscribed to top holder alerts.\n\n"
    "Commands:\n/start - Subscribe\n/status - Check subscription"
)
WELCOME_BACK_TEXT = "👋 Welcome back! You're already subscribed to top holder alerts."
SUBSCRIBED_TEXT = "✅ You're subscribed to top holder alerts!"
NOT_SUBSCRIBED_TEXT = "❌ Not subscribed. Send /start to subscribe."


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handles the /start command by subscribing the chat."""
    chat_id = str(update.effective_chat.id)
    async with get_async_db(context.bot_data["session_factory"]) as db:
        _, created = crud.get_or_create_subscriber(db, schemas.SubscriberCreate(chat_id=chat_id))

    if created:
        logger.info(f"New subscriber: {chat_id}")
    await update.effective_message.reply_text(WELCOME_TEXT if created else WELCOME_BACK_TEXT, parse_mode=ParseMode.MARKDOWN)


async def status(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handles the /status command."""
    chat_id = str(update.effective_chat.id)
    async with get_async_db(context.bot_data["session_factory"]) as db:
        subscribed = crud.is_subscribed(db, chat_id)
    await update.effective_message.reply_text(SUBSCRIBED_TEXT if subscribed else NOT_SUBSCRIBED_TEXT)


def build_application(token: str, session_factory) -> Application:
    """Builds the bot in webhook mode: updates arrive through /telegram/webhook, not polling."""
    application = Application.builder().token(token).updater(None).build()
    application.bot_data["session_factory"] = session_factory
    # Edited messages are not commands.
    application.add_handler(CommandHandler("start", start, filters=filters.UpdateType.MESSAGE))
    application.add_handler(CommandHandler("status", status, filters=filters.UpdateType.MESSAGE))
    return application
