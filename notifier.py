# notifier.py
import logging
from dataclasses import dataclass

from sqlalchemy.orm import sessionmaker
from telegram import Bot, LinkPreviewOptions
from telegram.constants import ParseMode
from telegram.error import TelegramError

import crud
from database import get_async_db
from rate_limit import FixedIntervalLimiter

logger = logging.getLogger(__name__)


@dataclass
class BroadcastResult:
    sent: int = 0
    failed: int = 0


class Broadcaster:
    """Sends one alert to every subscriber, one message at a time."""

    def __init__(self, bot: Bot, session_factory: sessionmaker, limiter: FixedIntervalLimiter):
        self.bot = bot
        self.session_factory = session_factory
        self.limiter = limiter

    async def broadcast(self, message: str) -> BroadcastResult:
        async with get_async_db(self.session_factory) as db:
            # Store reads run inline on the event loop; only sends and limiter waits yield.
            chat_ids = crud.get_all_subscriber_ids(db)

        result = BroadcastResult()
        if not chat_ids:
            logger.warning("BROADCAST: No subscribers found, skipping broadcast.")
            return result

        for chat_id in chat_ids:
            try:
                async with self.limiter:
                    await self.bot.send_message(
                        chat_id=chat_id,
                        text=message,
                        parse_mode=ParseMode.MARKDOWN,
                        link_preview_options=LinkPreviewOptions(is_disabled=True),
                    )
                result.sent += 1
            except TelegramError as e:
                result.failed += 1
                logger.warning(f"BROADCAST: Failed to send to {chat_id}: {e}")

        logger.info(f"BROADCAST: Finished. {result.sent}/{len(chat_ids)} messages sent successfully.")
        return result
