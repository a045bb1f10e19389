# context.py
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from telegram.ext import Application

from bot import build_application
from config import Settings
from database import init_db, make_engine, make_session_factory
from notifier import Broadcaster
from rate_limit import FixedIntervalLimiter
from sim_client import SimClient
from webhooks import PartialListingPolicy

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """
    Every runtime handle the service needs. Built once at startup by
    `open_context` and released by `close`.
    """
    settings: Settings
    session_factory: sessionmaker
    sim: SimClient
    telegram: Application
    broadcaster: Broadcaster
    listing_policy: PartialListingPolicy
    engine: Optional[Engine] = None

    async def close(self) -> None:
        await self.telegram.stop()
        await self.telegram.shutdown()
        await self.sim.aclose()
        if self.engine is not None:
            self.engine.dispose()
        logger.info("Application context closed.")


async def open_context(settings: Settings) -> AppContext:
    engine = make_engine(settings.database_url)
    init_db(engine)
    session_factory = make_session_factory(engine)

    sim = SimClient(
        settings.sim_api_key,
        base_url=settings.sim_api_base_url,
        limiter=FixedIntervalLimiter(settings.sim_request_interval),
    )
    telegram = build_application(settings.telegram_bot_token, session_factory)
    await telegram.initialize()
    await telegram.start()

    broadcaster = Broadcaster(telegram.bot, session_factory, FixedIntervalLimiter(settings.telegram_send_interval))
    policy = PartialListingPolicy(page_size=settings.webhook_page_size, max_pages=settings.webhook_max_pages)
    logger.info("Application context ready.")
    return AppContext(
        settings=settings,
        session_factory=session_factory,
        sim=sim,
        telegram=telegram,
        broadcaster=broadcaster,
        listing_policy=policy,
        engine=engine,
    )
