# config.py
import os
from dataclasses import dataclass

from dotenv import load_dotenv

REQUIRED_VARS = ("SIM_API_KEY", "TELEGRAM_BOT_TOKEN", "WEBHOOK_BASE_URL", "DATABASE_URL")


class ConfigError(ValueError):
    """Raised when a required environment variable is missing."""


@dataclass(frozen=True)
class Settings:
    sim_api_key: str
    telegram_bot_token: str
    webhook_base_url: str
    database_url: str
    sim_api_base_url: str = "https://api.sim.dune.com"
    tokens_csv_path: str = "tokens.csv"
    holders_per_token: int = 3
    sim_request_interval: float = 0.25
    telegram_send_interval: float = 0.05
    webhook_page_size: int = 300
    webhook_max_pages: int = 50
    port: int = 3001
    log_level: str = "INFO"


def load_settings(environ=None) -> Settings:
    """
    Builds Settings from the environment (a .env file is loaded first).
    Every variable in REQUIRED_VARS must be present and non-empty.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    missing = [name for name in REQUIRED_VARS if not environ.get(name)]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

    return Settings(
        sim_api_key=environ["SIM_API_KEY"],
        telegram_bot_token=environ["TELEGRAM_BOT_TOKEN"],
        webhook_base_url=environ["WEBHOOK_BASE_URL"].rstrip("/"),
        database_url=environ["DATABASE_URL"],
        sim_api_base_url=environ.get("SIM_API_BASE_URL", "https://api.sim.dune.com").rstrip("/"),
        tokens_csv_path=environ.get("TOKENS_CSV_PATH", "tokens.csv"),
        holders_per_token=int(environ.get("HOLDERS_PER_TOKEN", 3)),
        sim_request_interval=float(environ.get("SIM_REQUEST_INTERVAL", 0.25)),
        telegram_send_interval=float(environ.get("TELEGRAM_SEND_INTERVAL", 0.05)),
        webhook_page_size=int(environ.get("WEBHOOK_PAGE_SIZE", 300)),
        webhook_max_pages=int(environ.get("WEBHOOK_MAX_PAGES", 50)),
        port=int(environ.get("PORT", 3001)),
        log_level=environ.get("LOG_LEVEL", "INFO").upper(),
    )
