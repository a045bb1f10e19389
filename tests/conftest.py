import json
from types import SimpleNamespace

import httpx
import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool
from telegram.error import TelegramError

from config import Settings
from context import AppContext
from database import init_db, make_session_factory
from notifier import Broadcaster
from rate_limit import FixedIntervalLimiter
from sim_client import SimClient, WEBHOOKS_PATH
from webhooks import PartialListingPolicy


class FakeRegistry:
    """In-memory stand-in for the Sim token-holder and webhook endpoints."""

    def __init__(self, webhooks=None, ignore_offset=False):
        self.webhooks = [dict(w) for w in webhooks or []]
        self.ignore_offset = ignore_offset
        self.holders = {}
        self.fail_updates = set()
        self.fail_list_from_offset = None
        self.fail_create = False
        self.created = []
        self.requests = []

    def list_requests(self):
        return [r for r in self.requests if r.method == "GET" and r.url.path == WEBHOOKS_PATH]

    def patch_requests(self):
        return [r for r in self.requests if r.method == "PATCH"]

    def webhook(self, webhook_id):
        return next(w for w in self.webhooks if w["id"] == webhook_id)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params

        if path.startswith("/v1/evm/token-holders/"):
            _, _, _, _, chain_id, token_address = path.split("/")
            holders = self.holders.get((int(chain_id), token_address))
            if holders is None:
                return httpx.Response(404, json={"error": "token not found"})
            return httpx.Response(200, json={"holders": holders[: int(params.get("limit", 100))]})

        if path == WEBHOOKS_PATH and request.method == "GET":
            requested_offset = int(params["offset"])
            if self.fail_list_from_offset is not None and requested_offset >= self.fail_list_from_offset:
                return httpx.Response(503, json={"error": "unavailable"})
            limit = int(params["limit"])
            offset = 0 if self.ignore_offset else requested_offset
            return httpx.Response(200, json={"webhooks": self.webhooks[offset:offset + limit]})

        if path == WEBHOOKS_PATH and request.method == "POST":
            if self.fail_create:
                return httpx.Response(500, text="internal error")
            body = json.loads(request.content)
            webhook_id = f"wh-new-{len(self.created) + 1}"
            self.created.append(body)
            self.webhooks.append({"id": webhook_id, "active": True, **body})
            return httpx.Response(201, json={"id": webhook_id})

        if path.startswith(WEBHOOKS_PATH + "/") and request.method == "PATCH":
            webhook_id = path.rsplit("/", 1)[1]
            if webhook_id in self.fail_updates:
                return httpx.Response(500, json={"error": "update failed"})
            for webhook in self.webhooks:
                if webhook["id"] == webhook_id:
                    webhook["active"] = json.loads(request.content)["active"]
                    return httpx.Response(200, json=webhook)
            return httpx.Response(404, json={"error": "not found"})

        return httpx.Response(404, json={"error": "unknown route"})


class FakeBot:
    """Records send_message calls; chats in `failing_chat_ids` raise TelegramError."""

    defaults = None

    def __init__(self, failing_chat_ids=()):
        self.sent = []
        self.failing_chat_ids = set(failing_chat_ids)

    async def send_message(self, chat_id, text, **kwargs):
        if chat_id in self.failing_chat_ids:
            raise TelegramError("Forbidden: bot was blocked by the user")
        self.sent.append(SimpleNamespace(chat_id=chat_id, text=text, kwargs=kwargs))


@pytest.fixture
def session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def registry():
    return FakeRegistry()


@pytest.fixture
def sim(registry):
    client = httpx.AsyncClient(base_url="https://sim.test", transport=httpx.MockTransport(registry.handler))
    return SimClient("test-key", client=client)


@pytest.fixture
def bot():
    return FakeBot()


@pytest.fixture
def broadcaster(bot, session_factory):
    return Broadcaster(bot, session_factory, FixedIntervalLimiter(0))


@pytest.fixture
def settings(tmp_path):
    return Settings(
        sim_api_key="test-key",
        telegram_bot_token="123:abc",
        webhook_base_url="https://hooks.test",
        database_url="sqlite://",
        tokens_csv_path=str(tmp_path / "tokens.csv"),
    )


@pytest.fixture
def app_context(settings, session_factory, sim, bot, broadcaster):
    return AppContext(
        settings=settings,
        session_factory=session_factory,
        sim=sim,
        telegram=SimpleNamespace(bot=bot),
        broadcaster=broadcaster,
        listing_policy=PartialListingPolicy(page_size=2, max_pages=10),
    )
