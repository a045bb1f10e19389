# sim_client.py
import logging
from typing import Optional

import httpx

from rate_limit import FixedIntervalLimiter

logger = logging.getLogger(__name__)

WEBHOOKS_PATH = "/beta/evm/subscriptions/webhooks"


class SimClient:
    """
    Thin async wrapper over the Sim (Dune) token-holder and webhook
    subscription endpoints. Non-2xx responses raise httpx.HTTPStatusError,
    network problems raise httpx.RequestError.

    Every request goes through `limiter`, so at most one call to the API is
    in flight and calls are spaced by the limiter's interval.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.sim.dune.com",
        limiter: Optional[FixedIntervalLimiter] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.limiter = limiter or FixedIntervalLimiter(0)
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=20)
        self._headers = {"X-Sim-Api-Key": api_key}

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        async with self.limiter:
            response = await self._client.request(method, path, headers=self._headers, **kwargs)
        response.raise_for_status()
        return response

    async def fetch_token_holders(self, token_address: str, chain_id: int, limit: int = 3) -> list[dict]:
        response = await self._request(
            "GET", f"/v1/evm/token-holders/{chain_id}/{token_address}", params={"limit": limit}
        )
        return response.json().get("holders") or []

    async def create_webhook(self, config: dict) -> dict:
        response = await self._request("POST", WEBHOOKS_PATH, json=config)
        return response.json()

    async def list_webhooks(self, limit: int, offset: int) -> list[dict]:
        """Returns one page of the remote webhook listing."""
        response = await self._request("GET", WEBHOOKS_PATH, params={"limit": limit, "offset": offset})
        return response.json().get("webhooks") or []

    async def update_webhook_status(self, webhook_id: str, active: bool) -> None:
        await self._request("PATCH", f"{WEBHOOKS_PATH}/{webhook_id}", json={"active": active})
