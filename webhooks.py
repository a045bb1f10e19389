# webhooks.py
import logging
from dataclasses import dataclass, field
from enum import Enum

import httpx
from pydantic import ValidationError
from sqlalchemy.orm import sessionmaker

import crud
import schemas
from database import get_async_db
from sim_client import SimClient

logger = logging.getLogger(__name__)


# --- Enumeration ---

class ListingStop(str, Enum):
    EXHAUSTED = "exhausted"              # an empty page came back
    LAST_PAGE = "last_page"              # a short page came back
    NO_NEW_IDS = "no_new_ids"            # a full page repeated ids already seen
    PAGE_LIMIT = "page_limit"            # max_pages reached
    TRANSPORT_ERROR = "transport_error"  # a page request failed


COMPLETE_STOPS = frozenset({ListingStop.EXHAUSTED, ListingStop.LAST_PAGE})


@dataclass(frozen=True)
class PartialListingPolicy:
    """
    How to walk an offset-paginated listing that may ignore `offset`.

    Each iteration stops on, in order: an empty page, a page with no unseen
    ids, a page shorter than `page_size`. The walk never requests more than
    `max_pages` pages.
    """
    page_size: int = 300
    max_pages: int = 50


@dataclass
class WebhookListing:
    webhooks: list[schemas.RemoteWebhook] = field(default_factory=list)
    stop_reason: ListingStop = ListingStop.EXHAUSTED

    @property
    def complete(self) -> bool:
        return self.stop_reason in COMPLETE_STOPS


async def enumerate_all_webhooks(sim: SimClient, policy: PartialListingPolicy = PartialListingPolicy()) -> WebhookListing:
    """
    Walks the remote webhook registry page by page, deduplicating by id.
    Listings stopped by a heuristic or an error have `complete == False`.
    """
    listing = WebhookListing()
    seen_ids: set[str] = set()

    for page_number in range(policy.max_pages):
        offset = page_number * policy.page_size
        try:
            page = await sim.list_webhooks(limit=policy.page_size, offset=offset)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to fetch webhooks at offset {offset}: {e}")
            listing.stop_reason = ListingStop.TRANSPORT_ERROR
            return listing

        if not page:
            listing.stop_reason = ListingStop.EXHAUSTED
            return listing

        new_count = 0
        for raw in page:
            try:
                webhook = schemas.RemoteWebhook.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"Ignoring malformed webhook record at offset {offset}: {e}")
                continue
            if webhook.id in seen_ids:
                continue
            seen_ids.add(webhook.id)
            listing.webhooks.append(webhook)
            new_count += 1

        logger.info(f"Fetched {len(page)} webhooks, {new_count} new (total unique: {len(listing.webhooks)})")

        if new_count == 0:
            logger.warning("No new webhooks found - registry may not support offset pagination. Stopping.")
            listing.stop_reason = ListingStop.NO_NEW_IDS
            return listing

        if len(page) < policy.page_size:
            listing.stop_reason = ListingStop.LAST_PAGE
            return listing

    logger.warning(f"Hit max pages ({policy.max_pages}). Listing is possibly incomplete.")
    listing.stop_reason = ListingStop.PAGE_LIMIT
    return listing


# --- Pause / resume ---

class Scope(str, Enum):
    ALL_REMOTE = "all-remote"
    LOCAL_ONLY = "local-only"


@dataclass
class ReconcileResult:
    changed: int = 0
    skipped: int = 0
    failed: int = 0
    total: int = 0
    complete: bool = True


async def _apply_active(sim: SimClient, session_factory: sessionmaker, webhook_id: str, label: str,
                        target: bool, result: ReconcileResult) -> None:
    verb = "resume" if target else "pause"
    try:
        await sim.update_webhook_status(webhook_id, target)
    except httpx.HTTPError as e:
        result.failed += 1
        logger.error(f"Failed to {verb}: {label} ({e})")
        return

    result.changed += 1
    async with get_async_db(session_factory) as db:
        mirrored = crud.set_webhook_active(db, webhook_id, target)
    logger.info(f"{verb.capitalize()}d: {label}{'' if mirrored else ' (not mirrored locally)'}")


async def set_all_active(
    sim: SimClient,
    session_factory: sessionmaker,
    target: bool,
    scope: Scope = Scope.ALL_REMOTE,
    policy: PartialListingPolicy = PartialListingPolicy(),
) -> ReconcileResult:
    """
    Sets `active = target` on every webhook in scope and mirrors successful
    changes into the local webhooks table.

    ALL_REMOTE enumerates the upstream registry and skips webhooks already in
    the target state. LOCAL_ONLY walks the local mirror and updates every row,
    since the mirror may be stale. A failed update is counted and left as is.
    """
    result = ReconcileResult()

    if scope is Scope.LOCAL_ONLY:
        async with get_async_db(session_factory) as db:
            webhook_ids = crud.get_local_webhook_ids(db)
        result.total = len(webhook_ids)
        logger.info(f"Found {result.total} local webhooks to {'resume' if target else 'pause'}")
        for webhook_id in webhook_ids:
            await _apply_active(sim, session_factory, webhook_id, webhook_id, target, result)
        return result

    listing = await enumerate_all_webhooks(sim, policy)
    result.total = len(listing.webhooks)
    result.complete = listing.complete
    logger.info(f"Found {result.total} total webhooks to {'resume' if target else 'pause'}")

    for webhook in listing.webhooks:
        if webhook.active == target:
            result.skipped += 1
            continue
        await _apply_active(sim, session_factory, webhook.id, webhook.name or webhook.id, target, result)

    return result


# --- Creation ---

@dataclass
class CreateWebhooksResult:
    webhook_ids: list[str] = field(default_factory=list)
    skipped: int = 0
    failed: int = 0

    @property
    def webhooks_created(self) -> int:
        return len(self.webhook_ids)


async def create_webhooks_for_top_holders(sim: SimClient, session_factory: sessionmaker, base_url: str) -> CreateWebhooksResult:
    """
    Registers one balances webhook per stored holder record. Pairs that
    already have a mirrored webhook are skipped.
    """
    result = CreateWebhooksResult()
    async with get_async_db(session_factory) as db:
        records = [
            (row.token_address, row.chain_id, row.symbol, row.blockchain, row.holder_addresses)
            for row in crud.get_all_top_holders(db)
        ]

    for token_address, chain_id, symbol, blockchain, addresses in records:
        if not addresses:
            continue

        async with get_async_db(session_factory) as db:
            existing = crud.get_webhook_for_token(db, token_address, chain_id)
        if existing is not None:
            logger.info(f"Webhook {existing.id} already registered for {symbol} on {blockchain}, skipping.")
            result.skipped += 1
            continue

        config = {
            "name": f"Top Holders Tracker - {symbol} on {blockchain}",
            "url": f"{base_url}/balances",
            "type": "balances",
            "addresses": addresses,
            "chain_ids": [chain_id],
            "token_address": token_address,
        }
        try:
            webhook = await sim.create_webhook(config)
        except (httpx.HTTPError, ValueError) as e:
            result.failed += 1
            logger.error(f"Failed to create webhook for {symbol} on {blockchain}: {e}")
            continue

        webhook_id = webhook.get("id") if isinstance(webhook, dict) else None
        if not webhook_id:
            result.failed += 1
            logger.error(f"Webhook creation for {symbol} returned no id: {webhook}")
            continue

        async with get_async_db(session_factory) as db:
            crud.upsert_webhook(db, str(webhook_id), token_address, chain_id, active=True)
        result.webhook_ids.append(str(webhook_id))
        logger.info(f"Created webhook for {symbol}")

    return result
