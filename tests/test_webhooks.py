import crud
import models
import schemas
from database import get_async_db
from webhooks import (
    ListingStop,
    PartialListingPolicy,
    Scope,
    create_webhooks_for_top_holders,
    enumerate_all_webhooks,
    set_all_active,
)


def remote(count, active=True):
    return [{"id": f"wh-{i}", "name": f"Tracker {i}", "active": active} for i in range(1, count + 1)]


# --- Enumeration ---

async def test_walks_every_page_until_a_short_page(registry, sim):
    registry.webhooks = remote(5)

    listing = await enumerate_all_webhooks(sim, PartialListingPolicy(page_size=2, max_pages=10))

    assert [w.id for w in listing.webhooks] == ["wh-1", "wh-2", "wh-3", "wh-4", "wh-5"]
    assert listing.stop_reason is ListingStop.LAST_PAGE
    assert listing.complete
    assert [int(r.url.params["offset"]) for r in registry.list_requests()] == [0, 2, 4]


async def test_stops_on_an_empty_page(registry, sim):
    registry.webhooks = remote(4)

    listing = await enumerate_all_webhooks(sim, PartialListingPolicy(page_size=2, max_pages=10))

    assert len(listing.webhooks) == 4
    assert listing.stop_reason is ListingStop.EXHAUSTED
    assert listing.complete


async def test_registry_ignoring_offset_stops_after_one_extra_page(registry, sim):
    registry.webhooks = remote(3)
    registry.ignore_offset = True

    listing = await enumerate_all_webhooks(sim, PartialListingPolicy(page_size=3, max_pages=50))

    assert [w.id for w in listing.webhooks] == ["wh-1", "wh-2", "wh-3"]
    assert listing.stop_reason is ListingStop.NO_NEW_IDS
    assert not listing.complete
    assert len(registry.list_requests()) == 2


async def test_page_limit_marks_listing_incomplete(registry, sim):
    registry.webhooks = remote(10)

    listing = await enumerate_all_webhooks(sim, PartialListingPolicy(page_size=2, max_pages=3))

    assert len(listing.webhooks) == 6
    assert listing.stop_reason is ListingStop.PAGE_LIMIT
    assert not listing.complete


async def test_transport_error_returns_what_was_accumulated(registry, sim):
    registry.webhooks = remote(5)
    registry.fail_list_from_offset = 2

    listing = await enumerate_all_webhooks(sim, PartialListingPolicy(page_size=2, max_pages=10))

    assert [w.id for w in listing.webhooks] == ["wh-1", "wh-2"]
    assert listing.stop_reason is ListingStop.TRANSPORT_ERROR
    assert not listing.complete


async def test_records_without_an_id_are_ignored(registry, sim):
    registry.webhooks = [{"name": "broken"}, {"id": "wh-1", "active": True, "url": "https://x"}]

    listing = await enumerate_all_webhooks(sim, PartialListingPolicy(page_size=5, max_pages=10))

    assert [w.id for w in listing.webhooks] == ["wh-1"]
    assert listing.webhooks[0].model_dump()["url"] == "https://x"


# --- Pause / resume ---

async def mirror(session_factory, webhook_id, token, active):
    async with get_async_db(session_factory) as db:
        crud.upsert_webhook(db, webhook_id, token, 1, active=active)


async def mirrored_active(session_factory, webhook_id):
    async with get_async_db(session_factory) as db:
        return db.get(models.Webhook, webhook_id).active


async def test_resume_skips_active_and_flips_mirror(registry, sim, session_factory):
    registry.webhooks = [
        {"id": "wh-1", "active": True},
        {"id": "wh-2", "active": False},
        {"id": "wh-3", "active": False},
    ]
    await mirror(session_factory, "wh-1", "0xaaa", True)
    await mirror(session_factory, "wh-2", "0xbbb", False)

    result = await set_all_active(sim, session_factory, True, Scope.ALL_REMOTE, PartialListingPolicy(page_size=10))

    assert (result.changed, result.skipped, result.failed, result.total) == (2, 1, 0, 3)
    assert result.complete
    assert await mirrored_active(session_factory, "wh-2") is True
    assert registry.webhook("wh-3")["active"] is True
    assert [r.url.path.rsplit("/", 1)[1] for r in registry.patch_requests()] == ["wh-2", "wh-3"]


async def test_resume_twice_only_skips_the_second_time(registry, sim, session_factory):
    registry.webhooks = remote(3, active=False)
    policy = PartialListingPolicy(page_size=10)

    first = await set_all_active(sim, session_factory, True, Scope.ALL_REMOTE, policy)
    second = await set_all_active(sim, session_factory, True, Scope.ALL_REMOTE, policy)

    assert (first.changed, first.skipped) == (3, 0)
    assert (second.changed, second.skipped, second.failed) == (0, 3, 0)


async def test_failed_update_is_counted_and_not_mirrored(registry, sim, session_factory):
    registry.webhooks = [{"id": "wh-1", "active": True}, {"id": "wh-2", "active": True}]
    registry.fail_updates = {"wh-1"}
    await mirror(session_factory, "wh-1", "0xaaa", True)

    result = await set_all_active(sim, session_factory, False, Scope.ALL_REMOTE, PartialListingPolicy(page_size=10))

    assert (result.changed, result.skipped, result.failed, result.total) == (1, 0, 1, 2)
    assert await mirrored_active(session_factory, "wh-1") is True
    assert registry.webhook("wh-1")["active"] is True
    assert registry.webhook("wh-2")["active"] is False


async def test_partial_listing_is_reported(registry, sim, session_factory):
    registry.webhooks = remote(4, active=False)
    registry.ignore_offset = True

    result = await set_all_active(sim, session_factory, True, Scope.ALL_REMOTE, PartialListingPolicy(page_size=2))

    assert result.total == 2
    assert not result.complete


async def test_local_only_updates_mirrored_webhooks_without_listing(registry, sim, session_factory):
    registry.webhooks = [
        {"id": "wh-1", "active": True},
        {"id": "wh-2", "active": False},
        {"id": "wh-3", "active": False},
    ]
    await mirror(session_factory, "wh-1", "0xaaa", False)
    await mirror(session_factory, "wh-2", "0xbbb", False)

    result = await set_all_active(sim, session_factory, True, Scope.LOCAL_ONLY)

    assert (result.changed, result.skipped, result.failed, result.total) == (2, 0, 0, 2)
    assert registry.list_requests() == []
    assert registry.webhook("wh-3")["active"] is False
    assert await mirrored_active(session_factory, "wh-1") is True
    assert await mirrored_active(session_factory, "wh-2") is True


async def test_local_only_isolates_failures(registry, sim, session_factory):
    registry.webhooks = [{"id": "wh-1", "active": True}, {"id": "wh-2", "active": True}]
    registry.fail_updates = {"wh-1"}
    await mirror(session_factory, "wh-1", "0xaaa", True)
    await mirror(session_factory, "wh-2", "0xbbb", True)

    result = await set_all_active(sim, session_factory, False, Scope.LOCAL_ONLY)

    assert (result.changed, result.failed, result.total) == (1, 1, 2)
    assert await mirrored_active(session_factory, "wh-1") is True
    assert await mirrored_active(session_factory, "wh-2") is False


# --- Creation ---

async def store_holders(session_factory, token, chain_id, symbol, blockchain, holders):
    async with get_async_db(session_factory) as db:
        crud.upsert_top_holders(db, schemas.HolderRecord(
            token_address=token, chain_id=chain_id, symbol=symbol, blockchain=blockchain, holders=holders,
        ))


async def test_creates_one_webhook_per_holder_record(registry, sim, session_factory):
    await store_holders(session_factory, "0xAAA", 1, "FOO", "ethereum",
                        [{"wallet_address": "0x111"}, {"wallet_address": "0x222"}, {"balance": "1"}])
    await store_holders(session_factory, "0xbbb", 8453, "BAR", "base", [])

    result = await create_webhooks_for_top_holders(sim, session_factory, "https://hooks.test")

    assert result.webhooks_created == 1
    assert registry.created == [{
        "name": "Top Holders Tracker - FOO on ethereum",
        "url": "https://hooks.test/balances",
        "type": "balances",
        "addresses": ["0x111", "0x222"],
        "chain_ids": [1],
        "token_address": "0xaaa",
    }]
    async with get_async_db(session_factory) as db:
        webhook = crud.get_webhook_for_token(db, "0xaaa", 1)
        assert webhook.id == result.webhook_ids[0]
        assert webhook.active is True


async def test_existing_pairs_are_not_registered_twice(registry, sim, session_factory):
    await store_holders(session_factory, "0xaaa", 1, "FOO", "ethereum", [{"wallet_address": "0x111"}])

    first = await create_webhooks_for_top_holders(sim, session_factory, "https://hooks.test")
    second = await create_webhooks_for_top_holders(sim, session_factory, "https://hooks.test")

    assert first.webhooks_created == 1
    assert (second.webhooks_created, second.skipped) == (0, 1)
    assert len(registry.created) == 1


async def test_creation_failures_are_counted(registry, sim, session_factory):
    registry.fail_create = True
    await store_holders(session_factory, "0xaaa", 1, "FOO", "ethereum", [{"wallet_address": "0x111"}])
    await store_holders(session_factory, "0xbbb", 10, "BAR", "optimism", [{"wallet_address": "0x222"}])

    result = await create_webhooks_for_top_holders(sim, session_factory, "https://hooks.test")

    assert (result.webhooks_created, result.failed) == (0, 2)
    async with get_async_db(session_factory) as db:
        assert crud.get_local_webhook_ids(db) == []
