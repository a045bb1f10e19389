# ingestion.py
import logging
import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Awaitable, Callable, Iterable, Optional

import schemas
from alerts import format_balance_message
from chains import DEFAULT_CHAIN_ID

logger = logging.getLogger(__name__)

MIN_ALERT_USD = 100

# Substituted when an inbound field is missing or unusable.
FIELD_DEFAULTS = {
    "transaction_hash": "",
    "direction": "out",
    "amount_delta": "0",
    "value_delta_usd": 0.0,
    "subscribed_address": "",
    "asset.symbol": "???",
    "asset.decimals": 18,
}


@dataclass
class IngestResult:
    processed: int = 0
    alerted: int = 0


def parse_chain_id(header_value: Optional[str]) -> int:
    """Chain ID from the webhook header; missing or non-integer values mean Ethereum."""
    try:
        return int(str(header_value).strip())
    except (TypeError, ValueError):
        return DEFAULT_CHAIN_ID


def _as_text(value) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)

def _as_amount(value) -> Optional[str]:
    text = _as_text(value)
    if text is None:
        return None
    try:
        amount = Decimal(text.strip())
    except InvalidOperation:
        return None
    return text.strip() if amount.is_finite() else None

def _as_usd(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        usd = float(value)
    except (TypeError, ValueError):
        return None
    return usd if math.isfinite(usd) else None

def _as_decimals(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        decimals = int(value)
    except (TypeError, ValueError):
        return None
    return decimals if decimals >= 0 else None


def decode_balance_change(raw) -> tuple[schemas.BalanceChange, list[str]]:
    """
    Decodes one raw balance change into a fully populated BalanceChange.
    Returns the event and the names of the fields that fell back to
    FIELD_DEFAULTS.
    """
    if not isinstance(raw, dict):
        raw = {}
    asset = raw.get("asset") if isinstance(raw.get("asset"), dict) else {}

    decoded = {
        "transaction_hash": _as_text(raw.get("transaction_hash")),
        "direction": _as_text(raw.get("direction")),
        "amount_delta": _as_amount(raw.get("amount_delta")),
        "value_delta_usd": _as_usd(raw.get("value_delta_usd")),
        "subscribed_address": _as_text(raw.get("subscribed_address")),
        "asset.symbol": _as_text(asset.get("symbol")) or None,
        "asset.decimals": _as_decimals(asset.get("decimals")),
    }
    defaulted = [name for name, value in decoded.items() if value is None]
    for name in defaulted:
        decoded[name] = FIELD_DEFAULTS[name]

    change = schemas.BalanceChange(
        transaction_hash=decoded["transaction_hash"],
        direction=decoded["direction"],
        amount_delta=decoded["amount_delta"],
        value_delta_usd=decoded["value_delta_usd"],
        subscribed_address=decoded["subscribed_address"],
        asset=schemas.Asset(symbol=decoded["asset.symbol"], decimals=decoded["asset.decimals"]),
    )
    return change, defaulted


async def ingest_balance_changes(
    batch: Iterable,
    chain_id: int,
    notify: Callable[[str], Awaitable[object]],
) -> IngestResult:
    """
    Processes one inbound batch of balance changes.

    Events are deduplicated by transaction hash within this batch only, then
    events below MIN_ALERT_USD are dropped, and every remaining event is
    formatted and handed to `notify`. `processed` counts the distinct hashes,
    whatever the filter and delivery outcome.
    """
    result = IngestResult()
    seen_hashes: set[str] = set()

    for raw in batch:
        change, defaulted = decode_balance_change(raw)
        if defaulted:
            logger.debug(f"Balance change {change.transaction_hash or '<no hash>'} used defaults for: {', '.join(defaulted)}")

        if change.transaction_hash in seen_hashes:
            continue
        seen_hashes.add(change.transaction_hash)

        if change.value_delta_usd < MIN_ALERT_USD:
            continue

        try:
            message = format_balance_message(change, chain_id)
        except (ArithmeticError, ValueError) as e:
            logger.error(f"Failed to format balance change {change.transaction_hash}: {e}")
            continue
        await notify(message)
        result.alerted += 1

    result.processed = len(seen_hashes)
    logger.info(f"Batch on chain {chain_id}: {result.processed} distinct transactions, {result.alerted} alerted.")
    return result
