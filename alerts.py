# alerts.py
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext

import schemas
from chains import get_explorer_tx_url

SEVERITY_EMOJI = "🚨"
# (inclusive lower bound in USD, emoji count), highest first
SEVERITY_TIERS = (
    (10_000_000, 5),
    (1_000_000, 4),
    (500_000, 3),
    (100_000, 2),
)
SIM_FOOTER = "Powered by [Sim APIs](https://sim.dune.com)"


def severity_count(usd_value: float) -> int:
    for threshold, count in SEVERITY_TIERS:
        if usd_value >= threshold:
            return count
    return 1


def format_number(value) -> str:
    """Thousands separators and at most 2 fractional digits, e.g. 1234.5 -> '1,234.5'."""
    amount = value if isinstance(value, Decimal) else Decimal(str(value))
    with localcontext() as ctx:
        ctx.prec = max(28, amount.adjusted() + 4)
        amount = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        text = f"{amount:,.2f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text == "-0":
        text = "0"
    return text


def shorten_address(address: str) -> str:
    return f"{address[:6]}...{address[-4:]}"


def token_amount(amount_delta: str, decimals: int) -> Decimal:
    try:
        raw = Decimal(amount_delta)
    except (InvalidOperation, TypeError):
        raw = Decimal(0)
    return raw.scaleb(-decimals)


def format_balance_message(change: schemas.BalanceChange, chain_id: int) -> str:
    """Renders one balance change as a Markdown alert."""
    usd_value = change.value_delta_usd
    amount = token_amount(change.amount_delta, change.asset.decimals)

    emoji = " ".join([SEVERITY_EMOJI] * severity_count(usd_value))
    is_inbound = change.direction == "in"
    direction_emoji = "📥" if is_inbound else "📤"
    direction_text = "received" if is_inbound else "sent"

    holder_short = shorten_address(change.subscribed_address)
    tx_link = get_explorer_tx_url(change.transaction_hash, chain_id)

    return (
        f"{emoji} {direction_emoji} *{format_number(amount)} {change.asset.symbol}* "
        f"(${format_number(usd_value)}) {direction_text}\n\n"
        f"Holder: `{holder_short}`\n\n"
        f"[View Transaction]({tx_link}) · {SIM_FOOTER}"
    )
