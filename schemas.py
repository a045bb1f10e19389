# schemas.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
import datetime


# --- Subscribers ---

class SubscriberBase(BaseModel):
    chat_id: str

class SubscriberCreate(SubscriberBase):
    pass

class Subscriber(SubscriberBase):
    subscribed_at: datetime.datetime | None = None

    model_config = ConfigDict(from_attributes=True)


# --- Holders ---

class TokenRow(BaseModel):
    contract_address: str
    symbol: str = ""
    blockchain: str = ""

class HolderRecord(BaseModel):
    token_address: str
    chain_id: int
    symbol: str | None = None
    blockchain: str | None = None
    holders: list[dict] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


# --- Balance change events ---

class Asset(BaseModel):
    symbol: str = "???"
    decimals: int = 18

class BalanceChange(BaseModel):
    """A single decoded entry of an inbound `balance_changes` batch."""
    transaction_hash: str = ""
    direction: str = "out"
    amount_delta: str = "0"
    value_delta_usd: float = 0.0
    asset: Asset = Field(default_factory=Asset)
    subscribed_address: str = ""


# --- Remote webhooks ---

class RemoteWebhook(BaseModel):
    """A webhook as reported by the upstream registry. Unknown fields are kept."""
    id: str
    name: str | None = None
    active: bool = False
    token_address: str | None = None
    chain_ids: list[int] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)


# --- Responses ---

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class OkResponse(CamelModel):
    ok: bool = True

class BalancesResponse(OkResponse):
    processed: int

class FetchHoldersResponse(OkResponse):
    total_holders: int
    tokens_processed: int
    tokens_skipped: int = 0

class CreateWebhooksResponse(OkResponse):
    webhooks_created: int
    webhook_ids: list[str]
    skipped: int = 0
    failed: int = 0

class ViewWebhooksResponse(OkResponse):
    total: int
    active: int
    inactive: int
    complete: bool
    stop_reason: str
    webhooks: list[RemoteWebhook]

class PauseWebhooksResponse(OkResponse):
    paused: int
    skipped: int
    failed: int
    total: int
    complete: bool = True

class ResumeWebhooksResponse(OkResponse):
    resumed: int
    skipped: int
    failed: int
    total: int
    complete: bool = True

class LocalWebhooksResponse(OkResponse):
    failed: int
    total: int

class ResumeLocalWebhooksResponse(LocalWebhooksResponse):
    resumed: int

class PauseLocalWebhooksResponse(LocalWebhooksResponse):
    paused: int
