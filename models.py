# models.py
from sqlalchemy import JSON, Boolean, Column, Integer, String, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from database import Base


class TopHolder(Base):
    """
    The most recent top-holder set for one (token_address, chain_id) pair.
    """
    __tablename__ = "top_holders"
    __table_args__ = (UniqueConstraint("token_address", "chain_id", name="uq_top_holders_token_chain"),)

    id = Column(Integer, primary_key=True, index=True)
    token_address = Column(String, nullable=False)
    chain_id = Column(Integer, nullable=False)
    symbol = Column(String)
    blockchain = Column(String)
    holders = Column(JSON, nullable=False, default=list)

    @property
    def holder_addresses(self) -> list[str]:
        return [h["wallet_address"] for h in self.holders or [] if isinstance(h, dict) and h.get("wallet_address")]


class Subscriber(Base):
    __tablename__ = "subscribers"

    chat_id = Column(String, primary_key=True, index=True)
    subscribed_at = Column(DateTime(timezone=True), server_default=func.now())


class Webhook(Base):
    """
    Local mirror of a webhook this service registered upstream.
    The upstream registry is authoritative for `active`.
    """
    __tablename__ = "webhooks"
    __table_args__ = (UniqueConstraint("token_address", "chain_id", name="uq_webhooks_token_chain"),)

    id = Column(String, primary_key=True, index=True)
    token_address = Column(String, nullable=False)
    chain_id = Column(Integer, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
