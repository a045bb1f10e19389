# crud.py
from sqlalchemy.orm import Session
import models
import schemas


# --- Subscribers ---

def get_or_create_subscriber(db: Session, subscriber: schemas.SubscriberCreate) -> tuple[models.Subscriber, bool]:
    """
    Gets a subscriber by chat_id or creates a new one.
    Returns the subscriber object and a boolean (True if created, False if existed).
    """
    db_subscriber = db.query(models.Subscriber).filter(models.Subscriber.chat_id == subscriber.chat_id).first()
    if db_subscriber:
        return db_subscriber, False

    db_subscriber = models.Subscriber(chat_id=subscriber.chat_id)
    db.add(db_subscriber)
    db.commit()
    db.refresh(db_subscriber)
    return db_subscriber, True

def get_all_subscriber_ids(db: Session) -> list[str]:
    """Retrieves a list of all subscribed chat IDs."""
    return [chat_id for chat_id, in db.query(models.Subscriber.chat_id).order_by(models.Subscriber.chat_id).all()]

def is_subscribed(db: Session, chat_id: str) -> bool:
    return db.query(models.Subscriber.chat_id).filter(models.Subscriber.chat_id == chat_id).first() is not None


# --- Holders ---

def upsert_top_holders(db: Session, record: schemas.HolderRecord) -> models.TopHolder:
    """Inserts or replaces the holder set for (token_address, chain_id)."""
    token_address = record.token_address.lower()
    db_holder = (
        db.query(models.TopHolder)
        .filter(models.TopHolder.token_address == token_address, models.TopHolder.chain_id == record.chain_id)
        .first()
    )
    if db_holder is None:
        db_holder = models.TopHolder(token_address=token_address, chain_id=record.chain_id)
        db.add(db_holder)
    db_holder.symbol = record.symbol
    db_holder.blockchain = record.blockchain
    db_holder.holders = list(record.holders)
    db.commit()
    db.refresh(db_holder)
    return db_holder

def get_all_top_holders(db: Session) -> list[models.TopHolder]:
    return db.query(models.TopHolder).order_by(models.TopHolder.id).all()


# --- Webhook mirror ---

def get_webhook_for_token(db: Session, token_address: str, chain_id: int) -> models.Webhook | None:
    return (
        db.query(models.Webhook)
        .filter(models.Webhook.token_address == token_address.lower(), models.Webhook.chain_id == chain_id)
        .first()
    )

def upsert_webhook(db: Session, webhook_id: str, token_address: str, chain_id: int, active: bool = True) -> models.Webhook:
    db_webhook = db.get(models.Webhook, webhook_id)
    if db_webhook is None:
        db_webhook = models.Webhook(id=webhook_id)
        db.add(db_webhook)
    db_webhook.token_address = token_address.lower()
    db_webhook.chain_id = chain_id
    db_webhook.active = active
    db.commit()
    db.refresh(db_webhook)
    return db_webhook

def get_local_webhook_ids(db: Session) -> list[str]:
    return [webhook_id for webhook_id, in db.query(models.Webhook.id).order_by(models.Webhook.id).all()]

def set_webhook_active(db: Session, webhook_id: str, active: bool) -> bool:
    """Updates the mirrored active flag. Returns False if the id is not mirrored locally."""
    db_webhook = db.get(models.Webhook, webhook_id)
    if db_webhook is None:
        return False
    db_webhook.active = active
    db.commit()
    return True
