# holders.py
import logging
from dataclasses import dataclass

import httpx
from sqlalchemy.orm import sessionmaker

import crud
import schemas
from chains import get_chain_id
from database import get_async_db
from sim_client import SimClient
from tokens import load_tokens_from_csv

logger = logging.getLogger(__name__)


@dataclass
class FetchHoldersResult:
    total_holders: int = 0
    tokens_processed: int = 0
    tokens_skipped: int = 0


async def fetch_all_top_holders(
    sim: SimClient,
    session_factory: sessionmaker,
    tokens_csv_path,
    holders_per_token: int = 3,
) -> FetchHoldersResult:
    """
    Fetches the top holders of every token in the CSV universe and stores
    them per (token, chain). Tokens on unsupported chains are skipped.
    """
    tokens = load_tokens_from_csv(tokens_csv_path)
    result = FetchHoldersResult(tokens_processed=len(tokens))
    logger.info(f"Processing {len(tokens)} tokens from CSV...")

    for token in tokens:
        chain_id = get_chain_id(token.blockchain)
        if chain_id is None:
            logger.warning(f"Skipping {token.symbol or token.contract_address}: unsupported chain '{token.blockchain}'")
            result.tokens_skipped += 1
            continue

        try:
            holders = await sim.fetch_token_holders(token.contract_address, chain_id, limit=holders_per_token)
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to fetch holders for {token.contract_address}: {e}")
            continue

        if not holders:
            continue

        async with get_async_db(session_factory) as db:
            crud.upsert_top_holders(db, schemas.HolderRecord(
                token_address=token.contract_address.lower(),
                chain_id=chain_id,
                symbol=token.symbol,
                blockchain=token.blockchain,
                holders=holders,
            ))
        result.total_holders += len(holders)
        logger.info(f"Found {len(holders)} top holders for {token.symbol}")

    return result
