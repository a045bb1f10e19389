# tokens.py
import csv
import logging
from pathlib import Path

import schemas

logger = logging.getLogger(__name__)


def load_tokens_from_csv(path) -> list[schemas.TokenRow]:
    """
    Loads the token universe from a CSV with contract_address, symbol and
    blockchain columns. A missing or unreadable file yields an empty list.
    """
    csv_path = Path(path)
    try:
        with csv_path.open(newline="", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            rows = []
            for raw in reader:
                row = {(k or "").strip(): (v or "").strip() for k, v in raw.items()}
                if not any(row.values()):
                    continue
                if not row.get("contract_address"):
                    logger.warning(f"Skipping token row without contract_address: {row}")
                    continue
                rows.append(schemas.TokenRow(**row))
            return rows
    except OSError as e:
        logger.error(f"Error loading {csv_path}. Make sure the file exists: {e}")
        return []
