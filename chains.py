# chains.py
"""
Chain registry: Sim/Dune blockchain names to EVM chain IDs, and block
explorer transaction URL templates.
"""
from typing import Optional

DEFAULT_CHAIN_ID = 1

CHAIN_IDS = {
    "abstract": 2741,
    "ancient8": 888888888,
    "ape_chain": 33139,
    "arbitrum": 42161,
    "arbitrum_nova": 42170,
    "avalanche_c": 43114,
    "avalanche_fuji": 43113,
    "b3": 8333,
    "base": 8453,
    "base_sepolia": 84532,
    "berachain": 80094,
    "blast": 81457,
    "bnb": 56,
    "bob": 60808,
    "boba": 288,
    "celo": 42220,
    "corn": 21000000,
    "cyber": 7560,
    "degen": 666666666,
    "ethereum": 1,
    "fantom": 250,
    "flare": 14,
    "fraxtal": 252,
    "gnosis": 100,
    "hyper_evm": 999,
    "ink": 57073,
    "kaia": 8217,
    "katana": 747474,
    "linea": 59144,
    "lisk": 1135,
    "mantle": 5000,
    "metis": 1088,
    "mode": 34443,
    "monad": 143,
    "monad_testnet": 10143,
    "omni": 166,
    "opbnb": 204,
    "optimism": 10,
    "peaq": 3338,
    "plasma": 9745,
    "polygon": 137,
    "polygon_amoy": 80002,
    "rari": 1380012617,
    "redstone": 690,
    "ronin": 2020,
    "rootstock": 30,
    "scroll": 534352,
    "sei": 1329,
    "sepolia": 11155111,
    "shape": 360,
    "soneium": 1868,
    "sonic": 146,
    "superposition": 55244,
    "superseed": 5330,
    "swellchain": 1923,
    "unichain": 130,
    "wemix": 1111,
    "world": 480,
    "xai": 660279,
    "zero_network": 543210,
    "zkevm": 1101,
    "zksync": 324,
    "zora": 7777777,
}

EXPLORER_TX_URLS = {
    1: "https://etherscan.io/tx/",
    10: "https://optimistic.etherscan.io/tx/",
    56: "https://bscscan.com/tx/",
    137: "https://polygonscan.com/tx/",
    8453: "https://basescan.org/tx/",
    42161: "https://arbiscan.io/tx/",
    43114: "https://snowtrace.io/tx/",
}


def get_chain_id(blockchain: Optional[str]) -> Optional[int]:
    """Returns the chain ID for a blockchain name, or None if the chain is unsupported."""
    if not blockchain:
        return None
    return CHAIN_IDS.get(blockchain.strip().lower())


def get_explorer_tx_url(tx_hash: str, chain_id: int) -> str:
    """Unknown chains fall back to the Ethereum explorer."""
    base = EXPLORER_TX_URLS.get(chain_id, EXPLORER_TX_URLS[DEFAULT_CHAIN_ID])
    return f"{base}{tx_hash}"
