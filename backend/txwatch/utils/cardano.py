"""
Cardano helpers for transaction hashes and explorer links
"""

import re
from typing import Optional
from txwatch.config import settings

TX_HASH_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")

def get_transaction_explorer_url(tx_hash: str, network: Optional[str] = None) -> str:
    """Cardanoscan link for a transaction on the given network"""
    network = (network or settings.cardano_network).lower()
    if network == "mainnet":
        return f"https://cardanoscan.io/transaction/{tx_hash}"
    return f"https://{network}.cardanoscan.io/transaction/{tx_hash}"

def is_tx_hash(value: str) -> bool:
    """Validate tx hash format (64 hex characters)"""
    return bool(TX_HASH_PATTERN.match(value or ""))

def short_hash(tx_hash: str, visible_chars: int = 8) -> str:
    """Shorten a hash for logs and notifications"""
    if not tx_hash or len(tx_hash) <= visible_chars * 2:
        return tx_hash or ""
    return f"{tx_hash[:visible_chars]}...{tx_hash[-visible_chars:]}"
