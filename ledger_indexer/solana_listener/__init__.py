"""
Solana RPC collaborator package.

Lists transaction signatures for an address and fetches decoded
transactions with their pre/post token balances.
"""

from ledger_indexer.solana_listener.client import SolanaRpcClient
from ledger_indexer.solana_listener.models import (
    AccountKey,
    DecodedTransaction,
    SignatureInfo,
    TokenBalance,
)

__all__ = [
    "AccountKey",
    "DecodedTransaction",
    "SignatureInfo",
    "SolanaRpcClient",
    "TokenBalance",
]
