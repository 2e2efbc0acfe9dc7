"""
Core utilities: error taxonomy shared by the RPC client, indexer and CLI.
"""

from ledger_indexer.core.exceptions import (
    ConfigError,
    IndexingCancelled,
    InvalidAddressError,
    LedgerIndexerError,
    RpcError,
    RpcTransportError,
    TransactionNotFoundError,
)

__all__ = [
    "ConfigError",
    "IndexingCancelled",
    "InvalidAddressError",
    "LedgerIndexerError",
    "RpcError",
    "RpcTransportError",
    "TransactionNotFoundError",
]
