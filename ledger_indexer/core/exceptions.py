"""
Application-level exceptions.

Every failure that aborts an indexing call derives from LedgerIndexerError.
Missing data inside a transaction (no block time, no meta, no owner) is not
an error; it is reported to the observer and skipped.
"""

from __future__ import annotations


class LedgerIndexerError(Exception):
    """Base class for all indexer failures."""


class InvalidAddressError(LedgerIndexerError, ValueError):
    """Wallet or mint is not a valid base58 Solana address."""

    def __init__(self, field: str, value: str) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid {field} address: {value!r}")


class ConfigError(LedgerIndexerError, ValueError):
    """A configuration value is missing or out of range."""


class RpcError(LedgerIndexerError):
    """JSON-RPC call returned an error that retrying will not fix."""

    def __init__(self, method: str, code: int | None, message: str) -> None:
        self.method = method
        self.code = code
        self.message = message
        super().__init__(f"Solana RPC error in {method}: {message} (code={code})")


class RpcTransportError(LedgerIndexerError):
    """Transient RPC failure (timeout, 429, 5xx, node behind) that outlived all retries."""

    def __init__(self, method: str, attempts: int, reason: str) -> None:
        self.method = method
        self.attempts = attempts
        self.reason = reason
        super().__init__(f"Solana RPC {method} failed after {attempts} attempts: {reason}")


class TransactionNotFoundError(LedgerIndexerError):
    """getTransaction returned null for a listed signature."""

    def __init__(self, signature: str) -> None:
        self.signature = signature
        super().__init__(f"Transaction not found: {signature}")


class IndexingCancelled(LedgerIndexerError):
    """The caller's cancel event was set before indexing completed."""
