"""
Transfer ledger data model.

TransferRecord is one directional token movement attributed to the indexed
wallet. A transaction can yield several records (one per wallet-attributable
token account whose balance changed); they share the signature.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class TransferDirection(str, Enum):
    SENT = "sent"
    RECEIVED = "received"


class AttributionPolicy(str, Enum):
    """
    Which balance changes count as the wallet's.

    OWNER_OR_SIGNER: the token account's post-transaction owner is the wallet,
        or the wallet signed the transaction.
    STRICT_OWNER: both the pre-transaction owner (when the account existed)
        and the post-transaction owner are the wallet.
    """

    OWNER_OR_SIGNER = "owner_or_signer"
    STRICT_OWNER = "strict_owner"


@dataclass(frozen=True)
class TransferRecord:
    """A single sent/received movement of the requested mint."""

    signature: str
    timestamp: datetime
    direction: TransferDirection
    amount: float
    """Absolute balance delta in human token units (already scaled by decimals)."""
    wallet: str
    mint: str
    account_index: int
    """Index of the token account in the transaction's account list."""
    counterparty: str | None = None
    """Owner on the other side of the movement when it is unambiguous."""
    owner: str | None = None
    """Owner of the token account that changed; None is read as the wallet."""

    @property
    def account_owner(self) -> str:
        return self.owner if self.owner is not None else self.wallet

    @property
    def source(self) -> str | None:
        if self.direction is TransferDirection.SENT:
            return self.account_owner
        return self.counterparty

    @property
    def destination(self) -> str | None:
        if self.direction is TransferDirection.RECEIVED:
            return self.account_owner
        return self.counterparty

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dict."""
        return {
            "signature": self.signature,
            "timestamp": self.timestamp.isoformat(),
            "direction": self.direction.value,
            "amount": self.amount,
            "wallet": self.wallet,
            "mint": self.mint,
            "account_index": self.account_index,
            "owner": self.account_owner,
            "counterparty": self.counterparty,
            "from": self.source,
            "to": self.destination,
        }
