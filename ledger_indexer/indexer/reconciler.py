"""
Transfer reconciler: token-balance snapshots to directional transfer records.

For one decoded transaction, joins pre- and post-execution token balances of
the requested mint on account index, computes each account's delta, keeps
the deltas attributable to the wallet under the chosen AttributionPolicy and
emits one TransferRecord per non-negligible delta.

Pure with respect to its inputs: diagnostics go to the observer, nothing is
logged or fetched here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ledger_indexer.indexer.models import (
    AttributionPolicy,
    TransferDirection,
    TransferRecord,
)
from ledger_indexer.indexer.observer import (
    ENTRY_MISSING_OWNER,
    SKIP_MISSING_BLOCK_TIME,
    IndexObserver,
)
from ledger_indexer.indexer.window import block_time_to_datetime
from ledger_indexer.solana_listener.models import DecodedTransaction, TokenBalance

# Below the smallest unit of a 9-decimal token; float noise guard
NEGLIGIBLE_DELTA = 1e-9

_NULL_OBSERVER = IndexObserver()


@dataclass(frozen=True)
class BalanceDelta:
    """Pre/post balances of one token account of the requested mint."""

    account_index: int
    mint: str
    pre: TokenBalance | None
    post: TokenBalance | None

    @property
    def pre_amount(self) -> float:
        return self.pre.ui_amount if self.pre is not None else 0.0

    @property
    def post_amount(self) -> float:
        return self.post.ui_amount if self.post is not None else 0.0

    @property
    def delta(self) -> float:
        return self.post_amount - self.pre_amount

    @property
    def owner(self) -> str | None:
        """Post-transaction owner; the pre owner for an account closed by the transaction."""
        if self.post is not None:
            return self.post.owner
        return self.pre.owner if self.pre is not None else None

    @property
    def decimals(self) -> int | None:
        for snap in (self.post, self.pre):
            if snap is not None and snap.decimals is not None:
                return snap.decimals
        return None

    def is_negligible(self) -> bool:
        return abs(self.delta) < NEGLIGIBLE_DELTA


def balance_deltas(tx: DecodedTransaction, mint: str) -> list[BalanceDelta]:
    """
    Join pre and post balances of mint on (account index, mint).

    Order: post entries as listed, then pre-only entries (accounts closed by
    the transaction). A post entry without a pre entry is an account created
    by the transaction and starts from zero.
    """
    pre_by_key = {
        (b.account_index, b.mint): b for b in tx.pre_token_balances if b.mint == mint
    }
    out: list[BalanceDelta] = []
    seen: set[tuple[int, str]] = set()
    for post in tx.post_token_balances:
        if post.mint != mint:
            continue
        key = (post.account_index, post.mint)
        if key in seen:
            continue
        seen.add(key)
        out.append(
            BalanceDelta(
                account_index=post.account_index,
                mint=mint,
                pre=pre_by_key.get(key),
                post=post,
            )
        )
    for key, pre in pre_by_key.items():
        if key in seen:
            continue
        out.append(BalanceDelta(account_index=pre.account_index, mint=mint, pre=pre, post=None))
    return out


def is_attributable(
    d: BalanceDelta,
    wallet: str,
    tx: DecodedTransaction,
    policy: AttributionPolicy,
) -> bool:
    if policy is AttributionPolicy.STRICT_OWNER:
        if d.pre is not None and d.pre.owner != wallet:
            return False
        if d.post is not None and d.post.owner != wallet:
            return False
        return True
    return d.owner == wallet or tx.is_signer(wallet)


def _counterparty(d: BalanceDelta, deltas: list[BalanceDelta]) -> str | None:
    """Owner of the only other account moving the opposite way, if exactly one.

    Accounts held by d's own owner are not counterparties; the wallet is one
    when d is an account it signed for but does not own.
    """
    owners: set[str] = set()
    for other in deltas:
        if other.account_index == d.account_index or other.is_negligible():
            continue
        if (other.delta > 0) == (d.delta > 0):
            continue
        if other.owner is None or other.owner == d.owner:
            continue
        owners.add(other.owner)
    if len(owners) == 1:
        return next(iter(owners))
    return None


def reconcile(
    tx: DecodedTransaction,
    wallet: str,
    mint: str,
    *,
    timestamp: datetime | None = None,
    policy: AttributionPolicy = AttributionPolicy.OWNER_OR_SIGNER,
    observer: IndexObserver | None = None,
) -> list[TransferRecord]:
    """
    Turn one transaction's token-balance snapshots into transfer records.

    Args:
        tx: Decoded transaction.
        wallet: Base58 wallet being indexed.
        mint: Base58 mint; balances of other mints are ignored.
        timestamp: Block time to stamp records with; defaults to tx.block_time.
        policy: Attribution rule (see AttributionPolicy).
        observer: Receives diagnostics; defaults to a no-op sink.

    Returns:
        Records in balance-table order; empty when nothing of the wallet's moved.
    """
    obs = observer or _NULL_OBSERVER
    if not tx.has_meta:
        obs.transaction_missing_meta(tx.signature)
        return []
    if timestamp is None:
        if tx.block_time is None:
            obs.signature_skipped(tx.signature, SKIP_MISSING_BLOCK_TIME)
            return []
        timestamp = block_time_to_datetime(tx.block_time)

    deltas = balance_deltas(tx, mint)
    records: list[TransferRecord] = []
    for d in deltas:
        if d.is_negligible():
            continue
        if d.owner is None:
            obs.balance_entry_skipped(tx.signature, d.account_index, ENTRY_MISSING_OWNER)
            continue
        if not is_attributable(d, wallet, tx, policy):
            continue
        delta = d.delta
        amount = abs(delta)
        if d.decimals is not None:
            amount = round(amount, d.decimals)
        if amount <= 0:
            continue
        record = TransferRecord(
            signature=tx.signature,
            timestamp=timestamp,
            direction=TransferDirection.RECEIVED if delta > 0 else TransferDirection.SENT,
            amount=amount,
            wallet=wallet,
            mint=mint,
            account_index=d.account_index,
            counterparty=_counterparty(d, deltas),
            owner=d.owner,
        )
        obs.transfer_found(record)
        records.append(record)
    return records
