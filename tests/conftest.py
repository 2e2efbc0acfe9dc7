"""
Pytest fixtures for Ledger Indexer tests. The ledger RPC is replaced by an
in-memory FakeLedger so no test touches the network.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest

from ledger_indexer.config.settings import IndexerSettings
from ledger_indexer.indexer.observer import IndexObserver
from ledger_indexer.solana_listener.models import DecodedTransaction, SignatureInfo


class FakeLedger:
    """
    In-memory stand-in for SolanaRpcClient.

    signatures: getSignaturesForAddress items, newest first.
    transactions: signature -> getTransaction result dict, None (not found)
        or an exception instance to raise.
    delays: signature -> seconds to sleep before answering getTransaction.
    hang: signatures whose getTransaction never returns.
    on_fetch: called with the signature at the start of each getTransaction.
    """

    def __init__(
        self,
        signatures: list[dict[str, Any]],
        transactions: dict[str, Any] | None = None,
        *,
        delays: dict[str, float] | None = None,
        hang: set[str] | None = None,
        on_fetch: Callable[[str], None] | None = None,
    ) -> None:
        self.signatures = [SignatureInfo.from_rpc_item(s) for s in signatures]
        self.transactions = transactions or {}
        self.delays = delays or {}
        self.hang = hang or set()
        self.on_fetch = on_fetch
        self.signature_calls: list[tuple[str, int, str | None]] = []
        self.fetched: list[str] = []

    async def get_signatures_for_address(
        self,
        address: str,
        *,
        limit: int = 1000,
        before: str | None = None,
        until: str | None = None,
    ) -> list[SignatureInfo]:
        self.signature_calls.append((address, limit, before))
        start = 0
        if before is not None:
            start = [s.signature for s in self.signatures].index(before) + 1
        return self.signatures[start:start + limit]

    async def get_transaction(self, signature: str) -> DecodedTransaction | None:
        self.fetched.append(signature)
        if self.on_fetch is not None:
            self.on_fetch(signature)
        if signature in self.hang:
            await asyncio.sleep(3600)
        await asyncio.sleep(self.delays.get(signature, 0))
        raw = self.transactions.get(signature)
        if isinstance(raw, Exception):
            raise raw
        if raw is None:
            return None
        return DecodedTransaction.from_rpc_result(raw, signature=signature)


class RecordingObserver(IndexObserver):
    """Collects observer callbacks as tuples for assertions."""

    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []

    def signatures_listed(self, wallet: str, count: int, truncated: bool) -> None:
        self.events.append(("signatures_listed", count, truncated))

    def signature_skipped(self, signature: str, reason: str) -> None:
        self.events.append(("signature_skipped", signature, reason))

    def transaction_fetched(self, signature: str) -> None:
        self.events.append(("transaction_fetched", signature))

    def transaction_missing_meta(self, signature: str) -> None:
        self.events.append(("transaction_missing_meta", signature))

    def balance_entry_skipped(self, signature: str, account_index: int, reason: str) -> None:
        self.events.append(("balance_entry_skipped", signature, account_index, reason))

    def transfer_found(self, record: Any) -> None:
        self.events.append(("transfer_found", record.signature, record.direction.value))

    def indexing_finished(self, wallet: str, count: int) -> None:
        self.events.append(("indexing_finished", count))

    def of(self, kind: str) -> list[tuple[Any, ...]]:
        return [e for e in self.events if e[0] == kind]


@pytest.fixture
def fake_ledger():
    """Factory: fake_ledger(signatures, transactions, **options) -> FakeLedger."""
    return FakeLedger


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def settings():
    """Settings with no backoff delay; tests override fields via dataclasses.replace."""
    return IndexerSettings(
        rpc_url="http://rpc.test",
        max_concurrency=4,
        min_retry_delay_sec=0.0,
        max_retry_delay_sec=0.0,
    )
