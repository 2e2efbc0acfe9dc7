"""
Indexing driver: signature listing → window filter → fetch → reconcile.

index_transfers() is the entry point: validate wallet and mint, page through
the wallet's signatures (newest first, capped at settings.max_signatures),
drop signatures outside [start_time, end_time] without fetching them, fetch
the remaining transactions concurrently (bounded by
settings.max_concurrency) and reconcile each one. Records come back in
signature-list order (newest first), identical to a sequential run.

Any invalid address, RPC failure, missing transaction or cancellation aborts
the whole call; there is no partial result.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any, AsyncIterator, Protocol

from ledger_indexer.config.settings import IndexerSettings, get_settings
from ledger_indexer.core.exceptions import IndexingCancelled, TransactionNotFoundError
from ledger_indexer.indexer.models import AttributionPolicy, TransferRecord
from ledger_indexer.indexer.observer import (
    SKIP_MISSING_BLOCK_TIME,
    SKIP_OUTSIDE_WINDOW,
    IndexObserver,
    LoggingObserver,
)
from ledger_indexer.indexer.reconciler import reconcile
from ledger_indexer.indexer.window import (
    before_window,
    block_time_to_datetime,
    ensure_utc,
    in_range,
)
from ledger_indexer.solana_listener.client import SolanaRpcClient
from ledger_indexer.solana_listener.models import DecodedTransaction, SignatureInfo
from ledger_indexer.utils.wallet_utils import parse_address


class LedgerRpc(Protocol):
    """The two ledger capabilities the driver consumes (SolanaRpcClient satisfies it)."""

    async def get_signatures_for_address(
        self,
        address: str,
        *,
        limit: int = ...,
        before: str | None = ...,
        until: str | None = ...,
    ) -> list[SignatureInfo]: ...

    async def get_transaction(self, signature: str) -> DecodedTransaction | None: ...


# (position in signature list, signature info, block time)
Candidate = tuple[int, SignatureInfo, datetime]


def _check_cancel(cancel_event: asyncio.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise IndexingCancelled("indexing cancelled by caller")


async def list_signatures(
    rpc: LedgerRpc,
    wallet: str,
    *,
    max_signatures: int,
    page_size: int,
    start_time: datetime | None = None,
    observer: IndexObserver | None = None,
    cancel_event: asyncio.Event | None = None,
) -> list[SignatureInfo]:
    """
    Page through getSignaturesForAddress, newest first, up to max_signatures.

    Each page's `before` cursor is the oldest signature of the previous page.
    Stops on a short page (end of history), at the cap, or, when start_time
    is given, once a page's oldest block time is before start_time.
    """
    obs = observer or IndexObserver()
    out: list[SignatureInfo] = []
    before: str | None = None
    truncated = False
    while True:
        if len(out) >= max_signatures:
            truncated = True
            break
        _check_cancel(cancel_event)
        limit = min(page_size, max_signatures - len(out))
        page = await rpc.get_signatures_for_address(wallet, limit=limit, before=before)
        out.extend(page)
        if len(page) < limit:
            break
        oldest = page[-1]
        if (
            start_time is not None
            and oldest.block_time is not None
            and before_window(block_time_to_datetime(oldest.block_time), start_time)
        ):
            break
        before = oldest.signature
    obs.signatures_listed(wallet, len(out), truncated)
    return out


def select_candidates(
    signatures: list[SignatureInfo],
    start_time: datetime,
    end_time: datetime,
    *,
    stop_at_window_start: bool = False,
    observer: IndexObserver | None = None,
) -> list[Candidate]:
    """
    Keep signatures whose block time is inside the window, with list position.

    Signatures without a block time are skipped with a diagnostic. With
    stop_at_window_start the scan ends at the first block time before
    start_time (the list is newest first).
    """
    obs = observer or IndexObserver()
    out: list[Candidate] = []
    for position, info in enumerate(signatures):
        if info.block_time is None:
            obs.signature_skipped(info.signature, SKIP_MISSING_BLOCK_TIME)
            continue
        tx_time = block_time_to_datetime(info.block_time)
        if in_range(tx_time, start_time, end_time):
            out.append((position, info, tx_time))
            continue
        obs.signature_skipped(info.signature, SKIP_OUTSIDE_WINDOW)
        if stop_at_window_start and before_window(tx_time, start_time):
            break
    return out


async def fetch_and_reconcile(
    rpc: LedgerRpc,
    info: SignatureInfo,
    tx_time: datetime,
    wallet: str,
    mint: str,
    *,
    policy: AttributionPolicy,
    observer: IndexObserver,
) -> list[TransferRecord]:
    """Fetch one transaction and reconcile it; a null transaction is fatal."""
    tx = await rpc.get_transaction(info.signature)
    if tx is None:
        raise TransactionNotFoundError(info.signature)
    observer.transaction_fetched(info.signature)
    return reconcile(
        tx,
        wallet,
        mint,
        timestamp=tx_time,
        policy=policy,
        observer=observer,
    )


async def _fetch_all(
    rpc: LedgerRpc,
    candidates: list[Candidate],
    wallet: str,
    mint: str,
    *,
    policy: AttributionPolicy,
    observer: IndexObserver,
    max_concurrency: int,
    cancel_event: asyncio.Event | None,
) -> dict[int, list[TransferRecord]]:
    """
    Fetch and reconcile candidates concurrently; results keyed by list position.

    The first failure (or the cancel event) cancels every outstanding fetch
    and is raised.
    """
    results: dict[int, list[TransferRecord]] = {}
    if not candidates:
        return results
    semaphore = asyncio.Semaphore(max_concurrency)

    async def _worker(position: int, info: SignatureInfo, tx_time: datetime) -> None:
        async with semaphore:
            _check_cancel(cancel_event)
            results[position] = await fetch_and_reconcile(
                rpc, info, tx_time, wallet, mint, policy=policy, observer=observer
            )

    tasks = [asyncio.create_task(_worker(*c)) for c in candidates]
    cancel_waiter = (
        asyncio.create_task(cancel_event.wait()) if cancel_event is not None else None
    )
    pending: set[asyncio.Task[Any]] = set(tasks)
    try:
        while pending:
            watch = (pending | {cancel_waiter}) if cancel_waiter is not None else pending
            done, _ = await asyncio.wait(watch, return_when=asyncio.FIRST_COMPLETED)
            if cancel_waiter is not None and cancel_waiter in done:
                raise IndexingCancelled("indexing cancelled by caller")
            for task in done:
                pending.discard(task)
                exc = task.exception()
                if exc is not None:
                    raise exc
    finally:
        leftovers = [t for t in tasks if not t.done()]
        if cancel_waiter is not None:
            leftovers.append(cancel_waiter)
        for task in leftovers:
            task.cancel()
        await asyncio.gather(*leftovers, return_exceptions=True)
    return results


async def _index(
    rpc: LedgerRpc,
    wallet: str,
    mint: str,
    start: datetime,
    end: datetime,
    settings: IndexerSettings,
    observer: IndexObserver,
    cancel_event: asyncio.Event | None,
) -> list[TransferRecord]:
    signatures = await list_signatures(
        rpc,
        wallet,
        max_signatures=settings.max_signatures,
        page_size=settings.page_size,
        start_time=start if settings.stop_at_window_start else None,
        observer=observer,
        cancel_event=cancel_event,
    )
    candidates = select_candidates(
        signatures,
        start,
        end,
        stop_at_window_start=settings.stop_at_window_start,
        observer=observer,
    )
    _check_cancel(cancel_event)
    by_position = await _fetch_all(
        rpc,
        candidates,
        wallet,
        mint,
        policy=settings.attribution_policy,
        observer=observer,
        max_concurrency=settings.max_concurrency,
        cancel_event=cancel_event,
    )
    records = [r for position in sorted(by_position) for r in by_position[position]]
    observer.indexing_finished(wallet, len(records))
    return records


async def index_transfers(
    wallet_address: str,
    mint_address: str,
    start_time: datetime,
    end_time: datetime,
    *,
    rpc: LedgerRpc | None = None,
    settings: IndexerSettings | None = None,
    observer: IndexObserver | None = None,
    cancel_event: asyncio.Event | None = None,
) -> list[TransferRecord]:
    """
    Index transfers of mint for wallet inside [start_time, end_time].

    Args:
        wallet_address: Base58 wallet address.
        mint_address: Base58 token mint address.
        start_time: Inclusive lower bound; naive datetimes are UTC.
        end_time: Inclusive upper bound; start_time <= end_time is the caller's job.
        rpc: Ledger collaborator; a SolanaRpcClient built from settings when omitted.
        settings: Run configuration; get_settings() when omitted.
        observer: Diagnostics sink; LoggingObserver when omitted.
        cancel_event: Set it to abort; outstanding fetches are cancelled.

    Returns:
        Records newest first (signature-list order), several per signature
        when more than one wallet token account changed.

    Raises:
        InvalidAddressError: before any I/O, for a malformed wallet or mint.
        RpcError, RpcTransportError, TransactionNotFoundError, IndexingCancelled.
    """
    wallet = str(parse_address(wallet_address, "wallet"))
    mint = str(parse_address(mint_address, "mint"))
    start = ensure_utc(start_time)
    end = ensure_utc(end_time)
    settings = settings or get_settings()
    obs = observer or LoggingObserver()
    if rpc is not None:
        return await _index(rpc, wallet, mint, start, end, settings, obs, cancel_event)
    async with SolanaRpcClient.from_settings(settings) as client:
        return await _index(client, wallet, mint, start, end, settings, obs, cancel_event)


def index_transfers_sync(
    wallet_address: str,
    mint_address: str,
    start_time: datetime,
    end_time: datetime,
    **kwargs: Any,
) -> list[TransferRecord]:
    """Blocking wrapper around index_transfers (runs its own event loop)."""
    return asyncio.run(
        index_transfers(wallet_address, mint_address, start_time, end_time, **kwargs)
    )


async def iter_transfers(
    wallet_address: str,
    mint_address: str,
    start_time: datetime,
    end_time: datetime,
    *,
    rpc: LedgerRpc | None = None,
    settings: IndexerSettings | None = None,
    observer: IndexObserver | None = None,
    cancel_event: asyncio.Event | None = None,
) -> AsyncIterator[TransferRecord]:
    """
    Streaming variant of index_transfers: fetch one transaction at a time and
    yield its records as soon as they are reconciled. Same order, filtering and
    attribution; an error ends the stream after the records already yielded.
    """
    wallet = str(parse_address(wallet_address, "wallet"))
    mint = str(parse_address(mint_address, "mint"))
    start = ensure_utc(start_time)
    end = ensure_utc(end_time)
    settings = settings or get_settings()
    obs = observer or LoggingObserver()
    client: SolanaRpcClient | None = None
    if rpc is None:
        client = SolanaRpcClient.from_settings(settings)
        rpc = client
    try:
        signatures = await list_signatures(
            rpc,
            wallet,
            max_signatures=settings.max_signatures,
            page_size=settings.page_size,
            start_time=start if settings.stop_at_window_start else None,
            observer=obs,
            cancel_event=cancel_event,
        )
        count = 0
        for _, info, tx_time in select_candidates(
            signatures,
            start,
            end,
            stop_at_window_start=settings.stop_at_window_start,
            observer=obs,
        ):
            _check_cancel(cancel_event)
            for record in await fetch_and_reconcile(
                rpc,
                info,
                tx_time,
                wallet,
                mint,
                policy=settings.attribution_policy,
                observer=obs,
            ):
                count += 1
                yield record
        obs.indexing_finished(wallet, count)
    finally:
        if client is not None:
            await client.aclose()
