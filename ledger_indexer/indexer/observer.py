"""
Indexing telemetry port.

The reconciler and driver report diagnostics (skipped signatures, missing
metadata, found transfers) to an IndexObserver instead of logging directly.
IndexObserver itself discards everything; LoggingObserver turns each callback
into a structlog event.
"""

from __future__ import annotations

from ledger_indexer.indexer.models import TransferRecord
from ledger_indexer.ledger_logging import get_logger

SKIP_MISSING_BLOCK_TIME = "missing_block_time"
SKIP_OUTSIDE_WINDOW = "outside_window"
ENTRY_MISSING_OWNER = "missing_owner"


class IndexObserver:
    """No-op observer; subclass and override what you need."""

    def signatures_listed(self, wallet: str, count: int, truncated: bool) -> None:
        pass

    def signature_skipped(self, signature: str, reason: str) -> None:
        pass

    def transaction_fetched(self, signature: str) -> None:
        pass

    def transaction_missing_meta(self, signature: str) -> None:
        pass

    def balance_entry_skipped(self, signature: str, account_index: int, reason: str) -> None:
        pass

    def transfer_found(self, record: TransferRecord) -> None:
        pass

    def indexing_finished(self, wallet: str, count: int) -> None:
        pass


class LoggingObserver(IndexObserver):
    """Structured-log every diagnostic."""

    def __init__(self, name: str = "ledger_indexer.indexer") -> None:
        self._logger = get_logger(name)

    def signatures_listed(self, wallet: str, count: int, truncated: bool) -> None:
        self._logger.info("signatures_listed", wallet_id=wallet, signature_count=count, truncated=truncated)
        if truncated:
            self._logger.warning(
                "signatures_truncated",
                wallet_id=wallet,
                signature_count=count,
                message="history longer than max_signatures; older transactions not indexed",
            )

    def signature_skipped(self, signature: str, reason: str) -> None:
        if reason == SKIP_MISSING_BLOCK_TIME:
            self._logger.warning("signature_skipped", signature=signature, reason=reason)
        else:
            self._logger.debug("signature_skipped", signature=signature, reason=reason)

    def transaction_fetched(self, signature: str) -> None:
        self._logger.debug("transaction_fetched", signature=signature)

    def transaction_missing_meta(self, signature: str) -> None:
        self._logger.warning("transaction_missing_meta", signature=signature)

    def balance_entry_skipped(self, signature: str, account_index: int, reason: str) -> None:
        self._logger.info(
            "balance_entry_skipped",
            signature=signature,
            account_index=account_index,
            reason=reason,
        )

    def transfer_found(self, record: TransferRecord) -> None:
        self._logger.info(
            "transfer_found",
            signature=record.signature,
            direction=record.direction.value,
            amount=record.amount,
            account_index=record.account_index,
            counterparty=record.counterparty,
        )

    def indexing_finished(self, wallet: str, count: int) -> None:
        self._logger.info("indexing_finished", wallet_id=wallet, transfer_count=count)
