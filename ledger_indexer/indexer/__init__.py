"""
Token transfer indexing package.

models: TransferRecord and its enums. window: time window filter.
reconciler: token-balance deltas to records. observer: diagnostics port.
The driver (index_transfers) lives in ledger_indexer.indexer.driver, which
also depends on the config package.
"""

from ledger_indexer.indexer.models import (
    AttributionPolicy,
    TransferDirection,
    TransferRecord,
)
from ledger_indexer.indexer.observer import IndexObserver, LoggingObserver
from ledger_indexer.indexer.reconciler import reconcile
from ledger_indexer.indexer.window import in_range

__all__ = [
    "AttributionPolicy",
    "IndexObserver",
    "LoggingObserver",
    "TransferDirection",
    "TransferRecord",
    "in_range",
    "reconcile",
]
