"""
Structured logging for Ledger Indexer.

JSON logs with timestamp, event_type and keyword fields.
Use get_logger() in all modules.
"""

from ledger_indexer.ledger_logging.logger import bind_wallet, get_logger

__all__ = ["bind_wallet", "get_logger"]
