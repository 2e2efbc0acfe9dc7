"""
Structured logging for the indexer: one JSON object per event on stderr.

Every event carries timestamp, level, event_type and the emitting module
(`logger`); indexing events add signature, wallet_id, account_index and so
on as keyword fields. stdout is left to the CLI's JSON-lines output.

LOG_LEVEL (default INFO) and LOG_FORMAT (json, the default, or console)
are read at import. No ledger_indexer imports here: every other module
imports this one.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()


def _add_timestamp(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """UTC ISO-8601 timestamp unless the caller passed one."""
    event_dict.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    return event_dict


def _rename_event(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """structlog's positional 'event' becomes event_type."""
    if "event" in event_dict and "event_type" not in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def configure_structlog(level: str = LOG_LEVEL, fmt: str = LOG_FORMAT) -> None:
    """Install the processor chain; fmt is "json" or anything else for console."""
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _add_timestamp,
    ]
    if fmt == "json":
        processors += [_rename_event, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Return a structured logger for the given module name.

        logger = get_logger(__name__)
        logger.info("transfer_found", signature=sig, direction="received", amount=50.0)
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_wallet(wallet_id: str) -> structlog.BoundLogger:
    """Logger for one indexing run, with wallet_id on every event."""
    return get_logger("ledger_indexer").bind(wallet_id=wallet_id)
