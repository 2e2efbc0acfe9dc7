"""
Command-line entry point.

Usage:
  python -m ledger_indexer WALLET --start 2024-01-01T00:00:00Z --end 2024-02-01T00:00:00Z
  python -m ledger_indexer WALLET --mint MINT --start 1704067200 --end 1706745600 --output out.jsonl

Prints one JSON object per transfer record (newest first). Exit codes:
0 success, 1 RPC failure, 2 invalid input or configuration.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, TextIO

from ledger_indexer.config.env import USDC_MINT, mask_rpc_url
from ledger_indexer.config.settings import (
    COMMITMENT_LEVELS,
    get_settings,
    parse_attribution_policy,
)
from ledger_indexer.core.exceptions import (
    ConfigError,
    InvalidAddressError,
    LedgerIndexerError,
)
from ledger_indexer.indexer.driver import index_transfers_sync
from ledger_indexer.indexer.models import AttributionPolicy, TransferRecord
from ledger_indexer.ledger_logging import bind_wallet


def parse_time(value: str) -> datetime:
    """Unix seconds or ISO-8601 (a trailing Z is accepted) to an aware UTC datetime."""
    text = value.strip()
    if text.lstrip("-").isdigit():
        try:
            return datetime.fromtimestamp(int(text), tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise argparse.ArgumentTypeError(f"unix timestamp out of range: {value!r}") from e
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not a unix timestamp or ISO-8601 time: {value!r}") from e
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-indexer",
        description="Index SPL token transfers of a Solana wallet inside a time window.",
    )
    parser.add_argument("wallet", help="Base58 wallet address")
    parser.add_argument("--mint", default=USDC_MINT, help="Base58 token mint (default: USDC)")
    parser.add_argument("--start", required=True, type=parse_time, help="Window start (inclusive)")
    parser.add_argument("--end", required=True, type=parse_time, help="Window end (inclusive)")
    parser.add_argument("--rpc-url", help="Override SOLANA_RPC_URL")
    parser.add_argument("--max-signatures", type=int, help="Cap on signatures listed (default: 5000)")
    parser.add_argument("--concurrency", type=int, help="Concurrent getTransaction calls (default: 8)")
    parser.add_argument(
        "--policy",
        choices=[p.value for p in AttributionPolicy],
        help="Attribution policy (default: owner_or_signer)",
    )
    parser.add_argument("--commitment", choices=COMMITMENT_LEVELS, help="Commitment level (default: confirmed)")
    parser.add_argument(
        "--no-early-exit",
        action="store_true",
        help="Scan the whole signature list instead of stopping at the window start",
    )
    parser.add_argument("--output", help="Write JSON lines here instead of stdout")
    return parser


def _overrides(args: argparse.Namespace) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if args.rpc_url:
        out["rpc_url"] = args.rpc_url
    if args.max_signatures is not None:
        out["max_signatures"] = args.max_signatures
    if args.concurrency is not None:
        out["max_concurrency"] = args.concurrency
    if args.policy:
        out["attribution_policy"] = parse_attribution_policy(args.policy)
    if args.commitment:
        out["commitment"] = args.commitment
    if args.no_early_exit:
        out["stop_at_window_start"] = False
    return out


def write_records(records: list[TransferRecord], stream: TextIO) -> None:
    for record in records:
        stream.write(json.dumps(record.to_dict()) + "\n")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = replace(get_settings(), **_overrides(args))
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    log = bind_wallet(args.wallet)
    log.info(
        "cli_started",
        mint=args.mint,
        start=args.start.isoformat(),
        end=args.end.isoformat(),
        rpc_url=mask_rpc_url(settings.rpc_url),
        policy=settings.attribution_policy.value,
    )
    try:
        records = index_transfers_sync(
            args.wallet,
            args.mint,
            args.start,
            args.end,
            settings=settings,
        )
    except InvalidAddressError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except LedgerIndexerError as e:
        log.error("cli_indexing_failed", error=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            write_records(records, f)
    else:
        write_records(records, sys.stdout)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
