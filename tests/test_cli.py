"""
Tests for the command-line entry point. Indexing itself is patched out.
"""

from __future__ import annotations

import argparse
import json
from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from ledger_indexer import cli
from ledger_indexer.config import env
from ledger_indexer.core.exceptions import InvalidAddressError, RpcTransportError
from ledger_indexer.indexer.models import AttributionPolicy, TransferDirection, TransferRecord

WALLET = "9QCfNuQuxct1Xk9ytFYgxc5fThmTzL4pHQnSjjrVUrka"
OTHER = "7F1WzVNQ1Qpurqxxdyv3UrFQR3uoNepULVW9A4bAJ5nZ"
USDC = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


@pytest.fixture(autouse=True)
def rpc_env(monkeypatch, tmp_path):
    monkeypatch.setenv("SOLANA_RPC_URL", "http://rpc.test")
    monkeypatch.delenv("INDEXER_ATTRIBUTION_POLICY", raising=False)
    monkeypatch.delenv("INDEXER_PAGE_SIZE", raising=False)
    monkeypatch.setattr(env, "_ENV_PATH", tmp_path / "missing.env")


def _record() -> TransferRecord:
    return TransferRecord(
        signature="SIG1",
        timestamp=datetime(2024, 1, 2, tzinfo=timezone.utc),
        direction=TransferDirection.RECEIVED,
        amount=50.0,
        wallet=WALLET,
        mint=USDC,
        account_index=1,
        counterparty=OTHER,
    )


def test_parse_time_variants():
    expected = datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert cli.parse_time("1704067200") == expected
    assert cli.parse_time("2024-01-01T00:00:00Z") == expected
    assert cli.parse_time("2024-01-01T00:00:00") == expected
    assert cli.parse_time("2024-01-01T02:00:00+02:00") == expected
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_time("yesterday")


def test_main_writes_json_lines(tmp_path):
    out = tmp_path / "out.jsonl"
    with patch.object(cli, "index_transfers_sync", return_value=[_record()]) as run:
        code = cli.main([
            WALLET,
            "--start", "2024-01-01T00:00:00Z",
            "--end", "2024-02-01T00:00:00Z",
            "--policy", "strict_owner",
            "--no-early-exit",
            "--output", str(out),
        ])
    assert code == 0
    lines = out.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    row = json.loads(lines[0])
    assert row["signature"] == "SIG1"
    assert row["direction"] == "received"
    assert row["from"] == OTHER
    assert row["to"] == WALLET
    args, kwargs = run.call_args
    assert args[0] == WALLET
    assert args[1] == USDC
    assert kwargs["settings"].attribution_policy is AttributionPolicy.STRICT_OWNER
    assert kwargs["settings"].stop_at_window_start is False
    assert kwargs["settings"].rpc_url == "http://rpc.test"


def test_main_stdout(capsys):
    with patch.object(cli, "index_transfers_sync", return_value=[_record()]):
        code = cli.main([WALLET, "--start", "0", "--end", "1999999999"])
    assert code == 0
    assert json.loads(capsys.readouterr().out.strip())["amount"] == 50.0


def test_main_invalid_address_exit_2():
    with patch.object(cli, "index_transfers_sync", side_effect=InvalidAddressError("wallet", "bad")):
        assert cli.main(["bad", "--start", "0", "--end", "10"]) == 2


def test_main_invalid_config_exit_2(monkeypatch):
    monkeypatch.setenv("INDEXER_PAGE_SIZE", "0")
    with patch.object(cli, "index_transfers_sync") as run:
        assert cli.main([WALLET, "--start", "0", "--end", "10"]) == 2
    run.assert_not_called()


def test_main_rpc_failure_exit_1():
    err = RpcTransportError("getTransaction", 4, "HTTP 503")
    with patch.object(cli, "index_transfers_sync", side_effect=err):
        assert cli.main([WALLET, "--start", "0", "--end", "10"]) == 1


def test_parse_time_out_of_range_timestamp():
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_time("99999999999999999999")


def test_main_out_of_range_timestamp_exit_2():
    with patch.object(cli, "index_transfers_sync") as run:
        with pytest.raises(SystemExit) as exc_info:
            cli.main([WALLET, "--start", "99999999999999999999", "--end", "1"])
    assert exc_info.value.code == 2
    run.assert_not_called()
