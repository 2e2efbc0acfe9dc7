"""
Indexer settings.

IndexerSettings holds every knob of an indexing run (RPC endpoint, commitment,
signature cap, page size, fan-out width, retry policy, attribution policy).
get_settings() builds one from environment variables; callers that want
different values use dataclasses.replace() on the result.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from ledger_indexer.config.env import get_solana_rpc_url, load_indexer_env
from ledger_indexer.core.exceptions import ConfigError
from ledger_indexer.indexer.models import AttributionPolicy

COMMITMENT_LEVELS = ("processed", "confirmed", "finalized")

DEFAULT_COMMITMENT = "confirmed"
DEFAULT_MAX_SIGNATURES = 5000
# getSignaturesForAddress rejects limits above 1000
MAX_PAGE_SIZE = 1000
DEFAULT_MAX_CONCURRENCY = 8
DEFAULT_MAX_RETRIES = 3
DEFAULT_MIN_RETRY_DELAY_SEC = 0.5
DEFAULT_MAX_RETRY_DELAY_SEC = 8.0
DEFAULT_REQUEST_TIMEOUT_SEC = 30.0

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


@dataclass(frozen=True)
class IndexerSettings:
    """Configuration for one indexing run."""

    rpc_url: str
    commitment: str = DEFAULT_COMMITMENT
    max_signatures: int = DEFAULT_MAX_SIGNATURES
    page_size: int = MAX_PAGE_SIZE
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    max_retries: int = DEFAULT_MAX_RETRIES
    min_retry_delay_sec: float = DEFAULT_MIN_RETRY_DELAY_SEC
    max_retry_delay_sec: float = DEFAULT_MAX_RETRY_DELAY_SEC
    request_timeout_sec: float = DEFAULT_REQUEST_TIMEOUT_SEC
    attribution_policy: AttributionPolicy = AttributionPolicy.OWNER_OR_SIGNER
    stop_at_window_start: bool = True

    def __post_init__(self) -> None:
        if not self.rpc_url.strip():
            raise ConfigError("rpc_url must be non-empty")
        if self.commitment not in COMMITMENT_LEVELS:
            raise ConfigError(
                f"commitment must be one of {', '.join(COMMITMENT_LEVELS)}, got {self.commitment!r}"
            )
        if self.max_signatures < 1:
            raise ConfigError("max_signatures must be positive")
        if not (1 <= self.page_size <= MAX_PAGE_SIZE):
            raise ConfigError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
        if self.max_concurrency < 1:
            raise ConfigError("max_concurrency must be positive")
        if self.max_retries < 0:
            raise ConfigError("max_retries must be zero or positive")
        if self.min_retry_delay_sec < 0 or self.max_retry_delay_sec < self.min_retry_delay_sec:
            raise ConfigError("retry delays must satisfy 0 <= min_retry_delay_sec <= max_retry_delay_sec")
        if self.request_timeout_sec <= 0:
            raise ConfigError("request_timeout_sec must be positive")
        if not isinstance(self.attribution_policy, AttributionPolicy):
            raise ConfigError(f"unknown attribution policy {self.attribution_policy!r}")


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e


def _env_bool(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def parse_attribution_policy(raw: str) -> AttributionPolicy:
    """Map 'owner_or_signer' / 'strict_owner' (case and dash insensitive) to the enum."""
    value = raw.strip().lower().replace("-", "_")
    try:
        return AttributionPolicy(value)
    except ValueError as e:
        choices = ", ".join(p.value for p in AttributionPolicy)
        raise ConfigError(f"attribution policy must be one of {choices}, got {raw!r}") from e


def get_settings() -> IndexerSettings:
    """
    Return settings resolved from the environment (and .env).

    INDEXER_COMMITMENT, INDEXER_MAX_SIGNATURES, INDEXER_PAGE_SIZE,
    INDEXER_MAX_CONCURRENCY, INDEXER_MAX_RETRIES, INDEXER_REQUEST_TIMEOUT_SEC,
    INDEXER_ATTRIBUTION_POLICY and INDEXER_STOP_AT_WINDOW_START override the
    defaults; the RPC URL comes from config.env.get_solana_rpc_url().
    """
    load_indexer_env()
    policy_raw = (os.getenv("INDEXER_ATTRIBUTION_POLICY") or "").strip()
    return IndexerSettings(
        rpc_url=get_solana_rpc_url(),
        commitment=(os.getenv("INDEXER_COMMITMENT") or DEFAULT_COMMITMENT).strip().lower(),
        max_signatures=_env_int("INDEXER_MAX_SIGNATURES", DEFAULT_MAX_SIGNATURES),
        page_size=_env_int("INDEXER_PAGE_SIZE", MAX_PAGE_SIZE),
        max_concurrency=_env_int("INDEXER_MAX_CONCURRENCY", DEFAULT_MAX_CONCURRENCY),
        max_retries=_env_int("INDEXER_MAX_RETRIES", DEFAULT_MAX_RETRIES),
        request_timeout_sec=_env_float("INDEXER_REQUEST_TIMEOUT_SEC", DEFAULT_REQUEST_TIMEOUT_SEC),
        attribution_policy=(
            parse_attribution_policy(policy_raw) if policy_raw else AttributionPolicy.OWNER_OR_SIGNER
        ),
        stop_at_window_start=_env_bool("INDEXER_STOP_AT_WINDOW_START", True),
    )
