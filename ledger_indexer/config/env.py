"""
Environment variable loading for Ledger Indexer.

- SOLANA_NETWORK: mainnet | devnet (default: mainnet; mainnet-beta accepted)
- SOLANA_RPC_URL: RPC endpoint (read from .env)
- HELIUS_API_KEY: Helius API key (used for the RPC URL when SOLANA_RPC_URL is unset)
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Project root: config is ledger_indexer/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_PACKAGE_DIR = _CONFIG_DIR.parent
_ROOT = _PACKAGE_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEVNET_RPC_URL = "https://api.devnet.solana.com"
MAINNET_RPC_URL = "https://api.mainnet-beta.solana.com"
HELIUS_MAINNET_URL_TEMPLATE = "https://mainnet.helius-rpc.com/?api-key={key}"
HELIUS_DEVNET_URL_TEMPLATE = "https://devnet.helius-rpc.com/?api-key={key}"

# Circle USDC on mainnet; the mint indexed when none is given
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


def load_indexer_env() -> None:
    """Load .env from project root. Safe to call multiple times; never overrides set vars."""
    load_dotenv(_ENV_PATH, override=False)


def get_solana_network() -> str:
    """
    Return SOLANA_NETWORK from env: mainnet | devnet.
    Default: mainnet.
    """
    load_indexer_env()
    raw = (os.getenv("SOLANA_NETWORK") or "mainnet").strip().lower()
    if raw == "devnet":
        return "devnet"
    return "mainnet"


def get_solana_rpc_url() -> str:
    """
    Resolve Solana RPC URL from env.
    Order: SOLANA_RPC_URL > HELIUS_API_KEY (network-specific) > public default.
    """
    load_indexer_env()
    url = (os.getenv("SOLANA_RPC_URL") or "").strip()
    if url:
        return url
    network = get_solana_network()
    key = (os.getenv("HELIUS_API_KEY") or "").strip()
    if key:
        if network == "devnet":
            return HELIUS_DEVNET_URL_TEMPLATE.format(key=key)
        return HELIUS_MAINNET_URL_TEMPLATE.format(key=key)
    return DEVNET_RPC_URL if network == "devnet" else MAINNET_RPC_URL


def mask_rpc_url(url: str) -> str:
    """Hide an api-key query value so the URL can be logged."""
    if "api-key=" in url:
        return url.split("api-key=")[0] + "api-key=***"
    return url
