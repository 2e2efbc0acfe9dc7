"""
Configuration management for Ledger Indexer.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for RPC and indexing configuration.
"""

from ledger_indexer.config.settings import IndexerSettings, get_settings  # noqa: F401

__all__ = ["IndexerSettings", "get_settings"]
