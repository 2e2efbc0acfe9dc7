"""
Ledger Indexer: SPL token transfer ledger for a single Solana wallet.

Lists a wallet's transaction signatures, keeps those inside a time window,
fetches the full transactions and reconciles their pre/post token balances
into directional transfer records for one mint.
"""

__version__ = "0.1.0"
