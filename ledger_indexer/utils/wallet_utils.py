"""Wallet and mint address validation."""

from __future__ import annotations

from solders.pubkey import Pubkey

from ledger_indexer.core.exceptions import InvalidAddressError


def parse_address(value: str, field: str = "wallet") -> Pubkey:
    """
    Parse a base58 address into a Pubkey.

    Raises InvalidAddressError naming the field ("wallet", "mint") on any
    decoding failure, including empty or non-string input.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidAddressError(field, str(value))
    try:
        return Pubkey.from_string(value.strip())
    except Exception as e:
        raise InvalidAddressError(field, value) from e
