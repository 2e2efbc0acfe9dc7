"""
Data models for Solana RPC payloads consumed by the indexer.

Responsibilities:
- SignatureInfo: one getSignaturesForAddress result item.
- DecodedTransaction: the parts of a getTransaction result the reconciler
  needs (account keys with signer flags, pre/post token balances, block time).
- Accept both "json" and "jsonParsed" encodings and versioned transactions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SignatureInfo:
    """
    Normalized transaction signature info from getSignaturesForAddress.

    Mirrors Solana RPC response fields; the unit of work the indexer filters
    by block time before fetching the full transaction.
    """

    signature: str
    slot: int
    err: Any  # None if success; dict/object from RPC if failed
    block_time: int | None  # Unix timestamp; None if not available
    memo: str | None = None
    confirmation_status: str | None = None  # processed | confirmed | finalized

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "SignatureInfo":
        """Build from a single getSignaturesForAddress result item."""
        block_time = item.get("blockTime")
        return cls(
            signature=item["signature"],
            slot=int(item.get("slot") or 0),
            err=item.get("err"),
            block_time=int(block_time) if block_time is not None else None,
            memo=item.get("memo"),
            confirmation_status=item.get("confirmationStatus"),
        )


@dataclass(frozen=True)
class AccountKey:
    """One entry of the transaction's account list."""

    pubkey: str
    signer: bool = False
    writable: bool = False


@dataclass(frozen=True)
class TokenBalance:
    """
    One pre- or post-execution token balance snapshot.

    account_index is the position of the token account in the transaction's
    account list and is the join key between pre and post snapshots.
    """

    account_index: int
    mint: str
    owner: str | None
    ui_amount: float
    decimals: int | None = None

    @classmethod
    def from_rpc_item(cls, item: dict[str, Any]) -> "TokenBalance":
        """Build from a meta.preTokenBalances / meta.postTokenBalances item."""
        ui = item.get("uiTokenAmount") or {}
        decimals = ui.get("decimals")
        return cls(
            account_index=int(item["accountIndex"]),
            mint=str(item.get("mint") or ""),
            owner=item.get("owner") or None,
            ui_amount=_ui_amount(ui),
            decimals=int(decimals) if decimals is not None else None,
        )


def _ui_amount(ui: dict[str, Any]) -> float:
    """
    Human-scaled amount from uiTokenAmount.

    uiAmount first (null for zero balances on some nodes), then
    uiAmountString, then raw amount / 10**decimals; absent means zero.
    """
    value = ui.get("uiAmount")
    if value is not None:
        return float(value)
    text = ui.get("uiAmountString")
    if text:
        return float(text)
    raw = ui.get("amount")
    decimals = ui.get("decimals")
    if raw is not None and decimals is not None:
        return int(raw) / (10 ** int(decimals))
    return 0.0


@dataclass(frozen=True)
class DecodedTransaction:
    """
    Decoded getTransaction result.

    has_meta is False when the node returned the transaction without status
    metadata (pruned or malformed ledger entries); balances are then empty.
    """

    signature: str
    slot: int | None
    block_time: int | None
    account_keys: tuple[AccountKey, ...] = ()
    pre_token_balances: tuple[TokenBalance, ...] = ()
    post_token_balances: tuple[TokenBalance, ...] = ()
    has_meta: bool = True
    err: Any = None
    fee: int | None = None
    signer_keys: frozenset[str] = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "signer_keys",
            frozenset(k.pubkey for k in self.account_keys if k.signer),
        )

    def is_signer(self, address: str) -> bool:
        return address in self.signer_keys

    @classmethod
    def from_rpc_result(
        cls,
        raw: dict[str, Any],
        signature: str | None = None,
    ) -> "DecodedTransaction":
        """
        Build from a getTransaction result object.

        signature overrides transaction.signatures[0] (the listed signature is
        the identity the indexer reports).
        """
        tx_obj = raw.get("transaction") or {}
        if not isinstance(tx_obj, dict):
            tx_obj = {}
        message = tx_obj.get("message") or {}
        meta = raw.get("meta")
        if not isinstance(meta, dict):
            meta = None

        if signature is None:
            sigs = tx_obj.get("signatures") or []
            signature = sigs[0] if sigs else ""

        slot = raw.get("slot")
        block_time = raw.get("blockTime")
        if meta is None:
            return cls(
                signature=signature,
                slot=int(slot) if slot is not None else None,
                block_time=int(block_time) if block_time is not None else None,
                account_keys=_account_keys(message, None),
                has_meta=False,
            )
        return cls(
            signature=signature,
            slot=int(slot) if slot is not None else None,
            block_time=int(block_time) if block_time is not None else None,
            account_keys=_account_keys(message, meta),
            pre_token_balances=tuple(
                TokenBalance.from_rpc_item(b) for b in meta.get("preTokenBalances") or []
            ),
            post_token_balances=tuple(
                TokenBalance.from_rpc_item(b) for b in meta.get("postTokenBalances") or []
            ),
            has_meta=True,
            err=meta.get("err"),
            fee=meta.get("fee"),
        )


def _account_keys(
    message: dict[str, Any],
    meta: dict[str, Any] | None,
) -> tuple[AccountKey, ...]:
    """
    Resolve accountKeys with signer flags (handles json vs jsonParsed).

    jsonParsed gives {"pubkey", "signer", "writable"} objects. Plain json gives
    strings; the first header.numRequiredSignatures keys are the signers.
    For versioned json transactions, meta.loadedAddresses (writable + readonly)
    are appended; they are never signers. jsonParsed already lists them.
    """
    keys = message.get("accountKeys") or []
    out: list[AccountKey] = []
    if keys and isinstance(keys[0], dict):
        for k in keys:
            out.append(
                AccountKey(
                    pubkey=str(k.get("pubkey", "")),
                    signer=bool(k.get("signer")),
                    writable=bool(k.get("writable")),
                )
            )
    else:
        header = message.get("header") or {}
        num_signers = int(header.get("numRequiredSignatures", 1 if keys else 0))
        for i, k in enumerate(keys):
            out.append(AccountKey(pubkey=str(k), signer=i < num_signers))
        loaded = (meta or {}).get("loadedAddresses") or {}
        for role in ("writable", "readonly"):
            for addr in loaded.get(role) or []:
                out.append(AccountKey(pubkey=str(addr), writable=role == "writable"))
    return tuple(out)
