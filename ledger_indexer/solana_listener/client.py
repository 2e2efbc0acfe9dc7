"""
Solana JSON-RPC client: the two ledger capabilities the indexer consumes.

Responsibilities:
- getSignaturesForAddress: signatures for an address, newest first, bounded
  by limit and optional before/until cursors.
- getTransaction: one decoded transaction (jsonParsed) with pre/post token
  balances and signer-flagged account keys; None when the node has no record.
- Retry transient failures (transport errors, HTTP 429/5xx, node-behind RPC
  codes) with exponential backoff; raise RpcTransportError once retries are
  exhausted and RpcError for anything retrying will not fix.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import httpx

from ledger_indexer.core.exceptions import RpcError, RpcTransportError
from ledger_indexer.ledger_logging import get_logger
from ledger_indexer.solana_listener.models import DecodedTransaction, SignatureInfo

if TYPE_CHECKING:
    from ledger_indexer.config.settings import IndexerSettings

logger = get_logger(__name__)

# JSON-RPC request id counter
_request_id = 0

# Node unhealthy / block not available yet / block status not available yet
RETRYABLE_RPC_CODES = frozenset({-32005, -32004, -32014, 429})
RETRYABLE_HTTP_STATUS = frozenset({429, 500, 502, 503, 504})


def _next_id() -> int:
    global _request_id
    _request_id += 1
    return _request_id


def _build_rpc_body(method: str, params: list[Any]) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": _next_id(),
        "method": method,
        "params": params,
    }


class _Retryable(Exception):
    """Internal marker: this attempt failed in a way worth retrying."""


class SolanaRpcClient:
    """
    Async Solana RPC client over httpx.

    Use as an async context manager, or call aclose() when done. An injected
    http_client is not closed by this class.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        commitment: str = "confirmed",
        max_retries: int = 3,
        min_retry_delay_sec: float = 0.5,
        max_retry_delay_sec: float = 8.0,
        request_timeout_sec: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Args:
            rpc_url: Solana RPC HTTP endpoint.
            commitment: processed | confirmed | finalized. getTransaction does
                not accept processed and uses confirmed instead.
            max_retries: Retries after the first attempt for transient failures.
            min_retry_delay_sec: Initial backoff delay.
            max_retry_delay_sec: Cap for backoff delay.
            request_timeout_sec: HTTP timeout for each RPC request.
            http_client: Optional preconfigured httpx.AsyncClient (tests, pooling).
        """
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        self._rpc_url = rpc_url.rstrip("/")
        self._commitment = commitment
        self._max_retries = max(0, max_retries)
        self._min_retry_delay = min_retry_delay_sec
        self._max_retry_delay = max_retry_delay_sec
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(request_timeout_sec)
        )

    @classmethod
    def from_settings(
        cls,
        settings: IndexerSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> "SolanaRpcClient":
        return cls(
            settings.rpc_url,
            commitment=settings.commitment,
            max_retries=settings.max_retries,
            min_retry_delay_sec=settings.min_retry_delay_sec,
            max_retry_delay_sec=settings.max_retry_delay_sec,
            request_timeout_sec=settings.request_timeout_sec,
            http_client=http_client,
        )

    async def __aenter__(self) -> "SolanaRpcClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def get_signatures_for_address(
        self,
        address: str,
        *,
        limit: int = 1000,
        before: str | None = None,
        until: str | None = None,
    ) -> list[SignatureInfo]:
        """Signatures for address, newest first, at most limit (1–1000) entries."""
        opts: dict[str, Any] = {"limit": limit, "commitment": self._commitment}
        if before is not None:
            opts["before"] = before
        if until is not None:
            opts["until"] = until
        result = await self._call("getSignaturesForAddress", [address, opts])
        if not isinstance(result, list):
            raise RpcError("getSignaturesForAddress", None, "result is not a list")
        infos: list[SignatureInfo] = []
        for item in result:
            if not isinstance(item, dict) or "signature" not in item:
                logger.debug("rpc_signature_item_invalid", item=str(item)[:120])
                continue
            infos.append(SignatureInfo.from_rpc_item(item))
        return infos

    async def get_transaction(self, signature: str) -> DecodedTransaction | None:
        """Decoded transaction for signature, or None if the node has no record of it."""
        commitment = "confirmed" if self._commitment == "processed" else self._commitment
        opts = {
            "encoding": "jsonParsed",
            "commitment": commitment,
            "maxSupportedTransactionVersion": 0,
        }
        result = await self._call("getTransaction", [signature, opts])
        if result is None:
            return None
        if not isinstance(result, dict):
            raise RpcError("getTransaction", None, "result is not an object")
        return DecodedTransaction.from_rpc_result(result, signature=signature)

    async def _call(self, method: str, params: list[Any]) -> Any:
        """Perform one JSON-RPC call with retry; return the result member (may be None)."""
        delay = self._min_retry_delay
        attempts = self._max_retries + 1
        last_reason = ""
        for attempt in range(attempts):
            try:
                return await self._post(method, params)
            except _Retryable as e:
                last_reason = str(e)
                if attempt + 1 >= attempts:
                    break
                logger.warning(
                    "rpc_retry",
                    method=method,
                    attempt=attempt + 1,
                    max_retries=self._max_retries,
                    delay_sec=delay,
                    error=last_reason,
                )
                await asyncio.sleep(delay)
                delay = min(delay * 2, self._max_retry_delay)
        logger.error(
            "rpc_give_up",
            method=method,
            attempts=attempts,
            error=last_reason,
        )
        raise RpcTransportError(method, attempts, last_reason)

    async def _post(self, method: str, params: list[Any]) -> Any:
        body = _build_rpc_body(method, params)
        try:
            resp = await self._client.post(self._rpc_url, json=body)
        except httpx.TransportError as e:
            raise _Retryable(f"{type(e).__name__}: {e}") from e
        if resp.status_code in RETRYABLE_HTTP_STATUS:
            raise _Retryable(f"HTTP {resp.status_code}")
        if resp.status_code >= 400:
            raise RpcError(method, resp.status_code, f"HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as e:
            raise RpcError(method, None, f"invalid JSON response: {e}") from e
        if not isinstance(data, dict):
            raise RpcError(method, None, "response is not a JSON object")
        if "error" in data and data["error"] is not None:
            err = data["error"]
            code = err.get("code") if isinstance(err, dict) else None
            message = err.get("message", str(err)) if isinstance(err, dict) else str(err)
            if code in RETRYABLE_RPC_CODES:
                raise _Retryable(f"RPC {code}: {message}")
            raise RpcError(method, code, message)
        if "result" not in data:
            raise RpcError(method, None, "Solana RPC returned no result")
        return data["result"]
