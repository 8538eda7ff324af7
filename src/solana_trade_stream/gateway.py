from __future__ import annotations

import itertools
import logging
from typing import Any, Protocol

import httpx

from .errors import GatewayError, RateLimitedError

logger = logging.getLogger(__name__)

# JSON-RPC codes for slots that were skipped or are no longer stored.
_MISSING_BLOCK_CODES = {-32004, -32007, -32009, -32014}
_RATE_LIMIT_CODES = {-32429, 429}


class LedgerGateway(Protocol):
    async def current_slot(self) -> int: ...

    async def block_by_slot(self, slot: int, *, want_rewards: bool = True) -> dict[str, Any] | None: ...

    async def signatures_for_address(
        self, address: str, *, before: str | None = None, limit: int = 1000
    ) -> list[dict[str, Any]]: ...

    async def transaction_by_signature(self, signature: str) -> dict[str, Any] | None: ...


class SolanaRpcGateway:
    """Minimal async JSON-RPC client for the calls the pipeline needs."""

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 30.0,
        commitment: str = "confirmed",
        encoding: str = "jsonParsed",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if not rpc_url.strip():
            raise ValueError("rpc_url must be non-empty")
        self.rpc_url = rpc_url.strip()
        self.commitment = commitment
        self.encoding = encoding
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._ids = itertools.count(1)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> SolanaRpcGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def current_slot(self) -> int:
        result = await self._call("getSlot", [{"commitment": self.commitment}])
        if isinstance(result, bool) or not isinstance(result, int):
            raise GatewayError(f"getSlot returned a non-integer result: {result!r}")
        return result

    async def block_by_slot(self, slot: int, *, want_rewards: bool = True) -> dict[str, Any] | None:
        config = {
            "encoding": "json",
            "transactionDetails": "signatures",
            "rewards": want_rewards,
            "maxSupportedTransactionVersion": 0,
            "commitment": self.commitment,
        }
        try:
            return await self._call("getBlock", [slot, config])
        except GatewayError as exc:
            if exc.code in _MISSING_BLOCK_CODES:
                logger.debug("Block %d not available: %s", slot, exc)
                return None
            raise

    async def signatures_for_address(
        self, address: str, *, before: str | None = None, limit: int = 1000
    ) -> list[dict[str, Any]]:
        opts: dict[str, Any] = {"limit": limit, "commitment": self.commitment}
        if before is not None:
            opts["before"] = before
        result = await self._call("getSignaturesForAddress", [address, opts])
        return result if isinstance(result, list) else []

    async def transaction_by_signature(self, signature: str) -> dict[str, Any] | None:
        config = {
            "encoding": self.encoding,
            "maxSupportedTransactionVersion": 0,
            "commitment": self.commitment,
        }
        return await self._call("getTransaction", [signature, config])

    async def _call(self, method: str, params: list[Any]) -> Any:
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self._client.post(self.rpc_url, json=body)
        except httpx.HTTPError as exc:
            raise GatewayError(f"{method} transport error: {exc}") from exc

        if response.status_code == 429:
            raise RateLimitedError(f"{method} rate limited (HTTP 429)", code=429)
        try:
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPStatusError, ValueError) as exc:
            raise GatewayError(f"{method} failed: {exc}", code=response.status_code) from exc

        if not isinstance(data, dict):
            raise GatewayError(f"{method} returned a non-object payload")
        error = data.get("error")
        if error:
            code = error.get("code") if isinstance(error, dict) else None
            message = error.get("message", error) if isinstance(error, dict) else error
            text = f"{method} RPC error: {message} (code={code})"
            if code in _RATE_LIMIT_CODES or "rate limit" in str(message).lower():
                raise RateLimitedError(text, code=code)
            raise GatewayError(text, code=code)
        return data.get("result")
