from __future__ import annotations


class SolanaTradeStreamError(Exception):
    """Base class for errors raised by this package."""


class InvalidAddressError(SolanaTradeStreamError, ValueError):
    def __init__(self, address: str, reason: str = "not a 32-byte base58 public key") -> None:
        super().__init__(f"Invalid address {address!r}: {reason}")
        self.address = address


class InvalidSignatureError(SolanaTradeStreamError, ValueError):
    def __init__(self, signature: str, reason: str = "not a 64-byte base58 signature") -> None:
        super().__init__(f"Invalid signature {signature!r}: {reason}")
        self.signature = signature


class GatewayError(SolanaTradeStreamError):
    """A ledger RPC call failed (transport, HTTP status or JSON-RPC error)."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class RateLimitedError(GatewayError):
    """The RPC provider asked us to slow down (HTTP 429 or rate-limit error)."""


class BatchFetchError(SolanaTradeStreamError):
    def __init__(self, signatures: list[str], cause: BaseException | None = None) -> None:
        super().__init__(f"Detail fetch failed for the whole batch of {len(signatures)} signatures: {cause}")
        self.signatures = list(signatures)
        self.cause = cause


class PipelineError(SolanaTradeStreamError):
    """Raised when one of the pipeline workers dies."""


def is_rate_limited(exc: BaseException) -> bool:
    if isinstance(exc, RateLimitedError):
        return True
    text = str(exc).lower()
    return "rate limit" in text or "429" in text
