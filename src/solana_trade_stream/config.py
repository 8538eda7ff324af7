from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from .constants import SOLANA_MAINNET_RPC_URL

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    rpc_url: str
    watch_address: str | None
    follow_new_signatures: bool
    scan_interval_seconds: float
    signature_batch_size: int
    trade_batch_size: int
    consumer_poll_interval_seconds: float
    block_poll_interval_seconds: float
    request_timeout_seconds: float
    max_concurrent_requests: int
    queue_max_size: int | None
    max_seen_signatures: int | None
    swaps_only: bool
    health_log_interval_seconds: int
    log_level: str


def _optional_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _optional_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _optional_limit(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    value = int(raw)
    if value <= 0:
        raise ValueError(f"{name} must be a positive integer")
    return value


def _optional_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


def load_settings() -> Settings:
    load_dotenv()
    settings = Settings(
        rpc_url=os.getenv("SOLANA_RPC_URL", SOLANA_MAINNET_RPC_URL).strip() or SOLANA_MAINNET_RPC_URL,
        watch_address=os.getenv("WATCH_ADDRESS", "").strip() or None,
        follow_new_signatures=_optional_bool("FOLLOW_NEW_SIGNATURES", False),
        scan_interval_seconds=_optional_float("SCAN_INTERVAL_SECONDS", 0.2),
        signature_batch_size=_optional_int("SIGNATURE_BATCH_SIZE", 1000),
        trade_batch_size=_optional_int("TRADE_BATCH_SIZE", 50),
        consumer_poll_interval_seconds=_optional_float("CONSUMER_POLL_INTERVAL_SECONDS", 0.1),
        block_poll_interval_seconds=_optional_float("BLOCK_POLL_INTERVAL_SECONDS", 0.4),
        request_timeout_seconds=_optional_float("REQUEST_TIMEOUT_SECONDS", 30.0),
        max_concurrent_requests=_optional_int("MAX_CONCURRENT_REQUESTS", 16),
        queue_max_size=_optional_limit("QUEUE_MAX_SIZE"),
        max_seen_signatures=_optional_limit("MAX_SEEN_SIGNATURES"),
        swaps_only=_optional_bool("SWAPS_ONLY", False),
        health_log_interval_seconds=_optional_int("HEALTH_LOG_INTERVAL_SECONDS", 60),
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
    )
    if not 1 <= settings.signature_batch_size <= 1000:
        raise ValueError("SIGNATURE_BATCH_SIZE must be between 1 and 1000")
    if settings.trade_batch_size <= 0:
        raise ValueError("TRADE_BATCH_SIZE must be positive")
    if settings.max_concurrent_requests <= 0:
        raise ValueError("MAX_CONCURRENT_REQUESTS must be positive")
    return settings
