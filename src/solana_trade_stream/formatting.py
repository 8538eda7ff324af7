from __future__ import annotations

from datetime import datetime, timezone

from .constants import LAMPORTS_PER_SOL, SOL, USD1, USDC, USDT, WSOL
from .types import (
    Direction,
    LiquidityEvent,
    SwapEvent,
    TransactionEvent,
    TransferEvent,
    UnclassifiedEvent,
)

EXPLORER_BASE = "https://solscan.io"

_TOKEN_LABELS = {SOL: "SOL", WSOL: "WSOL", USDC: "USDC", USDT: "USDT", USD1: "USD1"}


def direction_to_text(direction: Direction) -> str:
    if direction is Direction.BUY:
        return "Bought"
    if direction is Direction.SELL:
        return "Sold"
    return "Traded"


def short_address(address: str | None) -> str:
    if not address:
        return "Unknown"
    addr = address.strip()
    if len(addr) <= 12:
        return addr
    return f"{addr[:4]}...{addr[-4:]}"


def token_label(mint: str | None) -> str:
    if not mint:
        return "?"
    return _TOKEN_LABELS.get(mint, short_address(mint))


def block_time_iso(ts: int | None) -> str:
    if ts is None:
        return "unknown time"
    dt = datetime.fromtimestamp(ts, tz=timezone.utc)
    return dt.isoformat().replace("+00:00", "Z")


def build_tx_link(signature: str | None) -> str | None:
    if not signature:
        return None
    return f"{EXPLORER_BASE}/tx/{signature}"


def build_account_link(address: str | None) -> str | None:
    if not address:
        return None
    return f"{EXPLORER_BASE}/account/{address}"


def _amount(value: float | None) -> str:
    if value is None:
        return "?"
    return f"{abs(value):,.6f}".rstrip("0").rstrip(".")


def format_event_summary(event: TransactionEvent) -> str:
    when = block_time_iso(event.block_time)
    sig = short_address(event.signature)

    if isinstance(event, SwapEvent):
        venue = event.dex_program_type.value if event.dex_program_type.value != "none" else "unknown venue"
        price = f" @ {event.price:.9g}" if event.price is not None else ""
        return (
            f"[{when}] {short_address(event.signer)} {direction_to_text(event.direction)} "
            f"{_amount(event.base_change)} {token_label(event.base_token)} for "
            f"{_amount(event.quote_change)} {token_label(event.quote_token)}{price} on {venue} ({sig})"
        )

    if isinstance(event, LiquidityEvent):
        action = "added liquidity" if event.added else "removed liquidity"
        return (
            f"[{when}] {short_address(event.signer)} {action} on {event.dex_program_type.value} "
            f"({len(event.token_changes)} token changes) ({sig})"
        )

    if isinstance(event, TransferEvent):
        kind = "NFT transfer" if event.is_nft else "transfer"
        if event.lamports:
            amount = f"{event.lamports / LAMPORTS_PER_SOL:,.9f}".rstrip("0").rstrip(".")
            return (
                f"[{when}] {kind} {amount} SOL {short_address(event.source)} -> "
                f"{short_address(event.destination)} ({sig})"
            )
        return f"[{when}] {kind} with {len(event.token_changes)} token changes ({sig})"

    if isinstance(event, UnclassifiedEvent):
        return f"[{when}] {event.transaction_type.value} transaction ({sig})"

    raise TypeError(f"Unsupported event type: {type(event).__name__}")
