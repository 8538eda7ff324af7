from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .errors import GatewayError, is_rate_limited
from .gateway import LedgerGateway
from .keys import validate_address
from .seen import SeenSignatures
from .types import SignatureInfo

logger = logging.getLogger(__name__)

RATE_LIMIT_SLEEP_SECONDS = 2.0
MAX_PAGE_SIZE = 1000

SignatureCallback = Callable[[str], Awaitable[None] | None]
HistoryCallback = Callable[[], Awaitable[None] | None]


async def call_maybe_async(callback: Callable[..., Any], *args: Any) -> None:
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


async def sleep_or_stop(stop_event: asyncio.Event | None, seconds: float) -> None:
    """Sleep ``seconds`` but wake up as soon as ``stop_event`` is set."""
    if stop_event is None:
        await asyncio.sleep(seconds)
        return
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        pass


class SignatureScanner:
    """Walks the signature history of an address backwards with a cursor."""

    def __init__(self, gateway: LedgerGateway, max_seen: int | None = None) -> None:
        self.gateway = gateway
        self.max_seen = max_seen
        self._stop_event = asyncio.Event()

    def stop(self) -> None:
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    async def poll_all(
        self,
        address: str,
        on_signature: SignatureCallback,
        interval: float = 0.2,
        batch_size: int = 1000,
        stop_event: asyncio.Event | None = None,
        on_history_exhausted: HistoryCallback | None = None,
    ) -> None:
        """Emit every signature of ``address`` once, then keep watching for new ones.

        Walks back through history page by page. Every empty page, and
        once history is done every page with nothing new, resets the cursor
        so later laps start at the head and pick up newly produced signatures.
        Returns once ``stop()`` is called or ``stop_event`` is set; setting
        ``stop_event`` also marks the scanner itself as stopped.
        """
        address = validate_address(address)
        if not 1 <= batch_size <= MAX_PAGE_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_PAGE_SIZE}")
        relay = None
        if stop_event is not None:
            relay = asyncio.create_task(_forward_stop(stop_event, self._stop_event))
        try:
            await self._poll(address, on_signature, interval, batch_size, on_history_exhausted)
        finally:
            if relay is not None:
                relay.cancel()
                await asyncio.gather(relay, return_exceptions=True)

    async def _poll(
        self,
        address: str,
        on_signature: SignatureCallback,
        interval: float,
        batch_size: int,
        on_history_exhausted: HistoryCallback | None,
    ) -> None:
        stop = self._stop_event
        seen = SeenSignatures(self.max_seen)
        before: str | None = None
        history_completed = False

        while not stop.is_set():
            try:
                page = await self.gateway.signatures_for_address(address, before=before, limit=batch_size)
            except GatewayError as exc:
                if is_rate_limited(exc):
                    logger.warning("Rate limited scanning %s, backing off %.1fs", address, RATE_LIMIT_SLEEP_SECONDS)
                    await sleep_or_stop(stop, RATE_LIMIT_SLEEP_SECONDS)
                else:
                    logger.warning("RPC error scanning %s (retrying): %s", address, exc)
                    await sleep_or_stop(stop, interval)
                continue

            if not page:
                before = None
                if not history_completed:
                    history_completed = True
                    logger.info("History of %s exhausted after %d signatures", address, len(seen))
                    if on_history_exhausted is not None:
                        await call_maybe_async(on_history_exhausted)
                await sleep_or_stop(stop, interval)
                continue

            new_found = False
            for item in page:
                signature = _signature_of(item)
                if signature is None or signature in seen:
                    continue
                seen.add(signature)
                new_found = True
                await call_maybe_async(on_signature, signature)

            oldest = _signature_of(page[-1])
            if history_completed and not new_found:
                # Caught up with everything already emitted; restart at the head.
                before = None
            elif oldest is not None:
                before = oldest

            await sleep_or_stop(stop, interval if new_found else interval * 2)

        logger.info("Stopped scanning %s", address)

    async def get_with_limit(self, address: str, limit: int, interval: float = 0.2) -> list[str]:
        address = validate_address(address)
        collected: list[str] = []
        seen: set[str] = set()
        before: str | None = None
        while len(collected) < limit:
            page_size = min(limit - len(collected), MAX_PAGE_SIZE)
            try:
                page = await self.gateway.signatures_for_address(address, before=before, limit=page_size)
            except GatewayError as exc:
                logger.warning("Stopping bounded scan of %s: %s", address, exc)
                break
            if not page:
                break
            for item in page:
                signature = _signature_of(item)
                if signature is None or signature in seen:
                    continue
                seen.add(signature)
                collected.append(signature)
                if len(collected) >= limit:
                    break
            oldest = _signature_of(page[-1])
            if len(collected) >= limit or oldest is None:
                break
            before = oldest
            await asyncio.sleep(interval)
        return collected

    async def get_last(self, address: str, count: int) -> list[str]:
        address = validate_address(address)
        page = await self.gateway.signatures_for_address(address, before=None, limit=count)
        return [s for s in (_signature_of(item) for item in page) if s is not None]

    async def history_page(
        self, address: str, cursor: str | None, page_size: int
    ) -> tuple[list[SignatureInfo], str | None]:
        """One page of history and the cursor for the next one (``None`` once exhausted)."""
        address = validate_address(address)
        page = await self.gateway.signatures_for_address(address, before=cursor, limit=page_size)
        infos: list[SignatureInfo] = []
        for item in page:
            try:
                infos.append(SignatureInfo.from_rpc_item(item))
            except (KeyError, TypeError, ValueError) as exc:
                logger.debug("Skip invalid signature item: %s", exc)
        next_cursor = infos[-1].signature if infos else None
        return infos, next_cursor


async def _forward_stop(source: asyncio.Event, target: asyncio.Event) -> None:
    await source.wait()
    target.set()


def _signature_of(item: Any) -> str | None:
    if isinstance(item, dict):
        value = item.get("signature")
        return value if isinstance(value, str) and value else None
    if isinstance(item, str) and item:
        return item
    return None
