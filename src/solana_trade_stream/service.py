from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from .config import Settings
from .fetcher import BatchDetailFetcher
from .formatting import build_tx_link, format_event_summary
from .gateway import LedgerGateway, SolanaRpcGateway
from .pipeline import TransactionPipeline
from .types import SwapEvent, TransactionEvent

logger = logging.getLogger(__name__)


@dataclass
class Metrics:
    batches_received: int = 0
    events_seen: int = 0
    swaps_seen: int = 0


class StreamService:
    def __init__(self, settings: Settings, gateway: LedgerGateway | None = None) -> None:
        self.settings = settings
        self.metrics = Metrics()
        self.gateway = gateway or SolanaRpcGateway(settings.rpc_url, timeout=settings.request_timeout_seconds)
        self.pipeline = TransactionPipeline(
            self.gateway,
            fetcher=BatchDetailFetcher(self.gateway, max_concurrency=settings.max_concurrent_requests),
            trade_batch_size=settings.trade_batch_size,
            consumer_interval=settings.consumer_poll_interval_seconds,
            queue_max_size=settings.queue_max_size,
            max_seen=settings.max_seen_signatures,
            swaps_only=settings.swaps_only,
        )
        self._stop_event = asyncio.Event()

    def stop(self) -> None:
        self._stop_event.set()

    async def run(self) -> None:
        health_task = asyncio.create_task(self._health_loop())
        try:
            if self.settings.watch_address:
                logger.info(
                    "Streaming history of %s (follow=%s)",
                    self.settings.watch_address,
                    self.settings.follow_new_signatures,
                )
                await self.pipeline.fetch_transactions_by_address(
                    self.settings.watch_address,
                    self._handle_events,
                    interval=self.settings.scan_interval_seconds,
                    batch_size=self.settings.signature_batch_size,
                    follow=self.settings.follow_new_signatures,
                    stop_event=self._stop_event,
                )
            else:
                logger.info("Streaming latest blocks from %s", self.settings.rpc_url)
                await self.pipeline.fetch_transactions_from_latest_blocks(
                    self._handle_events,
                    interval=self.settings.block_poll_interval_seconds,
                    stop_event=self._stop_event,
                )
        finally:
            health_task.cancel()
            await asyncio.gather(health_task, return_exceptions=True)
            close = getattr(self.gateway, "close", None)
            if close is not None:
                await close()

    async def _handle_events(self, events: list[TransactionEvent]) -> None:
        self.metrics.batches_received += 1
        for event in events:
            self.metrics.events_seen += 1
            if isinstance(event, SwapEvent):
                self.metrics.swaps_seen += 1
            logger.info("%s %s", format_event_summary(event), build_tx_link(event.signature))

    async def _health_loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.health_log_interval_seconds)
            stats = self.pipeline.stats
            queued = len(self.pipeline.queue) if self.pipeline.queue is not None else 0
            logger.info(
                (
                    "health signatures=%d queued=%d batches=%d requeued=%d "
                    "events=%d swaps=%d callback_failures=%d"
                ),
                stats.signatures_discovered,
                queued,
                stats.batches_fetched,
                stats.batches_requeued,
                self.metrics.events_seen,
                self.metrics.swaps_seen,
                stats.callback_failures,
            )
