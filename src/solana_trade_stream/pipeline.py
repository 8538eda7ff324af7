from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
from typing import Any

from .blocks import BlockWatcher
from .errors import BatchFetchError, PipelineError
from .events import categorize
from .fetcher import BatchDetailFetcher
from .gateway import LedgerGateway
from .keys import validate_address
from .scanner import SignatureScanner, call_maybe_async, sleep_or_stop
from .signature_queue import SignatureQueue
from .types import BlockInfo, SwapEvent, TransactionEvent

logger = logging.getLogger(__name__)

EventBatchCallback = Callable[[list[TransactionEvent]], Awaitable[None] | None]


@dataclass
class PipelineStats:
    signatures_discovered: int = 0
    blocks_seen: int = 0
    batches_fetched: int = 0
    batches_requeued: int = 0
    transactions_classified: int = 0
    events_delivered: int = 0
    callback_failures: int = 0


class TransactionPipeline:
    """Discovery producer plus fetch/classify consumer around one ``SignatureQueue``."""

    def __init__(
        self,
        gateway: LedgerGateway,
        fetcher: BatchDetailFetcher | None = None,
        trade_batch_size: int = 50,
        consumer_interval: float = 0.1,
        queue_max_size: int | None = None,
        max_seen: int | None = None,
        swaps_only: bool = False,
    ) -> None:
        if trade_batch_size <= 0:
            raise ValueError("trade_batch_size must be positive")
        self.gateway = gateway
        self.fetcher = fetcher or BatchDetailFetcher(gateway)
        self.trade_batch_size = trade_batch_size
        self.consumer_interval = consumer_interval
        self.queue_max_size = queue_max_size
        self.max_seen = max_seen
        self.swaps_only = swaps_only
        self.stats = PipelineStats()
        self.queue: SignatureQueue | None = None

    async def fetch_transactions_by_address(
        self,
        address: str,
        callback: EventBatchCallback,
        interval: float = 0.2,
        batch_size: int = 1000,
        follow: bool = False,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        """Stream classified events for the full history of ``address``.

        Returns once history is exhausted and every queued signature has been
        processed. With ``follow`` the producer keeps watching for new
        signatures and only ``stop_event`` ends the run.
        """
        address = validate_address(address)
        queue = self.queue = SignatureQueue(self.queue_max_size)
        fetch_completed = asyncio.Event()
        producer_stop = asyncio.Event()
        scanner = SignatureScanner(self.gateway, max_seen=self.max_seen)

        async def on_signature(signature: str) -> None:
            if await queue.push(signature):
                self.stats.signatures_discovered += 1

        def on_history_exhausted() -> None:
            # In follow mode only stop_event ends the run.
            if follow:
                logger.info("History of %s exhausted; following new signatures", address)
                return
            fetch_completed.set()
            producer_stop.set()

        producer = scanner.poll_all(
            address,
            on_signature,
            interval=interval,
            batch_size=batch_size,
            stop_event=producer_stop,
            on_history_exhausted=on_history_exhausted,
        )
        consumer = self._consume(queue, callback, fetch_completed, stop_event)
        await self._run_workers(producer, consumer, producer_stop, stop_event)

    async def fetch_transactions_from_latest_blocks(
        self,
        callback: EventBatchCallback,
        interval: float = 0.4,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        """Stream classified events for every new chain-tip block; runs until ``stop_event``."""
        queue = self.queue = SignatureQueue(self.queue_max_size)
        producer_stop = asyncio.Event()
        watcher = BlockWatcher(self.gateway, want_rewards=False)

        async def on_block(block: BlockInfo | None) -> None:
            if block is None:
                return
            self.stats.blocks_seen += 1
            accepted = await queue.push_many(block.transaction_signatures)
            self.stats.signatures_discovered += accepted
            logger.debug("Block %d queued %d signatures", block.slot, accepted)

        producer = watcher.poll_latest_block(on_block, interval=interval, stop_event=producer_stop)
        consumer = self._consume(queue, callback, asyncio.Event(), stop_event)
        await self._run_workers(producer, consumer, producer_stop, stop_event)

    async def _run_workers(
        self,
        producer: Coroutine[Any, Any, None],
        consumer: Coroutine[Any, Any, None],
        producer_stop: asyncio.Event,
        stop_event: asyncio.Event | None,
    ) -> None:
        producer_task = asyncio.create_task(producer, name="signature-producer")
        consumer_task = asyncio.create_task(consumer, name="signature-consumer")
        tasks = {producer_task, consumer_task}
        relay = asyncio.create_task(self._relay_stop(stop_event, producer_stop)) if stop_event else None
        try:
            pending = set(tasks)
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    if task.cancelled() or task.exception() is None:
                        continue
                    exc = task.exception()
                    raise PipelineError(f"{task.get_name()} failed: {exc!r}") from exc
                # A producer blocked on a full queue cannot finish once nothing drains it.
                if consumer_task in done and producer_task in pending:
                    producer_stop.set()
                    producer_task.cancel()
        finally:
            for task in tasks:
                task.cancel()
            if relay is not None:
                relay.cancel()
                await asyncio.gather(relay, return_exceptions=True)
            await asyncio.gather(*tasks, return_exceptions=True)

    @staticmethod
    async def _relay_stop(stop_event: asyncio.Event, producer_stop: asyncio.Event) -> None:
        await stop_event.wait()
        producer_stop.set()

    async def _consume(
        self,
        queue: SignatureQueue,
        callback: EventBatchCallback,
        fetch_completed: asyncio.Event,
        stop_event: asyncio.Event | None,
    ) -> None:
        while stop_event is None or not stop_event.is_set():
            batch = await queue.take(self.trade_batch_size)
            if batch:
                await self._process_batch(queue, batch, callback)
            elif fetch_completed.is_set() and queue.empty():
                logger.info("Queue drained after history scan; consumer exiting")
                return
            await sleep_or_stop(stop_event, self.consumer_interval)

    async def _process_batch(
        self, queue: SignatureQueue, batch: list[str], callback: EventBatchCallback
    ) -> None:
        try:
            infos = await self.fetcher.get_display_details_batch(batch)
        except BatchFetchError as exc:
            restored = await queue.requeue_front(batch)
            self.stats.batches_requeued += 1
            logger.warning("Requeued %d signatures after whole-batch failure: %s", restored, exc)
            return

        self.stats.batches_fetched += 1
        self.stats.transactions_classified += len(infos)
        events = [categorize(info) for info in infos]
        if self.swaps_only:
            events = [event for event in events if isinstance(event, SwapEvent)]
        if not events:
            return
        try:
            await call_maybe_async(callback, events)
            self.stats.events_delivered += len(events)
        except Exception as exc:
            self.stats.callback_failures += 1
            logger.exception("Event callback failed for a batch of %d events: %s", len(events), exc)
