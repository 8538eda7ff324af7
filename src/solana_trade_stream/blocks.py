from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from .errors import GatewayError
from .gateway import LedgerGateway
from .scanner import call_maybe_async, sleep_or_stop
from .types import BlockInfo, Reward

logger = logging.getLogger(__name__)

BlockCallback = Callable[[BlockInfo | None], Awaitable[None] | None]


def parse_block(raw: dict[str, Any]) -> BlockInfo:
    """Build a ``BlockInfo`` from a ``getBlock`` result.

    The slot of the block itself is not part of the payload; it is taken
    as ``parentSlot + 1``, which holds unless the leader skipped slots.
    """
    parent_slot = int(raw.get("parentSlot") or 0)
    rewards = tuple(
        Reward(
            pubkey=str(item.get("pubkey", "")),
            lamports=int(item.get("lamports") or 0),
            post_balance=int(item.get("postBalance") or 0),
            reward_type=item.get("rewardType"),
        )
        for item in raw.get("rewards") or []
        if isinstance(item, dict)
    )
    signatures = tuple(s for s in raw.get("signatures") or [] if isinstance(s, str))
    if not signatures:
        # transactionDetails="full" puts signatures inside each transaction.
        for tx in raw.get("transactions") or []:
            sigs = ((tx or {}).get("transaction") or {}).get("signatures") or []
            if sigs:
                signatures += (sigs[0],)
    return BlockInfo(
        slot=parent_slot + 1,
        blockhash=str(raw.get("blockhash", "")),
        previous_blockhash=str(raw.get("previousBlockhash", "")),
        parent_slot=parent_slot,
        block_time=raw.get("blockTime"),
        block_height=raw.get("blockHeight"),
        rewards=rewards,
        transaction_signatures=signatures,
    )


class BlockWatcher:
    def __init__(self, gateway: LedgerGateway, want_rewards: bool = True) -> None:
        self.gateway = gateway
        self.want_rewards = want_rewards
        self.last_slot: int | None = None

    async def get_block_by_slot(self, slot: int) -> BlockInfo | None:
        raw = await self.gateway.block_by_slot(slot, want_rewards=self.want_rewards)
        if not raw:
            return None
        return parse_block(raw)

    async def get_latest_block(self) -> BlockInfo | None:
        slot = await self.gateway.current_slot()
        return await self.get_block_by_slot(slot)

    async def poll_latest_block(
        self,
        on_block: BlockCallback,
        interval: float = 0.4,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        """Report each new chain-tip block once; ``None`` when nothing new or on error."""
        while stop_event is None or not stop_event.is_set():
            try:
                block = await self.get_latest_block()
            except GatewayError as exc:
                logger.warning("Failed to fetch latest block: %s", exc)
                block = None

            if block is not None and (self.last_slot is None or block.slot > self.last_slot):
                self.last_slot = block.slot
                await call_maybe_async(on_block, block)
            else:
                await call_maybe_async(on_block, None)

            await sleep_or_stop(stop_event, interval)
