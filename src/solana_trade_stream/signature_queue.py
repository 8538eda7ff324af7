from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Iterable


class SignatureQueue:
    """FIFO of pending signatures shared by a producer and a consumer.

    A signature is present at most once at any time. With ``max_size`` set,
    ``push_many`` waits for the consumer to make room; ``requeue_front``
    never waits so a failed batch can always be put back.
    """

    def __init__(self, max_size: int | None = None) -> None:
        if max_size is not None and max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._items: deque[str] = deque()
        self._members: set[str] = set()
        self._lock = asyncio.Lock()
        self._not_full = asyncio.Condition(self._lock)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, signature: object) -> bool:
        return signature in self._members

    def empty(self) -> bool:
        return not self._items

    def snapshot(self) -> list[str]:
        return list(self._items)

    async def push(self, signature: str) -> bool:
        return await self.push_many([signature]) == 1

    async def push_many(self, signatures: Iterable[str]) -> int:
        accepted = 0
        async with self._not_full:
            for signature in signatures:
                if signature in self._members:
                    continue
                while self.max_size is not None and len(self._items) >= self.max_size:
                    await self._not_full.wait()
                    if signature in self._members:
                        break
                else:
                    self._items.append(signature)
                    self._members.add(signature)
                    accepted += 1
        return accepted

    async def take(self, limit: int) -> list[str]:
        batch: list[str] = []
        async with self._not_full:
            while self._items and len(batch) < limit:
                signature = self._items.popleft()
                self._members.discard(signature)
                batch.append(signature)
            if batch:
                self._not_full.notify_all()
        return batch

    async def requeue_front(self, signatures: list[str]) -> int:
        restored = 0
        async with self._lock:
            for signature in reversed(signatures):
                if signature in self._members:
                    continue
                self._items.appendleft(signature)
                self._members.add(signature)
                restored += 1
        return restored
