from __future__ import annotations

from collections import OrderedDict


class SeenSignatures:
    """Set of signatures already emitted by a scan.

    Unbounded unless ``max_size`` is given; a long-lived scan of a busy
    address therefore grows without limit. With ``max_size`` the oldest
    entries are evicted first, which can re-emit very old signatures on a
    later lap.
    """

    def __init__(self, max_size: int | None = None) -> None:
        if max_size is not None and max_size <= 0:
            raise ValueError("max_size must be positive")
        self.max_size = max_size
        self._seen: OrderedDict[str, None] = OrderedDict()

    def __len__(self) -> int:
        return len(self._seen)

    def __contains__(self, signature: object) -> bool:
        return signature in self._seen

    def add(self, signature: str) -> bool:
        if signature in self._seen:
            return False
        self._seen[signature] = None
        self._purge()
        return True

    def _purge(self) -> None:
        if self.max_size is None:
            return
        while len(self._seen) > self.max_size:
            self._seen.popitem(last=False)
