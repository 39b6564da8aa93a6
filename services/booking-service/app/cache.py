import time
from collections import OrderedDict
from typing import Any, Callable


class TTLCache:
    """
    Bounded in-memory cache with per-entry expiry.

    Eviction: an entry is dropped when read after its TTL has elapsed, and
    the least recently written entry is dropped when max_entries is exceeded.
    Not shared across processes; callers must tolerate stale reads for up to
    ttl_seconds.
    """

    def __init__(self, ttl_seconds: float, max_entries: int = 1024, clock: Callable[[], float] = time.monotonic):
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, Any]] = OrderedDict()

    def get(self, key: str, default=None):
        item = self._entries.get(key)
        if item is None:
            return default
        expires_at, value = item
        if self._clock() >= expires_at:
            del self._entries[key]
            return default
        return value

    def set(self, key: str, value) -> None:
        self._entries.pop(key, None)
        self._entries[key] = (self._clock() + self.ttl_seconds, value)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self):
        return len(self._entries)
