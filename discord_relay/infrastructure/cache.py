"""In-memory TTL cache (used for per-guild emoji maps)."""

import time
from collections import OrderedDict
from typing import Callable, Generic, Hashable, Optional, Tuple, TypeVar

V = TypeVar("V")


class TTLCache(Generic[V]):
    """Key -> value store where every write lives ``ttl_seconds``.

    Expired entries are dropped lazily on the read that misses them; there is
    no background sweep. No locking: under asyncio a racing miss costs at
    most one extra upstream fetch.
    """

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        max_entries: Optional[int] = None,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._max_entries = max_entries
        self._entries: "OrderedDict[Hashable, Tuple[V, float]]" = OrderedDict()

    def get(self, key: Hashable) -> Optional[V]:
        hit = self._entries.get(key)
        if hit is None:
            return None
        value, expires = hit
        if expires > self._clock():
            return value
        self._entries.pop(key, None)
        return None

    def set(self, key: Hashable, value: V) -> None:
        self._entries.pop(key, None)
        self._entries[key] = (value, self._clock() + self.ttl_seconds)
        if self._max_entries is not None:
            while len(self._entries) > self._max_entries:
                self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
