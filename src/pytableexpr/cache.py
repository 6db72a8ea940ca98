"""Caller-owned memo for parsed schemas."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from typing import Any

from pytableexpr._constants import DEFAULT_SCHEMA_CACHE_SIZE

logger = logging.getLogger(__name__)


class SchemaCache:
    """Thread-safe LRU cache with an optional time-to-live.

    Values are computed outside the lock, so concurrent misses on the same
    key may compute twice; the first insertion wins and every caller gets
    the winning value back.

    Args:
        maxsize: Maximum number of entries; ``None`` means unbounded.
        ttl: Seconds an entry stays valid; ``None`` means forever.
        clock: Monotonic time source, replaceable in tests.
    """

    def __init__(
        self,
        maxsize: int | None = DEFAULT_SCHEMA_CACHE_SIZE,
        ttl: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if maxsize is not None and maxsize < 1:
            raise ValueError(f"maxsize must be positive or None, got {maxsize}")
        if ttl is not None and ttl <= 0:
            raise ValueError(f"ttl must be positive or None, got {ttl}")
        self._maxsize = maxsize
        self._ttl = ttl
        self._clock = clock
        self._entries: OrderedDict[Hashable, tuple[Any, float]] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def _expired(self, stored_at: float) -> bool:
        return self._ttl is not None and self._clock() - stored_at >= self._ttl

    def get(self, key: Hashable) -> Any | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return None
            value, stored_at = entry
            if self._expired(stored_at):
                del self._entries[key]
                self.misses += 1
                logger.debug("schema cache entry expired")
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            logger.debug("schema cache hit")
            return value

    def put_if_absent(self, key: Hashable, value: Any) -> Any:
        """Store ``value`` unless a live entry exists; return the stored value."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and not self._expired(entry[1]):
                logger.debug("schema cache insert lost a race, keeping the first value")
                self._entries.move_to_end(key)
                return entry[0]
            self._entries[key] = (value, self._clock())
            self._entries.move_to_end(key)
            if self._maxsize is not None:
                while len(self._entries) > self._maxsize:
                    self._entries.popitem(last=False)
                    logger.debug("schema cache evicted least recently used entry")
            return value

    def get_or_compute(self, key: Hashable, compute: Callable[[Any], Any]) -> Any:
        value = self.get(key)
        if value is not None:
            return value
        logger.debug("schema cache miss, computing")
        return self.put_if_absent(key, compute(key))

    def evict(self, key: Hashable) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not self._expired(entry[1])

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
