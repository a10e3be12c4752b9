"""
In-memory TTL cache for quotes and bar series.

Keys:
- quote:{SYMBOL} -> Quote
- bars:{SYMBOL}:{period}:{interval} -> tuple[Bar, ...]

Expiry is lazy: entries are checked on read and an expired entry is never
returned. State is process-local and owned by whoever constructs the cache.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


def make_cache_key(kind: str, symbol: str, *parts: str) -> str:
    """
    Build a deterministic key.

    kind separates quotes from series so the two never collide; the symbol
    is normalized to upper case.
    """
    tokens = [kind, symbol.upper().strip(), *(str(p) for p in parts)]
    return ":".join(tokens)


@dataclass(frozen=True)
class CacheEntry:
    """Stored value with the time it was written."""

    key: str
    value: Any
    stored_at: float
    ttl_seconds: float

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl_seconds


class MarketDataCache:
    """
    TTL cache for provider responses.

    Usage:
        cache = MarketDataCache(default_ttl_seconds=300)
        cache.put(make_cache_key("quote", "AAPL"), quote)
        cached = cache.get(make_cache_key("quote", "AAPL"))

    The lock only guards dictionary access; it is never held while a
    provider call is in flight. Two concurrent misses on the same key both
    fetch and the later put wins.
    """

    def __init__(
        self,
        default_ttl_seconds: float = 300,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if default_ttl_seconds <= 0:
            raise ValueError("default_ttl_seconds must be positive")
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")

        self._default_ttl = default_ttl_seconds
        self._max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    @property
    def default_ttl_seconds(self) -> float:
        return self._default_ttl

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value, or None when absent or expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                logger.debug(f"Cache miss: {key}")
                return None
            if entry.is_expired(now):
                del self._entries[key]
                logger.debug(f"Cache expired: {key}")
                return None

        logger.debug(f"Cache hit: {key}")
        return entry.value

    def put(self, key: str, value: Any, ttl_seconds: Optional[float] = None) -> None:
        """Insert or replace an entry. Existing entries are replaced, never mutated."""
        ttl = self._default_ttl if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            raise ValueError("ttl_seconds must be positive")

        entry = CacheEntry(key=key, value=value, stored_at=self._clock(), ttl_seconds=ttl)
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = entry
            if self._max_entries is not None:
                while len(self._entries) > self._max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug(f"Cache evicted oldest entry: {evicted}")

    def invalidate(self, key: str) -> bool:
        """Drop one entry. Returns True when something was removed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def purge_expired(self) -> int:
        """Remove every expired entry and return how many were dropped."""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
