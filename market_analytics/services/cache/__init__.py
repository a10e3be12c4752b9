"""
Cache module for market analytics.

Provides an in-memory TTL cache for quotes and OHLCV series.
"""

from market_analytics.services.cache.memory_cache import (
    CacheEntry,
    MarketDataCache,
    make_cache_key,
)

__all__ = [
    "CacheEntry",
    "MarketDataCache",
    "make_cache_key",
]
