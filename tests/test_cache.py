import pytest

from market_analytics.services.cache import CacheEntry, MarketDataCache, make_cache_key


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return MarketDataCache(default_ttl_seconds=60, clock=clock)


# ============================================================================
# Keys
# ============================================================================


class TestCacheKeys:
    def test_symbol_is_upper_cased(self):
        assert make_cache_key("quote", " aapl ") == "quote:AAPL"

    def test_series_key_encodes_period_and_interval(self):
        assert make_cache_key("bars", "AAPL", "3mo", "1d") == "bars:AAPL:3mo:1d"

    def test_different_requests_do_not_collide(self):
        keys = {
            make_cache_key("quote", "AAPL"),
            make_cache_key("bars", "AAPL", "3mo", "1d"),
            make_cache_key("bars", "AAPL", "3mo", "1h"),
            make_cache_key("bars", "AAPL", "6mo", "1d"),
        }
        assert len(keys) == 4


# ============================================================================
# Expiry
# ============================================================================


class TestCacheExpiry:
    def test_get_after_put_returns_value(self, cache):
        cache.put("k", "v")
        assert cache.get("k") == "v"

    def test_value_survives_exactly_ttl(self, cache, clock):
        cache.put("k", "v")
        clock.advance(60)
        assert cache.get("k") == "v"

    def test_expired_entry_is_never_returned(self, cache, clock):
        cache.put("k", "v")
        clock.advance(60.001)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_per_entry_ttl(self, cache, clock):
        cache.put("short", 1, ttl_seconds=5)
        cache.put("long", 2)
        clock.advance(10)
        assert cache.get("short") is None
        assert cache.get("long") == 2

    def test_put_replaces_entry_and_restarts_ttl(self, cache, clock):
        cache.put("k", "old")
        clock.advance(50)
        cache.put("k", "new")
        clock.advance(50)
        assert cache.get("k") == "new"

    def test_purge_expired(self, cache, clock):
        cache.put("a", 1, ttl_seconds=1)
        cache.put("b", 2, ttl_seconds=100)
        clock.advance(2)
        assert cache.purge_expired() == 1
        assert "b" in cache
        assert "a" not in cache

    def test_entry_expiry_boundary(self):
        entry = CacheEntry(key="k", value=1, stored_at=0.0, ttl_seconds=10)
        assert not entry.is_expired(10.0)
        assert entry.is_expired(10.5)

    def test_non_positive_ttl_rejected(self, cache):
        with pytest.raises(ValueError):
            cache.put("k", "v", ttl_seconds=0)
        with pytest.raises(ValueError):
            MarketDataCache(default_ttl_seconds=-1)


# ============================================================================
# Housekeeping
# ============================================================================


class TestCacheHousekeeping:
    def test_invalidate_and_clear(self, cache):
        cache.put("a", 1)
        cache.put("b", 2)
        assert cache.invalidate("a") is True
        assert cache.invalidate("a") is False
        cache.clear()
        assert len(cache) == 0

    def test_max_entries_evicts_oldest(self, clock):
        cache = MarketDataCache(default_ttl_seconds=60, max_entries=2, clock=clock)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("c", 3)
        assert cache.get("a") is None
        assert cache.get("b") == 2
        assert cache.get("c") == 3

    def test_instances_are_isolated(self, clock):
        first = MarketDataCache(clock=clock)
        second = MarketDataCache(clock=clock)
        first.put("k", "v")
        assert second.get("k") is None
