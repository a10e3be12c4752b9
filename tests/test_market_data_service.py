"""
Tests for the cache-through MarketDataService.
"""

from unittest.mock import AsyncMock

import pytest

from market_analytics.schemas.market import Interval, Period, SeriesRequest
from market_analytics.services.base import (
    InvalidParameterError,
    NotFoundError,
    RateLimitedError,
)
from market_analytics.services.cache import MarketDataCache, make_cache_key
from market_analytics.services.data_ingestion import (
    AlpacaProvider,
    AlphaVantageProvider,
    MarketDataService,
    YahooProvider,
)


@pytest.fixture
def cache():
    return MarketDataCache(default_ttl_seconds=300)


@pytest.fixture
def service(fake_provider, cache):
    return MarketDataService(fake_provider, cache)


@pytest.mark.asyncio
async def test_quote_is_cached(service, fake_provider):
    """Second read within TTL never reaches the provider."""
    first = await service.get_quote("aapl")
    second = await service.get_quote("AAPL")

    assert first is second
    fake_provider.fetch_quote.assert_awaited_once_with("AAPL")


@pytest.mark.asyncio
async def test_bars_cached_per_period_and_interval(service, fake_provider):
    await service.get_bars("AAPL", Period.MO3, Interval.D1)
    await service.get_bars("AAPL", Period.MO3, Interval.D1)
    await service.get_bars("AAPL", Period.MO6, Interval.D1)

    assert fake_provider.fetch_bars.await_count == 2


@pytest.mark.asyncio
async def test_quote_and_series_do_not_share_entries(service, cache):
    await service.get_quote("AAPL")
    await service.get_bars("AAPL", "3mo", "1d")

    assert make_cache_key("quote", "AAPL") in cache
    assert make_cache_key("bars", "AAPL", "3mo", "1d") in cache
    assert len(cache) == 2


@pytest.mark.asyncio
async def test_provider_error_propagates_and_is_not_cached(service, fake_provider, cache):
    """No placeholder data is returned or stored when the provider fails."""
    fake_provider.fetch_quote = AsyncMock(side_effect=NotFoundError("Fake", "Symbol ZZZZ not found"))

    with pytest.raises(NotFoundError):
        await service.get_quote("ZZZZ")

    assert len(cache) == 0


@pytest.mark.asyncio
async def test_rate_limit_surfaces_backoff(service, fake_provider):
    fake_provider.fetch_bars = AsyncMock(
        side_effect=RateLimitedError("Fake", "Rate limit reached", retry_after_seconds=30)
    )

    with pytest.raises(RateLimitedError) as exc:
        await service.get_historical_series("AAPL")

    assert exc.value.retry_after_seconds == 30


@pytest.mark.asyncio
async def test_historical_series_summary(service):
    series = await service.get_historical_series("aapl", "3mo", "1d")

    assert series.symbol == "AAPL"
    assert series.period == Period.MO3
    assert series.interval == Interval.D1
    assert series.summary.data_points == 60
    assert series.summary.lowest_close == 100.0
    assert series.summary.highest_close == pytest.approx(129.5)
    assert series.summary.total_volume == 60 * 1000
    assert series.summary.start == series.bars[0].timestamp


@pytest.mark.asyncio
async def test_execute_takes_series_request(service):
    series = await service.execute(SeriesRequest(symbol="MSFT", period=Period.MO1))
    assert series.symbol == "MSFT"
    assert series.period == Period.MO1


@pytest.mark.asyncio
async def test_invalid_tokens_rejected_before_fetch(service, fake_provider):
    with pytest.raises(InvalidParameterError):
        await service.get_historical_series("AAPL", "9y", "1d")
    with pytest.raises(InvalidParameterError):
        await service.get_historical_series("AAPL", "1mo", "3d")
    with pytest.raises(InvalidParameterError):
        await service.get_quote("   ")

    fake_provider.fetch_bars.assert_not_called()
    fake_provider.fetch_quote.assert_not_called()


@pytest.mark.asyncio
async def test_close_releases_provider(service, fake_provider):
    assert await service.health_check()
    await service.close()
    fake_provider.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_health_check_reports_missing_credentials(cache):
    """A backend without its credentials is unhealthy; Yahoo needs none."""
    assert not await MarketDataService(AlphaVantageProvider(api_key=None), cache).health_check()
    assert not await MarketDataService(
        AlpacaProvider(api_key_id="key", api_secret_key=None), cache
    ).health_check()
    assert await MarketDataService(AlphaVantageProvider(api_key="k"), cache).health_check()
    assert await MarketDataService(YahooProvider(), cache).health_check()
