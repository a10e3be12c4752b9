"""
Market Data Service Implementation

Cache-through access to quotes and OHLCV series from the configured provider.
Provider errors propagate unchanged; nothing is ever substituted for a
failed fetch.
"""

import logging

from market_analytics.schemas.market import (
    Bar,
    HistoricalSeries,
    Interval,
    Period,
    Quote,
    SeriesRequest,
    SeriesSummary,
)
from market_analytics.services.base import InvalidParameterError, MarketDataError
from market_analytics.services.cache import MarketDataCache, make_cache_key
from market_analytics.services.data_ingestion.interface import (
    MarketDataProvider,
    MarketDataServiceInterface,
    parse_interval,
    parse_period,
)

logger = logging.getLogger(__name__)


def normalize_symbol(symbol: str) -> str:
    cleaned = (symbol or "").strip().upper()
    if not cleaned:
        raise InvalidParameterError("MarketData", "Symbol must not be empty")
    return cleaned


class MarketDataService(MarketDataServiceInterface):
    """
    Market Data Service.

    Owns no state of its own: the provider and the cache are injected, so
    independent instances (e.g. in tests) never share entries.
    """

    def __init__(self, provider: MarketDataProvider, cache: MarketDataCache):
        self._provider = provider
        self._cache = cache

    @property
    def name(self) -> str:
        return "MarketDataService"

    @property
    def provider(self) -> MarketDataProvider:
        return self._provider

    @property
    def cache(self) -> MarketDataCache:
        return self._cache

    async def execute(self, input_data: SeriesRequest) -> HistoricalSeries:
        return await self.get_historical_series(
            input_data.symbol, input_data.period, input_data.interval
        )

    async def get_quote(self, symbol: str) -> Quote:
        symbol = normalize_symbol(symbol)
        key = make_cache_key("quote", symbol)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            quote = await self._provider.fetch_quote(symbol)
        except MarketDataError as e:
            logger.warning(f"Quote fetch failed for {symbol}: {e}")
            raise

        self._cache.put(key, quote)
        logger.info(f"Fetched {symbol} quote from {self._provider.name}: {quote.price:.2f}")
        return quote

    async def get_bars(
        self, symbol: str, period: Period, interval: Interval
    ) -> tuple[Bar, ...]:
        symbol = normalize_symbol(symbol)
        period = parse_period(period)
        interval = parse_interval(interval)
        key = make_cache_key("bars", symbol, period.value, interval.value)

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        try:
            bars = await self._provider.fetch_bars(symbol, period, interval)
        except MarketDataError as e:
            logger.warning(f"Bar fetch failed for {symbol} ({period.value}/{interval.value}): {e}")
            raise

        bars = tuple(bars)
        self._cache.put(key, bars)
        logger.info(
            f"Fetched {len(bars)} {interval.value} bars for {symbol} "
            f"({period.value}) from {self._provider.name}"
        )
        return bars

    async def get_historical_series(
        self, symbol: str, period="3mo", interval="1d"
    ) -> HistoricalSeries:
        symbol = normalize_symbol(symbol)
        period = parse_period(period)
        interval = parse_interval(interval)
        bars = await self.get_bars(symbol, period, interval)

        return HistoricalSeries(
            symbol=symbol,
            period=period,
            interval=interval,
            bars=bars,
            summary=SeriesSummary.from_bars(bars),
        )

    async def health_check(self) -> bool:
        """False when the configured backend is missing its credentials."""
        if not self._provider.configured:
            logger.warning(f"{self._provider.name} credentials are not configured")
            return False
        return True

    async def close(self) -> None:
        await self._provider.close()
