"""
Analytics Service

The external surface of the package: one coroutine per analytics
capability. Each call validates its parameters locally, pulls quotes or
bars through the cache-through MarketDataService, and hands them to the
matching engine.

    service = create_analytics_service()
    report = await service.compute_indicators("AAPL", ["RSI", "MACD"])
    await service.close()
"""

import asyncio
import logging
import random
from datetime import date
from typing import Iterable, Optional, Sequence, Union

from market_analytics.core.config import Settings, get_settings
from market_analytics.core.logging import configure_logging
from market_analytics.schemas.indicators import IndicatorReport
from market_analytics.schemas.market import HistoricalSeries, Interval, Quote
from market_analytics.schemas.options import OptionPricing, OptionsChain, UnusualScan
from market_analytics.schemas.patterns import LevelReport, PatternReport
from market_analytics.services.cache import MarketDataCache
from market_analytics.services.data_ingestion import (
    MarketDataService,
    create_provider,
    parse_period,
)
from market_analytics.services.indicators import IndicatorService, resolve_indicators
from market_analytics.services.options import OptionsService
from market_analytics.services.options.pricing import (
    parse_expiration,
    parse_kind,
    validate_strike,
)
from market_analytics.services.options.service import (
    parse_moneyness,
    parse_side,
    validate_scan_thresholds,
)
from market_analytics.services.scanner import PatternService, resolve_patterns
from market_analytics.services.scanner.levels import validate_sensitivity

logger = logging.getLogger(__name__)


class AnalyticsService:
    """
    Analytics Core facade.

    Provider errors (Unauthorized, RateLimited, NotFound, EmptyData,
    Transport) propagate unchanged. InvalidParameter and InsufficientData
    are raised before any computation.
    """

    def __init__(
        self,
        market_data: MarketDataService,
        indicators: Optional[IndicatorService] = None,
        patterns: Optional[PatternService] = None,
        options: Optional[OptionsService] = None,
        scan_symbols: Sequence[str] = ("AAPL", "TSLA", "NVDA", "SPY", "META"),
    ):
        self._market_data = market_data
        self._indicators = indicators or IndicatorService()
        self._patterns = patterns or PatternService()
        self._options = options or OptionsService()
        self._scan_symbols = tuple(s.upper() for s in scan_symbols)

    @property
    def name(self) -> str:
        return "AnalyticsService"

    @property
    def market_data(self) -> MarketDataService:
        return self._market_data

    # =========================================================================
    # MARKET DATA
    # =========================================================================

    async def get_quote(self, symbol: str) -> Quote:
        return await self._market_data.get_quote(symbol)

    async def get_historical_series(
        self, symbol: str, period: str = "3mo", interval: str = "1d"
    ) -> HistoricalSeries:
        return await self._market_data.get_historical_series(symbol, period, interval)

    # =========================================================================
    # INDICATORS / PATTERNS / LEVELS
    # =========================================================================

    async def compute_indicators(
        self, symbol: str, indicator_names: Iterable[str], period: str = "3mo"
    ) -> IndicatorReport:
        names = [indicator_names] if isinstance(indicator_names, str) else list(indicator_names or [])
        resolve_indicators(names)
        period = parse_period(period)

        series = await self._market_data.get_historical_series(symbol, period, Interval.D1)
        return self._indicators.compute(series, names)

    async def detect_patterns(
        self,
        symbol: str,
        pattern_names: Optional[Iterable[str]] = None,
        period: str = "6mo",
    ) -> PatternReport:
        names = None
        if pattern_names is not None:
            names = [pattern_names] if isinstance(pattern_names, str) else list(pattern_names)
        resolve_patterns(names)
        period = parse_period(period)

        series = await self._market_data.get_historical_series(symbol, period, Interval.D1)
        return self._patterns.detect(series, names)

    async def find_levels(
        self, symbol: str, period: str = "3mo", sensitivity: int = 5
    ) -> LevelReport:
        validate_sensitivity(sensitivity)
        period = parse_period(period)

        series = await self._market_data.get_historical_series(symbol, period, Interval.D1)
        return self._patterns.find_levels(series, sensitivity)

    # =========================================================================
    # OPTIONS
    # =========================================================================

    async def price_option(
        self,
        symbol: str,
        strike: float,
        expiration: Union[str, date],
        kind: str,
    ) -> OptionPricing:
        kind = parse_kind(kind)
        strike = validate_strike(strike)
        expiration = parse_expiration(expiration)
        self._options.days_until(expiration)

        quote = await self._market_data.get_quote(symbol)
        return self._options.price_option(quote.symbol, quote.price, strike, expiration, kind)

    async def get_options_chain(
        self,
        symbol: str,
        expiration: Optional[Union[str, date]] = None,
        kind: str = "both",
        moneyness: str = "all",
    ) -> OptionsChain:
        side = parse_side(kind)
        moneyness = parse_moneyness(moneyness)
        if expiration is not None and not (
            isinstance(expiration, str) and expiration.strip().lower() == "all"
        ):
            expiration = parse_expiration(expiration)
            self._options.days_until(expiration)

        quote = await self._market_data.get_quote(symbol)
        return self._options.build_chain(quote.symbol, quote.price, expiration, side, moneyness)

    async def scan_unusual_options(
        self,
        symbol: Optional[str] = None,
        min_volume_ratio: float = 2.0,
        min_premium: float = 10000,
    ) -> UnusualScan:
        """Single symbol, or the configured universe when symbol is None / "all"."""
        if symbol is None or symbol.strip().lower() == "all":
            symbols = self._scan_symbols
        else:
            symbols = (symbol.strip().upper(),)

        validate_scan_thresholds(min_volume_ratio, min_premium)

        quotes = await asyncio.gather(*(self._market_data.get_quote(s) for s in symbols))
        prices = {q.symbol: q.price for q in quotes}
        return self._options.scan_unusual(prices, min_volume_ratio, min_premium)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def health_check(self) -> bool:
        checks = await asyncio.gather(
            self._market_data.health_check(),
            self._indicators.health_check(),
            self._patterns.health_check(),
            self._options.health_check(),
        )
        return all(checks)

    async def close(self) -> None:
        await self._market_data.close()


def create_analytics_service(settings: Optional[Settings] = None) -> AnalyticsService:
    """Build the cache, the configured provider and the engines from settings."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    cache = MarketDataCache(
        default_ttl_seconds=settings.cache_ttl_seconds,
        max_entries=settings.cache_max_entries,
    )
    market_data = MarketDataService(create_provider(settings), cache)
    options = OptionsService(
        risk_free_rate=settings.risk_free_rate,
        volatility=settings.default_volatility,
        rng=random.Random(settings.options_synthesis_seed),
    )

    logger.info(
        f"{settings.app_name} v{settings.app_version} ready "
        f"(provider={settings.data_provider}, cache_ttl={settings.cache_ttl_seconds}s)"
    )

    return AnalyticsService(
        market_data=market_data,
        options=options,
        scan_symbols=settings.unusual_scan_symbols,
    )
