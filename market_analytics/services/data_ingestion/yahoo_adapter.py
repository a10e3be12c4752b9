"""
Yahoo Finance Data Adapter

Fetches quotes and OHLCV history from Yahoo Finance via yfinance.
yfinance is blocking, so every call runs in a worker thread under a timeout.
An empty history is checked against Ticker.info to tell an unknown symbol
(NotFound) from a listed one with no bars in range (EmptyData).
"""

import asyncio
import logging
from datetime import timezone
from typing import Any, Callable, Optional, TypeVar

import yfinance as yf
from yfinance.exceptions import YFRateLimitError

from market_analytics.schemas.market import Bar, Interval, Period, Quote
from market_analytics.services.base import (
    EmptyDataError,
    MarketDataError,
    NotFoundError,
    RateLimitedError,
    TransportError,
)
from market_analytics.services.data_ingestion.interface import (
    MarketDataProvider,
    build_quote,
    normalize_bar,
    to_series,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "Yahoo"

T = TypeVar("T")

# Interval mapping for yfinance
INTERVAL_MAP = {
    Interval.M1: "1m",
    Interval.M5: "5m",
    Interval.M15: "15m",
    Interval.M30: "30m",
    Interval.H1: "1h",
    Interval.D1: "1d",
    Interval.W1: "1wk",
}

PRICE_COLUMNS = ["Open", "High", "Low", "Close"]


def parse_info(info: dict, symbol: str) -> Quote:
    """Normalize a Ticker.info dict into a Quote."""
    price = info.get("currentPrice") or info.get("regularMarketPrice")
    if not price:
        raise NotFoundError(PROVIDER_NAME, f"No price available for {symbol}")

    previous_close = (
        info.get("previousClose") or info.get("regularMarketPreviousClose") or price
    )

    return build_quote(
        symbol=symbol,
        price=price,
        previous_close=previous_close,
        day_open=info.get("open") or info.get("regularMarketOpen"),
        day_high=info.get("dayHigh") or info.get("regularMarketDayHigh"),
        day_low=info.get("dayLow") or info.get("regularMarketDayLow"),
        volume=info.get("volume") or info.get("regularMarketVolume") or 0,
        bid=info.get("bid"),
        ask=info.get("ask"),
        bid_size=info.get("bidSize"),
        ask_size=info.get("askSize"),
    )


def is_listed(info: Optional[dict]) -> bool:
    """Whether Ticker.info describes a quoted instrument."""
    if not info:
        return False
    return bool(
        info.get("regularMarketPrice")
        or info.get("currentPrice")
        or info.get("previousClose")
    )


def parse_history(hist: Any, symbol: str) -> tuple[Bar, ...]:
    """Normalize a Ticker.history DataFrame into a bar series."""
    if hist is None or hist.empty:
        raise EmptyDataError(PROVIDER_NAME, f"No history returned for {symbol}")

    hist = hist.dropna(subset=PRICE_COLUMNS)
    bars = []
    for idx, row in hist.iterrows():
        ts = idx.to_pydatetime()
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)

        bars.append(
            normalize_bar(
                timestamp=ts,
                open_=row["Open"],
                high=row["High"],
                low=row["Low"],
                close=row["Close"],
                volume=row.get("Volume", 0),
            )
        )

    if not bars:
        raise EmptyDataError(PROVIDER_NAME, f"No complete bars for {symbol}")
    return to_series(bars)


class YahooProvider(MarketDataProvider):
    """Yahoo Finance backend. No credentials required."""

    def __init__(self, timeout_seconds: float = 10.0, retry_after_seconds: int = 60):
        self._timeout = timeout_seconds
        self._retry_after = retry_after_seconds

    @property
    def name(self) -> str:
        return PROVIDER_NAME

    async def _run(self, func: Callable[[], T], symbol: str) -> T:
        try:
            return await asyncio.wait_for(asyncio.to_thread(func), timeout=self._timeout)
        except asyncio.TimeoutError:
            raise TransportError(PROVIDER_NAME, f"Request timed out for {symbol}")
        except YFRateLimitError:
            raise RateLimitedError(
                PROVIDER_NAME, "Rate limit reached", retry_after_seconds=self._retry_after
            )
        except MarketDataError:
            raise
        except Exception as e:
            raise TransportError(PROVIDER_NAME, f"Request failed for {symbol}: {e}")

    async def fetch_quote(self, symbol: str) -> Quote:
        symbol = symbol.upper().strip()
        logger.info(f"Fetching {symbol} quote from Yahoo Finance")
        info = await self._run(lambda: yf.Ticker(symbol).info, symbol)
        return parse_info(info or {}, symbol)

    async def fetch_bars(
        self, symbol: str, period: Period, interval: Interval
    ) -> tuple[Bar, ...]:
        symbol = symbol.upper().strip()
        logger.info(
            f"Fetching {symbol} history ({period.value}/{interval.value}) from Yahoo Finance"
        )
        ticker = yf.Ticker(symbol)
        hist = await self._run(
            lambda: ticker.history(
                period=period.value, interval=INTERVAL_MAP[interval], auto_adjust=False
            ),
            symbol,
        )
        try:
            return parse_history(hist, symbol)
        except EmptyDataError:
            # yfinance answers an unknown symbol with an empty frame
            info = await self._run(lambda: ticker.info, symbol)
            if not is_listed(info):
                raise NotFoundError(PROVIDER_NAME, f"Symbol {symbol} not found")
            raise
