"""
Market Data Provider Interface

Defines the contract every upstream backend implements, plus the shared
normalization helpers that turn raw rows into Bars/Quotes and raw failures
into the error taxonomy.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Iterable, Optional

from market_analytics.schemas.market import (
    Bar,
    HistoricalSeries,
    Interval,
    Period,
    Quote,
    SeriesRequest,
)
from market_analytics.services.base import (
    BaseService,
    InvalidParameterError,
    MarketDataError,
    NotFoundError,
    RateLimitedError,
    TransportError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)


# Period token -> how far back the series starts
PERIOD_LOOKBACK = {
    Period.D1: timedelta(days=1),
    Period.D5: timedelta(days=5),
    Period.MO1: timedelta(days=30),
    Period.MO3: timedelta(days=91),
    Period.MO6: timedelta(days=182),
    Period.Y1: timedelta(days=365),
    Period.Y2: timedelta(days=730),
    Period.Y5: timedelta(days=1825),
    Period.MAX: timedelta(days=3650),
}

INTRADAY_INTERVALS = {Interval.M1, Interval.M5, Interval.M15, Interval.M30, Interval.H1}


def parse_period(value) -> Period:
    """Validate a period token ("1d", "5d", "1mo", ... "max")."""
    try:
        return Period(str(value.value if isinstance(value, Period) else value).lower())
    except ValueError:
        valid = ", ".join(p.value for p in Period)
        raise InvalidParameterError(
            "MarketData", f"Unknown period '{value}'. Valid: {valid}"
        )


def parse_interval(value) -> Interval:
    """Validate an interval token ("1m" ... "1w"). "1wk" is accepted as "1w"."""
    raw = str(value.value if isinstance(value, Interval) else value)
    if raw == "1wk":
        raw = "1w"
    try:
        return Interval(raw)
    except ValueError:
        valid = ", ".join(i.value for i in Interval)
        raise InvalidParameterError(
            "MarketData", f"Unknown interval '{value}'. Valid: {valid}"
        )


def period_range(period: Period, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """Concrete [start, end] datetimes for a period token."""
    end = now or datetime.now().astimezone()
    return end - PERIOD_LOOKBACK[period], end


# =============================================================================
# NORMALIZATION
# =============================================================================


def normalize_bar(
    timestamp: datetime,
    open_: float,
    high: float,
    low: float,
    close: float,
    volume,
) -> Bar:
    """
    Build a Bar from raw provider values.

    Providers occasionally report a high/low that does not enclose the
    open/close (adjusted prices, bad ticks); the range is widened to fit.
    """
    open_, high, low, close = float(open_), float(high), float(low), float(close)
    return Bar(
        timestamp=timestamp,
        open=open_,
        high=max(high, open_, close),
        low=min(low, open_, close),
        close=close,
        volume=max(0, int(volume or 0)),
    )


def to_series(bars: Iterable[Bar]) -> tuple[Bar, ...]:
    """Sort ascending by timestamp; a repeated timestamp keeps the last row."""
    by_ts: dict[datetime, Bar] = {}
    for bar in bars:
        by_ts[bar.timestamp] = bar
    return tuple(by_ts[ts] for ts in sorted(by_ts))


def build_quote(
    symbol: str,
    price: float,
    previous_close: float,
    day_open: Optional[float] = None,
    day_high: Optional[float] = None,
    day_low: Optional[float] = None,
    volume: int = 0,
    bid: Optional[float] = None,
    ask: Optional[float] = None,
    bid_size: Optional[int] = None,
    ask_size: Optional[int] = None,
    timestamp: Optional[datetime] = None,
) -> Quote:
    """Quote with change fields derived from price and previous close."""
    return Quote(
        symbol=symbol.upper(),
        price=float(price),
        previous_close=float(previous_close),
        day_open=float(day_open if day_open is not None else price),
        day_high=float(day_high if day_high is not None else price),
        day_low=float(day_low if day_low is not None else price),
        volume=int(volume or 0),
        bid=float(bid) if bid is not None else None,
        ask=float(ask) if ask is not None else None,
        bid_size=int(bid_size) if bid_size is not None else None,
        ask_size=int(ask_size) if ask_size is not None else None,
        timestamp=timestamp or datetime.now().astimezone(),
    )


def classify_http_status(
    provider: str,
    status: int,
    symbol: str,
    body: str = "",
    retry_after_seconds: int = 60,
) -> Optional[MarketDataError]:
    """Map a non-2xx HTTP status to a provider error (None for 2xx)."""
    if 200 <= status < 300:
        return None
    snippet = body[:200]
    if status in (401, 403):
        return UnauthorizedError(provider, f"Credentials rejected (HTTP {status})")
    if status == 404:
        return NotFoundError(provider, f"Symbol {symbol} not found", {"body": snippet})
    if status == 429:
        return RateLimitedError(
            provider, "Rate limit reached", retry_after_seconds=retry_after_seconds
        )
    return TransportError(
        provider, f"Unexpected HTTP {status} for {symbol}", {"body": snippet}
    )


# =============================================================================
# CONTRACT
# =============================================================================


class MarketDataProvider(ABC):
    """
    Market Data Provider Contract.

    fetch_quote:  symbol -> Quote
    fetch_bars:   symbol, period, interval -> ascending, de-duplicated Bars

    Implementations never retry and never fall back to generated data;
    every failure is raised as a MarketDataError subclass.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name for logging and error messages."""
        pass

    @abstractmethod
    async def fetch_quote(self, symbol: str) -> Quote:
        pass

    @abstractmethod
    async def fetch_bars(
        self, symbol: str, period: Period, interval: Interval
    ) -> tuple[Bar, ...]:
        pass

    @property
    def configured(self) -> bool:
        """Whether the credentials this backend needs are present."""
        return True

    async def close(self) -> None:
        """Release network resources."""
        return None


class MarketDataServiceInterface(BaseService[SeriesRequest, HistoricalSeries]):
    """
    Market Data Service Contract.

    INPUT: SeriesRequest
        - symbol, period, interval

    OUTPUT: HistoricalSeries
        - ascending bars plus a summary (range, high/low close, volume)

    Reads go through the cache first; a miss goes to the single configured
    provider and the result is stored with the configured TTL.
    """

    @property
    def name(self) -> str:
        return "MarketDataService"

    @abstractmethod
    async def get_quote(self, symbol: str) -> Quote:
        pass

    @abstractmethod
    async def get_bars(
        self, symbol: str, period: Period, interval: Interval
    ) -> tuple[Bar, ...]:
        pass

    @abstractmethod
    async def get_historical_series(
        self, symbol: str, period="3mo", interval="1d"
    ) -> HistoricalSeries:
        pass
