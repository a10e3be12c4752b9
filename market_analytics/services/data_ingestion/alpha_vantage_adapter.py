"""
Alpha Vantage Data Adapter

Fetches quotes (GLOBAL_QUOTE) and OHLCV series (TIME_SERIES_*) from
Alpha Vantage's REST API.

Alpha Vantage reports most failures inside a 200 response body:
- "Note" / "Information" about call frequency -> rate limited
- "Information" about the API key -> unauthorized
- "Error Message" -> invalid symbol
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import aiohttp

from market_analytics.schemas.market import Bar, Interval, Period, Quote
from market_analytics.services.base import (
    EmptyDataError,
    NotFoundError,
    RateLimitedError,
    TransportError,
    UnauthorizedError,
)
from market_analytics.services.data_ingestion.interface import (
    INTRADAY_INTERVALS,
    MarketDataProvider,
    build_quote,
    classify_http_status,
    normalize_bar,
    period_range,
    to_series,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "AlphaVantage"

# Intraday interval mapping
INTERVAL_MAP = {
    Interval.M1: "1min",
    Interval.M5: "5min",
    Interval.M15: "15min",
    Interval.M30: "30min",
    Interval.H1: "60min",
}

# Series timestamps are exchange-local unless Meta Data names a zone
DEFAULT_TIME_ZONE = "US/Eastern"

# Compact responses hold the latest 100 points
COMPACT_DAILY_PERIODS = {Period.D1, Period.D5, Period.MO1, Period.MO3}


def _series_function(interval: Interval) -> str:
    if interval in INTRADAY_INTERVALS:
        return "TIME_SERIES_INTRADAY"
    if interval == Interval.W1:
        return "TIME_SERIES_WEEKLY"
    return "TIME_SERIES_DAILY"


def check_body(data: Dict[str, Any], symbol: str, retry_after_seconds: int = 60) -> None:
    """Raise the matching error for an in-body Alpha Vantage failure."""
    note = data.get("Note")
    info = data.get("Information")

    if note:
        raise RateLimitedError(
            PROVIDER_NAME, "API rate limit reached", retry_after_seconds=retry_after_seconds
        )
    if info:
        lowered = info.lower()
        if "rate limit" in lowered or "call frequency" in lowered or "requests per" in lowered:
            raise RateLimitedError(
                PROVIDER_NAME, "API rate limit reached", retry_after_seconds=retry_after_seconds
            )
        if "apikey" in lowered or "api key" in lowered:
            raise UnauthorizedError(PROVIDER_NAME, "API key rejected")
        raise TransportError(PROVIDER_NAME, f"Unexpected notice for {symbol}", {"info": info[:200]})
    if data.get("Error Message"):
        raise NotFoundError(PROVIDER_NAME, f"Invalid symbol: {symbol}")


def parse_global_quote(data: Dict[str, Any], symbol: str) -> Quote:
    """Normalize a GLOBAL_QUOTE body."""
    row = data.get("Global Quote")
    if not row:
        raise NotFoundError(PROVIDER_NAME, f"No quote available for {symbol}")

    try:
        return build_quote(
            symbol=symbol,
            price=float(row["05. price"]),
            previous_close=float(row["08. previous close"]),
            day_open=float(row["02. open"]),
            day_high=float(row["03. high"]),
            day_low=float(row["04. low"]),
            volume=int(row["06. volume"]),
        )
    except (KeyError, ValueError) as e:
        raise TransportError(PROVIDER_NAME, f"Malformed quote for {symbol}: {e}")


def series_time_zone(data: Dict[str, Any], symbol: str) -> ZoneInfo:
    """Zone named in Meta Data ("6. Time Zone" intraday, "5. Time Zone" daily)."""
    meta = data.get("Meta Data") or {}
    name = next((v for k, v in meta.items() if k.endswith("Time Zone")), DEFAULT_TIME_ZONE)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise TransportError(PROVIDER_NAME, f"Unknown time zone '{name}' for {symbol}")


def parse_time_series(
    data: Dict[str, Any],
    symbol: str,
    start: Optional[datetime] = None,
) -> tuple[Bar, ...]:
    """
    Normalize a TIME_SERIES_* body, keeping rows at or after start.

    Row stamps are local to the series time zone and come back in UTC.
    """
    series_key = next((k for k in data if "Time Series" in k), None)
    if series_key is None:
        raise EmptyDataError(PROVIDER_NAME, f"No time series data for {symbol}")

    zone = series_time_zone(data, symbol)
    bars = []
    for stamp, values in data[series_key].items():
        ts = datetime.fromisoformat(stamp).replace(tzinfo=zone).astimezone(timezone.utc)
        if start is not None and ts < start:
            continue
        bars.append(
            normalize_bar(
                timestamp=ts,
                open_=values["1. open"],
                high=values["2. high"],
                low=values["3. low"],
                close=values["4. close"],
                volume=values["5. volume"],
            )
        )

    if not bars:
        raise EmptyDataError(PROVIDER_NAME, f"No bars in range for {symbol}")
    return to_series(bars)


class AlphaVantageProvider(MarketDataProvider):
    """
    Alpha Vantage REST client.

    One aiohttp session per provider instance, opened lazily.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://www.alphavantage.co/query",
        timeout_seconds: float = 10.0,
        retry_after_seconds: int = 60,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._retry_after = retry_after_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def name(self) -> str:
        return PROVIDER_NAME

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def _query(self, params: Dict[str, str], symbol: str) -> Dict[str, Any]:
        if not self._api_key:
            raise UnauthorizedError(PROVIDER_NAME, "API key not configured")

        session = await self._ensure_session()
        try:
            async with session.get(
                self._base_url, params={**params, "apikey": self._api_key}
            ) as resp:
                body = await resp.text()
                error = classify_http_status(
                    PROVIDER_NAME, resp.status, symbol, body, self._retry_after
                )
                if error:
                    raise error
                data = await resp.json(content_type=None)
        except asyncio.TimeoutError:
            raise TransportError(PROVIDER_NAME, f"Request timed out for {symbol}")
        except aiohttp.ClientError as e:
            raise TransportError(PROVIDER_NAME, f"Request failed for {symbol}: {e}")

        if not isinstance(data, dict):
            raise TransportError(PROVIDER_NAME, f"Unexpected payload for {symbol}")
        check_body(data, symbol, self._retry_after)
        return data

    async def fetch_quote(self, symbol: str) -> Quote:
        symbol = symbol.upper().strip()
        logger.info(f"Fetching {symbol} quote from Alpha Vantage")
        data = await self._query({"function": "GLOBAL_QUOTE", "symbol": symbol}, symbol)
        return parse_global_quote(data, symbol)

    async def fetch_bars(
        self, symbol: str, period: Period, interval: Interval
    ) -> tuple[Bar, ...]:
        symbol = symbol.upper().strip()
        function = _series_function(interval)
        params = {"function": function, "symbol": symbol}

        if function == "TIME_SERIES_INTRADAY":
            params["interval"] = INTERVAL_MAP[interval]
            params["outputsize"] = "full" if period not in (Period.D1,) else "compact"
        elif function == "TIME_SERIES_DAILY" and period not in COMPACT_DAILY_PERIODS:
            params["outputsize"] = "full"

        logger.info(f"Fetching {symbol} {function} ({period.value}/{interval.value}) from Alpha Vantage")
        data = await self._query(params, symbol)
        start, _ = period_range(period, datetime.now(timezone.utc))
        return parse_time_series(data, symbol, start)
