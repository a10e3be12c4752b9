"""
Alpaca Market Data Adapter

Fetches quotes (snapshot) and OHLCV bars from Alpaca's v2 stock data API.

Endpoints:
- GET /stocks/{symbol}/snapshot  -> latest trade, latest quote, daily bars
- GET /stocks/{symbol}/bars      -> historical bars (paginated)
"""

import asyncio
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import aiohttp

from market_analytics.schemas.market import Bar, Interval, Period, Quote
from market_analytics.services.base import (
    EmptyDataError,
    NotFoundError,
    TransportError,
    UnauthorizedError,
)
from market_analytics.services.data_ingestion.interface import (
    MarketDataProvider,
    build_quote,
    classify_http_status,
    normalize_bar,
    period_range,
    to_series,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "Alpaca"

# Interval -> Alpaca timeframe
TIMEFRAME_MAP = {
    Interval.M1: "1Min",
    Interval.M5: "5Min",
    Interval.M15: "15Min",
    Interval.M30: "30Min",
    Interval.H1: "1Hour",
    Interval.D1: "1Day",
    Interval.W1: "1Week",
}

PAGE_LIMIT = 10000
MAX_PAGES = 50

_FRACTION = re.compile(r"\.(\d+)")


def parse_timestamp(value: str) -> datetime:
    """RFC-3339 with up to nanosecond precision -> aware datetime."""
    # fromisoformat wants exactly 6 fractional digits on older interpreters
    value = _FRACTION.sub(
        lambda m: "." + m.group(1)[:6].ljust(6, "0"), value.replace("Z", "+00:00")
    )
    ts = datetime.fromisoformat(value)
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _isoformat(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_snapshot(data: Dict[str, Any], symbol: str) -> Quote:
    """Normalize a snapshot body into a Quote."""
    trade = data.get("latestTrade") or {}
    quote = data.get("latestQuote") or {}
    daily = data.get("dailyBar") or {}
    prev_daily = data.get("prevDailyBar") or {}

    price = trade.get("p") or daily.get("c")
    if not price:
        raise NotFoundError(PROVIDER_NAME, f"No trade data for {symbol}")

    timestamp = trade.get("t") or daily.get("t")

    return build_quote(
        symbol=symbol,
        price=price,
        previous_close=prev_daily.get("c") or price,
        day_open=daily.get("o"),
        day_high=daily.get("h"),
        day_low=daily.get("l"),
        volume=daily.get("v") or 0,
        bid=quote.get("bp"),
        ask=quote.get("ap"),
        bid_size=quote.get("bs"),
        ask_size=quote.get("as"),
        timestamp=parse_timestamp(timestamp) if timestamp else None,
    )


def parse_bars(rows: list[Dict[str, Any]]) -> list[Bar]:
    return [
        normalize_bar(
            timestamp=parse_timestamp(row["t"]),
            open_=row["o"],
            high=row["h"],
            low=row["l"],
            close=row["c"],
            volume=row.get("v", 0),
        )
        for row in rows
    ]


class AlpacaProvider(MarketDataProvider):
    """
    Alpaca Market Data client.

    Authenticates with the APCA-API-KEY-ID / APCA-API-SECRET-KEY headers.
    """

    def __init__(
        self,
        api_key_id: Optional[str],
        api_secret_key: Optional[str],
        data_url: str = "https://data.alpaca.markets/v2",
        feed: str = "sip",
        timeout_seconds: float = 10.0,
        retry_after_seconds: int = 60,
    ):
        self._api_key_id = api_key_id
        self._api_secret_key = api_secret_key
        self._data_url = data_url.rstrip("/")
        self._feed = feed
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._retry_after = retry_after_seconds
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def name(self) -> str:
        return PROVIDER_NAME

    @property
    def configured(self) -> bool:
        return bool(self._api_key_id and self._api_secret_key)

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self._timeout,
                headers={
                    "APCA-API-KEY-ID": self._api_key_id,
                    "APCA-API-SECRET-KEY": self._api_secret_key,
                    "Accept": "application/json",
                },
            )
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def _get(self, path: str, params: Dict[str, Any], symbol: str) -> Dict[str, Any]:
        if not self._api_key_id or not self._api_secret_key:
            raise UnauthorizedError(PROVIDER_NAME, "API key id / secret not configured")

        session = await self._ensure_session()
        try:
            async with session.get(f"{self._data_url}{path}", params=params) as resp:
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
        return data

    async def fetch_quote(self, symbol: str) -> Quote:
        symbol = symbol.upper().strip()
        logger.info(f"Fetching {symbol} snapshot from Alpaca")
        data = await self._get(
            f"/stocks/{symbol}/snapshot", {"feed": self._feed}, symbol
        )
        return parse_snapshot(data, symbol)

    async def fetch_bars(
        self, symbol: str, period: Period, interval: Interval
    ) -> tuple[Bar, ...]:
        symbol = symbol.upper().strip()
        start, end = period_range(period, datetime.now(timezone.utc))
        params = {
            "timeframe": TIMEFRAME_MAP[interval],
            "start": _isoformat(start),
            "end": _isoformat(end),
            "limit": PAGE_LIMIT,
            "adjustment": "raw",
            "feed": self._feed,
        }

        logger.info(f"Fetching {symbol} bars ({period.value}/{interval.value}) from Alpaca")

        bars: list[Bar] = []
        for _ in range(MAX_PAGES):
            data = await self._get(f"/stocks/{symbol}/bars", params, symbol)
            bars.extend(parse_bars(data.get("bars") or []))

            token = data.get("next_page_token")
            if not token:
                break
            params = {**params, "page_token": token}
        else:
            logger.warning(f"Alpaca pagination for {symbol} stopped after {MAX_PAGES} pages")

        if not bars:
            raise EmptyDataError(PROVIDER_NAME, f"No bars returned for {symbol}")
        return to_series(bars)
