from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from market_analytics.schemas.market import (
    Bar,
    HistoricalSeries,
    Interval,
    Period,
    SeriesSummary,
)
from market_analytics.services.data_ingestion.interface import (
    MarketDataProvider,
    build_quote,
)

START = datetime(2024, 1, 2, 21, 0, tzinfo=timezone.utc)


def _make_bars(closes, spread=0.0, volume=1000, highs=None, lows=None):
    bars = []
    for i, close in enumerate(closes):
        high = highs[i] if highs is not None else close + spread
        low = lows[i] if lows is not None else close - spread
        bars.append(
            Bar(
                timestamp=START + timedelta(days=i),
                open=close,
                high=max(high, close),
                low=min(low, close),
                close=close,
                volume=volume,
            )
        )
    return tuple(bars)


def _make_series(closes, symbol="TEST", period=Period.MO6, **kwargs):
    bars = _make_bars(closes, **kwargs)
    return HistoricalSeries(
        symbol=symbol,
        period=period,
        interval=Interval.D1,
        bars=bars,
        summary=SeriesSummary.from_bars(bars),
    )


@pytest.fixture
def make_bars():
    return _make_bars


@pytest.fixture
def make_series():
    return _make_series


@pytest.fixture
def flat_bars():
    """30 daily bars closing at 100."""
    return _make_bars([100.0] * 30)


@pytest.fixture
def fake_provider():
    """Provider double: 60 rising bars and a 150.00 quote."""
    provider = MagicMock(spec=MarketDataProvider)
    provider.name = "Fake"
    provider.fetch_bars = AsyncMock(
        return_value=_make_bars([100.0 + i * 0.5 for i in range(60)], spread=1.0)
    )
    provider.fetch_quote = AsyncMock(
        side_effect=lambda symbol: build_quote(symbol, price=150.0, previous_close=148.0)
    )
    provider.close = AsyncMock()
    return provider
