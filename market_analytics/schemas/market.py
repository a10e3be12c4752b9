"""
CONTRACT 1: Market Data Layer

Input:  symbol + period/interval tokens
Output: Quote, HistoricalSeries

Every provider backend normalizes its responses into these records.
Records are frozen: the cache and the caller can share them safely.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# ENUMS
# =============================================================================


class Period(str, Enum):
    D1 = "1d"
    D5 = "5d"
    MO1 = "1mo"
    MO3 = "3mo"
    MO6 = "6mo"
    Y1 = "1y"
    Y2 = "2y"
    Y5 = "5y"
    MAX = "max"


class Interval(str, Enum):
    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    D1 = "1d"
    W1 = "1w"


# =============================================================================
# BARS
# =============================================================================


class Bar(BaseModel):
    """Single OHLCV bar."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    open: float = Field(..., ge=0)
    high: float = Field(..., ge=0)
    low: float = Field(..., ge=0)
    close: float = Field(..., ge=0)
    volume: int = Field(..., ge=0)

    @model_validator(mode="after")
    def _check_range(self) -> "Bar":
        body_low = min(self.open, self.close)
        body_high = max(self.open, self.close)
        if not (self.low <= body_low <= body_high <= self.high):
            raise ValueError(
                f"bar at {self.timestamp} violates low <= open/close <= high "
                f"(o={self.open}, h={self.high}, l={self.low}, c={self.close})"
            )
        return self


class SeriesSummary(BaseModel):
    """Derived facts about a bar series."""

    model_config = ConfigDict(frozen=True)

    data_points: int
    start: datetime
    end: datetime
    highest_close: float
    lowest_close: float
    total_volume: int

    @classmethod
    def from_bars(cls, bars: tuple[Bar, ...]) -> "SeriesSummary":
        closes = [b.close for b in bars]
        return cls(
            data_points=len(bars),
            start=bars[0].timestamp,
            end=bars[-1].timestamp,
            highest_close=max(closes),
            lowest_close=min(closes),
            total_volume=sum(b.volume for b in bars),
        )


class HistoricalSeries(BaseModel):
    """Bars for one (symbol, period, interval) request plus a summary."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    period: Period
    interval: Interval
    bars: tuple[Bar, ...]
    summary: SeriesSummary


# =============================================================================
# QUOTES
# =============================================================================


class Quote(BaseModel):
    """
    Latest quote for a symbol.

    change_abs / change_pct are always derived from price and previous_close.
    Bid/ask fields are None when the backend does not report them.
    """

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "symbol": "AAPL",
                "price": 189.84,
                "previous_close": 186.86,
                "day_open": 187.15,
                "day_high": 190.32,
                "day_low": 186.81,
                "volume": 53412930,
                "timestamp": "2024-02-02T20:59:59Z",
            }
        },
    )

    symbol: str
    price: float = Field(..., ge=0)
    bid: Optional[float] = None
    ask: Optional[float] = None
    bid_size: Optional[int] = None
    ask_size: Optional[int] = None
    day_open: float
    day_high: float
    day_low: float
    previous_close: float
    volume: int = Field(..., ge=0)
    change_abs: float
    change_pct: float
    timestamp: datetime

    @model_validator(mode="before")
    @classmethod
    def _derive_change(cls, data):
        if isinstance(data, dict) and "price" in data and "previous_close" in data:
            price = float(data["price"])
            prev_close = float(data["previous_close"])
            change = price - prev_close
            data = {
                **data,
                "change_abs": change,
                "change_pct": (change / prev_close * 100) if prev_close else 0.0,
            }
        return data


# =============================================================================
# INPUT
# =============================================================================


class SeriesRequest(BaseModel):
    """Parameters of one historical series request."""

    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., min_length=1)
    period: Period = Period.MO3
    interval: Interval = Interval.D1
