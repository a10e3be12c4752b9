"""
CONTRACT 2: Indicator Engine

Input:  symbol, indicator names, period
Output: IndicatorReport

This module describes the results of the indicator calculations.
Pure Python/NumPy - every value is deterministic for a given bar series.
"""

from datetime import datetime
from enum import Enum
from typing import Union
from pydantic import BaseModel, ConfigDict, Field

from market_analytics.schemas.market import HistoricalSeries, Period


# =============================================================================
# ENUMS
# =============================================================================


class SignalType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    NEUTRAL = "NEUTRAL"


class RecommendationLabel(str, Enum):
    STRONG_BUY = "STRONG BUY"
    BUY = "BUY"
    NEUTRAL = "NEUTRAL"
    SELL = "SELL"
    STRONG_SELL = "STRONG SELL"


# =============================================================================
# OUTPUT
# =============================================================================


IndicatorValue = Union[float, tuple[float, ...]]


class IndicatorResult(BaseModel):
    """
    Latest value of one indicator.

    value is a scalar for single-line indicators and a small tuple for
    multi-line ones (MACD: line/signal/histogram, BB: lower/middle/upper,
    STOCH: %K/%D).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    value: IndicatorValue
    signal: SignalType
    timestamp: datetime


class Recommendation(BaseModel):
    """Aggregate of the per-indicator signals."""

    model_config = ConfigDict(frozen=True)

    label: RecommendationLabel
    buy_pct: float = Field(..., ge=0, le=100)
    sell_pct: float = Field(..., ge=0, le=100)
    neutral_pct: float = Field(..., ge=0, le=100)
    counts: dict[SignalType, int]
    summary: str


class IndicatorReport(BaseModel):
    """Indicators computed for one symbol over one period."""

    model_config = ConfigDict(frozen=True)

    symbol: str
    period: Period
    indicators: dict[str, IndicatorResult]
    signals: dict[str, SignalType]
    recommendation: Recommendation


# =============================================================================
# INPUT
# =============================================================================


class IndicatorRequest(BaseModel):
    """Bar series plus the indicator names to compute over it."""

    model_config = ConfigDict(frozen=True)

    series: HistoricalSeries
    names: tuple[str, ...]
