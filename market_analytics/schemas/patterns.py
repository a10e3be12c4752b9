"""
CONTRACT 3: Pattern & Level Detector

Input:  symbol, pattern names / sensitivity, period
Output: PatternReport, LevelReport

A Pattern is a fact about a historical window and is never updated.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from market_analytics.schemas.market import HistoricalSeries, Period


class LevelKind(str, Enum):
    SUPPORT = "SUPPORT"
    RESISTANCE = "RESISTANCE"


class Pattern(BaseModel):
    """Chart pattern detected over a trailing window."""

    model_config = ConfigDict(frozen=True)

    type: str
    start_timestamp: datetime
    end_timestamp: datetime
    confidence: float = Field(..., ge=0, le=1)
    price_target: float
    description: str


class PatternReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    period: Period
    patterns: tuple[Pattern, ...]
    implications: tuple[str, ...]


class Level(BaseModel):
    """Horizontal price level found by touch clustering."""

    model_config = ConfigDict(frozen=True)

    price: float
    kind: LevelKind
    strength: float = Field(..., ge=0, le=1)
    touch_count: int = Field(..., ge=1)
    last_tested_timestamp: datetime


class LevelReport(BaseModel):
    """
    Support/resistance levels with the nearest level on each side.

    risk_reward = (nearest_resistance - price) / (price - nearest_support),
    None when either side is missing.
    """

    model_config = ConfigDict(frozen=True)

    symbol: str
    period: Period
    current_price: float
    levels: tuple[Level, ...]
    nearest_support: Optional[Level] = None
    nearest_resistance: Optional[Level] = None
    risk_reward: Optional[float] = None


class PatternRequest(BaseModel):
    """Bar series plus the pattern keys to look for (None means all)."""

    model_config = ConfigDict(frozen=True)

    series: HistoricalSeries
    names: Optional[tuple[str, ...]] = None
