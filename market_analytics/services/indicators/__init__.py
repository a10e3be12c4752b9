"""
Indicator Engine Service

CONTRACT:
    Input:  IndicatorRequest (HistoricalSeries + indicator names)
    Output: IndicatorReport

RESPONSIBILITIES:
    - Calculate catalogue indicators (RSI, MACD, BB, SMA/EMA, STOCH,
      ADX, ATR, OBV, VWAP)
    - Enforce each indicator's minimum series length
    - Derive a BUY/SELL/NEUTRAL signal per indicator
    - Aggregate signals into a recommendation

PURE PYTHON - Uses NumPy for calculations.
All math is deterministic and reproducible.
"""

from market_analytics.services.indicators.catalogue import (
    INDICATOR_CATALOGUE,
    IndicatorSpec,
    aggregate_recommendation,
    resolve_indicator,
    resolve_indicators,
)
from market_analytics.services.indicators.interface import IndicatorServiceInterface
from market_analytics.services.indicators.service import IndicatorService

__all__ = [
    "INDICATOR_CATALOGUE",
    "IndicatorSpec",
    "aggregate_recommendation",
    "resolve_indicator",
    "resolve_indicators",
    "IndicatorServiceInterface",
    "IndicatorService",
]
