"""
Market Analytics Schema Contracts

This module defines the value records exchanged between components.
These are the authoritative interfaces - all modules must conform to these schemas.
"""

from market_analytics.schemas.market import (
    Bar,
    HistoricalSeries,
    Interval,
    Period,
    Quote,
    SeriesRequest,
    SeriesSummary,
)
from market_analytics.schemas.indicators import (
    IndicatorReport,
    IndicatorRequest,
    IndicatorResult,
    Recommendation,
    RecommendationLabel,
    SignalType,
)
from market_analytics.schemas.patterns import (
    Level,
    LevelKind,
    LevelReport,
    Pattern,
    PatternReport,
    PatternRequest,
)
from market_analytics.schemas.options import (
    ActivityType,
    ChainSide,
    ChainSummary,
    FlowSentiment,
    Greeks,
    Moneyness,
    OptionContract,
    OptionKind,
    OptionPricing,
    OptionPricingRequest,
    OptionsChain,
    UnusualActivity,
    UnusualContract,
    UnusualScan,
)

__all__ = [
    # Market data
    "Bar",
    "HistoricalSeries",
    "Interval",
    "Period",
    "Quote",
    "SeriesRequest",
    "SeriesSummary",
    # Indicators
    "IndicatorReport",
    "IndicatorRequest",
    "IndicatorResult",
    "Recommendation",
    "RecommendationLabel",
    "SignalType",
    # Patterns & levels
    "Level",
    "LevelKind",
    "LevelReport",
    "Pattern",
    "PatternReport",
    "PatternRequest",
    # Options
    "ActivityType",
    "ChainSide",
    "ChainSummary",
    "FlowSentiment",
    "Greeks",
    "Moneyness",
    "OptionContract",
    "OptionKind",
    "OptionPricing",
    "OptionPricingRequest",
    "OptionsChain",
    "UnusualActivity",
    "UnusualContract",
    "UnusualScan",
]
