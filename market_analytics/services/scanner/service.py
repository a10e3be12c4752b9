"""
Pattern & Level Service

Runs the chart-pattern detectors and the support/resistance clustering
over a historical series.
"""

import logging
from typing import Iterable, Optional

import numpy as np

from market_analytics.schemas.market import HistoricalSeries
from market_analytics.schemas.patterns import (
    LevelReport,
    Pattern,
    PatternReport,
    PatternRequest,
)
from market_analytics.services.base import (
    BaseService,
    InsufficientDataError,
    InvalidParameterError,
)
from market_analytics.services.scanner.levels import (
    DEFAULT_TOLERANCE,
    SERVICE_NAME,
    find_levels,
)
from market_analytics.services.scanner.patterns import (
    MIN_CONFIDENCE,
    PATTERN_CATALOGUE,
    PatternSpec,
    PatternWindow,
)

logger = logging.getLogger(__name__)


def resolve_patterns(names: Optional[Iterable[str]]) -> list[PatternSpec]:
    """Pattern keys -> specs. None or empty means the whole catalogue."""
    if isinstance(names, str):
        names = [names]
    names = list(names or [])
    if not names:
        return list(PATTERN_CATALOGUE.values())

    specs: dict[str, PatternSpec] = {}
    for name in names:
        key = (name or "").strip().lower()
        if key not in PATTERN_CATALOGUE:
            supported = ", ".join(PATTERN_CATALOGUE)
            raise InvalidParameterError(
                SERVICE_NAME, f"Unknown pattern '{name}'. Supported: {supported}"
            )
        specs.setdefault(key, PATTERN_CATALOGUE[key])
    return list(specs.values())


def pattern_implications(patterns: Iterable[Pattern], current_price: float) -> tuple[str, ...]:
    lines = []
    for p in patterns:
        direction = "bullish" if p.price_target > current_price else "bearish"
        lines.append(f"{p.type}: {direction} pattern with {p.confidence * 100:.0f}% confidence")
    return tuple(lines)


class PatternService(BaseService[PatternRequest, PatternReport]):
    """
    Pattern & Level Detector.

    Usage:
        service = PatternService()
        report = service.detect(series, ["double_bottom", "triangle"])
        levels = service.find_levels(series, sensitivity=5)
    """

    @property
    def name(self) -> str:
        return SERVICE_NAME

    async def execute(self, input_data: PatternRequest) -> PatternReport:
        return self.detect(input_data.series, input_data.names)

    def detect(
        self, series: HistoricalSeries, names: Optional[Iterable[str]] = None
    ) -> PatternReport:
        specs = resolve_patterns(names)
        bars = series.bars

        longest = max(specs, key=lambda s: s.window)
        if len(bars) < longest.window:
            raise InsufficientDataError(
                SERVICE_NAME,
                f"Pattern '{longest.key}' cannot be evaluated for {series.symbol}",
                required=longest.window,
                available=len(bars),
            )

        highs = np.array([b.high for b in bars], dtype=float)
        lows = np.array([b.low for b in bars], dtype=float)
        closes = np.array([b.close for b in bars], dtype=float)
        current_price = float(closes[-1])

        patterns = []
        for spec in specs:
            window = PatternWindow(
                highs=highs[-spec.window :],
                lows=lows[-spec.window :],
                closes=closes[-spec.window :],
            )
            detection = spec.detect(window)
            if detection is None or detection.confidence < MIN_CONFIDENCE:
                continue

            patterns.append(
                Pattern(
                    type=detection.display_name,
                    start_timestamp=bars[-spec.window].timestamp,
                    end_timestamp=bars[-1].timestamp,
                    confidence=round(detection.confidence, 4),
                    price_target=round(current_price * detection.target_multiplier, 4),
                    description=detection.description,
                )
            )

        logger.info(
            f"Pattern scan for {series.symbol}: {len(patterns)}/{len(specs)} patterns detected"
        )

        return PatternReport(
            symbol=series.symbol,
            period=series.period,
            patterns=tuple(patterns),
            implications=pattern_implications(patterns, current_price),
        )

    def find_levels(
        self,
        series: HistoricalSeries,
        sensitivity: int = 5,
        tolerance: float = DEFAULT_TOLERANCE,
    ) -> LevelReport:
        analysis = find_levels(series.bars, sensitivity, tolerance)
        current_price = series.bars[-1].close

        logger.info(
            f"Found {len(analysis.levels)} support/resistance levels for {series.symbol} "
            f"(sensitivity={sensitivity})"
        )

        return LevelReport(
            symbol=series.symbol,
            period=series.period,
            current_price=current_price,
            levels=analysis.levels,
            nearest_support=analysis.nearest_support,
            nearest_resistance=analysis.nearest_resistance,
            risk_reward=analysis.risk_reward,
        )
