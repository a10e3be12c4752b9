"""
Indicator Engine Service Implementation

Calculates the requested technical indicators from OHLCV data.
Pure Python/NumPy calculations; indicators are computed independently.
"""

import logging
from typing import Iterable

from market_analytics.schemas.indicators import (
    IndicatorReport,
    IndicatorRequest,
    IndicatorResult,
)
from market_analytics.schemas.market import HistoricalSeries
from market_analytics.services.base import InsufficientDataError
from market_analytics.services.indicators.catalogue import (
    SERVICE_NAME,
    OHLCVData,
    aggregate_recommendation,
    resolve_indicators,
)
from market_analytics.services.indicators.interface import IndicatorServiceInterface

logger = logging.getLogger(__name__)


class IndicatorService(IndicatorServiceInterface):
    """
    Indicator Engine Service.

    All calculations are deterministic and reproducible.
    """

    @property
    def name(self) -> str:
        return SERVICE_NAME

    async def execute(self, input_data: IndicatorRequest) -> IndicatorReport:
        return self.compute(input_data.series, input_data.names)

    def compute(self, series: HistoricalSeries, names: Iterable[str]) -> IndicatorReport:
        specs = resolve_indicators(names)
        available = len(series.bars)

        # Fail fast on the most demanding indicator
        required = max(specs, key=lambda s: s.min_bars)
        if available < required.min_bars:
            raise InsufficientDataError(
                SERVICE_NAME,
                f"{required.name} cannot be computed for {series.symbol}",
                required=required.min_bars,
                available=available,
            )

        data = OHLCVData.from_bars(series.bars)
        timestamp = series.bars[-1].timestamp

        results: dict[str, IndicatorResult] = {}
        for spec in specs:
            value, signal = spec.evaluate(data)
            results[spec.name] = IndicatorResult(
                name=spec.name, value=value, signal=signal, timestamp=timestamp
            )

        signals = {name: result.signal for name, result in results.items()}
        recommendation = aggregate_recommendation(signals.values())

        logger.info(
            f"Computed {len(results)} indicators for {series.symbol} "
            f"({available} bars): {recommendation.label.value}"
        )

        return IndicatorReport(
            symbol=series.symbol,
            period=series.period,
            indicators=results,
            signals=signals,
            recommendation=recommendation,
        )
