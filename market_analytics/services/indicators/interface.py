"""
Indicator Engine Service Interface

Defines the contract for the indicator calculation layer.
"""

from abc import abstractmethod
from typing import Iterable

from market_analytics.services.base import BaseService
from market_analytics.schemas.market import HistoricalSeries
from market_analytics.schemas.indicators import IndicatorReport, IndicatorRequest


class IndicatorServiceInterface(BaseService[IndicatorRequest, IndicatorReport]):
    """
    Indicator Engine Service Contract.

    INPUT: IndicatorRequest
        - series: HistoricalSeries with OHLCV bars
        - names: indicator names from the catalogue

    OUTPUT: IndicatorReport
        - one IndicatorResult per distinct requested name
        - signal map and aggregate recommendation
    """

    @property
    def name(self) -> str:
        return "IndicatorService"

    @abstractmethod
    async def execute(self, input_data: IndicatorRequest) -> IndicatorReport:
        """Calculate the requested indicators over the series."""
        pass

    @abstractmethod
    def compute(self, series: HistoricalSeries, names: Iterable[str]) -> IndicatorReport:
        """
        Calculate indicators for a single series.

        Raises:
            InvalidParameterError: empty list or unknown name
            InsufficientDataError: series shorter than an indicator's minimum
        """
        pass
