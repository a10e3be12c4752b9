"""
Data Ingestion Service

CONTRACT:
    Input:  SeriesRequest / symbol
    Output: HistoricalSeries / Quote

RESPONSIBILITIES:
    - Fetch quotes and OHLCV series from ONE configured provider
      (Alpha Vantage, Alpaca or Yahoo Finance)
    - Normalize every response into Bar / Quote records
    - Classify upstream failures into the MarketDataError taxonomy
    - Serve repeated requests from the in-memory cache

No retries, no failover, no generated data.
"""

from market_analytics.services.data_ingestion.interface import (
    MarketDataProvider,
    MarketDataServiceInterface,
    parse_interval,
    parse_period,
    period_range,
)
from market_analytics.services.data_ingestion.alpha_vantage_adapter import (
    AlphaVantageProvider,
)
from market_analytics.services.data_ingestion.alpaca_adapter import AlpacaProvider
from market_analytics.services.data_ingestion.yahoo_adapter import YahooProvider
from market_analytics.services.data_ingestion.factory import create_provider
from market_analytics.services.data_ingestion.service import MarketDataService

__all__ = [
    "MarketDataProvider",
    "MarketDataServiceInterface",
    "parse_interval",
    "parse_period",
    "period_range",
    "AlphaVantageProvider",
    "AlpacaProvider",
    "YahooProvider",
    "create_provider",
    "MarketDataService",
]
