"""
Provider selection.

Exactly one backend is built from settings at startup; every call goes to
it and there is no failover between backends.
"""

import logging
from typing import Optional

from market_analytics.core.config import Settings, get_settings
from market_analytics.services.base import InvalidParameterError
from market_analytics.services.data_ingestion.alpaca_adapter import AlpacaProvider
from market_analytics.services.data_ingestion.alpha_vantage_adapter import (
    AlphaVantageProvider,
)
from market_analytics.services.data_ingestion.interface import MarketDataProvider
from market_analytics.services.data_ingestion.yahoo_adapter import YahooProvider

logger = logging.getLogger(__name__)


def create_provider(settings: Optional[Settings] = None) -> MarketDataProvider:
    """Build the backend named by settings.data_provider."""
    settings = settings or get_settings()
    backend = settings.data_provider

    if backend == "alpha_vantage":
        provider = AlphaVantageProvider(
            api_key=settings.alpha_vantage_api_key,
            base_url=settings.alpha_vantage_base_url,
            timeout_seconds=settings.provider_timeout_seconds,
            retry_after_seconds=settings.rate_limit_backoff_seconds,
        )
    elif backend == "alpaca":
        provider = AlpacaProvider(
            api_key_id=settings.alpaca_api_key_id,
            api_secret_key=settings.alpaca_api_secret_key,
            data_url=settings.alpaca_data_url,
            feed=settings.alpaca_feed,
            timeout_seconds=settings.provider_timeout_seconds,
            retry_after_seconds=settings.rate_limit_backoff_seconds,
        )
    elif backend == "yahoo":
        provider = YahooProvider(
            timeout_seconds=settings.provider_timeout_seconds,
            retry_after_seconds=settings.rate_limit_backoff_seconds,
        )
    else:
        raise InvalidParameterError("MarketData", f"Unknown data provider '{backend}'")

    logger.info(f"Market data provider: {provider.name}")
    return provider
