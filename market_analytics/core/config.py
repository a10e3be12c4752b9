"""
Application Configuration

All settings loaded from environment variables (or a local .env file).
Provider selection and cache TTL are fixed at startup.
"""

from functools import lru_cache
from typing import Literal, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    app_name: str = "Market Analytics Core"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    # Data provider (exactly one backend serves every call)
    data_provider: Literal["alpha_vantage", "alpaca", "yahoo"] = "yahoo"
    provider_timeout_seconds: float = 10.0
    rate_limit_backoff_seconds: int = 60

    # Alpha Vantage
    alpha_vantage_api_key: Optional[str] = None
    alpha_vantage_base_url: str = "https://www.alphavantage.co/query"

    # Alpaca market data
    alpaca_api_key_id: Optional[str] = None
    alpaca_api_secret_key: Optional[str] = None
    alpaca_data_url: str = "https://data.alpaca.markets/v2"
    alpaca_feed: str = "sip"

    # Cache
    cache_ttl_seconds: int = 300
    cache_max_entries: Optional[int] = None

    # Options model assumptions (flat volatility, fixed rate)
    risk_free_rate: float = 0.05
    default_volatility: float = 0.25
    options_synthesis_seed: Optional[int] = None
    unusual_scan_symbols: list[str] = ["AAPL", "TSLA", "NVDA", "SPY", "META"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
