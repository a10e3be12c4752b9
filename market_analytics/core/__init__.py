"""Configuration and logging setup."""

from market_analytics.core.config import Settings, get_settings
from market_analytics.core.logging import configure_logging

__all__ = ["Settings", "get_settings", "configure_logging"]
