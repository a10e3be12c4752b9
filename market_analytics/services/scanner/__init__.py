"""
Pattern & Level Detector

Scans a bar series for named chart patterns and support/resistance levels.
"""

from market_analytics.services.scanner.levels import find_levels
from market_analytics.services.scanner.patterns import (
    MIN_CONFIDENCE,
    PATTERN_CATALOGUE,
)
from market_analytics.services.scanner.service import PatternService, resolve_patterns

__all__ = [
    "find_levels",
    "MIN_CONFIDENCE",
    "PATTERN_CATALOGUE",
    "PatternService",
    "resolve_patterns",
]
