"""
Options Analytics Engine

CONTRACT:
    Input:  underlying price + contract parameters
    Output: OptionPricing, OptionsChain, UnusualScan

RESPONSIBILITIES:
    - Black-Scholes price and Greeks (deterministic)
    - Chain synthesis across strikes and expirations
    - Chain aggregates: put/call ratio, max pain, unusual activity
    - Market-wide unusual flow scan
"""

from market_analytics.services.options.pricing import (
    BlackScholesResult,
    black_scholes,
    days_to_expiration,
    interpret_greeks,
    normal_cdf,
    normal_pdf,
)
from market_analytics.services.options.chain import (
    expiration_dates,
    find_unusual_activity,
    generate_strikes,
    max_pain,
    put_call_ratio,
)
from market_analytics.services.options.service import OptionsService

__all__ = [
    "BlackScholesResult",
    "black_scholes",
    "days_to_expiration",
    "interpret_greeks",
    "normal_cdf",
    "normal_pdf",
    "expiration_dates",
    "find_unusual_activity",
    "generate_strikes",
    "max_pain",
    "put_call_ratio",
    "OptionsService",
]
