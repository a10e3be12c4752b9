"""
Black-Scholes Pricing

Closed-form European option prices and Greeks. Deterministic: nothing in
this module draws random numbers.

Reporting units:
- theta per calendar day (annual theta / 365)
- vega per 1 volatility point (/ 100)
- rho per 1% change in the risk-free rate (/ 100)
"""

import math
from dataclasses import dataclass
from datetime import date, datetime
from typing import Union

from market_analytics.schemas.options import OptionKind
from market_analytics.services.base import InvalidParameterError

SERVICE_NAME = "OptionsService"

# Abramowitz & Stegun 7.1.26, |error| <= 7.5e-8
_A1 = 0.254829592
_A2 = -0.284496736
_A3 = 1.421413741
_A4 = -1.453152027
_A5 = 1.061405429
_P = 0.3275911


def normal_cdf(x: float) -> float:
    """Standard normal CDF. Symmetric: normal_cdf(x) + normal_cdf(-x) == 1."""
    sign = -1.0 if x < 0 else 1.0
    z = abs(x) / math.sqrt(2.0)

    t = 1.0 / (1.0 + _P * z)
    y = 1.0 - ((((_A5 * t + _A4) * t + _A3) * t + _A2) * t + _A1) * t * math.exp(-z * z)

    return 0.5 * (1.0 + sign * y)


def normal_pdf(x: float) -> float:
    return math.exp(-0.5 * x * x) / math.sqrt(2.0 * math.pi)


@dataclass(frozen=True)
class BlackScholesResult:
    price: float
    delta: float
    gamma: float
    theta: float
    vega: float
    rho: float


def parse_kind(kind: Union[str, OptionKind]) -> OptionKind:
    raw = kind.value if isinstance(kind, OptionKind) else str(kind or "")
    try:
        return OptionKind(raw.strip().upper())
    except ValueError:
        raise InvalidParameterError(SERVICE_NAME, f"Option kind must be call or put, got '{kind}'")


def validate_strike(strike: float) -> float:
    if isinstance(strike, bool) or not isinstance(strike, (int, float)) or not math.isfinite(strike):
        raise InvalidParameterError(SERVICE_NAME, f"Strike must be a number, got {strike!r}")
    if strike <= 0:
        raise InvalidParameterError(SERVICE_NAME, f"Strike must be positive, got {strike}")
    return float(strike)


def black_scholes(
    spot: float,
    strike: float,
    years: float,
    rate: float,
    volatility: float,
    kind: OptionKind,
) -> BlackScholesResult:
    """
    Price a European option.

    d1 = (ln(S/K) + (r + sigma^2 / 2) * T) / (sigma * sqrt(T))
    d2 = d1 - sigma * sqrt(T)
    """
    if spot <= 0 or strike <= 0:
        raise InvalidParameterError(SERVICE_NAME, "Spot and strike must be positive")
    if years <= 0:
        raise InvalidParameterError(SERVICE_NAME, "Time to expiration must be positive")
    if volatility <= 0:
        raise InvalidParameterError(SERVICE_NAME, "Volatility must be positive")

    sqrt_t = math.sqrt(years)
    d1 = (math.log(spot / strike) + (rate + volatility**2 / 2) * years) / (volatility * sqrt_t)
    d2 = d1 - volatility * sqrt_t
    discount = math.exp(-rate * years)
    pdf_d1 = normal_pdf(d1)

    gamma = pdf_d1 / (spot * volatility * sqrt_t)
    vega = spot * pdf_d1 * sqrt_t / 100
    decay = -(spot * pdf_d1 * volatility) / (2 * sqrt_t)

    if kind == OptionKind.CALL:
        price = spot * normal_cdf(d1) - strike * discount * normal_cdf(d2)
        delta = normal_cdf(d1)
        theta = decay - rate * strike * discount * normal_cdf(d2)
        rho = strike * years * discount * normal_cdf(d2) / 100
    else:
        price = strike * discount * normal_cdf(-d2) - spot * normal_cdf(-d1)
        delta = normal_cdf(d1) - 1
        theta = decay + rate * strike * discount * normal_cdf(-d2)
        rho = -strike * years * discount * normal_cdf(-d2) / 100

    return BlackScholesResult(
        price=max(price, 0.0),
        delta=delta,
        gamma=gamma,
        theta=theta / 365,
        vega=vega,
        rho=rho,
    )


# =============================================================================
# DATES
# =============================================================================


def parse_expiration(value: Union[str, date]) -> date:
    """Accept a date or an ISO 'YYYY-MM-DD' string."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise InvalidParameterError(
            SERVICE_NAME, f"Malformed expiration '{value}', expected YYYY-MM-DD"
        )


def days_to_expiration(expiration: date, today: date) -> int:
    """Calendar days until expiration; must be at least 1."""
    days = (expiration - today).days
    if days < 1:
        raise InvalidParameterError(
            SERVICE_NAME, f"Expiration {expiration.isoformat()} is not in the future"
        )
    return days


# =============================================================================
# INTERPRETATION
# =============================================================================


def interpret_greeks(delta: float, gamma: float, theta: float, vega: float) -> list[str]:
    """Plain-language notes on notable Greeks (theta is the daily figure)."""
    notes: list[str] = []

    if abs(delta) > 0.7:
        notes.append(f"High delta ({delta:.2f}): Option moves strongly with stock price")
    elif abs(delta) < 0.3:
        notes.append(f"Low delta ({delta:.2f}): Option is less sensitive to stock price")

    if gamma > 0.05:
        notes.append("High gamma: Delta will change rapidly as stock moves")

    if theta < -0.1:
        notes.append(f"High theta decay: Losing {abs(theta):.2f} per day to time decay")

    if vega > 0.2:
        notes.append("High vega: Very sensitive to implied volatility changes")

    return notes
