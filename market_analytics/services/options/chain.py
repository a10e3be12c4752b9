"""
Options Chain Synthesis

No real options feed is wired in, so chains and unusual-activity scans are
synthesized around the real underlying price. Prices come from an
intrinsic + time-value heuristic, Greeks from Black-Scholes, and only
volume / open interest draw from the injected random generator.

Chain aggregates (put/call ratio, max pain, unusual activity) are plain
functions of the contracts and work on any chain.
"""

import calendar
import math
import random
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

from market_analytics.schemas.options import (
    ActivityType,
    FlowSentiment,
    Moneyness,
    OptionContract,
    OptionKind,
    UnusualActivity,
    UnusualContract,
)
from market_analytics.services.options.pricing import black_scholes


WEEKLY_EXPIRATIONS = 4
MONTHLY_EXPIRATIONS = 6

# Strike range around the underlying, as a fraction of price
STRIKE_RANGE = {
    Moneyness.ATM: 0.05,
    Moneyness.ITM: 0.2,
    Moneyness.OTM: 0.2,
    Moneyness.ALL: 0.3,
}

UNUSUAL_VOLUME_MULTIPLE = 2
UNUSUAL_ACTIVITY_LIMIT = 5
BLOCK_TRADE_VOLUME = 5000


# =============================================================================
# CALENDAR & STRIKES
# =============================================================================


def _add_months(day: date, months: int) -> date:
    """Same day-of-month `months` later, clamped to the month's last day."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def expiration_dates(today: date) -> list[date]:
    """Four weekly expirations, then six monthly ones."""
    weekly = [today + timedelta(days=7 * (i + 1)) for i in range(WEEKLY_EXPIRATIONS)]
    monthly = [_add_months(today, i) for i in range(1, MONTHLY_EXPIRATIONS + 1)]
    return sorted(set(weekly + monthly))


def strike_interval(price: float) -> float:
    if price > 100:
        return 5.0
    if price > 50:
        return 2.5
    return 1.0


def generate_strikes(price: float, moneyness: Moneyness = Moneyness.ALL) -> list[float]:
    """
    Strike ladder on the interval grid around the underlying.

    ITM/OTM are judged from the call side (below / above the underlying).
    """
    interval = strike_interval(price)
    span = STRIKE_RANGE[moneyness]
    first = math.ceil(round(price * (1 - span) / interval, 6))
    last = math.floor(round(price * (1 + span) / interval, 6))

    strikes = []
    for step in range(max(first, 1), last + 1):
        strike = round(step * interval, 2)
        if (
            moneyness == Moneyness.ALL
            or (moneyness == Moneyness.ATM and abs(strike - price) / price < 0.05)
            or (moneyness == Moneyness.ITM and strike < price)
            or (moneyness == Moneyness.OTM and strike > price)
        ):
            strikes.append(strike)
    return strikes


def contract_moneyness(kind: OptionKind, underlying: float, strike: float) -> float:
    """Positive when in the money."""
    if kind == OptionKind.CALL:
        return (underlying - strike) / underlying
    return (strike - underlying) / underlying


# =============================================================================
# CONTRACT SYNTHESIS
# =============================================================================


def synthesize_contract(
    symbol: str,
    underlying: float,
    strike: float,
    expiration: date,
    kind: OptionKind,
    days_to_expiration: int,
    rate: float,
    volatility: float,
    rng: random.Random,
) -> OptionContract:
    """One synthetic contract priced off the underlying."""
    m = contract_moneyness(kind, underlying, strike)
    intrinsic = max(0.0, underlying - strike if kind == OptionKind.CALL else strike - underlying)
    time_value = max(0.5, days_to_expiration / 365 * 5) * math.exp(-abs(m) * 2)
    last = intrinsic + time_value
    spread = 0.05 + abs(m) * 0.1

    greeks = black_scholes(
        underlying, strike, days_to_expiration / 365, rate, volatility, kind
    )

    return OptionContract(
        underlying_symbol=symbol,
        strike=strike,
        expiration=expiration,
        kind=kind,
        bid=round(max(0.0, last - spread), 4),
        ask=round(last + spread, 4),
        last=round(last, 4),
        volume=int(rng.random() * 5000 * math.exp(-abs(m) * 2)),
        open_interest=int(rng.random() * 10000 * math.exp(-abs(m))),
        implied_volatility=volatility,
        delta=greeks.delta,
        gamma=greeks.gamma,
        theta=greeks.theta,
        vega=greeks.vega,
        rho=greeks.rho,
    )


# =============================================================================
# CHAIN AGGREGATES
# =============================================================================


def put_call_ratio(contracts: Iterable[OptionContract]) -> Optional[float]:
    """Put volume / call volume; None when no call volume traded."""
    put_volume = call_volume = 0
    for c in contracts:
        if c.kind == OptionKind.PUT:
            put_volume += c.volume
        else:
            call_volume += c.volume
    if call_volume == 0:
        return None
    return put_volume / call_volume


def max_pain(contracts: Sequence[OptionContract]) -> Optional[float]:
    """
    Strike minimizing the open-interest-weighted intrinsic value paid to
    holders at expiration. Ties resolve to the lowest strike.
    """
    if not contracts:
        return None

    best_strike, best_loss = None, math.inf
    for candidate in sorted({c.strike for c in contracts}):
        loss = 0.0
        for c in contracts:
            if c.kind == OptionKind.CALL and candidate > c.strike:
                loss += (candidate - c.strike) * c.open_interest
            elif c.kind == OptionKind.PUT and candidate < c.strike:
                loss += (c.strike - candidate) * c.open_interest
        if loss < best_loss:
            best_strike, best_loss = candidate, loss
    return best_strike


def find_unusual_activity(contracts: Iterable[OptionContract]) -> tuple[UnusualActivity, ...]:
    """Contracts trading more than twice their open interest, top 5 by volume."""
    flagged = [c for c in contracts if c.volume > c.open_interest * UNUSUAL_VOLUME_MULTIPLE]
    flagged.sort(key=lambda c: c.volume, reverse=True)
    return tuple(
        UnusualActivity(
            strike=c.strike,
            kind=c.kind,
            volume=c.volume,
            open_interest=c.open_interest,
            ratio=round(c.volume / max(1, c.open_interest), 2),
        )
        for c in flagged[:UNUSUAL_ACTIVITY_LIMIT]
    )


# =============================================================================
# UNUSUAL FLOW SCAN
# =============================================================================


def synthesize_unusual_contracts(
    symbol: str,
    underlying: float,
    min_volume_ratio: float,
    min_premium: float,
    today: date,
    rng: random.Random,
) -> list[UnusualContract]:
    """
    Two to five synthetic high-volume contracts around the underlying,
    keeping those that clear both the premium and volume/OI thresholds.
    """
    contracts = []
    for _ in range(rng.randint(2, 5)):
        kind = OptionKind.CALL if rng.random() > 0.5 else OptionKind.PUT
        strike = round(underlying * (1 + (rng.random() - 0.5) * 0.3))
        volume = int(min_volume_ratio * 1000 + rng.random() * 10000)
        open_interest = int(volume / (min_volume_ratio + rng.random()))
        price = rng.random() * 10 + 1
        premium = volume * price * 100
        expiration = today + timedelta(days=rng.randint(1, 60))

        ratio = volume / max(1, open_interest)
        if premium < min_premium or ratio < min_volume_ratio:
            continue

        contracts.append(
            UnusualContract(
                symbol=symbol,
                strike=max(strike, 1),
                expiration=expiration,
                kind=kind,
                volume=volume,
                open_interest=open_interest,
                volume_oi_ratio=round(ratio, 4),
                price=round(price, 2),
                premium=round(premium, 2),
                sentiment=FlowSentiment.BULLISH if kind == OptionKind.CALL else FlowSentiment.BEARISH,
                activity_type=(
                    ActivityType.BLOCK_TRADE if volume > BLOCK_TRADE_VOLUME else ActivityType.HIGH_VOLUME
                ),
            )
        )
    return contracts
