"""
Options Analytics Service

Prices single contracts, synthesizes chains with chain-level aggregates,
and runs the unusual-activity scan. Underlying prices are supplied by the
caller; this service never fetches market data itself.
"""

import logging
import random
from datetime import date
from typing import Callable, Mapping, Optional, Union

from market_analytics.schemas.options import (
    ChainSide,
    ChainSummary,
    Greeks,
    Moneyness,
    OptionContract,
    OptionKind,
    OptionPricing,
    OptionPricingRequest,
    OptionsChain,
    UnusualScan,
)
from market_analytics.services.base import BaseService, InvalidParameterError
from market_analytics.services.options.chain import (
    expiration_dates,
    find_unusual_activity,
    generate_strikes,
    max_pain,
    put_call_ratio,
    synthesize_contract,
    synthesize_unusual_contracts,
)
from market_analytics.services.options.pricing import (
    SERVICE_NAME,
    black_scholes,
    days_to_expiration,
    interpret_greeks,
    parse_expiration,
    parse_kind,
    validate_strike,
)

logger = logging.getLogger(__name__)

SCAN_RESULT_LIMIT = 20


def parse_side(value: Union[str, ChainSide]) -> ChainSide:
    raw = value.value if isinstance(value, ChainSide) else str(value or "")
    try:
        return ChainSide(raw.strip().lower())
    except ValueError:
        raise InvalidParameterError(SERVICE_NAME, f"Chain type must be call, put or both, got '{value}'")


def validate_scan_thresholds(min_volume_ratio: float, min_premium: float) -> None:
    if min_volume_ratio <= 0:
        raise InvalidParameterError(SERVICE_NAME, "min_volume_ratio must be positive")
    if min_premium < 0:
        raise InvalidParameterError(SERVICE_NAME, "min_premium must not be negative")


def parse_moneyness(value: Union[str, Moneyness]) -> Moneyness:
    raw = value.value if isinstance(value, Moneyness) else str(value or "")
    try:
        return Moneyness(raw.strip().lower())
    except ValueError:
        raise InvalidParameterError(
            SERVICE_NAME, f"Moneyness must be itm, atm, otm or all, got '{value}'"
        )


class OptionsService(BaseService[OptionPricingRequest, OptionPricing]):
    """
    Options Analytics Engine.

    Pricing is deterministic. Chain and scan synthesis draw volume / open
    interest from `rng`; pass a seeded random.Random for reproducible output.
    """

    def __init__(
        self,
        risk_free_rate: float = 0.05,
        volatility: float = 0.25,
        rng: Optional[random.Random] = None,
        today: Callable[[], date] = date.today,
    ):
        if volatility <= 0:
            raise InvalidParameterError(SERVICE_NAME, "Volatility must be positive")
        self._rate = risk_free_rate
        self._volatility = volatility
        self._rng = rng or random.Random()
        self._today = today

    @property
    def name(self) -> str:
        return SERVICE_NAME

    def days_until(self, expiration: Union[str, date]) -> int:
        """Days from today to expiration; InvalidParameter unless in the future."""
        return days_to_expiration(parse_expiration(expiration), self._today())

    async def execute(self, input_data: OptionPricingRequest) -> OptionPricing:
        return self.price_option(
            input_data.symbol,
            input_data.underlying_price,
            input_data.strike,
            input_data.expiration,
            input_data.kind,
        )

    # =========================================================================
    # PRICING
    # =========================================================================

    def price_option(
        self,
        symbol: str,
        underlying_price: float,
        strike: float,
        expiration: Union[str, date],
        kind: Union[str, OptionKind],
    ) -> OptionPricing:
        kind = parse_kind(kind)
        expiration = parse_expiration(expiration)
        strike = validate_strike(strike)
        days = self.days_until(expiration)

        result = black_scholes(
            underlying_price, strike, days / 365, self._rate, self._volatility, kind
        )

        return OptionPricing(
            symbol=symbol.upper(),
            strike=strike,
            expiration=expiration,
            kind=kind,
            underlying_price=underlying_price,
            days_to_expiration=days,
            risk_free_rate=self._rate,
            volatility=self._volatility,
            theoretical_price=result.price,
            greeks=Greeks(
                delta=result.delta,
                gamma=result.gamma,
                theta=result.theta,
                vega=result.vega,
                rho=result.rho,
            ),
            interpretation=tuple(
                interpret_greeks(result.delta, result.gamma, result.theta, result.vega)
            ),
        )

    # =========================================================================
    # CHAIN
    # =========================================================================

    def _select_expirations(self, expiration: Optional[Union[str, date]], today: date) -> list[date]:
        calendar_dates = expiration_dates(today)
        if expiration is None:
            return calendar_dates[:1]
        if isinstance(expiration, str) and expiration.strip().lower() == "all":
            return calendar_dates

        selected = parse_expiration(expiration)
        days_to_expiration(selected, today)
        return [selected]

    def build_chain(
        self,
        symbol: str,
        underlying_price: float,
        expiration: Optional[Union[str, date]] = None,
        side: Union[str, ChainSide] = ChainSide.BOTH,
        moneyness: Union[str, Moneyness] = Moneyness.ALL,
    ) -> OptionsChain:
        """
        Synthesize a chain around `underlying_price`.

        expiration: None -> nearest expiration, "all" -> the full calendar,
        otherwise a single YYYY-MM-DD date.
        """
        side = parse_side(side)
        moneyness = parse_moneyness(moneyness)
        if underlying_price <= 0:
            raise InvalidParameterError(SERVICE_NAME, "Underlying price must be positive")

        today = self._today()
        expirations = self._select_expirations(expiration, today)
        strikes = generate_strikes(underlying_price, moneyness)

        kinds = []
        if side in (ChainSide.CALL, ChainSide.BOTH):
            kinds.append(OptionKind.CALL)
        if side in (ChainSide.PUT, ChainSide.BOTH):
            kinds.append(OptionKind.PUT)

        chains: dict[str, tuple[OptionContract, ...]] = {}
        for exp in expirations:
            days = days_to_expiration(exp, today)
            chains[exp.isoformat()] = tuple(
                synthesize_contract(
                    symbol.upper(),
                    underlying_price,
                    strike,
                    exp,
                    kind,
                    days,
                    self._rate,
                    self._volatility,
                    self._rng,
                )
                for strike in strikes
                for kind in kinds
            )

        contracts = [c for group in chains.values() for c in group]
        summary = ChainSummary(
            total_contracts=len(contracts),
            total_volume=sum(c.volume for c in contracts),
            total_open_interest=sum(c.open_interest for c in contracts),
            put_call_ratio=put_call_ratio(contracts),
            max_pain=max_pain(contracts),
            unusual_activity=find_unusual_activity(contracts),
        )

        logger.info(
            f"Synthesized {len(contracts)} {symbol.upper()} contracts across "
            f"{len(expirations)} expirations around {underlying_price:.2f}"
        )

        return OptionsChain(
            symbol=symbol.upper(),
            underlying_price=underlying_price,
            expirations=tuple(expirations),
            chains=chains,
            summary=summary,
        )

    # =========================================================================
    # UNUSUAL ACTIVITY
    # =========================================================================

    def scan_unusual(
        self,
        underlying_prices: Mapping[str, float],
        min_volume_ratio: float = 2.0,
        min_premium: float = 10000,
    ) -> UnusualScan:
        """Scan the given symbols (symbol -> underlying price) for unusual flow."""
        validate_scan_thresholds(min_volume_ratio, min_premium)

        today = self._today()
        found = []
        for symbol, price in underlying_prices.items():
            found.extend(
                synthesize_unusual_contracts(
                    symbol.upper(), price, min_volume_ratio, min_premium, today, self._rng
                )
            )

        found.sort(key=lambda c: c.volume_oi_ratio, reverse=True)

        bullish = sum(1 for c in found if c.kind == OptionKind.CALL)
        logger.info(
            f"Unusual options scan over {len(underlying_prices)} symbols: {len(found)} contracts"
        )

        return UnusualScan(
            min_volume_ratio=min_volume_ratio,
            min_premium=min_premium,
            total_found=len(found),
            contracts=tuple(found[:SCAN_RESULT_LIMIT]),
            bullish_flow=bullish,
            bearish_flow=len(found) - bullish,
            total_premium=round(sum(c.premium for c in found), 2),
            avg_volume_ratio=(
                sum(c.volume_oi_ratio for c in found) / len(found) if found else None
            ),
        )
