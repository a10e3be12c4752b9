import math
import random
from datetime import date, timedelta

import pytest

from market_analytics.schemas.options import (
    ActivityType,
    ChainSide,
    FlowSentiment,
    Moneyness,
    OptionContract,
    OptionKind,
    OptionPricingRequest,
)
from market_analytics.services.base import InvalidParameterError
from market_analytics.services.options import OptionsService
from market_analytics.services.options.chain import (
    expiration_dates,
    find_unusual_activity,
    generate_strikes,
    max_pain,
    put_call_ratio,
    strike_interval,
)
from market_analytics.services.options.pricing import (
    black_scholes,
    days_to_expiration,
    interpret_greeks,
    normal_cdf,
    parse_expiration,
    parse_kind,
)

TODAY = date(2024, 1, 15)


def reference_call(spot, strike, years, rate, vol):
    """Black-Scholes call using math.erf for the normal CDF."""
    cdf = lambda x: 0.5 * (1 + math.erf(x / math.sqrt(2)))
    d1 = (math.log(spot / strike) + (rate + vol**2 / 2) * years) / (vol * math.sqrt(years))
    d2 = d1 - vol * math.sqrt(years)
    return spot * cdf(d1) - strike * math.exp(-rate * years) * cdf(d2)


def contract(strike, kind, open_interest, volume=0):
    return OptionContract(
        underlying_symbol="TEST",
        strike=strike,
        expiration=TODAY + timedelta(days=30),
        kind=kind,
        bid=1.0,
        ask=1.2,
        last=1.1,
        volume=volume,
        open_interest=open_interest,
        implied_volatility=0.25,
        delta=0.5 if kind == OptionKind.CALL else -0.5,
        gamma=0.01,
        theta=-0.05,
        vega=0.1,
        rho=0.01,
    )


@pytest.fixture
def service():
    return OptionsService(rng=random.Random(42), today=lambda: TODAY)


# ============================================================================
# Black-Scholes
# ============================================================================


class TestBlackScholes:
    def test_normal_cdf(self):
        assert normal_cdf(0) == pytest.approx(0.5)
        assert normal_cdf(1.96) == pytest.approx(0.975, abs=1e-4)
        assert normal_cdf(0.7) + normal_cdf(-0.7) == pytest.approx(1.0, abs=1e-15)

    def test_atm_call_matches_reference(self):
        result = black_scholes(150, 150, 30 / 365, 0.05, 0.25, OptionKind.CALL)
        assert result.price == pytest.approx(reference_call(150, 150, 30 / 365, 0.05, 0.25), abs=1e-3)
        assert result.price == pytest.approx(4.59, abs=0.02)

    def test_put_call_parity(self):
        years, rate = 45 / 365, 0.05
        call = black_scholes(100, 95, years, rate, 0.3, OptionKind.CALL)
        put = black_scholes(100, 95, years, rate, 0.3, OptionKind.PUT)
        assert call.price - put.price == pytest.approx(100 - 95 * math.exp(-rate * years), abs=1e-9)
        assert call.delta - put.delta == pytest.approx(1.0)
        assert call.gamma == put.gamma
        assert call.vega == put.vega

    def test_greek_units(self):
        call = black_scholes(150, 150, 30 / 365, 0.05, 0.25, OptionKind.CALL)
        assert 0 < call.delta < 1
        assert call.theta < 0
        assert call.theta > -1
        assert 0 < call.vega < 1
        assert call.rho > 0

    @pytest.mark.parametrize(
        "spot,strike,years,volatility",
        [
            (100, 100, 30 / 365, 0.25),
            (100, 60, 5 / 365, 0.15),
            (100, 160, 5 / 365, 0.15),
            (40, 55, 1.0, 0.6),
            (250, 200, 2.0, 0.9),
            (10, 10.5, 90 / 365, 0.05),
        ],
    )
    def test_delta_bounds(self, spot, strike, years, volatility):
        call = black_scholes(spot, strike, years, 0.05, volatility, OptionKind.CALL)
        put = black_scholes(spot, strike, years, 0.05, volatility, OptionKind.PUT)
        assert 0 <= call.delta <= 1
        assert -1 <= put.delta <= 0
        assert call.gamma >= 0
        assert call.vega >= 0

    def test_deep_otm_price_not_negative(self):
        result = black_scholes(50, 500, 5 / 365, 0.05, 0.2, OptionKind.CALL)
        assert result.price >= 0

    @pytest.mark.parametrize(
        "args",
        [
            (0, 100, 0.1, 0.05, 0.2),
            (100, 0, 0.1, 0.05, 0.2),
            (100, 100, 0, 0.05, 0.2),
            (100, 100, 0.1, 0.05, 0),
        ],
    )
    def test_invalid_inputs(self, args):
        with pytest.raises(InvalidParameterError):
            black_scholes(*args, OptionKind.CALL)


class TestPricingInputs:
    def test_parse_kind(self):
        assert parse_kind("call") == OptionKind.CALL
        assert parse_kind(" PUT ") == OptionKind.PUT
        with pytest.raises(InvalidParameterError):
            parse_kind("straddle")

    def test_parse_expiration(self):
        assert parse_expiration("2024-02-16") == date(2024, 2, 16)
        with pytest.raises(InvalidParameterError):
            parse_expiration("16/02/2024")

    def test_days_to_expiration(self):
        assert days_to_expiration(TODAY + timedelta(days=1), TODAY) == 1
        with pytest.raises(InvalidParameterError):
            days_to_expiration(TODAY, TODAY)

    def test_interpretation(self):
        notes = interpret_greeks(delta=0.85, gamma=0.06, theta=-0.25, vega=0.3)
        assert len(notes) == 4
        assert notes[0].startswith("High delta (0.85)")
        assert interpret_greeks(delta=0.5, gamma=0.01, theta=-0.01, vega=0.1) == []


class TestPriceOption:
    def test_price_option(self, service):
        pricing = service.price_option("aapl", 150.0, 150.0, TODAY + timedelta(days=30), "call")

        assert pricing.symbol == "AAPL"
        assert pricing.days_to_expiration == 30
        assert pricing.theoretical_price == pytest.approx(4.59, abs=0.02)
        assert pricing.volatility == 0.25
        assert pricing.risk_free_rate == 0.05

    def test_past_expiration(self, service):
        with pytest.raises(InvalidParameterError):
            service.price_option("AAPL", 150.0, 150.0, "2024-01-10", "put")

    def test_non_positive_strike(self, service):
        with pytest.raises(InvalidParameterError):
            service.price_option("AAPL", 150.0, 0, "2024-03-15", "put")

    @pytest.mark.asyncio
    async def test_execute(self, service):
        request = OptionPricingRequest(
            symbol="AAPL",
            underlying_price=150.0,
            strike=140.0,
            expiration=date(2024, 3, 15),
            kind=OptionKind.PUT,
        )
        pricing = await service.execute(request)
        assert pricing.greeks.delta < 0


# ============================================================================
# Chain
# ============================================================================


class TestChainBuilding:
    def test_expiration_calendar(self):
        dates = expiration_dates(TODAY)
        assert len(dates) == 10
        assert dates[0] == date(2024, 1, 22)
        assert dates == sorted(dates)
        assert date(2024, 7, 15) in dates

    def test_month_end_clamping(self):
        assert date(2024, 2, 29) in expiration_dates(date(2024, 1, 31))

    @pytest.mark.parametrize("price,interval", [(30, 1.0), (75, 2.5), (150, 5.0)])
    def test_strike_interval(self, price, interval):
        assert strike_interval(price) == interval

    def test_strike_ladder(self):
        strikes = generate_strikes(150.0)
        assert strikes[0] == 105.0
        assert strikes[-1] == 195.0
        assert all(b - a == 5.0 for a, b in zip(strikes, strikes[1:]))

    def test_moneyness_filters(self):
        assert generate_strikes(150.0, Moneyness.ATM) == [145.0, 150.0, 155.0]
        assert all(s < 150 for s in generate_strikes(150.0, Moneyness.ITM))
        assert all(s > 150 for s in generate_strikes(150.0, Moneyness.OTM))

    def test_chain_defaults_to_nearest_expiration(self, service):
        chain = service.build_chain("aapl", 150.0)

        assert chain.symbol == "AAPL"
        assert chain.expirations == (date(2024, 1, 22),)
        contracts = chain.chains["2024-01-22"]
        assert len(contracts) == 2 * len(generate_strikes(150.0))
        assert chain.summary.total_contracts == len(contracts)
        for c in contracts:
            assert 0 <= c.bid <= c.last <= c.ask
            assert c.implied_volatility == 0.25

    def test_chain_all_expirations(self, service):
        chain = service.build_chain("AAPL", 150.0, "all", ChainSide.CALL, Moneyness.ATM)
        assert len(chain.expirations) == 10
        assert set(chain.chains) == {d.isoformat() for d in chain.expirations}
        assert all(c.kind == OptionKind.CALL for group in chain.chains.values() for c in group)
        assert chain.summary.put_call_ratio == 0.0

    def test_chain_single_expiration(self, service):
        chain = service.build_chain("AAPL", 150.0, "2024-02-16", "put", "otm")
        assert chain.expirations == (date(2024, 2, 16),)
        assert chain.summary.put_call_ratio is None

    def test_chain_rejects_bad_input(self, service):
        with pytest.raises(InvalidParameterError):
            service.build_chain("AAPL", 150.0, "2023-12-01")
        with pytest.raises(InvalidParameterError):
            service.build_chain("AAPL", 150.0, side="straddle")
        with pytest.raises(InvalidParameterError):
            service.build_chain("AAPL", 150.0, moneyness="deep")

    def test_seeded_synthesis_is_reproducible(self):
        first = OptionsService(rng=random.Random(7), today=lambda: TODAY).build_chain("AAPL", 150.0)
        second = OptionsService(rng=random.Random(7), today=lambda: TODAY).build_chain("AAPL", 150.0)
        assert first == second


class TestChainAggregates:
    def test_max_pain(self):
        contracts = [
            contract(100, OptionKind.CALL, 50),
            contract(110, OptionKind.CALL, 1),
            contract(120, OptionKind.PUT, 100),
        ]
        assert max_pain(contracts) == 120

    def test_max_pain_ignores_order(self):
        contracts = [
            contract(100, OptionKind.CALL, 50),
            contract(110, OptionKind.CALL, 1),
            contract(120, OptionKind.PUT, 100),
            contract(105, OptionKind.PUT, 30),
        ]
        expected = max_pain(contracts)
        for seed in range(5):
            shuffled = contracts[:]
            random.Random(seed).shuffle(shuffled)
            assert max_pain(shuffled) == expected

    def test_max_pain_tie_goes_to_lowest_strike(self):
        contracts = [contract(100, OptionKind.CALL, 10), contract(110, OptionKind.PUT, 10)]
        assert max_pain(contracts) == 100

    def test_max_pain_empty(self):
        assert max_pain([]) is None

    def test_put_call_ratio(self):
        contracts = [
            contract(100, OptionKind.CALL, 10, volume=200),
            contract(100, OptionKind.PUT, 10, volume=50),
        ]
        assert put_call_ratio(contracts) == 0.25
        assert put_call_ratio([contract(100, OptionKind.PUT, 10, volume=50)]) is None

    def test_unusual_activity(self):
        contracts = [
            contract(100, OptionKind.CALL, 10, volume=21),
            contract(105, OptionKind.CALL, 10, volume=20),
            contract(110, OptionKind.PUT, 0, volume=5),
        ]
        flagged = find_unusual_activity(contracts)
        assert [a.strike for a in flagged] == [100, 110]
        assert flagged[0].ratio == 2.1
        assert flagged[1].ratio == 5.0


# ============================================================================
# Unusual activity scan
# ============================================================================


class TestUnusualScan:
    def test_scan(self, service):
        scan = service.scan_unusual({"AAPL": 150.0, "TSLA": 200.0}, min_volume_ratio=2.0)

        assert scan.total_found >= 4
        assert scan.bullish_flow + scan.bearish_flow == scan.total_found
        ratios = [c.volume_oi_ratio for c in scan.contracts]
        assert ratios == sorted(ratios, reverse=True)
        for c in scan.contracts:
            assert c.volume_oi_ratio >= 2.0
            assert c.premium >= 10000
            assert TODAY < c.expiration <= TODAY + timedelta(days=60)
            assert c.sentiment == (
                FlowSentiment.BULLISH if c.kind == OptionKind.CALL else FlowSentiment.BEARISH
            )
            assert c.activity_type == (
                ActivityType.BLOCK_TRADE if c.volume > 5000 else ActivityType.HIGH_VOLUME
            )

    def test_scan_result_limit(self, service):
        prices = {f"SYM{i}": 100.0 + i for i in range(15)}
        scan = service.scan_unusual(prices)
        assert len(scan.contracts) == min(20, scan.total_found)
        assert scan.total_found >= 30

    def test_nothing_found(self, service):
        scan = service.scan_unusual({"AAPL": 150.0}, min_premium=1e12)
        assert scan.total_found == 0
        assert scan.contracts == ()
        assert scan.avg_volume_ratio is None

    def test_invalid_thresholds(self, service):
        with pytest.raises(InvalidParameterError):
            service.scan_unusual({"AAPL": 150.0}, min_volume_ratio=0)
        with pytest.raises(InvalidParameterError):
            service.scan_unusual({"AAPL": 150.0}, min_premium=-1)
