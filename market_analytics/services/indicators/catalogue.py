"""
Indicator catalogue.

Maps indicator names to their minimum series length, calculation and
signal rule, and aggregates per-indicator signals into a recommendation.

Supported names (case-insensitive):
    RSI, MACD, BB, SMA, SMA<n>, EMA, EMA<n>, STOCH, ADX, ATR, OBV, VWAP
"""

import re
from dataclasses import dataclass
from typing import Callable, Iterable

import numpy as np

from market_analytics.schemas.indicators import (
    IndicatorValue,
    Recommendation,
    RecommendationLabel,
    SignalType,
)
from market_analytics.schemas.market import Bar
from market_analytics.services.base import InvalidParameterError
from market_analytics.services.indicators.calculations import (
    adx,
    atr,
    bollinger_bands,
    ema,
    get_last_valid,
    macd,
    obv,
    rsi,
    sma,
    stochastic,
    vwap,
)

SERVICE_NAME = "IndicatorService"

DEFAULT_MA_PERIOD = 20
MAX_MA_PERIOD = 500

_MA_TOKEN = re.compile(r"^(SMA|EMA)(\d+)?$")


@dataclass(frozen=True)
class OHLCVData:
    """OHLCV data arrays for calculations."""

    highs: np.ndarray
    lows: np.ndarray
    closes: np.ndarray
    volumes: np.ndarray

    @classmethod
    def from_bars(cls, bars: Iterable[Bar]) -> "OHLCVData":
        bars = list(bars)
        return cls(
            highs=np.array([b.high for b in bars], dtype=float),
            lows=np.array([b.low for b in bars], dtype=float),
            closes=np.array([b.close for b in bars], dtype=float),
            volumes=np.array([b.volume for b in bars], dtype=float),
        )


Evaluation = tuple[IndicatorValue, SignalType]


@dataclass(frozen=True)
class IndicatorSpec:
    """One catalogue entry: minimum bars and the calculation + signal rule."""

    name: str
    min_bars: int
    evaluate: Callable[[OHLCVData], Evaluation]


# =============================================================================
# SIGNAL RULES
# =============================================================================


def _threshold_signal(value: float, buy_below: float, sell_above: float) -> SignalType:
    if value < buy_below:
        return SignalType.BUY
    if value > sell_above:
        return SignalType.SELL
    return SignalType.NEUTRAL


def _eval_rsi(data: OHLCVData) -> Evaluation:
    value = get_last_valid(rsi(data.closes, 14))
    return value, _threshold_signal(value, 30, 70)


def _eval_macd(data: OHLCVData) -> Evaluation:
    line, signal_line, hist = macd(data.closes, 12, 26, 9)
    line_v = get_last_valid(line)
    signal_v = get_last_valid(signal_line)
    hist_v = get_last_valid(hist)

    if line_v > signal_v:
        signal = SignalType.BUY
    elif line_v < signal_v:
        signal = SignalType.SELL
    else:
        signal = SignalType.NEUTRAL
    return (line_v, signal_v, hist_v), signal


def _eval_bollinger(data: OHLCVData) -> Evaluation:
    lower, middle, upper = bollinger_bands(data.closes, 20, 2.0)
    lower_v = get_last_valid(lower)
    middle_v = get_last_valid(middle)
    upper_v = get_last_valid(upper)
    close = float(data.closes[-1])

    if close < lower_v:
        signal = SignalType.BUY
    elif close > upper_v:
        signal = SignalType.SELL
    else:
        signal = SignalType.NEUTRAL
    return (lower_v, middle_v, upper_v), signal


def _moving_average(kind: str, period: int) -> Callable[[OHLCVData], Evaluation]:
    average = sma if kind == "SMA" else ema

    def _eval(data: OHLCVData) -> Evaluation:
        value = get_last_valid(average(data.closes, period))
        close = float(data.closes[-1])
        return value, SignalType.BUY if close > value else SignalType.SELL

    return _eval


def _eval_stochastic(data: OHLCVData) -> Evaluation:
    k, d = stochastic(data.highs, data.lows, data.closes, 14, 3)
    k_v = get_last_valid(k)
    d_v = get_last_valid(d)
    return (k_v, d_v), _threshold_signal(k_v, 20, 80)


def _eval_adx(data: OHLCVData) -> Evaluation:
    adx_line, _, _ = adx(data.highs, data.lows, data.closes, 14)
    value = get_last_valid(adx_line)
    # Trend strength only, no direction
    return value, SignalType.BUY if value > 25 else SignalType.NEUTRAL


def _eval_atr(data: OHLCVData) -> Evaluation:
    return get_last_valid(atr(data.highs, data.lows, data.closes, 14)), SignalType.NEUTRAL


def _eval_obv(data: OHLCVData) -> Evaluation:
    line = obv(data.closes, data.volumes)
    rising = line[-1] > line[-2]
    return float(line[-1]), SignalType.BUY if rising else SignalType.SELL


def _eval_vwap(data: OHLCVData) -> Evaluation:
    value = float(vwap(data.highs, data.lows, data.closes, data.volumes)[-1])
    close = float(data.closes[-1])
    return value, SignalType.BUY if close > value else SignalType.SELL


# Minimum bars: RSI/ATR need period + 1 closes, MACD slow + signal,
# STOCH k + d - 1 (+1 margin), ADX two Wilder passes.
INDICATOR_CATALOGUE: dict[str, IndicatorSpec] = {
    "RSI": IndicatorSpec("RSI", 15, _eval_rsi),
    "MACD": IndicatorSpec("MACD", 35, _eval_macd),
    "BB": IndicatorSpec("BB", 20, _eval_bollinger),
    "STOCH": IndicatorSpec("STOCH", 16, _eval_stochastic),
    "ADX": IndicatorSpec("ADX", 28, _eval_adx),
    "ATR": IndicatorSpec("ATR", 15, _eval_atr),
    "OBV": IndicatorSpec("OBV", 2, _eval_obv),
    "VWAP": IndicatorSpec("VWAP", 1, _eval_vwap),
}


def resolve_indicator(name: str) -> IndicatorSpec:
    """Look up one indicator by name; SMA/EMA accept an optional period suffix."""
    token = (name or "").strip().upper()

    if token in INDICATOR_CATALOGUE:
        return INDICATOR_CATALOGUE[token]

    match = _MA_TOKEN.match(token)
    if match:
        kind, digits = match.groups()
        period = int(digits) if digits else DEFAULT_MA_PERIOD
        if not 1 <= period <= MAX_MA_PERIOD:
            raise InvalidParameterError(
                SERVICE_NAME, f"{kind} period must be between 1 and {MAX_MA_PERIOD}, got {period}"
            )
        return IndicatorSpec(token, period, _moving_average(kind, period))

    supported = ", ".join([*INDICATOR_CATALOGUE, "SMA<n>", "EMA<n>"])
    raise InvalidParameterError(
        SERVICE_NAME, f"Unknown indicator '{name}'. Supported: {supported}"
    )


def resolve_indicators(names: Iterable[str]) -> list[IndicatorSpec]:
    """Resolve a request list: case-insensitive, duplicates collapsed, order kept."""
    if isinstance(names, str):
        names = [names]
    names = list(names or [])
    if not names:
        raise InvalidParameterError(SERVICE_NAME, "At least one indicator name is required")

    specs: dict[str, IndicatorSpec] = {}
    for name in names:
        spec = resolve_indicator(name)
        specs.setdefault(spec.name, spec)
    return list(specs.values())


# =============================================================================
# AGGREGATE RECOMMENDATION
# =============================================================================


def aggregate_recommendation(signals: Iterable[SignalType]) -> Recommendation:
    """
    Classify the share of BUY / SELL signals.

    STRONG BUY (>60% BUY), BUY (>40% BUY), STRONG SELL (>60% SELL),
    SELL (>40% SELL), else NEUTRAL. Comparisons are strict.
    """
    counts = {signal: 0 for signal in SignalType}
    for signal in signals:
        counts[SignalType(signal)] += 1

    total = sum(counts.values())
    if total == 0:
        raise InvalidParameterError(SERVICE_NAME, "No signals to aggregate")

    buy_pct = counts[SignalType.BUY] / total * 100
    sell_pct = counts[SignalType.SELL] / total * 100
    neutral_pct = counts[SignalType.NEUTRAL] / total * 100

    if buy_pct > 60:
        label = RecommendationLabel.STRONG_BUY
        summary = f"STRONG BUY ({buy_pct:.0f}% bullish signals)"
    elif buy_pct > 40:
        label = RecommendationLabel.BUY
        summary = f"BUY ({buy_pct:.0f}% bullish signals)"
    elif sell_pct > 60:
        label = RecommendationLabel.STRONG_SELL
        summary = f"STRONG SELL ({sell_pct:.0f}% bearish signals)"
    elif sell_pct > 40:
        label = RecommendationLabel.SELL
        summary = f"SELL ({sell_pct:.0f}% bearish signals)"
    else:
        label = RecommendationLabel.NEUTRAL
        summary = f"NEUTRAL (Mixed signals: {buy_pct:.0f}% buy, {sell_pct:.0f}% sell)"

    return Recommendation(
        label=label,
        buy_pct=round(buy_pct, 2),
        sell_pct=round(sell_pct, 2),
        neutral_pct=round(neutral_pct, 2),
        counts=counts,
        summary=summary,
    )
