"""
Technical Indicator Calculations

Pure NumPy implementations of technical indicators.
All math is deterministic.

Every function returns arrays aligned with its input; positions without
enough history hold NaN.
"""

import numpy as np
from typing import Callable, Optional


def _rolling(
    data: np.ndarray, period: int, reduce: Callable[[np.ndarray], float]
) -> np.ndarray:
    """Apply `reduce` to each trailing window of `period` values."""
    out = np.full(len(data), np.nan)
    if period < 1:
        return out
    for end in range(period, len(data) + 1):
        out[end - 1] = reduce(data[end - period : end])
    return out


# =============================================================================
# MOVING AVERAGES
# =============================================================================


def sma(data: np.ndarray, period: int) -> np.ndarray:
    """Simple Moving Average. A window containing NaN yields NaN."""
    return _rolling(data, period, np.mean)


def _first_valid(data: np.ndarray) -> Optional[int]:
    valid = np.flatnonzero(~np.isnan(data))
    return int(valid[0]) if len(valid) else None


def ema(data: np.ndarray, period: int) -> np.ndarray:
    """
    Exponential Moving Average, seeded with the SMA of the first window.

    Leading NaNs are skipped, so an EMA of a derived series (e.g. the MACD
    line) starts once `period` valid values exist.
    """
    result = np.full(len(data), np.nan)
    start = _first_valid(data)
    if period < 1 or start is None or len(data) - start < period:
        return result

    alpha = 2 / (period + 1)
    seed = start + period - 1
    result[seed] = np.mean(data[start : seed + 1])

    for i in range(seed + 1, len(data)):
        result[i] = alpha * data[i] + (1 - alpha) * result[i - 1]

    return result


def wilder_smooth(data: np.ndarray, period: int, start: int = 0) -> np.ndarray:
    """
    Wilder's smoothing (RMA): seed with the mean of data[start:start+period],
    then s[i] = (s[i-1] * (period - 1) + x[i]) / period.
    """
    result = np.full(len(data), np.nan)
    if len(data) - start < period:
        return result

    seed = start + period - 1
    result[seed] = np.mean(data[start : seed + 1])
    for i in range(seed + 1, len(data)):
        result[i] = (result[i - 1] * (period - 1) + data[i]) / period
    return result


# =============================================================================
# MOMENTUM INDICATORS
# =============================================================================


def rsi(closes: np.ndarray, period: int = 14) -> np.ndarray:
    """
    Relative Strength Index (Wilder).

    No gains and no losses over the window -> 50.
    No losses with gains -> 100.
    """
    if len(closes) < period + 1:
        return np.full(len(closes), np.nan)

    deltas = np.diff(closes)
    gains = np.where(deltas > 0, deltas, 0.0)
    losses = np.where(deltas < 0, -deltas, 0.0)

    avg_gain = wilder_smooth(gains, period)
    avg_loss = wilder_smooth(losses, period)

    result = np.full(len(closes), np.nan)
    for i in range(period - 1, len(deltas)):
        gain, loss = avg_gain[i], avg_loss[i]
        if gain == 0 and loss == 0:
            value = 50.0
        elif loss == 0:
            value = 100.0
        else:
            value = 100 - (100 / (1 + gain / loss))
        result[i + 1] = value

    return result


def macd(
    closes: np.ndarray,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    MACD (Moving Average Convergence Divergence).

    Returns: (macd_line, signal_line, histogram)
    """
    line = ema(closes, fast_period) - ema(closes, slow_period)
    signal = ema(line, signal_period)
    return line, signal, line - signal


def stochastic(
    highs: np.ndarray,
    lows: np.ndarray,
    closes: np.ndarray,
    k_period: int = 14,
    d_period: int = 3,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Stochastic Oscillator. A window with no high-low range reads 50.

    Returns: (k, d)
    """
    highest = _rolling(highs, k_period, np.max)
    lowest = _rolling(lows, k_period, np.min)
    span = highest - lowest

    with np.errstate(divide="ignore", invalid="ignore"):
        k = np.where(span > 0, (closes - lowest) / span * 100, 50.0)
    k[np.isnan(span)] = np.nan

    return k, sma(k, d_period)


# =============================================================================
# VOLATILITY INDICATORS
# =============================================================================


def true_range(highs: np.ndarray, lows: np.ndarray, closes: np.ndarray) -> np.ndarray:
    """True Range. Index 0 has no previous close and is NaN."""
    tr = np.full(len(closes), np.nan)
    if len(closes) < 2:
        return tr

    prev_close = closes[:-1]
    tr[1:] = np.maximum.reduce(
        [
            highs[1:] - lows[1:],
            np.abs(highs[1:] - prev_close),
            np.abs(lows[1:] - prev_close),
        ]
    )
    return tr


def atr(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, period: int = 14
) -> np.ndarray:
    """Average True Range (Wilder smoothing of TR)."""
    if len(closes) < period + 1:
        return np.full(len(closes), np.nan)

    return wilder_smooth(true_range(highs, lows, closes), period, start=1)


def bollinger_bands(
    closes: np.ndarray, period: int = 20, std_dev: float = 2.0
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Bollinger Bands (population standard deviation).

    Returns: (lower, middle, upper)
    """
    middle = sma(closes, period)
    width = std_dev * _rolling(closes, period, np.std)
    return middle - width, middle, middle + width


# =============================================================================
# VOLUME INDICATORS
# =============================================================================


def vwap(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, volumes: np.ndarray
) -> np.ndarray:
    """
    Volume Weighted Average Price, cumulative over the series.

    Until any volume has traded the typical price is reported.
    """
    typical = (highs + lows + closes) / 3
    volume_to_date = np.cumsum(volumes)
    value_to_date = np.cumsum(typical * volumes)

    result = np.array(typical, dtype=float)
    traded = volume_to_date > 0
    result[traded] = value_to_date[traded] / volume_to_date[traded]
    return result


def obv(closes: np.ndarray, volumes: np.ndarray) -> np.ndarray:
    """On-Balance Volume, starting from the first bar's volume."""
    if len(closes) == 0:
        return np.zeros(0)

    direction = np.sign(np.diff(closes))
    flow = np.concatenate(([volumes[0]], direction * volumes[1:]))
    return np.cumsum(flow).astype(float)


# =============================================================================
# TREND INDICATORS
# =============================================================================


def adx(
    highs: np.ndarray, lows: np.ndarray, closes: np.ndarray, period: int = 14
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Average Directional Index (Wilder).

    Needs 2 * period bars: one pass to smooth +DM/-DM/TR, a second to
    smooth DX.

    Returns: (adx, plus_di, minus_di)
    """
    n = len(closes)
    if n < 2 * period:
        return np.full(n, np.nan), np.full(n, np.nan), np.full(n, np.nan)

    up = np.concatenate(([0.0], np.diff(highs)))
    down = np.concatenate(([0.0], -np.diff(lows)))
    plus_dm = np.where((up > down) & (up > 0), up, 0.0)
    minus_dm = np.where((down > up) & (down > 0), down, 0.0)

    smoothed_tr = wilder_smooth(true_range(highs, lows, closes), period, start=1)
    smoothed_plus = wilder_smooth(plus_dm, period, start=1)
    smoothed_minus = wilder_smooth(minus_dm, period, start=1)

    with np.errstate(divide="ignore", invalid="ignore"):
        plus_di = np.where(smoothed_tr > 0, 100 * smoothed_plus / smoothed_tr, 0.0)
        minus_di = np.where(smoothed_tr > 0, 100 * smoothed_minus / smoothed_tr, 0.0)
        di_sum = plus_di + minus_di
        dx = np.where(di_sum > 0, 100 * np.abs(plus_di - minus_di) / di_sum, 0.0)

    # NaN until the first smoothing pass has a seed
    warmup = np.isnan(smoothed_tr)
    for arr in (plus_di, minus_di, dx):
        arr[warmup] = np.nan

    return wilder_smooth(dx, period, start=period), plus_di, minus_di


def get_last_valid(arr: np.ndarray) -> Optional[float]:
    """Last non-NaN value, or None when there is none."""
    valid = arr[~np.isnan(arr)]
    return float(valid[-1]) if len(valid) > 0 else None
