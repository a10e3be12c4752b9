"""
Pattern Detection Algorithms

Detects classic chart patterns over a trailing window of bars.

Each detector is a geometric heuristic (swing extremes, chunk envelopes,
least-squares slopes) returning a confidence in [0, 1]. Anything below
MIN_CONFIDENCE is dropped by the service. Price targets are fixed
multipliers on the latest close.
"""

import numpy as np
from dataclasses import dataclass
from typing import Callable, Optional


MIN_CONFIDENCE = 0.6


@dataclass(frozen=True)
class PatternWindow:
    """Trailing window arrays handed to a detector."""

    highs: np.ndarray
    lows: np.ndarray
    closes: np.ndarray


@dataclass(frozen=True)
class Detection:
    """Detector output before it is turned into a Pattern."""

    confidence: float
    display_name: str
    target_multiplier: float
    description: str


@dataclass(frozen=True)
class PatternSpec:
    key: str
    window: int
    detect: Callable[[PatternWindow], Optional[Detection]]


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return float(max(low, min(high, value)))


def _score(*components: float) -> float:
    """Base 0.5 plus equally weighted components in [0, 1]."""
    weight = 0.5 / len(components)
    return _clamp(0.5 + sum(weight * _clamp(c) for c in components))


def _envelopes(
    highs: np.ndarray, lows: np.ndarray, chunks: int
) -> tuple[np.ndarray, np.ndarray]:
    """Per-chunk max of highs and min of lows."""
    upper = np.array([c.max() for c in np.array_split(highs, chunks)])
    lower = np.array([c.min() for c in np.array_split(lows, chunks)])
    return upper, lower


def _relative_change(values: np.ndarray) -> float:
    """Least-squares change across the whole series as a fraction of its mean."""
    x = np.arange(len(values))
    slope, _ = np.polyfit(x, values, 1)
    mean = float(np.mean(values))
    return float(slope * (len(values) - 1) / mean) if mean else 0.0


# =============================================================================
# REVERSAL PATTERNS
# =============================================================================


def detect_head_shoulders(w: PatternWindow) -> Optional[Detection]:
    """
    Head and Shoulders.

    Left shoulder, head and right shoulder are the highest highs of the
    window's thirds; the head must stand above both shoulders and each
    shoulder must be separated from the head by a trough.
    """
    thirds = np.array_split(np.arange(len(w.highs)), 3)
    ls_i, head_i, rs_i = (int(t[np.argmax(w.highs[t])]) for t in thirds)
    ls, head, rs = w.highs[ls_i], w.highs[head_i], w.highs[rs_i]
    shoulder = max(ls, rs)

    left_trough = w.lows[ls_i : head_i + 1].min()
    right_trough = w.lows[head_i : rs_i + 1].min()
    if left_trough >= min(ls, rs) * 0.99 or right_trough >= min(ls, rs) * 0.99:
        return None

    prominence = (head - shoulder) / head
    asymmetry = abs(ls - rs) / shoulder
    if prominence < 0.02 or asymmetry > 0.05:
        return None

    return Detection(
        confidence=_score(1 - asymmetry / 0.05, prominence / 0.05),
        display_name="Head and Shoulders",
        target_multiplier=0.95,
        description="Bearish reversal pattern detected. Price target suggests 5% decline.",
    )


def _double_extreme(values: np.ndarray, lowest: bool) -> Optional[tuple[int, int]]:
    """Indexes of the extreme in each half, both strictly inside the window."""
    pick = np.argmin if lowest else np.argmax
    mid = len(values) // 2
    first = int(pick(values[:mid]))
    second = mid + int(pick(values[mid:]))
    if first == 0 or second == len(values) - 1 or second - first < 5:
        return None
    return first, second


def detect_double_bottom(w: PatternWindow) -> Optional[Detection]:
    """Two similar lows separated by a rally, price recovering off the second."""
    found = _double_extreme(w.lows, lowest=True)
    if found is None:
        return None
    i1, i2 = found
    b1, b2 = w.lows[i1], w.lows[i2]
    bottom = (b1 + b2) / 2

    peak = w.highs[i1 : i2 + 1].max()
    mismatch = abs(b1 - b2) / bottom
    depth = (peak - bottom) / bottom
    if mismatch > 0.03 or depth < 0.03 or w.closes[-1] <= bottom:
        return None

    return Detection(
        confidence=_score(1 - mismatch / 0.03, depth / 0.10),
        display_name="Double Bottom",
        target_multiplier=1.12,
        description="Bullish reversal pattern confirmed. Strong support established.",
    )


def detect_double_top(w: PatternWindow) -> Optional[Detection]:
    """Two similar highs separated by a pullback, price falling off the second."""
    found = _double_extreme(w.highs, lowest=False)
    if found is None:
        return None
    i1, i2 = found
    t1, t2 = w.highs[i1], w.highs[i2]
    top = (t1 + t2) / 2

    trough = w.lows[i1 : i2 + 1].min()
    mismatch = abs(t1 - t2) / top
    depth = (top - trough) / top
    if mismatch > 0.03 or depth < 0.03 or w.closes[-1] >= top:
        return None

    return Detection(
        confidence=_score(1 - mismatch / 0.03, depth / 0.10),
        display_name="Double Top",
        target_multiplier=0.90,
        description="Bearish reversal pattern confirmed. Strong resistance established.",
    )


# =============================================================================
# CONTINUATION PATTERNS
# =============================================================================


def detect_triangle(w: PatternWindow) -> Optional[Detection]:
    """Ascending Triangle: flat upper envelope over a rising lower envelope."""
    upper, lower = _envelopes(w.highs, w.lows, 4)
    upper_change = _relative_change(upper)
    lower_change = _relative_change(lower)

    if abs(upper_change) > 0.01 or lower_change < 0.02:
        return None

    return Detection(
        confidence=_score(1 - abs(upper_change) / 0.01, lower_change / 0.05),
        display_name="Ascending Triangle",
        target_multiplier=1.08,
        description="Bullish continuation pattern. Breakout expected with 8% upside.",
    )


def detect_flag(w: PatternWindow) -> Optional[Detection]:
    """
    Bull/Bear Flag: a sharp pole over the first half, then a tight
    consolidation that gives back less than half the pole.
    """
    half = len(w.closes) // 2
    pole = (w.closes[half - 1] - w.closes[0]) / w.closes[0]
    if abs(pole) < 0.05:
        return None

    flag_high = w.highs[half:].max()
    flag_low = w.lows[half:].min()
    flag_range = (flag_high - flag_low) / w.closes[half - 1]
    drift = (w.closes[-1] - w.closes[half - 1]) / w.closes[half - 1]
    if flag_range > abs(pole) / 2 or abs(drift) > abs(pole) / 2:
        return None

    bullish = pole > 0
    return Detection(
        confidence=_score(abs(pole) / 0.10, 1 - flag_range / abs(pole)),
        display_name="Bull Flag" if bullish else "Bear Flag",
        target_multiplier=1.06 if bullish else 0.94,
        description=(
            "Bullish continuation after a strong advance. Price target suggests 6% upside."
            if bullish
            else "Bearish continuation after a sharp decline. Price target suggests 6% downside."
        ),
    )


def detect_wedge(w: PatternWindow) -> Optional[Detection]:
    """
    Rising/Falling Wedge: both envelopes slope the same way and converge.
    A rising wedge resolves lower, a falling wedge higher.
    """
    upper, lower = _envelopes(w.highs, w.lows, 5)
    upper_change = _relative_change(upper)
    lower_change = _relative_change(lower)

    rising = upper_change > 0.01 and lower_change > upper_change
    falling = lower_change < -0.01 and upper_change < lower_change
    if not (rising or falling):
        return None

    start_width = upper[0] - lower[0]
    end_width = upper[-1] - lower[-1]
    if start_width <= 0:
        return None
    convergence = 1 - end_width / start_width
    if convergence <= 0:
        return None

    slope = (abs(upper_change) + abs(lower_change)) / 2
    return Detection(
        confidence=_score(slope / 0.05, convergence / 0.5),
        display_name="Rising Wedge" if rising else "Falling Wedge",
        target_multiplier=0.95 if rising else 1.05,
        description=(
            "Bearish pattern: converging advance losing momentum. Price target suggests 5% decline."
            if rising
            else "Bullish pattern: converging decline losing momentum. Price target suggests 5% upside."
        ),
    )


def detect_cup_handle(w: PatternWindow) -> Optional[Detection]:
    """
    Cup and Handle: a rounded base between two similar rims over the first
    80% of the window, then a shallow pullback below the right rim.
    """
    closes = w.closes
    cup_len = int(len(closes) * 0.8)
    cup, handle = closes[:cup_len], closes[cup_len:]
    edge = max(cup_len // 4, 1)

    left_rim = cup[:edge].max()
    right_rim = cup[-edge:].max()
    bottom_i = int(np.argmin(cup))
    bottom = cup[bottom_i]
    rim = max(left_rim, right_rim)

    if not edge <= bottom_i < cup_len - edge:
        return None

    asymmetry = abs(left_rim - right_rim) / rim
    depth = rim - bottom
    if asymmetry > 0.03 or not 0.05 <= depth / rim <= 0.5:
        return None

    retrace = right_rim - handle.min()
    if retrace <= right_rim * 0.005 or retrace > depth / 2 or handle.max() > rim * 1.01:
        return None

    return Detection(
        confidence=_score(1 - asymmetry / 0.03, 1 - retrace / (depth / 2)),
        display_name="Cup and Handle",
        target_multiplier=1.10,
        description="Bullish continuation pattern. Handle breakout targets 10% upside.",
    )


PATTERN_CATALOGUE: dict[str, PatternSpec] = {
    "head_shoulders": PatternSpec("head_shoulders", 30, detect_head_shoulders),
    "triangle": PatternSpec("triangle", 20, detect_triangle),
    "flag": PatternSpec("flag", 20, detect_flag),
    "wedge": PatternSpec("wedge", 30, detect_wedge),
    "double_top": PatternSpec("double_top", 25, detect_double_top),
    "double_bottom": PatternSpec("double_bottom", 25, detect_double_bottom),
    "cup_handle": PatternSpec("cup_handle", 30, detect_cup_handle),
}
