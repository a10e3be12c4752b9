"""
Support/Resistance Detection

Clusters every bar's high and low into price buckets and promotes
frequently touched buckets to levels.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence

from market_analytics.schemas.market import Bar
from market_analytics.schemas.patterns import Level, LevelKind
from market_analytics.services.base import InvalidParameterError

SERVICE_NAME = "PatternService"

DEFAULT_TOLERANCE = 0.02
MAX_LEVELS = 10


@dataclass(frozen=True)
class LevelAnalysis:
    levels: tuple[Level, ...]
    nearest_support: Optional[Level]
    nearest_resistance: Optional[Level]
    risk_reward: Optional[float]


def validate_sensitivity(sensitivity: int) -> int:
    if isinstance(sensitivity, bool) or not isinstance(sensitivity, int):
        raise InvalidParameterError(SERVICE_NAME, f"Sensitivity must be an integer, got {sensitivity!r}")
    if not 1 <= sensitivity <= 10:
        raise InvalidParameterError(
            SERVICE_NAME, f"Sensitivity must be between 1 and 10, got {sensitivity}"
        )
    return sensitivity


def find_levels(
    bars: Sequence[Bar],
    sensitivity: int = 5,
    tolerance: float = DEFAULT_TOLERANCE,
) -> LevelAnalysis:
    """
    Find support/resistance levels.

    Bucket width is `tolerance` of the latest close; a bar's high and low
    each count as one touch of their bucket. Buckets with at least
    `sensitivity` touches become levels, SUPPORT below the latest close and
    RESISTANCE otherwise. strength = min(touches / 10, 1).
    """
    validate_sensitivity(sensitivity)
    if not 0 < tolerance < 1:
        raise InvalidParameterError(SERVICE_NAME, f"Tolerance must be in (0, 1), got {tolerance}")
    if not bars:
        raise InvalidParameterError(SERVICE_NAME, "No bars to analyse")

    current_price = bars[-1].close
    if current_price <= 0:
        raise InvalidParameterError(SERVICE_NAME, "Latest close must be positive")
    width = tolerance * current_price

    touches: dict[int, int] = defaultdict(int)
    last_tested: dict[int, datetime] = {}
    for bar in bars:
        for price in (bar.high, bar.low):
            bucket = round(price / width)
            touches[bucket] += 1
            last_tested[bucket] = bar.timestamp

    levels = []
    for bucket, count in touches.items():
        if count < sensitivity:
            continue
        price = round(bucket * width, 4)
        levels.append(
            Level(
                price=price,
                kind=LevelKind.SUPPORT if price < current_price else LevelKind.RESISTANCE,
                strength=min(count / 10, 1.0),
                touch_count=count,
                last_tested_timestamp=last_tested[bucket],
            )
        )

    levels.sort(key=lambda lv: (-lv.strength, -lv.touch_count, lv.price))
    levels = tuple(levels[:MAX_LEVELS])

    supports = [lv for lv in levels if lv.kind == LevelKind.SUPPORT and lv.price < current_price]
    resistances = [
        lv for lv in levels if lv.kind == LevelKind.RESISTANCE and lv.price > current_price
    ]
    nearest_support = max(supports, key=lambda lv: lv.price, default=None)
    nearest_resistance = min(resistances, key=lambda lv: lv.price, default=None)

    risk_reward = None
    if nearest_support and nearest_resistance:
        risk_reward = (nearest_resistance.price - current_price) / (
            current_price - nearest_support.price
        )

    return LevelAnalysis(
        levels=levels,
        nearest_support=nearest_support,
        nearest_resistance=nearest_resistance,
        risk_reward=risk_reward,
    )
