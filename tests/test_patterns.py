import numpy as np
import pytest

from market_analytics.schemas.patterns import PatternRequest
from market_analytics.services.base import InsufficientDataError, InvalidParameterError
from market_analytics.services.scanner import PATTERN_CATALOGUE, PatternService, resolve_patterns
from market_analytics.services.scanner.patterns import (
    PatternWindow,
    detect_cup_handle,
    detect_double_bottom,
    detect_double_top,
    detect_flag,
    detect_head_shoulders,
    detect_triangle,
    detect_wedge,
)


def path(knots, n):
    """Piecewise-linear closes through (index, price) knots."""
    xs, ys = zip(*knots)
    return np.interp(np.arange(n), xs, ys)


def window(closes, spread=0.0):
    closes = np.asarray(closes, dtype=float)
    return PatternWindow(highs=closes + spread, lows=closes - spread, closes=closes)


HEAD_SHOULDERS = [(0, 100), (5, 110), (10, 102), (15, 120), (20, 102), (25, 110), (29, 100)]
DOUBLE_BOTTOM = [(0, 100), (6, 90), (12, 100), (18, 90), (24, 96)]
CUP = [(0, 110), (12, 95), (23, 110)]
HANDLE = [108, 107, 106.5, 107, 108, 108.5]


@pytest.fixture
def service():
    return PatternService()


# ============================================================================
# Detectors
# ============================================================================


class TestDetectors:
    def test_head_shoulders(self):
        detection = detect_head_shoulders(window(path(HEAD_SHOULDERS, 30), spread=0.5))
        assert detection is not None
        assert detection.display_name == "Head and Shoulders"
        assert detection.confidence == pytest.approx(1.0)
        assert detection.target_multiplier == 0.95

    def test_head_shoulders_needs_troughs(self):
        closes = path([(0, 100), (15, 120), (29, 100)], 30)
        assert detect_head_shoulders(window(closes, spread=0.5)) is None

    def test_double_bottom(self):
        detection = detect_double_bottom(window(path(DOUBLE_BOTTOM, 25), spread=0.5))
        assert detection is not None
        assert detection.display_name == "Double Bottom"
        assert detection.target_multiplier == 1.12

    def test_double_top_mirror(self):
        closes = 200 - path(DOUBLE_BOTTOM, 25)
        detection = detect_double_top(window(closes, spread=0.5))
        assert detection is not None
        assert detection.display_name == "Double Top"

    def test_double_bottom_requires_recovery(self):
        closes = path([(0, 100), (6, 90), (12, 100), (18, 90), (24, 90)], 25)
        assert detect_double_bottom(window(closes)) is None

    def test_ascending_triangle(self):
        closes = [110.0 if i % 2 == 0 else 100 + 0.4 * i for i in range(20)]
        detection = detect_triangle(window(closes))
        assert detection is not None
        assert detection.display_name == "Ascending Triangle"
        assert detection.confidence == pytest.approx(1.0)

    def test_rising_wedge(self):
        closes = [100 + 0.2 * i if i % 2 == 0 else 94 + 0.38 * i for i in range(30)]
        detection = detect_wedge(window(closes))
        assert detection is not None
        assert detection.display_name == "Rising Wedge"
        assert detection.target_multiplier == 0.95

    def test_falling_wedge_mirror(self):
        closes = [200 - (100 + 0.2 * i if i % 2 == 0 else 94 + 0.38 * i) for i in range(30)]
        detection = detect_wedge(window(closes))
        assert detection is not None
        assert detection.display_name == "Falling Wedge"

    def test_bull_flag(self):
        pole = [100 + 12 * i / 9 for i in range(10)]
        flag = [112.0 if i % 2 == 0 else 111.5 for i in range(10)]
        detection = detect_flag(window(pole + flag))
        assert detection is not None
        assert detection.display_name == "Bull Flag"
        assert detection.confidence > 0.9

    def test_bear_flag(self):
        pole = [112 - 12 * i / 9 for i in range(10)]
        flag = [100.0 if i % 2 == 0 else 100.5 for i in range(10)]
        detection = detect_flag(window(pole + flag))
        assert detection is not None
        assert detection.display_name == "Bear Flag"
        assert detection.target_multiplier == 0.94

    def test_cup_and_handle(self):
        closes = list(path(CUP, 24)) + HANDLE
        detection = detect_cup_handle(window(closes, spread=0.5))
        assert detection is not None
        assert detection.display_name == "Cup and Handle"
        assert detection.confidence == pytest.approx(0.5 + 0.25 + 0.25 * (1 - 3.5 / 7.5))

    @pytest.mark.parametrize("key", list(PATTERN_CATALOGUE))
    def test_flat_series_has_no_pattern(self, key):
        spec = PATTERN_CATALOGUE[key]
        assert spec.detect(window(np.full(spec.window, 100.0))) is None


# ============================================================================
# Service
# ============================================================================


class TestPatternService:
    def test_resolve_defaults_to_catalogue(self):
        assert len(resolve_patterns(None)) == len(PATTERN_CATALOGUE)
        assert len(resolve_patterns([])) == len(PATTERN_CATALOGUE)

    def test_resolve_unknown(self):
        with pytest.raises(InvalidParameterError):
            resolve_patterns(["double_bottom", "pennant"])

    def test_detect_head_shoulders(self, service, make_series):
        series = make_series(list(path(HEAD_SHOULDERS, 30)), spread=0.5)
        report = service.detect(series, ["head_shoulders"])

        assert len(report.patterns) == 1
        pattern = report.patterns[0]
        assert pattern.type == "Head and Shoulders"
        assert pattern.start_timestamp == series.bars[0].timestamp
        assert pattern.end_timestamp == series.bars[-1].timestamp
        assert pattern.price_target == pytest.approx(95.0)
        assert report.implications == ("Head and Shoulders: bearish pattern with 100% confidence",)

    def test_detect_uses_trailing_window(self, service, make_series):
        closes = [100.0] * 30 + list(path(DOUBLE_BOTTOM, 25))
        series = make_series(closes, spread=0.5)
        report = service.detect(series, ["double_bottom"])

        assert report.patterns[0].start_timestamp == series.bars[30].timestamp
        assert report.patterns[0].price_target == pytest.approx(96 * 1.12)
        assert "bullish" in report.implications[0]

    def test_flat_series_reports_nothing(self, service, make_series):
        report = service.detect(make_series([100.0] * 60))
        assert report.patterns == ()
        assert report.implications == ()

    def test_insufficient_data(self, service, make_series):
        with pytest.raises(InsufficientDataError) as exc:
            service.detect(make_series([100.0] * 25))
        assert exc.value.required == 30

    def test_short_window_pattern_runs_on_short_series(self, service, make_series):
        report = service.detect(make_series([100.0] * 20), ["triangle", "flag"])
        assert report.patterns == ()

    @pytest.mark.asyncio
    async def test_execute(self, service, make_series):
        request = PatternRequest(series=make_series([100.0] * 30), names=("wedge",))
        report = await service.execute(request)
        assert report.symbol == "TEST"
