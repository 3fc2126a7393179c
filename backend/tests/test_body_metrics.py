"""Body/wick geometry of single bars."""

from __future__ import annotations

import pytest

from candlescope.engines.body_metrics import BodyMetrics, metrics
from candlescope.models import Candle, Direction


def _candle(o, h, l, c):
    return Candle(timestamp=1_700_000_000_000, open=o, high=h, low=l, close=c)


class TestBodyMetrics:

    def test_bullish_bar(self):
        m = metrics(_candle(100, 106, 98, 104))
        assert m.body == pytest.approx(4)
        assert m.upper_wick == pytest.approx(2)
        assert m.lower_wick == pytest.approx(2)
        assert m.range == pytest.approx(8)
        assert m.direction == Direction.BULLISH
        assert m.is_bullish and not m.is_bearish

    def test_bearish_bar(self):
        m = metrics(_candle(104, 105, 99, 100))
        assert m.body == pytest.approx(4)
        assert m.upper_wick == pytest.approx(1)
        assert m.lower_wick == pytest.approx(1)
        assert m.direction == Direction.BEARISH

    def test_flat_bar(self):
        m = metrics(_candle(100, 100, 100, 100))
        assert m.body == 0
        assert m.range == 0
        assert m.direction == Direction.FLAT
        assert not m.is_bullish and not m.is_bearish

    def test_inconsistent_bar_passes_negative_wicks_through(self):
        # high below the body top
        m = metrics(_candle(100, 101, 99, 103))
        assert m.upper_wick == pytest.approx(-2)

    def test_of_matches_metrics(self):
        c = _candle(100, 106, 98, 104)
        assert BodyMetrics.of(c) == metrics(c)
