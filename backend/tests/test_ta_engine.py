"""
Technical Indicator Tests

Alignment and warm-up behaviour of SMA, EMA, RSI, MACD and Bollinger Bands,
with the `ta` library as an independent reference where definitions agree.
"""

from __future__ import annotations

import math

import pandas as pd
import pytest

from candlescope.engines.ta_engine import (
    IndicatorLibrary,
    bollinger_bands,
    ema,
    macd,
    rsi,
    sma,
)
from candlescope.models import IndicatorParams

from conftest import make_closes

WAVE = [100 + math.sin(i * 0.3) * 10 + i * 0.2 for i in range(60)]


def _assert_matches_reference(ours, reference: pd.Series):
    for mine, theirs in zip(ours, reference.tolist()):
        if mine is None:
            assert math.isnan(theirs)
        else:
            assert mine == pytest.approx(theirs, rel=1e-9)


class TestMovingAverages:

    def test_sma_alignment(self):
        closes = [float(i) for i in range(1, 21)]
        result = sma(closes, 5)
        assert len(result) == 20
        assert result[:4] == [None] * 4
        assert result[4] == 3.0
        assert result[-1] == 18.0

    def test_sma_none_inside_window(self):
        result = sma([1.0, None, 3.0, 4.0, 5.0], 2)
        assert result == [None, None, None, 3.5, 4.5]

    def test_sma_matches_ta(self):
        from ta.trend import SMAIndicator

        reference = SMAIndicator(pd.Series(WAVE), window=20).sma_indicator()
        _assert_matches_reference(sma(WAVE, 20), reference)

    def test_ema_seeded_with_sma(self):
        closes = [float(i) for i in range(1, 21)]
        result = ema(closes, 5)
        assert result[3] is None
        assert result[4] == pytest.approx(3.0)
        # (6 - 3) * 2/6 + 3
        assert result[5] == pytest.approx(4.0)

    def test_ema_short_series(self):
        assert ema([1.0, 2.0], 5) == [None, None]

    def test_non_positive_period_rejected(self):
        with pytest.raises(ValueError):
            sma([1.0, 2.0], 0)
        with pytest.raises(ValueError):
            ema([1.0, 2.0], -3)


class TestRSI:

    def test_all_gains_reports_fifty(self):
        result = rsi(make_closes([float(c) for c in range(100, 120)]), 14)
        assert len(result) == 20
        assert result[13] is None
        assert all(v == 50.0 for v in result[14:])

    def test_all_losses_reports_zero(self):
        result = rsi(make_closes([float(c) for c in range(120, 100, -1)]), 14)
        assert result[14] == pytest.approx(0.0)

    def test_mixed_changes(self):
        result = rsi(make_closes([10, 11, 10.5, 11.5]), 2)
        assert result[:2] == [None, None]
        # avg gain 0.5, avg loss 0.25
        assert result[2] == pytest.approx(100 - 100 / 3)
        assert result[3] == pytest.approx(100 - 100 / 3)

    def test_bounded(self):
        for value in rsi(make_closes(WAVE), 14):
            assert value is None or 0.0 <= value <= 100.0


class TestMACD:

    def test_padding(self):
        result = macd(make_closes(WAVE[:40]), 12, 26, 9)
        assert len(result.macd) == len(result.signal) == len(result.histogram) == 40
        assert result.macd[24] is None
        assert result.macd[25] is not None
        assert result.signal[32] is None
        assert result.signal[33] is not None
        assert result.histogram_positive[32] is None

    def test_histogram_is_difference(self):
        result = macd(make_closes(WAVE), 12, 26, 9)
        for m, s, h, positive in zip(
            result.macd, result.signal, result.histogram, result.histogram_positive
        ):
            if h is None:
                continue
            assert h == pytest.approx(m - s)
            assert positive == (h >= 0)

    def test_short_series_all_none(self):
        result = macd(make_closes([100.0] * 10))
        assert all(v is None for v in result.macd)
        assert all(v is None for v in result.signal)


class TestBollingerBands:

    def test_matches_ta(self):
        from ta.volatility import BollingerBands

        reference = BollingerBands(pd.Series(WAVE), window=20, window_dev=2)
        result = bollinger_bands(make_closes(WAVE), 20, 2.0)
        _assert_matches_reference(result.upper, reference.bollinger_hband())
        _assert_matches_reference(result.middle, reference.bollinger_mavg())
        _assert_matches_reference(result.lower, reference.bollinger_lband())

    def test_constant_series_has_zero_width(self):
        result = bollinger_bands(make_closes([50.0] * 25), 20, 2.0)
        assert result.upper[-1] == result.middle[-1] == result.lower[-1] == pytest.approx(50.0)
        assert result.upper[18] is None


class TestIndicatorLibrary:

    def test_compute_all_aligned(self):
        bars = make_closes(WAVE)
        indicators = IndicatorLibrary().compute_all(bars)
        assert indicators.timestamps == [c.timestamp for c in bars]
        for series in (
            indicators.sma,
            indicators.ema,
            indicators.rsi,
            indicators.macd.macd,
            indicators.bollinger.upper,
        ):
            assert len(series) == len(bars)

    def test_params_override(self):
        params = IndicatorParams(sma_period=5)
        indicators = IndicatorLibrary().compute_all(make_closes(WAVE[:10]), params)
        assert indicators.params.sma_period == 5
        assert indicators.sma[4] is not None
        assert indicators.sma[3] is None

    def test_functions_exposed_on_library(self):
        assert IndicatorLibrary.sma([1.0, 2.0, 3.0], 3)[-1] == 2.0
