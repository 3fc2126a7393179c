"""
Candlescope - Technical Analysis Engine

Pure functions over closing prices: SMA, EMA, RSI, MACD and Bollinger Bands.

Every output list has the same length as the input and is aligned to it by
index. Positions without enough history hold None rather than NaN, so
comparisons against them fail loudly instead of silently.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Sequence

import numpy as np
import structlog

from candlescope.models import (
    BollingerResult,
    Candle,
    IndicatorParams,
    IndicatorSet,
    MACDResult,
)

log = structlog.get_logger(__name__)

Series = list[Optional[float]]


def _check_period(period: int, name: str = "period") -> None:
    if period <= 0:
        raise ValueError(f"{name} must be a positive integer, got {period}")


def _closes(candles: Iterable[Candle]) -> list[float]:
    return [c.close for c in candles]


# ──────────────────────────────────────────────
# Moving Averages
# ──────────────────────────────────────────────

def sma(series: Sequence[Optional[float]], period: int) -> Series:
    """Simple Moving Average.

    Returns a list the same length as `series`. Positions before
    `period - 1`, and any window containing None, are None.
    """
    _check_period(period)
    result: Series = [None] * len(series)
    for i in range(period - 1, len(series)):
        window = series[i - period + 1: i + 1]
        if any(v is None for v in window):
            continue
        result[i] = sum(window) / period
    return result


def ema(series: Sequence[float], period: int) -> Series:
    """Exponential Moving Average.

    Seeded with the SMA of the first `period` values at index
    `period - 1`. All None when the series is shorter than `period`.
    """
    _check_period(period)
    result: Series = [None] * len(series)
    if len(series) < period:
        return result

    result[period - 1] = sum(series[:period]) / period

    multiplier = 2 / (period + 1)
    for i in range(period, len(series)):
        result[i] = (series[i] - result[i - 1]) * multiplier + result[i - 1]
    return result


# ──────────────────────────────────────────────
# Momentum
# ──────────────────────────────────────────────

def rsi(candles: Sequence[Candle], period: int = 14) -> Series:
    """Relative Strength Index from simple averages of gains and losses.

    Positions before `period` are None. A window with no losses reports
    50.0 rather than 100 or a division error.
    """
    _check_period(period)
    closes = _closes(candles)
    result: Series = [None] * len(closes)

    changes = [closes[i] - closes[i - 1] for i in range(1, len(closes))]
    gains = [change if change > 0 else 0.0 for change in changes]
    losses = [-change if change < 0 else 0.0 for change in changes]

    avg_gains = sma(gains, period)
    avg_losses = sma(losses, period)

    for i in range(period, len(closes)):
        avg_gain = avg_gains[i - 1]
        avg_loss = avg_losses[i - 1]
        if avg_gain is None or avg_loss is None:
            continue
        if avg_loss == 0:
            result[i] = 50.0
            continue
        value = 100 - 100 / (1 + avg_gain / avg_loss)
        result[i] = value if math.isfinite(value) else 50.0
    return result


def macd(
    candles: Sequence[Candle],
    fast: int = 12,
    slow: int = 26,
    signal: int = 9,
) -> MACDResult:
    """MACD line, signal line and histogram.

    The signal line is an EMA over the defined part of the MACD line,
    left-padded with None back to the input length.
    """
    _check_period(fast, "fast")
    _check_period(slow, "slow")
    _check_period(signal, "signal")
    closes = _closes(candles)

    fast_ema = ema(closes, fast)
    slow_ema = ema(closes, slow)
    macd_line: Series = [
        f - s if f is not None and s is not None else None
        for f, s in zip(fast_ema, slow_ema)
    ]

    defined = [v for v in macd_line if v is not None]
    signal_part = ema(defined, signal)
    signal_line: Series = [None] * (len(macd_line) - len(signal_part)) + signal_part

    histogram: Series = [
        m - s if m is not None and s is not None else None
        for m, s in zip(macd_line, signal_line)
    ]
    positive = [None if h is None else h >= 0 for h in histogram]

    return MACDResult(
        macd=macd_line,
        signal=signal_line,
        histogram=histogram,
        histogram_positive=positive,
    )


# ──────────────────────────────────────────────
# Volatility
# ──────────────────────────────────────────────

def bollinger_bands(
    candles: Sequence[Candle],
    period: int = 20,
    std_dev: float = 2.0,
) -> BollingerResult:
    """Bollinger Bands around the SMA.

    Width is `std_dev` population standard deviations of the trailing
    window, measured around the SMA value itself.
    """
    _check_period(period)
    closes = _closes(candles)
    middle = sma(closes, period)
    upper: Series = [None] * len(closes)
    lower: Series = [None] * len(closes)

    for i in range(period - 1, len(closes)):
        mean = middle[i]
        window = np.asarray(closes[i - period + 1: i + 1], dtype=float)
        deviation = float(np.sqrt(np.sum((window - mean) ** 2) / period))
        upper[i] = mean + std_dev * deviation
        lower[i] = mean - std_dev * deviation

    return BollingerResult(upper=upper, middle=middle, lower=lower)


class IndicatorLibrary:
    """Indicator bundle over a candle series.

    Usage:
        library = IndicatorLibrary()
        indicators = library.compute_all(candles)
    """

    sma = staticmethod(sma)
    ema = staticmethod(ema)
    rsi = staticmethod(rsi)
    macd = staticmethod(macd)
    bollinger_bands = staticmethod(bollinger_bands)

    def __init__(self, params: Optional[IndicatorParams] = None):
        self.params = params or IndicatorParams()

    def compute_all(
        self,
        candles: Iterable[Candle],
        params: Optional[IndicatorParams] = None,
    ) -> IndicatorSet:
        """Compute every indicator for `candles` with `params` (or the defaults)."""
        p = params or self.params
        bars = list(candles)
        closes = _closes(bars)

        result = IndicatorSet(
            timestamps=[c.timestamp for c in bars],
            sma=sma(closes, p.sma_period),
            ema=ema(closes, p.ema_period),
            rsi=rsi(bars, p.rsi_period),
            macd=macd(bars, p.macd_fast, p.macd_slow, p.macd_signal),
            bollinger=bollinger_bands(bars, p.bollinger_period, p.bollinger_std_dev),
            params=p,
        )
        log.debug("indicators.computed", bars=len(bars))
        return result
