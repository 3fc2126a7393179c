"""
Candlescope - Body Metrics

Per-bar candle geometry: body, wicks, range and direction. Stateless; no
history beyond the bar itself and no division (callers guard ratios).
"""

from __future__ import annotations

from dataclasses import dataclass

from candlescope.models import Candle, Direction


@dataclass(frozen=True)
class BodyMetrics:
    body: float
    upper_wick: float
    lower_wick: float
    range: float
    direction: Direction

    @property
    def is_bullish(self) -> bool:
        return self.direction == Direction.BULLISH

    @property
    def is_bearish(self) -> bool:
        return self.direction == Direction.BEARISH

    @classmethod
    def of(cls, candle: Candle) -> "BodyMetrics":
        return metrics(candle)


def metrics(candle: Candle) -> BodyMetrics:
    """Derive body/wick geometry for one bar.

    Wicks and range go negative on inconsistent OHLC input; that is passed
    through unchanged.
    """
    o, h, l, c = candle.open, candle.high, candle.low, candle.close
    body_top = max(o, c)
    body_bottom = min(o, c)

    if c > o:
        direction = Direction.BULLISH
    elif c < o:
        direction = Direction.BEARISH
    else:
        direction = Direction.FLAT

    return BodyMetrics(
        body=abs(c - o),
        upper_wick=h - body_top,
        lower_wick=body_bottom - l,
        range=h - l,
        direction=direction,
    )
