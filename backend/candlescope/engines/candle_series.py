"""
Candlescope - Candle Series

Validated, time-ordered container of OHLC bars. Shared input for the
pattern classifier and the indicator library.

OHLC consistency (high >= body >= low) is deliberately not enforced:
downstream geometry tolerates negative wicks and ranges.
"""

from __future__ import annotations

from typing import Any, Iterable, Iterator, Mapping, Optional, Union

import structlog

from candlescope.models import Candle

log = structlog.get_logger(__name__)

CandleLike = Union[Candle, Mapping[str, Any]]


class InvalidSeries(ValueError):
    """Raised when bars are not in time order."""

    def __init__(self, index: int, timestamp: int, previous: int):
        self.index = index
        self.timestamp = timestamp
        self.previous = previous
        super().__init__(
            f"Candle {index} has timestamp {timestamp} earlier than previous bar {previous}"
        )


def _as_candle(raw: CandleLike) -> Candle:
    if isinstance(raw, Candle):
        return raw
    return Candle.model_validate(raw)


class CandleSeries:
    """Ordered OHLC bars for one symbol/timeframe.

    Usage:
        series = CandleSeries(bars)
        series.apply_tick(101.25)
        signals = classifier.classify(series.candles, symbol="AAPL")
    """

    def __init__(self, candles: Iterable[CandleLike] = ()):
        self._candles: list[Candle] = []
        for candle in candles:
            self.append(candle)

    @property
    def candles(self) -> list[Candle]:
        """A copy of the bars, oldest first."""
        return list(self._candles)

    @property
    def last(self) -> Optional[Candle]:
        return self._candles[-1] if self._candles else None

    def append(self, raw: CandleLike) -> Candle:
        """Append a bar, or replace the last bar when the timestamp repeats.

        Raises:
            InvalidSeries: if the bar is older than the current last bar.
        """
        candle = _as_candle(raw)
        if self._candles:
            previous = self._candles[-1].timestamp
            if candle.timestamp < previous:
                raise InvalidSeries(len(self._candles), candle.timestamp, previous)
            if candle.timestamp == previous:
                self._candles[-1] = candle
                return candle
        self._candles.append(candle)
        return candle

    def apply_tick(self, price: float) -> Optional[Candle]:
        """Fold a live trade price into the last bar (close, high, low)."""
        if not self._candles:
            return None
        last = self._candles[-1]
        updated = last.model_copy(update={
            "close": price,
            "high": max(last.high, price),
            "low": min(last.low, price),
        })
        self._candles[-1] = updated
        log.debug("series.tick", timestamp=updated.timestamp, price=price)
        return updated

    def closes(self) -> list[float]:
        return [c.close for c in self._candles]

    def timestamps(self) -> list[int]:
        return [c.timestamp for c in self._candles]

    def tail(self, n: int) -> list[Candle]:
        """Last `n` bars (all bars when the series is shorter)."""
        if n <= 0:
            return []
        return self._candles[-n:]

    def __len__(self) -> int:
        return len(self._candles)

    def __iter__(self) -> Iterator[Candle]:
        return iter(list(self._candles))

    def __getitem__(self, index):
        return self._candles[index]
