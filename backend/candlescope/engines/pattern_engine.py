"""
Candlescope - Pattern Detection Engine

Rule-based detection of Japanese candlestick patterns on the most recent bar.
Deterministic analysis: fixed geometric thresholds, no fitted parameters.

Candlestick Patterns (14 rules, evaluated in this order):
  Single:  Doji, Hammer, Inverted Hammer, Hanging Man, Spinning Top, Marubozu
  Double:  Engulfing (Bull/Bear), Harami (Bull/Bear)
  Triple:  Morning/Evening Star, Three White Soldiers, Three Black Crows

Every rule that fires contributes one signal, so several patterns can
co-occur on one bar. Rule order fixes output order only.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional, Sequence

import numpy as np
import structlog

from candlescope.engines.body_metrics import BodyMetrics, metrics
from candlescope.models import Candle, PatternSignal, PatternType

log = structlog.get_logger(__name__)

MIN_CANDLES = 3
AVG_BODY_LOOKBACK = 20
TREND_LOOKBACK = 3


# ──────────────────────────────────────────────
# Rule Data Models
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class PatternMatch:
    """Outcome of one rule firing, before it is stamped into a PatternSignal."""
    pattern_type: PatternType
    confidence: float
    description: str


@dataclass(frozen=True)
class PatternWindow:
    """Everything a rule may look at for the bar under evaluation."""
    avg_body: float
    curr: Candle
    prev: Candle
    curr_m: BodyMetrics
    prev_m: BodyMetrics
    last3: tuple[Candle, Candle, Candle]
    last3_m: tuple[BodyMetrics, BodyMetrics, BodyMetrics]
    downtrend: bool
    uptrend: bool

    @classmethod
    def build(cls, candles: Sequence[Candle]) -> "PatternWindow":
        bars = tuple(candles)
        recent = bars[-AVG_BODY_LOOKBACK:]
        avg_body = float(np.mean([metrics(c).body for c in recent]))
        last3 = bars[-3:]
        last3_m = tuple(metrics(c) for c in last3)
        return cls(
            avg_body=avg_body,
            curr=bars[-1],
            prev=bars[-2],
            curr_m=last3_m[2],
            prev_m=last3_m[1],
            last3=last3,
            last3_m=last3_m,
            downtrend=_prior_trend(bars, rising=False),
            uptrend=_prior_trend(bars, rising=True),
        )


@dataclass(frozen=True)
class PatternRule:
    """A named detector with a confidence ceiling."""
    name: str
    cap: float
    detect: Callable[[PatternWindow], Optional[PatternMatch]]

    def evaluate(self, window: PatternWindow) -> Optional[PatternMatch]:
        match = self.detect(window)
        if match is None or math.isnan(match.confidence):
            return None
        return replace(match, confidence=_clamp(match.confidence, self.cap))


def _clamp(value: float, cap: float) -> float:
    return max(0.0, min(value, cap))


def _prior_trend(bars: Sequence[Candle], rising: bool) -> bool:
    """Strictly monotonic closes over the 3 bars before the last one."""
    if len(bars) < TREND_LOOKBACK + 1:
        return False
    a, b, c = (bar.close for bar in bars[-(TREND_LOOKBACK + 1):-1])
    if rising:
        return a < b < c
    return a > b > c


# ──────────────────────────────────────────────
# Single-Bar Candlestick Patterns
# ──────────────────────────────────────────────

def _doji(w: PatternWindow) -> Optional[PatternMatch]:
    m = w.curr_m
    if not (m.range > 0 and m.body / m.range < 0.1 and m.body < w.avg_body * 0.2):
        return None

    upper, lower, rng = m.upper_wick, m.lower_wick, m.range
    if upper > lower * 3 and lower < rng * 0.1:
        sub_type = "dragonfly"
    elif lower > upper * 3 and upper < rng * 0.1:
        sub_type = "gravestone"
    elif upper > rng * 0.3 and lower > rng * 0.3:
        sub_type = "long-legged"
    else:
        sub_type = "standard"

    return PatternMatch(
        pattern_type=PatternType.NEUTRAL,
        confidence=0.7 + (1 - m.body / rng) * 0.2,
        description=f"{sub_type[0].upper()}{sub_type[1:]} Doji - Indecision in the market",
    )


def _hammer_shape(m: BodyMetrics, avg_body: float) -> bool:
    return (
        m.body > avg_body * 0.3
        and m.lower_wick >= m.body * 2
        and m.upper_wick < m.body * 0.5
        and m.range > avg_body * 0.5
    )


def _hammer(w: PatternWindow) -> Optional[PatternMatch]:
    m = w.curr_m
    if not _hammer_shape(m, w.avg_body):
        return None
    return PatternMatch(
        pattern_type=PatternType.BULLISH,
        confidence=0.65 + m.lower_wick / m.body / 10 + (0.15 if w.downtrend else 0.0),
        description="Hammer - Potential bullish reversal signal after downtrend",
    )


def _inverted_hammer(w: PatternWindow) -> Optional[PatternMatch]:
    m = w.curr_m
    if not (
        m.body > w.avg_body * 0.3
        and m.upper_wick >= m.body * 2
        and m.lower_wick < m.body * 0.5
        and m.range > w.avg_body * 0.5
    ):
        return None
    return PatternMatch(
        pattern_type=PatternType.BULLISH,
        confidence=0.6 + m.upper_wick / m.body / 10 + (0.15 if w.downtrend else 0.0),
        description="Inverted Hammer - Potential bullish reversal after downtrend",
    )


def _hanging_man(w: PatternWindow) -> Optional[PatternMatch]:
    m = w.curr_m
    if not (w.uptrend and _hammer_shape(m, w.avg_body)):
        return None
    return PatternMatch(
        pattern_type=PatternType.BEARISH,
        confidence=0.6 + m.lower_wick / m.body / 10,
        description="Hanging Man - Potential bearish reversal signal after uptrend",
    )


def _spinning_top(w: PatternWindow) -> Optional[PatternMatch]:
    m = w.curr_m
    if not (
        m.body < w.avg_body * 0.5
        and m.upper_wick > m.body
        and m.lower_wick > m.body
        and m.range > w.avg_body * 0.8
    ):
        return None
    return PatternMatch(
        pattern_type=PatternType.NEUTRAL,
        confidence=0.6,
        description="Spinning Top - Indecision, potential trend change",
    )


def _marubozu(w: PatternWindow) -> Optional[PatternMatch]:
    m = w.curr_m
    # Zero or negative range: no body ratio to speak of.
    if not m.range > 0:
        return None
    if not (
        m.body > w.avg_body * 1.5
        and m.upper_wick < m.body * 0.05
        and m.lower_wick < m.body * 0.05
        and m.body / m.range > 0.95
    ):
        return None
    if m.is_bullish:
        pattern_type = PatternType.BULLISH
        description = "Bullish Marubozu - Strong buying pressure, no resistance"
    else:
        pattern_type = PatternType.BEARISH
        description = "Bearish Marubozu - Strong selling pressure, no support"
    return PatternMatch(
        pattern_type=pattern_type,
        confidence=0.7 + (m.body / m.range) * 0.2,
        description=description,
    )


# ──────────────────────────────────────────────
# Double-Bar Candlestick Patterns
# ──────────────────────────────────────────────

def _engulfing_confidence(curr_body: float, prev_body: float) -> float:
    return 0.75 + min(curr_body / prev_body / 10, 0.2)


def _bullish_engulfing(w: PatternWindow) -> Optional[PatternMatch]:
    curr, prev = w.curr, w.prev
    if not (
        w.prev_m.is_bearish
        and w.curr_m.is_bullish
        and curr.open < prev.close
        and curr.close > prev.open
        and w.curr_m.body > w.prev_m.body * 1.5
    ):
        return None
    return PatternMatch(
        pattern_type=PatternType.BULLISH,
        confidence=_engulfing_confidence(w.curr_m.body, w.prev_m.body),
        description="Bullish Engulfing - Strong reversal signal, buyers taking control",
    )


def _bearish_engulfing(w: PatternWindow) -> Optional[PatternMatch]:
    curr, prev = w.curr, w.prev
    if not (
        w.prev_m.is_bullish
        and w.curr_m.is_bearish
        and curr.open > prev.close
        and curr.close < prev.open
        and w.curr_m.body > w.prev_m.body * 1.5
    ):
        return None
    return PatternMatch(
        pattern_type=PatternType.BEARISH,
        confidence=_engulfing_confidence(w.curr_m.body, w.prev_m.body),
        description="Bearish Engulfing - Strong reversal signal, sellers taking control",
    )


def _bullish_harami(w: PatternWindow) -> Optional[PatternMatch]:
    curr, prev = w.curr, w.prev
    if not (
        w.prev_m.is_bearish
        and w.curr_m.is_bullish
        and curr.close < prev.open
        and curr.open > prev.close
        and w.curr_m.body < w.prev_m.body * 0.5
    ):
        return None
    return PatternMatch(
        pattern_type=PatternType.BULLISH,
        confidence=0.65,
        description="Bullish Harami - Potential reversal, momentum weakening",
    )


def _bearish_harami(w: PatternWindow) -> Optional[PatternMatch]:
    curr, prev = w.curr, w.prev
    if not (
        w.prev_m.is_bullish
        and w.curr_m.is_bearish
        and curr.open < prev.close
        and curr.close > prev.open
        and w.curr_m.body < w.prev_m.body * 0.5
    ):
        return None
    return PatternMatch(
        pattern_type=PatternType.BEARISH,
        confidence=0.65,
        description="Bearish Harami - Potential reversal, momentum weakening",
    )


# ──────────────────────────────────────────────
# Triple-Bar Candlestick Patterns
# ──────────────────────────────────────────────

def _morning_star(w: PatternWindow) -> Optional[PatternMatch]:
    first, second, third = w.last3
    m1, m2, m3 = w.last3_m
    if not (
        m1.is_bearish
        and m1.body > m2.body * 2
        and m3.is_bullish
        and m3.body > m2.body * 2
        and third.close > (first.open + first.close) / 2
        and second.close < first.close
        and second.close < third.open
    ):
        return None
    return PatternMatch(
        pattern_type=PatternType.BULLISH,
        confidence=0.8,
        description="Morning Star - Strong bullish reversal pattern",
    )


def _evening_star(w: PatternWindow) -> Optional[PatternMatch]:
    first, second, third = w.last3
    m1, m2, m3 = w.last3_m
    if not (
        m1.is_bullish
        and m1.body > m2.body * 2
        and m3.is_bearish
        and m3.body > m2.body * 2
        and third.close < (first.open + first.close) / 2
        and second.close > first.close
        and second.close > third.open
    ):
        return None
    return PatternMatch(
        pattern_type=PatternType.BEARISH,
        confidence=0.8,
        description="Evening Star - Strong bearish reversal pattern",
    )


def _three_white_soldiers(w: PatternWindow) -> Optional[PatternMatch]:
    bars, geo = w.last3, w.last3_m
    if not all(m.is_bullish for m in geo):
        return None
    if not all(
        bars[i].open > bars[i - 1].open and bars[i].close > bars[i - 1].close
        for i in (1, 2)
    ):
        return None
    if not all(m.upper_wick < m.body * 0.3 for m in geo):
        return None
    return PatternMatch(
        pattern_type=PatternType.BULLISH,
        confidence=0.85,
        description="Three White Soldiers - Strong bullish continuation/reversal",
    )


def _three_black_crows(w: PatternWindow) -> Optional[PatternMatch]:
    bars, geo = w.last3, w.last3_m
    if not all(m.is_bearish for m in geo):
        return None
    if not all(
        bars[i].open < bars[i - 1].open and bars[i].close < bars[i - 1].close
        for i in (1, 2)
    ):
        return None
    if not all(m.lower_wick < m.body * 0.3 for m in geo):
        return None
    return PatternMatch(
        pattern_type=PatternType.BEARISH,
        confidence=0.85,
        description="Three Black Crows - Strong bearish continuation/reversal",
    )


RULES: tuple[PatternRule, ...] = (
    PatternRule("doji", 0.9, _doji),
    PatternRule("hammer", 0.95, _hammer),
    PatternRule("inverted_hammer", 0.9, _inverted_hammer),
    PatternRule("hanging_man", 0.85, _hanging_man),
    PatternRule("spinning_top", 0.6, _spinning_top),
    PatternRule("marubozu", 0.9, _marubozu),
    PatternRule("bullish_engulfing", 0.95, _bullish_engulfing),
    PatternRule("bearish_engulfing", 0.95, _bearish_engulfing),
    PatternRule("bullish_harami", 0.65, _bullish_harami),
    PatternRule("bearish_harami", 0.65, _bearish_harami),
    PatternRule("morning_star", 0.8, _morning_star),
    PatternRule("evening_star", 0.8, _evening_star),
    PatternRule("three_white_soldiers", 0.85, _three_white_soldiers),
    PatternRule("three_black_crows", 0.85, _three_black_crows),
)


class PatternClassifier:
    """Rule-based candlestick pattern classifier.

    Usage:
        classifier = PatternClassifier()
        signals = classifier.classify(candles, symbol="AAPL", timeframe="1h")
    """

    def __init__(self, rules: Sequence[PatternRule] = RULES):
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[PatternRule, ...]:
        return self._rules

    def rule_names(self) -> list[str]:
        """Pattern names in evaluation order."""
        return [rule.name for rule in self._rules]

    def classify(
        self,
        candles: Iterable[Candle],
        symbol: str = "",
        timeframe: str = "",
        detected_at: Optional[int] = None,
    ) -> list[PatternSignal]:
        """Evaluate every rule against the last bar of `candles`.

        Args:
            candles: Bars, oldest first. Fewer than 3 yields no signals.
            symbol: Symbol label copied into each signal.
            timeframe: Timeframe label copied into each signal.
            detected_at: Detection time in ms. Defaults to the last bar's
                timestamp so repeated calls on the same bars are identical.

        Returns:
            Signals in rule order, possibly several for the same bar.
        """
        bars = list(candles)
        if len(bars) < MIN_CANDLES:
            log.debug("pattern.insufficient_data", symbol=symbol, candles=len(bars))
            return []

        window = PatternWindow.build(bars)
        last = window.curr
        stamp = last.timestamp if detected_at is None else detected_at

        signals: list[PatternSignal] = []
        for rule in self._rules:
            match = rule.evaluate(window)
            if match is None:
                continue
            ordinal = len(signals)
            signals.append(PatternSignal(
                id=f"{symbol}-{last.timestamp}-{rule.name}-{ordinal}",
                pattern_name=rule.name,
                pattern_type=match.pattern_type,
                confidence=match.confidence,
                description=match.description,
                symbol=symbol,
                timeframe=timeframe,
                timestamp=last.timestamp,
                price=last.close,
                high=last.high,
                low=last.low,
                detected_at=stamp,
            ))

        if signals:
            log.debug(
                "pattern.classified",
                symbol=symbol,
                timeframe=timeframe,
                patterns=[s.pattern_name for s in signals],
            )
        return signals


_default_classifier = PatternClassifier()


def classify(
    candles: Iterable[Candle],
    symbol: str = "",
    timeframe: str = "",
    detected_at: Optional[int] = None,
) -> list[PatternSignal]:
    """Classify with the default rule set."""
    return _default_classifier.classify(candles, symbol, timeframe, detected_at)
