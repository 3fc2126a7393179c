"""
Candlescope - Detection Service

One scan of a live candle series: classify the trailing window, stamp the
detection time, drop low-confidence signals, store the rest in the
aggregator and flag high-confidence ones for alerting.

Scheduling (scan on every new bar, or every N seconds) belongs to the caller.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

import structlog

from candlescope.config import Settings, get_settings
from candlescope.engines.pattern_engine import PatternClassifier
from candlescope.engines.signal_aggregator import SignalAggregator
from candlescope.models import Candle, PatternAlert, PatternSignal, PatternType
from candlescope.utils.formatters import format_pattern_name, format_price

log = structlog.get_logger(__name__)

_TYPE_EMOJI: dict[PatternType, str] = {
    PatternType.BULLISH: "🟢",
    PatternType.BEARISH: "🔴",
    PatternType.NEUTRAL: "🟡",
}


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class DetectionResult:
    """Outcome of one scan."""
    detected: list[PatternSignal] = field(default_factory=list)
    accepted: list[PatternSignal] = field(default_factory=list)
    alerts: list[PatternAlert] = field(default_factory=list)
    skipped_reason: Optional[str] = None


def build_alert(signal: PatternSignal) -> PatternAlert:
    """Format a high-confidence signal as a notification."""
    emoji = _TYPE_EMOJI.get(signal.pattern_type, "🟡")
    title = f"{emoji} {format_pattern_name(signal.pattern_name)} detected on {signal.symbol}"
    message = (
        f"{signal.description}\n"
        f"Confidence: {signal.confidence:.0%} | Price: {format_price(signal.price)} "
        f"| Timeframe: {signal.timeframe or 'n/a'}"
    )
    return PatternAlert(title=title, message=message, signal=signal)


class DetectionService:
    """Classifier + aggregator pipeline for live series.

    Usage:
        service = DetectionService(PatternClassifier(), aggregator)
        result = service.scan("AAPL", "1h", candles)
    """

    def __init__(
        self,
        classifier: PatternClassifier,
        aggregator: SignalAggregator,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.classifier = classifier
        self.aggregator = aggregator
        self.settings = settings or get_settings()
        self.params = self.settings.detection_params()
        self._clock = clock or _now_ms

    def scan(
        self,
        symbol: str,
        timeframe: str,
        candles: Iterable[Candle],
    ) -> DetectionResult:
        bars = list(candles)

        if not self.settings.pattern_detection_enabled:
            return DetectionResult(skipped_reason="detection_disabled")
        if len(bars) < self.params.min_candles:
            log.debug(
                "detection.skipped",
                symbol=symbol,
                candles=len(bars),
                required=self.params.min_candles,
            )
            return DetectionResult(skipped_reason="insufficient_candles")

        window = bars[-self.params.window:]
        detected = self.classifier.classify(
            window,
            symbol=symbol,
            timeframe=timeframe,
            detected_at=self._clock(),
        )

        config = self.aggregator.config
        eligible = [s for s in detected if s.confidence >= config.min_confidence]
        accepted = self.aggregator.ingest_many(eligible)

        alerts: list[PatternAlert] = []
        if config.alert_on_high_confidence:
            alerts = [
                build_alert(s) for s in accepted
                if s.confidence >= config.high_confidence_threshold
            ]

        log.info(
            "detection.scan_complete",
            symbol=symbol,
            timeframe=timeframe,
            detected=len(detected),
            accepted=len(accepted),
            alerts=len(alerts),
        )
        return DetectionResult(detected=detected, accepted=accepted, alerts=alerts)
