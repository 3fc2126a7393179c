"""
Candlescope - Signal Aggregator

Per-symbol pattern history with temporal deduplication, a bounded size and
rolling analytics.

Ordering guarantee: writes for all symbols are serialized behind one
re-entrant lock; reads take the same lock and return copies, so callers
always see a consistent snapshot. Stored signals are immutable.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Callable, Iterable, Optional

import structlog

from candlescope.models import (
    PatternAnalytics,
    PatternConfig,
    PatternSignal,
    PatternType,
)

log = structlog.get_logger(__name__)

ONE_HOUR_MS = 3_600_000


def _now_ms() -> int:
    return int(time.time() * 1000)


class SignalAggregator:
    """Owned store of pattern signals keyed by symbol.

    Usage:
        aggregator = SignalAggregator(PatternConfig())
        aggregator.ingest(signal)
        visible = aggregator.query("AAPL")
        stats = aggregator.analytics("AAPL")
    """

    def __init__(
        self,
        config: Optional[PatternConfig] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        self._config = config or PatternConfig()
        self._clock = clock or _now_ms
        self._history: dict[str, list[PatternSignal]] = {}
        self._lock = threading.RLock()

    # ──────────────────────────────────────────
    # Configuration
    # ──────────────────────────────────────────

    @property
    def config(self) -> PatternConfig:
        with self._lock:
            return self._config

    def set_config(self, **updates: Any) -> PatternConfig:
        """Merge `updates` into the live config.

        Raises:
            ConfigurationInvalid: the previous config stays in effect.
        """
        with self._lock:
            new_config = self._config.merged(**updates)
            self._config = new_config
        log.info("aggregator.config_updated", fields=sorted(k for k, v in updates.items() if v is not None))
        return new_config

    def replace_config(self, config: PatternConfig) -> None:
        with self._lock:
            self._config = config

    # ──────────────────────────────────────────
    # Writes
    # ──────────────────────────────────────────

    def ingest(self, signal: PatternSignal) -> bool:
        """Store a signal unless it repeats a recent one.

        A signal is dropped when the same symbol already holds the same
        pattern name detected less than `dedup_window_ms` apart (in either
        direction). Accepted signals are prepended and the history is cut
        to `max_patterns`, oldest first.

        Returns:
            True if stored, False if deduplicated.
        """
        with self._lock:
            config = self._config
            existing = self._history.get(signal.symbol, [])
            for stored in existing:
                if (
                    stored.pattern_name == signal.pattern_name
                    and abs(signal.detected_at - stored.detected_at) < config.dedup_window_ms
                ):
                    log.debug(
                        "aggregator.deduplicated",
                        symbol=signal.symbol,
                        pattern=signal.pattern_name,
                        kept=stored.id,
                    )
                    return False

            updated = [signal, *existing][: config.max_patterns]
            self._history[signal.symbol] = updated

        log.debug(
            "aggregator.ingested",
            symbol=signal.symbol,
            pattern=signal.pattern_name,
            confidence=round(signal.confidence, 4),
            stored=len(updated),
        )
        return True

    def ingest_many(self, signals: Iterable[PatternSignal]) -> list[PatternSignal]:
        """Ingest in order; returns the signals that were stored."""
        with self._lock:
            return [s for s in signals if self.ingest(s)]

    def clear(self, symbol: Optional[str] = None) -> int:
        """Drop one symbol's history, or every symbol's when `symbol` is None.

        Returns:
            Number of signals removed.
        """
        with self._lock:
            if symbol is None:
                removed = sum(len(v) for v in self._history.values())
                self._history.clear()
            else:
                removed = len(self._history.pop(symbol, []))
        log.info("aggregator.cleared", symbol=symbol or "*", removed=removed)
        return removed

    # ──────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────

    def symbols(self) -> list[str]:
        with self._lock:
            return sorted(self._history)

    def patterns(self, symbol: str) -> list[PatternSignal]:
        """Unfiltered history, most recent first."""
        with self._lock:
            return list(self._history.get(symbol, []))

    def query(
        self,
        symbol: str,
        filters: Optional[PatternConfig] = None,
    ) -> list[PatternSignal]:
        """History passing the confidence floor, enabled set and type toggles.

        Order is preserved (most recent first). `filters` defaults to the
        live config.
        """
        with self._lock:
            active = filters or self._config
            snapshot = list(self._history.get(symbol, []))
        return [s for s in snapshot if active.allows(s)]

    def analytics(self, symbol: str, now_ms: Optional[int] = None) -> PatternAnalytics:
        """Counts by type, mean confidence and the last-hour subset.

        `patterns_per_hour` is the size of the subset detected after
        `now - 1h`.
        """
        snapshot = self.patterns(symbol)
        now = self._clock() if now_ms is None else now_ms
        cutoff = now - ONE_HOUR_MS
        last_hour = [s for s in snapshot if s.detected_at > cutoff]

        total = len(snapshot)
        average = sum(s.confidence for s in snapshot) / total if total else 0.0

        return PatternAnalytics(
            symbol=symbol,
            total_detected=total,
            bullish_count=sum(1 for s in snapshot if s.pattern_type == PatternType.BULLISH),
            bearish_count=sum(1 for s in snapshot if s.pattern_type == PatternType.BEARISH),
            neutral_count=sum(1 for s in snapshot if s.pattern_type == PatternType.NEUTRAL),
            average_confidence=average,
            patterns_per_hour=len(last_hour),
            last_hour_patterns=last_hour,
        )
