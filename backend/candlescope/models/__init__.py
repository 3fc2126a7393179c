"""
Candlescope - Pydantic Models

All I/O schemas for the application. Engines return these, the aggregator
stores these, API routes serialize these.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


# ──────────────────────────────────────────────
# Errors
# ──────────────────────────────────────────────

class ConfigurationInvalid(ValueError):
    """Raised when a pattern or indicator configuration fails validation.

    Rejected at load time; values are never clamped mid-stream.
    """

    def __init__(self, message: str, errors: Optional[list[dict]] = None):
        self.errors = errors or []
        super().__init__(message)

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "ConfigurationInvalid":
        errors = [
            {
                "field": ".".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", ""),
            }
            for err in exc.errors()
        ]
        summary = "; ".join(f"{e['field']}: {e['message']}" for e in errors)
        return cls(f"Invalid configuration ({summary})", errors)


# ──────────────────────────────────────────────
# Enums
# ──────────────────────────────────────────────

class TimeFrame(str, Enum):
    """Supported chart timeframes."""
    M1 = "1m"
    M5 = "5m"
    M15 = "15m"
    M30 = "30m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"
    W1 = "1wk"
    MO = "1mo"


class PatternType(str, Enum):
    """Directional bias of a detected pattern."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class Direction(str, Enum):
    """Direction of a single bar's body."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    FLAT = "flat"


# ──────────────────────────────────────────────
# Market Data Models
# ──────────────────────────────────────────────

# Epoch values below this are treated as seconds (10**11 ms is early 1973).
_SECONDS_CUTOFF = 10**11


def to_millis(value: Any) -> int:
    """Normalise a timestamp to integer Unix milliseconds.

    >>> to_millis(1_700_000_000)
    1700000000000
    >>> to_millis(1_700_000_000_123)
    1700000000123
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(round(value.timestamp() * 1000))
    if isinstance(value, bool):
        raise ValueError("timestamp must be a number or datetime")
    if isinstance(value, str):
        value = value.strip()
        try:
            value = float(value)
        except ValueError:
            return to_millis(datetime.fromisoformat(value.replace("Z", "+00:00")))
    number = float(value)
    if not math.isfinite(number):
        raise ValueError("timestamp must be finite")
    if abs(number) < _SECONDS_CUTOFF:
        number *= 1000
    return int(round(number))


class Candle(BaseModel):
    """Single OHLC bar. Timestamps are Unix milliseconds."""
    model_config = ConfigDict(frozen=True)

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: Optional[float] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def _normalise_timestamp(cls, value: Any) -> int:
        return to_millis(value)


# ──────────────────────────────────────────────
# Pattern Models
# ──────────────────────────────────────────────

class PatternSignal(BaseModel):
    """A detected candlestick pattern on one bar. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    id: str
    pattern_name: str
    pattern_type: PatternType
    confidence: float = Field(ge=0.0, le=1.0)
    description: str = ""
    symbol: str = ""
    timeframe: str = ""
    timestamp: int
    price: float
    high: float
    low: float
    detected_at: int


DEFAULT_ENABLED_PATTERNS: frozenset[str] = frozenset({
    "doji", "hammer", "inverted_hammer", "hanging_man",
    "bullish_engulfing", "bearish_engulfing",
    "bullish_harami", "bearish_harami",
    "morning_star", "evening_star",
    "three_white_soldiers", "three_black_crows",
    "piercing_line", "dark_cloud_cover",
    "spinning_top", "marubozu",
})


class PatternConfig(BaseModel):
    """Aggregator configuration: confidence floor, filters, history bound, alerts."""
    model_config = ConfigDict(frozen=True)

    min_confidence: float = Field(0.6, ge=0.0, le=1.0)
    enabled_patterns: frozenset[str] = DEFAULT_ENABLED_PATTERNS
    show_bullish: bool = True
    show_bearish: bool = True
    show_neutral: bool = True
    max_patterns: int = Field(100, gt=0)
    alert_on_high_confidence: bool = True
    high_confidence_threshold: float = Field(0.85, ge=0.0, le=1.0)
    dedup_window_ms: int = Field(60_000, gt=0)

    @classmethod
    def load(cls, **values: Any) -> "PatternConfig":
        """Validate and build a config, raising ConfigurationInvalid on bad values."""
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise ConfigurationInvalid.from_validation_error(exc) from exc

    def merged(self, **updates: Any) -> "PatternConfig":
        """Return a new validated config with `updates` applied."""
        values = self.model_dump()
        values.update({k: v for k, v in updates.items() if v is not None})
        return PatternConfig.load(**values)

    def allows(self, signal: PatternSignal) -> bool:
        """Whether a stored signal passes the display filters."""
        if signal.confidence < self.min_confidence:
            return False
        if signal.pattern_name not in self.enabled_patterns:
            return False
        if signal.pattern_type == PatternType.BULLISH and not self.show_bullish:
            return False
        if signal.pattern_type == PatternType.BEARISH and not self.show_bearish:
            return False
        if signal.pattern_type == PatternType.NEUTRAL and not self.show_neutral:
            return False
        return True


class PatternAnalytics(BaseModel):
    """Rolling analytics over one symbol's stored history."""
    symbol: str
    total_detected: int = 0
    bullish_count: int = 0
    bearish_count: int = 0
    neutral_count: int = 0
    average_confidence: float = 0.0
    # Size of the last-hour subset, not a rate.
    patterns_per_hour: int = 0
    last_hour_patterns: list[PatternSignal] = []


class PatternAlert(BaseModel):
    """High-confidence pattern notification."""
    title: str
    message: str
    signal: PatternSignal


# ──────────────────────────────────────────────
# Indicator Models
# ──────────────────────────────────────────────

class IndicatorParams(BaseModel):
    """Window parameters for the indicator bundle."""
    model_config = ConfigDict(frozen=True)

    sma_period: int = Field(20, gt=0)
    ema_period: int = Field(20, gt=0)
    rsi_period: int = Field(14, gt=0)
    macd_fast: int = Field(12, gt=0)
    macd_slow: int = Field(26, gt=0)
    macd_signal: int = Field(9, gt=0)
    bollinger_period: int = Field(20, gt=0)
    bollinger_std_dev: float = Field(2.0, gt=0)

    @classmethod
    def load(cls, **values: Any) -> "IndicatorParams":
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise ConfigurationInvalid.from_validation_error(exc) from exc


class DetectionParams(BaseModel):
    """Scan sizing for the live detection service."""
    model_config = ConfigDict(frozen=True)

    window: int = Field(50, gt=0)
    min_candles: int = Field(10, gt=0)

    @classmethod
    def load(cls, **values: Any) -> "DetectionParams":
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise ConfigurationInvalid.from_validation_error(exc) from exc


class MACDResult(BaseModel):
    macd: list[Optional[float]]
    signal: list[Optional[float]]
    histogram: list[Optional[float]]
    # Sign of the histogram bar, used for up/down colouring.
    histogram_positive: list[Optional[bool]]


class BollingerResult(BaseModel):
    upper: list[Optional[float]]
    middle: list[Optional[float]]
    lower: list[Optional[float]]


class IndicatorSet(BaseModel):
    """All indicator series for one candle series, aligned by index."""
    timestamps: list[int]
    sma: list[Optional[float]]
    ema: list[Optional[float]]
    rsi: list[Optional[float]]
    macd: MACDResult
    bollinger: BollingerResult
    params: IndicatorParams


# ──────────────────────────────────────────────
# API Request / Response Models
# ──────────────────────────────────────────────

class DetectRequest(BaseModel):
    symbol: str = Field(..., min_length=1, max_length=20)
    timeframe: str = "1d"
    candles: list[Candle]


class DetectResponse(BaseModel):
    patterns: list[PatternSignal]
    symbol: str
    timeframe: str
    candle_count: int
    timestamp: int


class ScanResponse(BaseModel):
    symbol: str
    timeframe: str
    detected: int
    accepted: list[PatternSignal]
    alerts: list[PatternAlert]
    skipped_reason: Optional[str] = None


class IndicatorRequest(BaseModel):
    candles: list[Candle]
    sma_period: Optional[int] = Field(None, gt=0)
    ema_period: Optional[int] = Field(None, gt=0)
    rsi_period: Optional[int] = Field(None, gt=0)
    macd_fast: Optional[int] = Field(None, gt=0)
    macd_slow: Optional[int] = Field(None, gt=0)
    macd_signal: Optional[int] = Field(None, gt=0)
    bollinger_period: Optional[int] = Field(None, gt=0)
    bollinger_std_dev: Optional[float] = Field(None, gt=0)


class PatternConfigUpdate(BaseModel):
    """Partial config update; omitted fields keep their current value."""
    min_confidence: Optional[float] = None
    enabled_patterns: Optional[list[str]] = None
    show_bullish: Optional[bool] = None
    show_bearish: Optional[bool] = None
    show_neutral: Optional[bool] = None
    max_patterns: Optional[int] = None
    alert_on_high_confidence: Optional[bool] = None
    high_confidence_threshold: Optional[float] = None
    dedup_window_ms: Optional[int] = None


class HealthCheck(BaseModel):
    status: str = "ok"
    version: str = "1.0.0"
    environment: str = "development"
    uptime_seconds: float = 0.0
    rules: int = 0
    tracked_symbols: int = 0
    notification_channels: list[str] = []
