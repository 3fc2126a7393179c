"""
Candlescope - Pattern Routes

Stateless detection, live scans backed by the signal aggregator, stored
history with filters and analytics, and hot configuration updates.
"""

from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request

import structlog

from candlescope.engines.candle_series import CandleSeries
from candlescope.engines.detection_service import DetectionService
from candlescope.engines.pattern_engine import MIN_CANDLES, PatternClassifier
from candlescope.engines.signal_aggregator import SignalAggregator
from candlescope.models import (
    DetectRequest,
    DetectResponse,
    PatternAnalytics,
    PatternConfig,
    PatternConfigUpdate,
    ScanResponse,
)
from candlescope.notifications import NotificationDispatcher
from candlescope.utils.validators import validate_symbol, validate_timeframe

log = structlog.get_logger(__name__)

patterns_router = APIRouter()


# ──────────────────────────────────────────────
# Dependencies
# ──────────────────────────────────────────────


def get_classifier(request: Request) -> PatternClassifier:
    return request.app.state.classifier


def get_aggregator(request: Request) -> SignalAggregator:
    return request.app.state.aggregator


def get_detection_service(request: Request) -> DetectionService:
    return request.app.state.detection_service


def get_notification_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher


def _symbol_or_400(raw: str) -> str:
    try:
        return validate_symbol(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _timeframe_or_400(raw: str) -> str:
    try:
        return validate_timeframe(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _config_payload(config: PatternConfig) -> dict[str, Any]:
    payload = config.model_dump()
    payload["enabled_patterns"] = sorted(config.enabled_patterns)
    return payload


# ──────────────────────────────────────────────
# Detection
# ──────────────────────────────────────────────


@patterns_router.post("/patterns/detect", response_model=DetectResponse)
async def detect_patterns(
    body: DetectRequest,
    classifier: PatternClassifier = Depends(get_classifier),
):
    """Classify the last bar of the supplied candles. Nothing is stored."""
    symbol = _symbol_or_400(body.symbol)
    timeframe = _timeframe_or_400(body.timeframe)
    # Repeated timestamps collapse into one bar, so count after building.
    series = CandleSeries(body.candles)
    if len(series) < MIN_CANDLES:
        raise HTTPException(
            status_code=400,
            detail=f"At least {MIN_CANDLES} candles required for pattern detection",
        )

    patterns = classifier.classify(series.candles, symbol=symbol, timeframe=timeframe)
    log.info("patterns.detect", symbol=symbol, timeframe=timeframe, found=len(patterns))

    return DetectResponse(
        patterns=patterns,
        symbol=symbol,
        timeframe=timeframe,
        candle_count=len(series),
        timestamp=int(time.time() * 1000),
    )


@patterns_router.post("/patterns/scan", response_model=ScanResponse)
async def scan_patterns(
    body: DetectRequest,
    service: DetectionService = Depends(get_detection_service),
    dispatcher: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    """Run a live scan: classify, store accepted signals and send alerts."""
    symbol = _symbol_or_400(body.symbol)
    timeframe = _timeframe_or_400(body.timeframe)

    series = CandleSeries(body.candles)
    result = service.scan(symbol, timeframe, series.candles)

    for alert in result.alerts:
        await dispatcher.dispatch_pattern(alert)

    return ScanResponse(
        symbol=symbol,
        timeframe=timeframe,
        detected=len(result.detected),
        accepted=result.accepted,
        alerts=result.alerts,
        skipped_reason=result.skipped_reason,
    )


# ──────────────────────────────────────────────
# Configuration
# (declared before /patterns/{symbol} so "config" is not read as a symbol)
# ──────────────────────────────────────────────


@patterns_router.get("/patterns/config")
async def get_pattern_config(aggregator: SignalAggregator = Depends(get_aggregator)):
    """Current aggregator configuration."""
    return _config_payload(aggregator.config)


@patterns_router.patch("/patterns/config")
async def update_pattern_config(
    body: PatternConfigUpdate,
    aggregator: SignalAggregator = Depends(get_aggregator),
):
    """Merge the supplied fields into the live configuration.

    Invalid values are rejected with 422 and the previous configuration
    stays in effect.
    """
    updates = body.model_dump(exclude_none=True)
    if "enabled_patterns" in updates:
        updates["enabled_patterns"] = frozenset(
            name.strip().lower() for name in updates["enabled_patterns"] if name.strip()
        )
    config = aggregator.set_config(**updates)
    return _config_payload(config)


# ──────────────────────────────────────────────
# History
# ──────────────────────────────────────────────


@patterns_router.get("/patterns/{symbol}")
async def get_patterns(
    symbol: str,
    raw: bool = Query(False, description="Skip the display filters"),
    aggregator: SignalAggregator = Depends(get_aggregator),
):
    """Stored signals for a symbol, most recent first."""
    symbol = _symbol_or_400(symbol)
    patterns = aggregator.patterns(symbol) if raw else aggregator.query(symbol)
    return {"symbol": symbol, "patterns": patterns, "count": len(patterns)}


@patterns_router.get("/patterns/{symbol}/analytics", response_model=PatternAnalytics)
async def get_pattern_analytics(
    symbol: str,
    aggregator: SignalAggregator = Depends(get_aggregator),
):
    """Counts by type, mean confidence and last-hour activity."""
    return aggregator.analytics(_symbol_or_400(symbol))


@patterns_router.delete("/patterns/{symbol}")
async def clear_symbol_patterns(
    symbol: str,
    aggregator: SignalAggregator = Depends(get_aggregator),
):
    symbol = _symbol_or_400(symbol)
    return {"symbol": symbol, "removed": aggregator.clear(symbol)}


@patterns_router.delete("/patterns")
async def clear_all_patterns(aggregator: SignalAggregator = Depends(get_aggregator)):
    return {"removed": aggregator.clear()}
