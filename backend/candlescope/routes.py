"""
Candlescope - Health Route

Unversioned liveness endpoint. Pattern and indicator endpoints live in
``routes_patterns`` and ``routes_indicators``.
"""

from __future__ import annotations

import time as _time

from fastapi import APIRouter, Request

from candlescope import __version__
from candlescope.models import HealthCheck

health_router = APIRouter()


@health_router.get("/health", response_model=HealthCheck)
async def health_check(request: Request):
    """Liveness plus a summary of the in-process detection state."""
    from candlescope.main import APP_START_TIME

    state = request.app.state
    settings = state.settings
    return HealthCheck(
        status="ok" if settings.pattern_detection_enabled else "detection_disabled",
        version=__version__,
        environment=settings.app_env,
        uptime_seconds=round(_time.monotonic() - APP_START_TIME, 1),
        rules=len(state.classifier.rules),
        tracked_symbols=len(state.aggregator.symbols()),
        notification_channels=state.dispatcher.active_channels,
    )
