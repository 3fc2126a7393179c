"""
Candlescope - FastAPI Application Entry Point

The central API server. Pattern detection, live scans and indicator
endpoints are mounted here.
"""

import time as _time
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from candlescope import __version__
from candlescope.config import Settings, get_settings
from candlescope.engines.detection_service import DetectionService
from candlescope.engines.pattern_engine import PatternClassifier
from candlescope.engines.signal_aggregator import SignalAggregator
from candlescope.engines.ta_engine import IndicatorLibrary
from candlescope.notifications import NotificationDispatcher, get_dispatcher

log = structlog.get_logger("candlescope.startup")

# Track server start time for uptime calculations
APP_START_TIME: float = _time.monotonic()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    settings: Settings = app.state.settings
    log.info(
        "startup",
        env=settings.app_env,
        detection_enabled=settings.pattern_detection_enabled,
        rules=len(app.state.classifier.rules),
        enabled_patterns=len(app.state.aggregator.config.enabled_patterns),
    )

    channels = app.state.dispatcher.active_channels
    if settings.pattern_alert_on_high_confidence and not channels:
        log.warning(
            "config.no_alert_channels",
            impact="high-confidence alerts are built but not delivered",
        )

    yield

    log.info("shutdown", tracked_symbols=len(app.state.aggregator.symbols()))


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Application factory.

    Configuration is validated here: a bad pattern or indicator setting
    raises ConfigurationInvalid before the server accepts traffic.
    """
    # Explicit settings get their own dispatcher; the process default is shared.
    dispatcher = NotificationDispatcher(settings) if settings is not None else get_dispatcher()
    settings = settings or get_settings()

    app = FastAPI(
        title="Candlescope",
        description="""# Candlescope API

Candlestick pattern recognition and technical indicators over OHLC series.

## Features
- **Pattern Detection**: fourteen single, double and triple bar formations
- **Live Scans**: deduplicated per-symbol history with analytics
- **Indicators**: SMA, EMA, RSI, MACD and Bollinger Bands
- **Alerts**: high-confidence patterns pushed to Discord and Telegram
""",
        version=__version__,
        debug=settings.app_debug,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "Health", "description": "Service health and readiness checks"},
            {"name": "Patterns", "description": "Candlestick pattern detection and history"},
            {"name": "Indicators", "description": "Technical indicator series"},
        ],
    )

    # ── Engines ──
    aggregator = SignalAggregator(settings.pattern_config())
    classifier = PatternClassifier()
    app.state.settings = settings
    app.state.classifier = classifier
    app.state.aggregator = aggregator
    app.state.indicators = IndicatorLibrary(settings.indicator_params())
    app.state.detection_service = DetectionService(classifier, aggregator, settings)
    app.state.dispatcher = dispatcher

    # ── Global Error Handlers ──
    from candlescope.error_handlers import register_error_handlers
    register_error_handlers(app)

    # ── CORS (configurable from settings) ──
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Request Logging ──
    from candlescope.middleware import RequestLoggerMiddleware
    app.add_middleware(RequestLoggerMiddleware)

    # ── Routes (unversioned) ──
    from candlescope.routes import health_router
    app.include_router(health_router, tags=["Health"])

    # ── Routes (v1 API) ──
    API_V1 = "/v1/api"
    from candlescope.routes_patterns import patterns_router
    from candlescope.routes_indicators import indicators_router
    app.include_router(patterns_router, prefix=API_V1, tags=["Patterns"])
    app.include_router(indicators_router, prefix=API_V1, tags=["Indicators"])

    # ── API Version Header ──
    @app.middleware("http")
    async def add_api_version_header(request, call_next):
        response = await call_next(request)
        response.headers["X-API-Version"] = "v1"
        return response

    return app


app = create_app()
