"""
Candlescope - Global Exception Handlers

Every error response follows the same JSON schema:
``{error, status_code, detail, request_id}``. Validation failures add an
``errors`` list with one entry per offending field.
"""

from __future__ import annotations

import traceback

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

import structlog

from candlescope.engines.candle_series import InvalidSeries
from candlescope.models import ConfigurationInvalid

log = structlog.get_logger(__name__)


def _error_body(request: Request, status_code: int, detail, **extra) -> dict:
    body = {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "request_id": getattr(request.state, "request_id", None),
    }
    body.update(extra)
    return body


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, exc.detail),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Pydantic validation errors → 422 with field details."""
        errors = [
            {
                "field": " → ".join(str(loc) for loc in err.get("loc", [])),
                "message": err.get("msg", ""),
                "type": err.get("type", ""),
            }
            for err in exc.errors()
        ]
        log.warning("validation_error", path=str(request.url.path), errors=errors)
        return JSONResponse(
            status_code=422,
            content=_error_body(request, 422, "Validation error", errors=errors),
        )

    @app.exception_handler(ConfigurationInvalid)
    async def configuration_invalid_handler(request: Request, exc: ConfigurationInvalid):
        """Rejected pattern or indicator configuration → 422."""
        log.warning("config.invalid", path=str(request.url.path), errors=exc.errors)
        return JSONResponse(
            status_code=422,
            content=_error_body(request, 422, str(exc), errors=exc.errors),
        )

    @app.exception_handler(InvalidSeries)
    async def invalid_series_handler(request: Request, exc: InvalidSeries):
        """Candles out of time order → 400."""
        log.warning(
            "series.invalid",
            path=str(request.url.path),
            index=exc.index,
            timestamp=exc.timestamp,
        )
        return JSONResponse(
            status_code=400,
            content=_error_body(request, 400, str(exc)),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        """Catch-all → 500 with safe details."""
        log.error(
            "unhandled_exception",
            path=str(request.url.path),
            method=request.method,
            error=str(exc),
            traceback=traceback.format_exc(),
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(request, 500, "Internal server error"),
        )
