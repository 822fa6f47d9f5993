"""
Global middleware and error handlers.

All failures leave the API in one envelope::

    {"success": false, "message": ..., "errors": [...], "timestamp": ..., "path": ...}
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import List

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from utils.errors import AppError, ValidationFailed

logger = logging.getLogger(__name__)


def error_response(request: Request, status_code: int, message: str, errors: List[str]) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "errors": errors,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "path": request.url.path,
        },
    )


def _format_validation_error(err: dict) -> str:
    location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
    return f"{location}: {err.get('msg', 'invalid value')}" if location else err.get("msg", "invalid value")


def register_middleware(app: FastAPI) -> None:
    """Attach app-level middleware and exception handlers."""

    @app.middleware("http")
    async def request_timer(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        logger.debug("%s %s — %.3fs", request.method, request.url.path, elapsed)
        return response

    @app.exception_handler(ValidationFailed)
    async def handle_validation_failed(request: Request, exc: ValidationFailed):
        return error_response(request, exc.status_code, exc.message, exc.errors)

    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        return error_response(request, exc.status_code, exc.message, [exc.message])

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        message = str(exc.detail)
        return error_response(request, exc.status_code, message, [message])

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = [_format_validation_error(e) for e in exc.errors()]
        return error_response(
            request,
            ValidationFailed.status_code,
            errors[0] if errors else "Validation failed",
            errors,
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            ["Internal server error"],
        )
