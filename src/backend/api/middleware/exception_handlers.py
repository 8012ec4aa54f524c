"""
Global exception handlers for the askstream API.

Every error raised before a response starts is rendered as the same
``{"error": {...}}`` envelope (see ``models.error_models.ErrorResponse``).
Once an answer is streaming, failures travel as ``error`` frames instead and
never reach these handlers.
"""

from __future__ import annotations

import traceback

from typing import Any

import asyncpg

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from openai import APIError as OpenAIAPIError, RateLimitError as OpenAIRateLimitError

from api.middleware.request_context import get_request_context, get_request_id
from core.constants import get_settings
from core.exceptions import AppException
from models.error_models import ErrorCode, ErrorDetail, ErrorResponse, get_status_code
from utils.logger import logger

_HTTP_STATUS_CODES: dict[int, ErrorCode] = {
    400: ErrorCode.VALIDATION_ERROR,
    404: ErrorCode.RESOURCE_NOT_FOUND,
    422: ErrorCode.VALIDATION_ERROR,
    429: ErrorCode.EXTERNAL_RATE_LIMITED,
    502: ErrorCode.EXTERNAL_SERVICE_ERROR,
    503: ErrorCode.EXTERNAL_TIMEOUT,
}


def _respond(
    request: Request,
    exc: Exception,
    code: ErrorCode,
    message: str,
    *,
    status_code: int | None = None,
    details: list[ErrorDetail] | None = None,
    debug_info: dict[str, Any] | None = None,
) -> JSONResponse:
    """Log ``exc`` and render the error envelope."""
    status_code = status_code or get_status_code(code)

    ctx = get_request_context()
    log_context = ctx.to_log_context() if ctx else {}
    log_context.update(error_code=code.value, status_code=status_code)
    if status_code >= 500:
        logger.error(f"Server error: {code.value} - {exc}", exc_info=True, **log_context)
    else:
        logger.warning(f"Client error: {code.value} - {exc}", **log_context)

    include_debug = bool(debug_info) and get_settings().debug
    body = ErrorResponse(
        code=code,
        message=message,
        request_id=get_request_id(),
        path=request.url.path,
        details=details,
        debug=debug_info if include_debug else None,
    )
    return JSONResponse(status_code=status_code, content=body.to_dict(include_debug=include_debug))


def _app_error_details(exc: AppException) -> list[ErrorDetail] | None:
    if not exc.details:
        return None
    return [ErrorDetail(field=k, message=str(v)) for k, v in exc.details.items()]


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    return _respond(
        request,
        exc,
        exc.code,
        exc.message,
        details=_app_error_details(exc),
        debug_info={"exception_type": type(exc).__name__, "cause": str(exc.cause) if exc.cause else None},
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    code = _HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _respond(request, exc, code, message, status_code=exc.status_code)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body/path/query did not match the route's models."""
    details = [
        ErrorDetail(field=".".join(str(part) for part in err["loc"]), message=err["msg"], code=err["type"])
        for err in exc.errors()
    ]
    return _respond(request, exc, ErrorCode.VALIDATION_ERROR, "Request validation failed", details=details)


async def openai_exception_handler(request: Request, exc: OpenAIAPIError) -> JSONResponse:
    if isinstance(exc, OpenAIRateLimitError):
        return _respond(request, exc, ErrorCode.EXTERNAL_RATE_LIMITED, "OpenAI rate limit exceeded")
    return _respond(request, exc, ErrorCode.OPENAI_ERROR, f"OpenAI API error: {exc}")


async def asyncpg_exception_handler(request: Request, exc: asyncpg.PostgresError) -> JSONResponse:
    """Thread history reads against PostgreSQL."""
    return _respond(
        request,
        exc,
        ErrorCode.DATABASE_ERROR,
        "Database operation failed",
        debug_info={"pg_error_code": getattr(exc, "sqlstate", None), "pg_error_class": type(exc).__name__},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    return _respond(
        request,
        exc,
        ErrorCode.INTERNAL_UNEXPECTED,
        "An unexpected error occurred",
        debug_info={
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
            "traceback": traceback.format_exc(),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    # Covariant exception types in handlers are safe at runtime
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(OpenAIAPIError, openai_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(asyncpg.PostgresError, asyncpg_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)


__all__ = [
    "app_exception_handler",
    "asyncpg_exception_handler",
    "generic_exception_handler",
    "http_exception_handler",
    "openai_exception_handler",
    "register_exception_handlers",
    "validation_exception_handler",
]
