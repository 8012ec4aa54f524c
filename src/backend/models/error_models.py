"""
Error envelope for REST responses.

Errors raised before a response starts are rendered as::

    {"error": {"code": "THR_4001", "message": "Thread 't1' not found",
               "request_id": "req_...", "timestamp": "...", "path": "..."}}

Streaming transports report failures through the ``error`` output frame
instead (see models.frames). Codes are stable strings so clients can branch
on them; the numeric block identifies the subsystem.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    # Request validation (2xxx)
    VALIDATION_ERROR = "VAL_2001"

    # Lookups (3xxx)
    RESOURCE_NOT_FOUND = "RES_3001"

    # Threads (4xxx)
    THREAD_NOT_FOUND = "THR_4001"
    THREAD_PERSISTENCE_FAILED = "THR_4002"

    # WebSocket protocol and streaming (6xxx)
    WS_MESSAGE_INVALID = "WS_6002"
    STREAM_CANCELLED = "WS_6010"

    # Upstream services (7xxx)
    EXTERNAL_SERVICE_ERROR = "EXT_7001"
    EXTERNAL_TIMEOUT = "EXT_7002"
    EXTERNAL_RATE_LIMITED = "EXT_7003"
    OPENAI_ERROR = "EXT_7010"
    SEARCH_PROVIDER_ERROR = "EXT_7020"
    UPSTREAM_STREAM_ERROR = "EXT_7030"

    # Database (8xxx)
    DATABASE_ERROR = "DB_8001"
    DATABASE_CONNECTION_FAILED = "DB_8002"

    # Internal (9xxx)
    INTERNAL_ERROR = "INT_9001"
    INTERNAL_CONFIGURATION_ERROR = "INT_9002"
    INTERNAL_UNEXPECTED = "INT_9999"


class ErrorDetail(BaseModel):
    """One field-level problem."""

    field: str | None = None
    message: str
    code: str | None = None


class ErrorResponse(BaseModel):
    code: ErrorCode
    message: str
    request_id: str | None = None
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    details: list[ErrorDetail] | None = None
    path: str | None = None
    # Only rendered in debug mode
    debug: dict[str, Any] | None = Field(default=None, exclude=True)

    def to_dict(self, include_debug: bool = False) -> dict[str, Any]:
        data = self.model_dump(mode="json", exclude_none=True)
        if include_debug and self.debug:
            data["debug"] = self.debug
        return {"error": data}


ERROR_CODE_TO_STATUS: dict[ErrorCode, int] = {
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.RESOURCE_NOT_FOUND: 404,
    ErrorCode.THREAD_NOT_FOUND: 404,
    ErrorCode.EXTERNAL_RATE_LIMITED: 429,
    # Client went away mid-request (nginx convention)
    ErrorCode.STREAM_CANCELLED: 499,
    ErrorCode.EXTERNAL_SERVICE_ERROR: 502,
    ErrorCode.OPENAI_ERROR: 502,
    ErrorCode.SEARCH_PROVIDER_ERROR: 502,
    ErrorCode.UPSTREAM_STREAM_ERROR: 502,
    ErrorCode.EXTERNAL_TIMEOUT: 503,
}


def get_status_code(error_code: ErrorCode) -> int:
    """HTTP status for ``error_code``; anything unmapped is a 500."""
    return ERROR_CODE_TO_STATUS.get(error_code, 500)


__all__ = [
    "ERROR_CODE_TO_STATUS",
    "ErrorCode",
    "ErrorDetail",
    "ErrorResponse",
    "get_status_code",
]
