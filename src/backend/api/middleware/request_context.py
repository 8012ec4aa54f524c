"""
Request-scoped context carried through logs.

Every HTTP request and every WebSocket connection gets a ``RequestContext``
in a ContextVar. The logger merges ``to_log_context()`` into each record, so
an answer's log lines share one request id and thread id without passing
them around. Tasks spawned while a context is set inherit it.
"""

from __future__ import annotations

import secrets
import time

from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_PREFIX = "req_"
WEBSOCKET_ID_PREFIX = "ws_"
REQUEST_ID_HEADER = "X-Request-ID"

_request_context: ContextVar[RequestContext | None] = ContextVar("request_context", default=None)


@dataclass
class RequestContext:
    request_id: str
    start_time: float = field(default_factory=time.monotonic)
    path: str = ""
    method: str = ""
    client_ip: str | None = None
    thread_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.start_time) * 1000

    def to_log_context(self) -> dict[str, Any]:
        """Fields merged into every log record written under this context."""
        ctx: dict[str, Any] = {
            "request_id": self.request_id,
            "path": self.path,
            "method": self.method,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }
        optional = {"client_ip": self.client_ip, "thread_id": self.thread_id}
        ctx.update({k: v for k, v in optional.items() if v})
        ctx.update(self.extra)
        return ctx


def generate_request_id(prefix: str = REQUEST_ID_PREFIX) -> str:
    """``prefix`` plus 16 hex characters, e.g. ``req_9f2c4e1ab03d7765``."""
    return prefix + secrets.token_hex(8)


def get_request_context() -> RequestContext | None:
    return _request_context.get()


def get_request_id() -> str | None:
    ctx = _request_context.get()
    return ctx.request_id if ctx else None


def set_request_context(context: RequestContext) -> None:
    _request_context.set(context)


def clear_request_context() -> None:
    _request_context.set(None)


def update_request_context(**fields: Any) -> None:
    """Attach fields to the current context; unknown names go to ``extra``.

    Outside a request this does nothing.
    """
    ctx = _request_context.get()
    if ctx is None:
        return
    for name, value in fields.items():
        if name in RequestContext.__dataclass_fields__ and name != "extra":
            setattr(ctx, name, value)
        else:
            ctx.extra[name] = value


def _client_ip(request: Request) -> str | None:
    # First hop of X-Forwarded-For is the original client behind a proxy
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def _thread_id_from_path(path: str) -> str | None:
    parts = path.strip("/").split("/")
    try:
        return parts[parts.index("threads") + 1] or None
    except (ValueError, IndexError):
        return None


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Sets the context for each HTTP request and echoes the request id.

    An incoming ``X-Request-ID`` is reused so ids survive across services.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        context = RequestContext(
            request_id=request.headers.get(REQUEST_ID_HEADER) or generate_request_id(),
            path=request.url.path,
            method=request.method,
            client_ip=_client_ip(request),
            thread_id=_thread_id_from_path(request.url.path),
        )
        token = _request_context.set(context)
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = context.request_id
            response.headers["X-Response-Time"] = f"{context.elapsed_ms:.2f}ms"
            return response
        finally:
            _request_context.reset(token)


def create_websocket_context(thread_id: str | None = None, client_ip: str | None = None) -> RequestContext:
    """Set a context for a WebSocket connection.

    One context per connection, not per message: every answer streamed on
    the socket logs under the same ``ws_`` id.
    """
    context = RequestContext(
        request_id=generate_request_id(WEBSOCKET_ID_PREFIX),
        path=f"/ws/chat/{thread_id}" if thread_id else "/ws/chat",
        method="WEBSOCKET",
        client_ip=client_ip,
        thread_id=thread_id,
    )
    _request_context.set(context)
    return context


__all__ = [
    "REQUEST_ID_PREFIX",
    "WEBSOCKET_ID_PREFIX",
    "RequestContext",
    "RequestContextMiddleware",
    "clear_request_context",
    "create_websocket_context",
    "generate_request_id",
    "get_request_context",
    "get_request_id",
    "set_request_context",
    "update_request_context",
]
