"""
WebSocket close codes and protocol error reporting.

A malformed client message gets the same ``error`` frame an answer stream
fails with, so a client has one error shape to render. The connection stays
open; only connection-level problems close it.
"""

from __future__ import annotations

from fastapi import WebSocket, WebSocketDisconnect

from api.middleware.request_context import get_request_id
from models.error_models import ErrorCode
from models.frames import ErrorFrame
from utils.logger import logger


class WSCloseCode:
    """Close codes sent by the server (RFC 6455 plus 4xxx application codes)."""

    NORMAL = 1000
    GOING_AWAY = 1001
    INTERNAL_ERROR = 1011

    IDLE_TIMEOUT = 4000
    SERVICE_UNAVAILABLE = 4503


async def send_ws_error(
    websocket: WebSocket,
    code: ErrorCode,
    message: str,
    thread_id: str | None = None,
) -> bool:
    """Report a protocol problem as ``{"type": "error", "message": ...}``.

    ``code`` goes to the log only. Returns False when the socket is already
    gone.
    """
    logger.warning(
        f"Rejected WebSocket message ({code.value}): {message}",
        error_code=code.value,
        thread_id=thread_id,
        request_id=get_request_id(),
    )
    try:
        await websocket.send_json(ErrorFrame(message=message).to_dict())
    except (WebSocketDisconnect, RuntimeError, OSError) as e:
        logger.debug(f"Could not deliver error frame: {e}", thread_id=thread_id)
        return False
    return True


__all__ = ["WSCloseCode", "send_ws_error"]
