"""WebSocket plumbing: connection limits, cancellation tokens, close codes."""

from __future__ import annotations

from api.websocket.errors import WSCloseCode, send_ws_error
from api.websocket.manager import WebSocketManager
from api.websocket.task_manager import CancellationToken

__all__ = ["CancellationToken", "WSCloseCode", "WebSocketManager", "send_ws_error"]
