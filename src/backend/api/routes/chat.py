"""WebSocket transport: ``/ws/chat/{thread_id}``.

Client messages:
    {"type": "message", "prompt": "...", "search_provider": "content"}
    {"type": "interrupt"}
    {"type": "ping"}

Server messages are output frames (``thinking``, ``content``, ``done``,
``error``) plus a periodic ``{"type": "ping"}``. One answer runs per socket
at a time; a new ``message`` cancels the one in flight first.
"""

from __future__ import annotations

import asyncio
import contextlib
import json

from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from api.middleware.request_context import create_websocket_context
from api.services.chat_service import ChatService
from api.services.frame_sink import WebSocketFrameSink
from api.websocket.errors import WSCloseCode, send_ws_error
from api.websocket.manager import WebSocketManager
from api.websocket.task_manager import CancellationToken
from core.constants import MSG_TYPE_INTERRUPT, MSG_TYPE_MESSAGE, MSG_TYPE_PING, get_settings
from core.exceptions import ConfigurationError
from models.error_models import ErrorCode
from models.schemas.chat import WSChatMessage
from utils.logger import logger
from utils.metrics import ws_messages_total

router = APIRouter()

#: How long a cancelled answer may take to reach its terminal frame
STOP_GRACE_SECONDS = 5.0


class _ActiveAnswer:
    """The answer currently streaming on one socket, if any."""

    def __init__(self, websocket: WebSocket, thread_id: str, chat_service: ChatService):
        self.websocket = websocket
        self.thread_id = thread_id
        self.chat_service = chat_service
        self.task: asyncio.Task[None] | None = None
        self.token: CancellationToken | None = None

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()

    async def start(self, payload: dict[str, Any]) -> None:
        await self.stop("New message received")
        self.token = CancellationToken()
        self.task = asyncio.create_task(self._answer(payload, self.token))

    async def stop(self, reason: str) -> None:
        """Fire the token and wait for the answer to wind down."""
        if not self.running or self.task is None:
            return
        if self.token:
            await self.token.cancel(reason=reason)
        try:
            await asyncio.wait_for(asyncio.shield(self.task), timeout=STOP_GRACE_SECONDS)
        except asyncio.TimeoutError:
            logger.warning(f"Answer on {self.thread_id} ignored cancellation; cancelling task")
            self.task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self.task

    async def _answer(self, payload: dict[str, Any], token: CancellationToken) -> None:
        try:
            request = WSChatMessage.model_validate(payload).to_request(self.thread_id)
        except ValidationError as e:
            reason = e.errors(include_url=False)[0]["msg"] if e.error_count() else str(e)
            await send_ws_error(self.websocket, ErrorCode.WS_MESSAGE_INVALID, f"Invalid message: {reason}", self.thread_id)
            return

        try:
            provider = self.chat_service.resolve_provider(request)
        except ConfigurationError as e:
            await send_ws_error(self.websocket, e.code, e.message, self.thread_id)
            return

        await self.chat_service.process_chat(request, WebSocketFrameSink(self.websocket), token, provider=provider)


def _parse(raw: str) -> dict[str, Any] | None:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


@router.websocket("/chat/{thread_id}")
async def chat_websocket(websocket: WebSocket, thread_id: str) -> None:
    ws_manager: WebSocketManager = websocket.app.state.ws_manager
    chat_service: ChatService = websocket.app.state.chat_service

    create_websocket_context(thread_id=thread_id, client_ip=websocket.client.host if websocket.client else None)
    logger.info(f"WebSocket connection requested for thread {thread_id}")

    if not await ws_manager.connect(websocket, thread_id):
        await websocket.accept()
        await websocket.close(code=WSCloseCode.SERVICE_UNAVAILABLE, reason="Connection limit reached")
        return

    answer = _ActiveAnswer(websocket, thread_id, chat_service)
    keepalive = asyncio.create_task(_keepalive(websocket, get_settings().ws_heartbeat_interval))
    try:
        while True:
            raw = await websocket.receive_text()
            await ws_manager.touch(websocket)
            ws_messages_total.labels(direction="inbound").inc()

            data = _parse(raw)
            if data is None:
                await send_ws_error(websocket, ErrorCode.WS_MESSAGE_INVALID, "Message must be a JSON object", thread_id)
                continue

            msg_type = data.get("type")
            if msg_type == MSG_TYPE_MESSAGE:
                await answer.start(data)
            elif msg_type == MSG_TYPE_INTERRUPT:
                if answer.running:
                    logger.info(f"Interrupt received for thread {thread_id}")
                    await answer.stop("User interrupt")
                else:
                    logger.debug(f"Interrupt with no answer in flight on {thread_id}")
            elif msg_type == MSG_TYPE_PING:
                continue
            else:
                await send_ws_error(websocket, ErrorCode.WS_MESSAGE_INVALID, f"Unknown message type: {msg_type!r}", thread_id)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected for thread {thread_id}")
    except RuntimeError as e:
        # Starlette: "WebSocket is not connected" after the peer vanished
        if "not connected" not in str(e).lower():
            raise
    finally:
        keepalive.cancel()
        await answer.stop("Connection closing")
        await ws_manager.disconnect(websocket, thread_id)


async def _keepalive(websocket: WebSocket, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await websocket.send_json({"type": MSG_TYPE_PING})
        except (WebSocketDisconnect, RuntimeError, OSError):
            return
