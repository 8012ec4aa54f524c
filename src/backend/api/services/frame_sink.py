"""Output sinks: where a request's frames go.

The orchestrator writes frames to a ``FrameSink`` and closes it when the
request reaches a terminal state. Two transports are supported:

- ``WebSocketFrameSink``: frames sent as JSON messages on a live socket.
  Closing the sink ends the request's stream, not the socket.
- ``QueueFrameSink``: frames buffered in an asyncio.Queue and drained by the
  NDJSON streaming response of ``POST /api/v1/ask``.
"""

from __future__ import annotations

import asyncio

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from models.frames import BaseFrame
from utils.metrics import ws_messages_total


class SinkClosed(Exception):
    """Raised when writing to a sink whose transport is gone."""


class FrameSink(ABC):
    """Ordered, closeable frame channel for one request."""

    def __init__(self) -> None:
        self._closed = False

    @property
    def is_open(self) -> bool:
        return not self._closed

    async def send(self, frame: BaseFrame) -> None:
        """Write one frame.

        Raises:
            SinkClosed: If the sink was closed or the transport failed
        """
        if self._closed:
            raise SinkClosed("sink is closed")
        try:
            await self._write(frame)
        except SinkClosed:
            self._closed = True
            raise
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            # Starlette raises WebSocketDisconnect or RuntimeError once the socket is gone
            self._closed = True
            raise SinkClosed(str(e)) from e

    async def close(self) -> None:
        """Close the sink. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        await self._on_close()

    @abstractmethod
    async def _write(self, frame: BaseFrame) -> None: ...

    async def _on_close(self) -> None:  # noqa: B027
        """Transport-specific close hook."""


class WebSocketFrameSink(FrameSink):
    """Sends frames as JSON on an accepted WebSocket."""

    def __init__(self, websocket: WebSocket):
        super().__init__()
        self.websocket = websocket

    @property
    def is_open(self) -> bool:
        return super().is_open and self.websocket.client_state == WebSocketState.CONNECTED

    async def _write(self, frame: BaseFrame) -> None:
        if self.websocket.client_state != WebSocketState.CONNECTED:
            raise SinkClosed("websocket is not connected")
        await self.websocket.send_json(frame.to_dict())
        ws_messages_total.labels(direction="outbound").inc()


class QueueFrameSink(FrameSink):
    """Buffers frames for an HTTP streaming response."""

    _END = None

    def __init__(self) -> None:
        super().__init__()
        self._queue: asyncio.Queue[BaseFrame | None] = asyncio.Queue()

    async def _write(self, frame: BaseFrame) -> None:
        await self._queue.put(frame)

    async def _on_close(self) -> None:
        await self._queue.put(self._END)

    async def frames(self) -> AsyncIterator[BaseFrame]:
        """Yield frames in write order until the sink is closed."""
        while True:
            frame = await self._queue.get()
            if frame is self._END:
                return
            yield frame

    async def ndjson(self) -> AsyncIterator[str]:
        """Yield frames as newline-delimited JSON."""
        async for frame in self.frames():
            yield frame.to_json() + "\n"


__all__ = ["FrameSink", "QueueFrameSink", "SinkClosed", "WebSocketFrameSink"]
