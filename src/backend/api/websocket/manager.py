"""
WebSocket connection registry.

Tracks live connections per thread id, enforces connection limits, closes
idle sockets, and drains everything on shutdown. Answer streams never write
through the manager: each request owns a WebSocketFrameSink. The manager only
decides who may connect and when a socket goes away.
"""

from __future__ import annotations

import asyncio
import contextlib
import time

from typing import Any

from fastapi import WebSocket

from api.websocket.errors import WSCloseCode
from models.frames import ErrorFrame
from utils.logger import logger
from utils.metrics import ws_connections_active, ws_connections_total

SHUTDOWN_MESSAGE = "Server is shutting down"


class WebSocketManager:
    """Per-thread connection registry with limits and idle cleanup."""

    def __init__(
        self,
        idle_timeout_seconds: float = 600.0,
        max_connections: int = 100,
        max_connections_per_thread: int = 3,
    ) -> None:
        """Initialize the WebSocket manager.

        Args:
            idle_timeout_seconds: Close connections idle longer than this (default 10 min)
            max_connections: Maximum total connections allowed
            max_connections_per_thread: Maximum simultaneous connections to one thread
        """
        self.connections: dict[str, set[WebSocket]] = {}
        self.last_activity: dict[WebSocket, float] = {}
        self.idle_timeout = idle_timeout_seconds
        self.max_connections = max_connections
        self.max_connections_per_thread = max_connections_per_thread
        self._lock = asyncio.Lock()
        self._idle_checker_task: asyncio.Task[None] | None = None
        self._shutting_down = False

    def _rejection_reason(self, thread_id: str) -> str | None:
        if self._shutting_down:
            return "server shutting down"
        if self.connection_count >= self.max_connections:
            return f"max connections ({self.max_connections}) reached"
        if len(self.connections.get(thread_id, ())) >= self.max_connections_per_thread:
            return f"thread at limit ({self.max_connections_per_thread})"
        return None

    async def connect(self, websocket: WebSocket, thread_id: str) -> bool:
        """Accept and register a connection.

        Returns:
            True if accepted, False if rejected (the socket is left unaccepted)
        """
        async with self._lock:
            reason = self._rejection_reason(thread_id)
            if reason:
                logger.warning(f"Rejecting WebSocket for thread {thread_id}: {reason}")
                return False

            await websocket.accept()
            self.connections.setdefault(thread_id, set()).add(websocket)
            self.last_activity[websocket] = time.monotonic()
            ws_connections_total.inc()
            ws_connections_active.set(self.connection_count)

            logger.info(
                f"WebSocket connected for thread {thread_id} "
                f"(total: {self.connection_count}, thread: {len(self.connections[thread_id])})"
            )
            return True

    async def disconnect(self, websocket: WebSocket, thread_id: str) -> None:
        """Forget a connection. Safe to call for unknown sockets."""
        async with self._lock:
            sockets = self.connections.get(thread_id)
            if sockets is not None:
                sockets.discard(websocket)
                if not sockets:
                    del self.connections[thread_id]
            self.last_activity.pop(websocket, None)
            ws_connections_active.set(self.connection_count)

    async def touch(self, websocket: WebSocket) -> None:
        """Record activity on a connection."""
        async with self._lock:
            if websocket in self.last_activity:
                self.last_activity[websocket] = time.monotonic()

    async def start_idle_checker(self) -> None:
        """Start background task to close idle connections."""
        if self._idle_checker_task is None:
            self._idle_checker_task = asyncio.create_task(self._check_idle_connections())
            logger.info(f"WebSocket idle checker started (timeout: {self.idle_timeout}s)")

    async def stop_idle_checker(self) -> None:
        if self._idle_checker_task:
            self._idle_checker_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._idle_checker_task
            self._idle_checker_task = None

    async def _check_idle_connections(self) -> None:
        check_interval = min(60.0, self.idle_timeout / 2)
        while True:
            await asyncio.sleep(check_interval)
            await self.close_idle_connections()

    async def close_idle_connections(self) -> int:
        """Close connections idle past the timeout. Returns how many were closed."""
        now = time.monotonic()
        async with self._lock:
            idle = [
                (ws, thread_id)
                for thread_id, sockets in self.connections.items()
                for ws in sockets
                if now - self.last_activity.get(ws, now) > self.idle_timeout
            ]

        # Close outside the lock; disconnect() takes it again
        for ws, thread_id in idle:
            logger.info(f"Closing idle WebSocket for thread {thread_id}")
            await self._close(ws, thread_id, WSCloseCode.IDLE_TIMEOUT, "Idle timeout")
        return len(idle)

    async def graceful_shutdown(self, timeout: float = 10.0) -> None:
        """Refuse new connections, tell clients, then close every socket.

        Args:
            timeout: Maximum time to wait for connections to close
        """
        self._shutting_down = True
        logger.info(f"Initiating graceful WebSocket shutdown (timeout: {timeout}s)")
        await self.stop_idle_checker()

        async with self._lock:
            open_sockets = [(ws, thread_id) for thread_id, sockets in self.connections.items() for ws in sockets]

        notice = ErrorFrame(message=SHUTDOWN_MESSAGE).to_dict()
        for ws, _ in open_sockets:
            with contextlib.suppress(Exception):
                await ws.send_json(notice)

        if open_sockets:
            closes = [self._close(ws, thread_id, WSCloseCode.GOING_AWAY, "Server shutdown") for ws, thread_id in open_sockets]
            try:
                await asyncio.wait_for(asyncio.gather(*closes), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning(f"Timeout closing {len(open_sockets)} WebSocket connections")

        logger.info(f"WebSocket shutdown complete (closed {len(open_sockets)} connections)")

    async def _close(self, websocket: WebSocket, thread_id: str, code: int, reason: str) -> None:
        with contextlib.suppress(Exception):
            await websocket.close(code=code, reason=reason)
        await self.disconnect(websocket, thread_id)

    @property
    def connection_count(self) -> int:
        """Total number of active connections."""
        return sum(len(sockets) for sockets in self.connections.values())

    @property
    def thread_count(self) -> int:
        """Number of threads with at least one connection."""
        return len(self.connections)

    def get_stats(self) -> dict[str, Any]:
        return {
            "total_connections": self.connection_count,
            "total_threads": self.thread_count,
            "max_connections": self.max_connections,
            "max_per_thread": self.max_connections_per_thread,
            "idle_timeout": self.idle_timeout,
            "shutting_down": self._shutting_down,
        }


__all__ = ["WebSocketManager"]
