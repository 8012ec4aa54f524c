"""Tests for WebSocket manager.

Tests connection registration per thread, limits, idle cleanup and shutdown.
"""

from __future__ import annotations

import asyncio

from unittest.mock import AsyncMock, Mock

import pytest

from api.websocket.errors import WSCloseCode
from api.websocket.manager import SHUTDOWN_MESSAGE, WebSocketManager


def _ws() -> Mock:
    ws = Mock()
    ws.accept = AsyncMock()
    ws.close = AsyncMock()
    ws.send_json = AsyncMock()
    return ws


class TestWebSocketManagerConnection:
    """Tests for WebSocket connection lifecycle."""

    @pytest.mark.asyncio
    async def test_connect_new_thread(self) -> None:
        manager = WebSocketManager()
        ws = _ws()

        assert await manager.connect(ws, "thread-1") is True

        ws.accept.assert_called_once()
        assert ws in manager.connections["thread-1"]

    @pytest.mark.asyncio
    async def test_connect_same_thread_twice(self) -> None:
        manager = WebSocketManager()
        ws1, ws2 = _ws(), _ws()

        await manager.connect(ws1, "thread-1")
        await manager.connect(ws2, "thread-1")

        assert manager.connections["thread-1"] == {ws1, ws2}
        assert manager.thread_count == 1
        assert manager.connection_count == 2

    @pytest.mark.asyncio
    async def test_disconnect_last_socket_removes_thread(self) -> None:
        manager = WebSocketManager()
        ws = _ws()

        await manager.connect(ws, "thread-1")
        await manager.disconnect(ws, "thread-1")

        assert "thread-1" not in manager.connections
        assert ws not in manager.last_activity

    @pytest.mark.asyncio
    async def test_disconnect_one_of_multiple(self) -> None:
        manager = WebSocketManager()
        ws1, ws2 = _ws(), _ws()

        await manager.connect(ws1, "thread-1")
        await manager.connect(ws2, "thread-1")
        await manager.disconnect(ws1, "thread-1")

        assert manager.connections["thread-1"] == {ws2}

    @pytest.mark.asyncio
    async def test_disconnect_unknown_socket_is_noop(self) -> None:
        manager = WebSocketManager()

        await manager.disconnect(_ws(), "never-connected")

        assert manager.connection_count == 0


class TestWebSocketManagerLimits:
    """Connection limits are enforced before accept."""

    @pytest.mark.asyncio
    async def test_total_limit(self) -> None:
        manager = WebSocketManager(max_connections=1)
        await manager.connect(_ws(), "thread-1")
        rejected = _ws()

        assert await manager.connect(rejected, "thread-2") is False
        rejected.accept.assert_not_called()

    @pytest.mark.asyncio
    async def test_per_thread_limit(self) -> None:
        manager = WebSocketManager(max_connections_per_thread=1)
        await manager.connect(_ws(), "thread-1")

        assert await manager.connect(_ws(), "thread-1") is False
        assert await manager.connect(_ws(), "thread-2") is True

    @pytest.mark.asyncio
    async def test_rejects_during_shutdown(self) -> None:
        manager = WebSocketManager()
        await manager.graceful_shutdown(timeout=0.1)

        assert await manager.connect(_ws(), "thread-1") is False


class TestWebSocketManagerIdle:
    """Tests for WebSocket idle timeout functionality."""

    @pytest.mark.asyncio
    async def test_touch_updates_activity(self) -> None:
        manager = WebSocketManager()
        ws = _ws()
        await manager.connect(ws, "thread-1")
        before = manager.last_activity[ws]

        await asyncio.sleep(0.01)
        await manager.touch(ws)

        assert manager.last_activity[ws] > before

    @pytest.mark.asyncio
    async def test_touch_unknown_socket_is_ignored(self) -> None:
        manager = WebSocketManager()
        ws = _ws()

        await manager.touch(ws)

        assert ws not in manager.last_activity

    @pytest.mark.asyncio
    async def test_idle_connection_closed(self) -> None:
        manager = WebSocketManager(idle_timeout_seconds=0.05)
        ws = _ws()
        await manager.connect(ws, "thread-1")

        await asyncio.sleep(0.1)
        closed = await manager.close_idle_connections()

        assert closed == 1
        ws.close.assert_called_once_with(code=WSCloseCode.IDLE_TIMEOUT, reason="Idle timeout")
        assert manager.connection_count == 0

    @pytest.mark.asyncio
    async def test_active_connection_kept(self) -> None:
        manager = WebSocketManager(idle_timeout_seconds=10.0)
        ws = _ws()
        await manager.connect(ws, "thread-1")

        assert await manager.close_idle_connections() == 0
        ws.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_stop_idle_checker(self) -> None:
        manager = WebSocketManager(idle_timeout_seconds=60.0)

        await manager.start_idle_checker()
        assert manager._idle_checker_task is not None
        assert not manager._idle_checker_task.done()

        await manager.stop_idle_checker()
        assert manager._idle_checker_task is None


class TestWebSocketManagerShutdown:
    @pytest.mark.asyncio
    async def test_shutdown_notifies_and_closes(self) -> None:
        manager = WebSocketManager()
        ws1, ws2 = _ws(), _ws()
        await manager.connect(ws1, "thread-1")
        await manager.connect(ws2, "thread-2")

        await manager.graceful_shutdown(timeout=1.0)

        for ws in (ws1, ws2):
            ws.send_json.assert_called_once_with({"type": "error", "message": SHUTDOWN_MESSAGE})
            ws.close.assert_called_once_with(code=WSCloseCode.GOING_AWAY, reason="Server shutdown")
        assert manager.connection_count == 0

    @pytest.mark.asyncio
    async def test_shutdown_tolerates_broken_socket(self) -> None:
        manager = WebSocketManager()
        ws = _ws()
        ws.send_json.side_effect = RuntimeError("already closed")
        ws.close.side_effect = RuntimeError("already closed")
        await manager.connect(ws, "thread-1")

        await manager.graceful_shutdown(timeout=1.0)

        assert manager.connection_count == 0

    @pytest.mark.asyncio
    async def test_get_stats(self) -> None:
        manager = WebSocketManager(idle_timeout_seconds=30.0, max_connections=5, max_connections_per_thread=2)
        await manager.connect(_ws(), "thread-1")

        assert manager.get_stats() == {
            "total_connections": 1,
            "total_threads": 1,
            "max_connections": 5,
            "max_per_thread": 2,
            "idle_timeout": 30.0,
            "shutting_down": False,
        }
