"""Unit tests for WebSocket protocol error reporting."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from fastapi import WebSocket, WebSocketDisconnect

from api.websocket.errors import WSCloseCode, send_ws_error
from models.error_models import ErrorCode


@pytest.fixture
def mock_websocket() -> MagicMock:
    ws = MagicMock(spec=WebSocket)
    ws.send_json = AsyncMock()
    ws.close = AsyncMock()
    return ws


@pytest.mark.asyncio
async def test_send_ws_error_sends_error_frame(mock_websocket: MagicMock) -> None:
    delivered = await send_ws_error(
        mock_websocket,
        code=ErrorCode.WS_MESSAGE_INVALID,
        message="Unknown message type: 'upload'",
        thread_id="t1",
    )

    assert delivered is True
    mock_websocket.send_json.assert_awaited_once_with({"type": "error", "message": "Unknown message type: 'upload'"})


@pytest.mark.asyncio
async def test_send_ws_error_keeps_code_out_of_frame(mock_websocket: MagicMock) -> None:
    await send_ws_error(mock_websocket, ErrorCode.INTERNAL_CONFIGURATION_ERROR, "Missing credentials")

    frame = mock_websocket.send_json.call_args.args[0]
    assert set(frame) == {"type", "message"}


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [RuntimeError("WebSocket is not connected"), WebSocketDisconnect(code=1006)])
async def test_send_ws_error_on_closed_socket(mock_websocket: MagicMock, error: Exception) -> None:
    mock_websocket.send_json.side_effect = error

    assert await send_ws_error(mock_websocket, ErrorCode.WS_MESSAGE_INVALID, "bad") is False
    mock_websocket.close.assert_not_called()


def test_close_codes() -> None:
    assert WSCloseCode.NORMAL == 1000
    assert WSCloseCode.GOING_AWAY == 1001
    assert 4000 <= WSCloseCode.IDLE_TIMEOUT < 5000
    assert 4000 <= WSCloseCode.SERVICE_UNAVAILABLE < 5000
