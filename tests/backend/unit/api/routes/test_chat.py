"""WebSocket transport tests against the real route and orchestrator."""

from __future__ import annotations

import asyncio
import json

from typing import Any

import pytest

from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from api.websocket.errors import WSCloseCode
from api.websocket.manager import WebSocketManager
from integrations.model_stream import ContentDelta, ToolCall, ToolCallSignal


def _until_done(ws: Any) -> list[dict[str, Any]]:
    frames: list[dict[str, Any]] = []
    while True:
        frame = ws.receive_json()
        if frame["type"] == "ping":
            continue
        frames.append(frame)
        if frame["type"] in ("done", "error"):
            return frames


def _search(query: str) -> ToolCallSignal:
    return ToolCallSignal((ToolCall(id="call_1", name="webSearch", arguments=json.dumps({"query": query})),))


def test_message_streams_answer(build_app: Any, make_model_stream: Any) -> None:
    model = make_model_stream([[_search("weather in Rome")], [ContentDelta("Sunny in Rome. ")]])
    client = TestClient(build_app(model))

    with client.websocket_connect("/ws/chat/t1") as ws:
        ws.send_json({"type": "message", "prompt": "What's the weather in Rome?"})
        frames = _until_done(ws)

    assert frames[0]["type"] == "thinking"
    titles = [f["title"] for f in frames if f["type"] == "thinking"]
    assert "Fake search started" in titles
    assert "".join(f["text"] for f in frames if f["type"] == "content") == "Sunny in Rome. "
    assert frames[-1] == {"type": "done"}


def test_invalid_json_keeps_socket_open(build_app: Any, make_model_stream: Any) -> None:
    client = TestClient(build_app(make_model_stream([[ContentDelta("ok. ")]])))

    with client.websocket_connect("/ws/chat/t1") as ws:
        ws.send_text("not json")
        assert ws.receive_json() == {"type": "error", "message": "Message must be a JSON object"}

        ws.send_json({"type": "message", "prompt": "still there?"})
        assert _until_done(ws)[-1] == {"type": "done"}


def test_unknown_message_type(build_app: Any) -> None:
    client = TestClient(build_app())

    with client.websocket_connect("/ws/chat/t1") as ws:
        ws.send_json({"type": "upload"})
        frame = ws.receive_json()

    assert frame == {"type": "error", "message": "Unknown message type: 'upload'"}


def test_blank_prompt_rejected(build_app: Any, make_model_stream: Any) -> None:
    client = TestClient(build_app(make_model_stream([])))

    with client.websocket_connect("/ws/chat/t1") as ws:
        ws.send_json({"type": "message", "prompt": "  "})
        frame = ws.receive_json()

    assert frame["type"] == "error"
    assert frame["message"].startswith("Invalid message:")


def test_missing_model_key_reported_before_output(build_app: Any) -> None:
    client = TestClient(build_app(model_stream=None))

    with client.websocket_connect("/ws/chat/t1") as ws:
        ws.send_json({"type": "message", "prompt": "hi"})
        frame = ws.receive_json()

    assert frame["type"] == "error"
    assert "OPENAI_API_KEY" in frame["message"]


def test_connection_limit(build_app: Any) -> None:
    client = TestClient(build_app(ws_manager=WebSocketManager(max_connections=0)))

    with client.websocket_connect("/ws/chat/t1") as ws, pytest.raises(WebSocketDisconnect) as exc_info:
        ws.receive_json()

    assert exc_info.value.code == WSCloseCode.SERVICE_UNAVAILABLE


def test_interrupt_then_new_message(
    build_app: Any,
    make_model_stream: Any,
    fake_provider: Any,
    thread_store: Any,
) -> None:
    async def slow_search() -> None:
        await asyncio.sleep(0.3)

    fake_provider.before_return = slow_search
    model = make_model_stream([[_search("weather in Rome")], [ContentDelta("Fresh answer. ")]])
    client = TestClient(build_app(model))

    with client.websocket_connect("/ws/chat/t1") as ws:
        ws.send_json({"type": "message", "prompt": "Weather in Rome?"})
        while ws.receive_json().get("title") != "Fake search started":
            pass
        ws.send_json({"type": "interrupt"})
        ws.send_json({"type": "message", "prompt": "Try again"})
        frames = _until_done(ws)

    # The interrupted answer ends silently; only the second one finishes
    assert frames[-1] == {"type": "done"}
    assert "".join(f["text"] for f in frames if f["type"] == "content") == "Fresh answer. "

    history = asyncio.run(thread_store.history("t1"))
    assert [(m.role, m.content) for m in history] == [
        ("user", "Weather in Rome?"),
        ("user", "Try again"),
        ("assistant", "Fresh answer. "),
    ]
