from __future__ import annotations

import asyncio

from typing import Any

import pytest

from fastapi.testclient import TestClient


async def _seed(store: Any) -> None:
    await store.append_user("rome", "Weather in Rome?")
    await store.append_assistant("rome", "Sunny, 24C.")
    await store.append_user("paris", "Weather in Paris?")


@pytest.fixture
def seeded_store(thread_store: Any) -> Any:
    asyncio.run(_seed(thread_store))
    return thread_store


def test_list_threads(build_app: Any, seeded_store: Any) -> None:
    client = TestClient(build_app())
    body = client.get("/api/v1/threads").json()

    assert sorted(body["threads"]) == ["paris", "rome"]
    assert body["pagination"] == {"total_count": 2, "offset": 0, "limit": 50, "has_more": False}


def test_list_threads_paginated(build_app: Any, seeded_store: Any) -> None:
    client = TestClient(build_app())
    body = client.get("/api/v1/threads", params={"limit": 1}).json()

    assert len(body["threads"]) == 1
    assert body["pagination"]["has_more"] is True


def test_list_messages(build_app: Any, seeded_store: Any) -> None:
    client = TestClient(build_app())
    body = client.get("/api/v1/threads/rome/messages").json()

    assert body["thread_id"] == "rome"
    assert [(m["role"], m["content"]) for m in body["messages"]] == [
        ("user", "Weather in Rome?"),
        ("assistant", "Sunny, 24C."),
    ]
    assert body["pagination"]["total_count"] == 2


def test_list_messages_offset(build_app: Any, seeded_store: Any) -> None:
    client = TestClient(build_app())
    body = client.get("/api/v1/threads/rome/messages", params={"offset": 1}).json()

    assert [m["role"] for m in body["messages"]] == ["assistant"]


def test_unknown_thread_is_404(build_app: Any) -> None:
    client = TestClient(build_app())
    response = client.get("/api/v1/threads/nobody/messages")

    assert response.status_code == 404
    error = response.json()["error"]
    assert error["code"] == "THR_4001"
    assert error["path"] == "/api/v1/threads/nobody/messages"


def test_invalid_limit(build_app: Any) -> None:
    response = TestClient(build_app()).get("/api/v1/threads", params={"limit": 0})
    assert response.status_code == 422
