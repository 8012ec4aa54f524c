"""Tests for thread stores."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest

from api.services.thread_store import InMemoryThreadStore, PostgresThreadStore


class TestInMemoryThreadStore:
    @pytest.mark.asyncio
    async def test_unknown_thread_has_empty_history(self) -> None:
        store = InMemoryThreadStore()

        assert await store.history("missing") == []

    @pytest.mark.asyncio
    async def test_appends_keep_order(self) -> None:
        store = InMemoryThreadStore()

        await store.append_user("t1", "What's the weather in Rome?")
        await store.append_assistant("t1", "Sunny, 24C.")
        await store.append_user("t1", "And tomorrow?")

        history = await store.history("t1")
        assert [(m.role, m.content) for m in history] == [
            ("user", "What's the weather in Rome?"),
            ("assistant", "Sunny, 24C."),
            ("user", "And tomorrow?"),
        ]
        assert all(m.finalized for m in history)

    @pytest.mark.asyncio
    async def test_threads_are_isolated(self) -> None:
        store = InMemoryThreadStore()

        await store.append_user("a", "question a")
        await store.append_user("b", "question b")

        assert [m.content for m in await store.history("a")] == ["question a"]
        assert [m.content for m in await store.history("b")] == ["question b"]

    @pytest.mark.asyncio
    async def test_history_is_a_copy(self) -> None:
        store = InMemoryThreadStore()
        await store.append_user("t1", "hi")

        history = await store.history("t1")
        history.clear()

        assert len(await store.history("t1")) == 1

    @pytest.mark.asyncio
    async def test_list_threads_newest_first(self) -> None:
        store = InMemoryThreadStore()

        await store.append_user("first", "1")
        await store.append_user("second", "2")
        await store.append_user("first", "3")

        assert await store.list_threads() == ["second", "first"]


class TestPostgresThreadStore:
    @pytest.mark.asyncio
    async def test_append_creates_thread_then_inserts(self, mock_db_pool: MagicMock) -> None:
        store = PostgresThreadStore(mock_db_pool)
        conn = mock_db_pool.acquire.return_value.__aenter__.return_value

        await store.append_user("t1", "hello")

        assert conn.execute.await_count == 2
        thread_sql, thread_id = conn.execute.await_args_list[0].args
        assert "INSERT INTO threads" in thread_sql
        assert thread_id == "t1"
        insert_args = conn.execute.await_args_list[1].args
        assert "INSERT INTO thread_messages" in insert_args[0]
        assert insert_args[1:5] == ("t1", "user", "hello", True)

    @pytest.mark.asyncio
    async def test_history_maps_rows(self, mock_db_pool: MagicMock) -> None:
        store = PostgresThreadStore(mock_db_pool)
        conn = mock_db_pool.acquire.return_value.__aenter__.return_value
        now = datetime.now(UTC)
        conn.fetch.return_value = [
            {"role": "user", "content": "q", "finalized": True, "created_at": now},
            {"role": "assistant", "content": "a", "finalized": True, "created_at": now},
        ]

        history = await store.history("t1")

        assert [(m.role, m.content) for m in history] == [("user", "q"), ("assistant", "a")]
        assert "ORDER BY id ASC" in conn.fetch.await_args.args[0]

    @pytest.mark.asyncio
    async def test_list_threads(self, mock_db_pool: MagicMock) -> None:
        store = PostgresThreadStore(mock_db_pool)
        conn = mock_db_pool.acquire.return_value.__aenter__.return_value
        conn.fetch.return_value = [{"id": "b"}, {"id": "a"}]

        assert await store.list_threads() == ["b", "a"]
        assert store.backend == "postgres"
