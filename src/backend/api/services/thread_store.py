"""Thread storage: an append-only message log per conversation.

The orchestrator depends only on ``ThreadStore``. Two backends are provided:

- ``InMemoryThreadStore``: process-local dict, default and used by tests
- ``PostgresThreadStore``: asyncpg-backed, schema from migrations/0001

Each append is atomic per call. Two overlapping requests on the same thread
interleave in call order; nothing here serializes whole requests.
"""

from __future__ import annotations

import time

from abc import ABC, abstractmethod

import asyncpg

from models.thread_models import Message, MessageRole
from utils.db_utils import transaction, with_retry
from utils.metrics import db_query_duration_seconds


class ThreadStore(ABC):
    """Repository interface for conversation threads."""

    #: Backend name reported by the health endpoint
    backend: str = "abstract"

    async def append_user(self, thread_id: str, text: str) -> None:
        """Append a user turn. Creates the thread if it does not exist."""
        await self._append(thread_id, Message(role="user", content=text))

    async def append_assistant(self, thread_id: str, text: str) -> None:
        """Append a finished assistant turn."""
        await self._append(thread_id, Message(role="assistant", content=text))

    @abstractmethod
    async def _append(self, thread_id: str, message: Message) -> None: ...

    @abstractmethod
    async def history(self, thread_id: str) -> list[Message]:
        """Messages of a thread in insertion order (empty for unknown threads)."""

    @abstractmethod
    async def list_threads(self) -> list[str]:
        """Known thread ids, most recently created first."""


class InMemoryThreadStore(ThreadStore):
    """Dict-backed store. Lost on restart."""

    backend = "memory"

    def __init__(self) -> None:
        self._threads: dict[str, list[Message]] = {}

    async def _append(self, thread_id: str, message: Message) -> None:
        self._threads.setdefault(thread_id, []).append(message)

    async def history(self, thread_id: str) -> list[Message]:
        return list(self._threads.get(thread_id, ()))

    async def list_threads(self) -> list[str]:
        return list(reversed(self._threads))


class PostgresThreadStore(ThreadStore):
    """asyncpg-backed store.

    Ordering comes from the ``thread_messages.id`` bigserial, so history is
    returned in commit order even when timestamps collide.
    """

    backend = "postgres"

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def _append(self, thread_id: str, message: Message) -> None:
        start_time = time.perf_counter()
        async with transaction(self.pool) as conn:
            await conn.execute(
                "INSERT INTO threads (id) VALUES ($1) ON CONFLICT (id) DO NOTHING",
                thread_id,
            )
            await conn.execute(
                """
                INSERT INTO thread_messages (thread_id, role, content, finalized, created_at)
                VALUES ($1, $2, $3, $4, $5)
                """,
                thread_id,
                message.role,
                message.content,
                message.finalized,
                message.timestamp,
            )
        db_query_duration_seconds.labels(query_type="insert").observe(time.perf_counter() - start_time)

    @with_retry(max_attempts=3)
    async def history(self, thread_id: str) -> list[Message]:
        start_time = time.perf_counter()
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT role, content, finalized, created_at
                FROM thread_messages
                WHERE thread_id = $1
                ORDER BY id ASC
                """,
                thread_id,
            )
        db_query_duration_seconds.labels(query_type="select").observe(time.perf_counter() - start_time)

        return [
            Message(
                role=_role(row["role"]),
                content=row["content"],
                finalized=row["finalized"],
                timestamp=row["created_at"],
            )
            for row in rows
        ]

    @with_retry(max_attempts=3)
    async def list_threads(self) -> list[str]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch("SELECT id FROM threads ORDER BY created_at DESC, id")
        return [row["id"] for row in rows]


def _role(value: str) -> MessageRole:
    if value == "user":
        return "user"
    return "assistant"


__all__ = ["InMemoryThreadStore", "PostgresThreadStore", "ThreadStore"]
