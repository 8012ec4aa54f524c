"""Tests for the adaptive flush buffer."""

from __future__ import annotations

import asyncio

import pytest

from api.services.flush_buffer import AdaptiveFlushBuffer
from api.websocket.task_manager import CancellationToken


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _buffer(
    chunks: list[str],
    *,
    token: CancellationToken | None = None,
    clock: FakeClock | None = None,
    max_chars: int = 40,
    max_interval: float = 0.06,
    pacing: float = 0.0,
) -> AdaptiveFlushBuffer:
    async def emit(text: str) -> None:
        chunks.append(text)

    return AdaptiveFlushBuffer(
        emit,
        token or CancellationToken(),
        max_chars=max_chars,
        max_interval=max_interval,
        pacing=pacing,
        clock=clock or FakeClock(),
    )


class TestFlushConditions:
    @pytest.mark.asyncio
    async def test_sentence_end_flushes(self) -> None:
        chunks: list[str] = []
        buffer = _buffer(chunks)

        await buffer.push("It is sunny.")
        assert chunks == []

        await buffer.push(" ")
        assert chunks == ["It is sunny. "]

    @pytest.mark.asyncio
    async def test_pause_punctuation_flushes(self) -> None:
        chunks: list[str] = []
        buffer = _buffer(chunks)

        await buffer.push("Hello")
        await buffer.push(", ")

        assert chunks == ["Hello, "]
        assert buffer.pending == ""

    @pytest.mark.asyncio
    async def test_punctuation_without_whitespace_waits(self) -> None:
        chunks: list[str] = []
        buffer = _buffer(chunks)

        await buffer.push("3.14")

        assert chunks == []
        assert buffer.pending == "3.14"

    @pytest.mark.asyncio
    async def test_length_flushes(self) -> None:
        chunks: list[str] = []
        buffer = _buffer(chunks, max_chars=10)

        await buffer.push("abcdefghij")
        assert chunks == []

        await buffer.push("k")
        assert chunks == ["abcdefghijk"]

    @pytest.mark.asyncio
    async def test_elapsed_time_flushes(self) -> None:
        chunks: list[str] = []
        clock = FakeClock()
        buffer = _buffer(chunks, clock=clock, max_interval=0.06)

        await buffer.push("slow")
        assert chunks == []

        clock.now = 0.1
        await buffer.push("er")
        assert chunks == ["slower"]

    @pytest.mark.asyncio
    async def test_tick_without_pending_does_nothing(self) -> None:
        chunks: list[str] = []
        buffer = _buffer(chunks)

        assert await buffer.tick() is False
        assert buffer.flush_count == 0

    @pytest.mark.asyncio
    async def test_empty_delta_ignored(self) -> None:
        chunks: list[str] = []
        buffer = _buffer(chunks)

        await buffer.push("")

        assert buffer.pending == ""


class TestFinish:
    @pytest.mark.asyncio
    async def test_finish_flushes_remainder(self) -> None:
        chunks: list[str] = []
        buffer = _buffer(chunks)

        await buffer.push("no boundary here")
        await buffer.finish()

        assert chunks == ["no boundary here"]

    @pytest.mark.asyncio
    async def test_finish_on_empty_emits_nothing(self) -> None:
        chunks: list[str] = []
        buffer = _buffer(chunks)

        await buffer.finish()

        assert chunks == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "deltas",
        [
            ["The wea", "ther in Rome", " is sunny", ", 24C. ", "Tomorrow: ", "rain", " later", "!"],
            list("It is sunny in Rome, 24C. Tomorrow: rain!"),
            ["Sunny", " ", "  ", "\n", "in Rome. ", "\t", " ", "ok"],
            ["x" * 41, "tail"],
            ["", "a", "", "b. ", ""],
            ["3.5", "km north of example.com, ", "y" * 39, "z", "!"],
        ],
        ids=["mixed", "single-chars", "whitespace", "over-limit", "empty-deltas", "decimals-and-domains"],
    )
    async def test_text_is_never_altered(self, deltas: list[str]) -> None:
        chunks: list[str] = []
        clock = FakeClock()
        buffer = _buffer(chunks, clock=clock)

        for i, delta in enumerate(deltas):
            clock.now = i * 0.01
            await buffer.push(delta)
        await buffer.finish()

        assert "".join(chunks) == "".join(deltas)
        assert all(chunks)


class TestPacing:
    @pytest.mark.asyncio
    async def test_pacing_wakes_on_cancel(self) -> None:
        chunks: list[str] = []
        token = CancellationToken()
        buffer = _buffer(chunks, token=token, pacing=10.0)

        push = asyncio.create_task(buffer.push("Hi. "))
        await asyncio.sleep(0.01)
        await token.cancel("interrupt")

        await asyncio.wait_for(push, timeout=1.0)
        assert chunks == ["Hi. "]
