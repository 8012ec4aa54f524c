"""Adaptive flush buffer: turns raw model deltas into human-paced content chunks.

Model deltas arrive in bursts of arbitrary size (often a few characters).
The buffer accumulates them and flushes on natural boundaries so the client
sees phrase-sized pieces arriving at a steady pace.

A flush happens after a delta when any of these holds:

(a) pending ends with ``.``, ``!`` or ``?`` followed by whitespace
(b) pending ends with ``,``, ``;`` or ``:`` followed by whitespace
(c) pending is longer than ``max_chars``
(d) more than ``max_interval`` seconds passed since the last flush

Each flush is followed by a pacing pause that wakes early on cancellation.
The buffer never alters text: concatenating every flushed chunk yields the
concatenation of every pushed delta.
"""

from __future__ import annotations

import re
import time

from collections.abc import Awaitable, Callable

from api.websocket.task_manager import CancellationToken
from core.constants import FLUSH_MAX_CHARS, FLUSH_MAX_INTERVAL_MS, FLUSH_PACING_MS

_SENTENCE_END = re.compile(r"[.!?]\s+$")
_PAUSE_END = re.compile(r"[,;:]\s+$")

FlushCallback = Callable[[str], Awaitable[None]]


class AdaptiveFlushBuffer:
    """Request-scoped accumulator. Never share one between requests."""

    def __init__(
        self,
        emit: FlushCallback,
        cancellation_token: CancellationToken,
        *,
        max_chars: int = FLUSH_MAX_CHARS,
        max_interval: float = FLUSH_MAX_INTERVAL_MS / 1000,
        pacing: float = FLUSH_PACING_MS / 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._emit = emit
        self._token = cancellation_token
        self.max_chars = max_chars
        self.max_interval = max_interval
        self.pacing = pacing
        self._clock = clock
        self.pending = ""
        self.last_flush_at = clock()
        self.flush_count = 0

    def should_flush(self) -> bool:
        """Whether pending text meets any flush condition right now."""
        if not self.pending:
            return False
        return (
            _SENTENCE_END.search(self.pending) is not None
            or _PAUSE_END.search(self.pending) is not None
            or len(self.pending) > self.max_chars
            or (self._clock() - self.last_flush_at) > self.max_interval
        )

    async def push(self, delta: str) -> None:
        """Append a delta, then flush and pace if a boundary was reached."""
        if not delta:
            return
        self.pending += delta
        await self.tick()

    async def tick(self) -> bool:
        """Flush if due. Returns True when a flush happened."""
        if not self.should_flush():
            return False
        await self._flush()
        await self._token.sleep(self.pacing)
        return True

    async def finish(self) -> None:
        """Flush any remainder unconditionally, without pacing."""
        if self.pending:
            await self._flush()

    async def _flush(self) -> None:
        text, self.pending = self.pending, ""
        self.last_flush_at = self._clock()
        self.flush_count += 1
        await self._emit(text)


__all__ = ["AdaptiveFlushBuffer", "FlushCallback"]
