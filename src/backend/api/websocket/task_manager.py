"""
Per-request cancellation for streamed answers.

Each answer gets one ``CancellationToken``. Transports fire it (interrupt
message, superseding message, disconnect, server shutdown); the orchestrator,
tool registry, search providers and flush pacing check it at every await.
Firing it never interrupts a network call already in flight.
"""

from __future__ import annotations

import asyncio
import contextlib

from utils.logger import logger


class CancellationToken:
    """One-shot cancellation signal.

    Example:
        token = CancellationToken()
        task = asyncio.create_task(service.process_chat(request, sink, token))
        ...
        await token.cancel("User interrupt")

    Only the first ``cancel`` call takes effect; its reason is kept.
    """

    __slots__ = ("_event", "_reason")

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def cancel_reason(self) -> str | None:
        return self._reason

    async def cancel(self, reason: str | None = None) -> None:
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        logger.debug(f"Cancellation requested: {reason or 'no reason given'}")

    async def wait_for_cancellation(self, timeout: float | None = None) -> bool:
        """True once the token fires; False if ``timeout`` passes first."""
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
        return self._event.is_set()

    async def sleep(self, seconds: float) -> bool:
        """Pause for ``seconds`` unless the token fires.

        Returns:
            True if the whole pause elapsed, False if cancelled
        """
        if self._event.is_set():
            return False
        if seconds <= 0:
            return True
        return not await self.wait_for_cancellation(timeout=seconds)


__all__ = ["CancellationToken"]
