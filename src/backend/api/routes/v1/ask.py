"""
Streaming answer endpoint (v1).

``POST /api/v1/ask`` answers one question as newline-delimited JSON, one
output frame per line, ending with ``done`` or ``error``. Configuration
problems are reported as an HTTP error before streaming starts. Closing the
connection cancels the answer.
"""

from __future__ import annotations

import asyncio
import contextlib

from collections.abc import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from api.dependencies import ChatServiceDep
from api.middleware.request_context import update_request_context
from api.services.frame_sink import QueueFrameSink
from api.websocket.task_manager import CancellationToken
from models.schemas.chat import ChatRequest
from utils.logger import logger

router = APIRouter()

NDJSON_MEDIA_TYPE = "application/x-ndjson"

#: How often the client connection is checked while an answer streams
DISCONNECT_POLL_SECONDS = 0.5

#: How long a cancelled answer gets to wind down after the client leaves
SHUTDOWN_GRACE_SECONDS = 5.0


async def _watch_disconnect(request: Request, token: CancellationToken) -> None:
    while not token.is_cancelled:
        if await request.is_disconnected():
            await token.cancel("Client disconnected")
            return
        await token.wait_for_cancellation(timeout=DISCONNECT_POLL_SECONDS)


@router.post(
    "/ask",
    summary="Ask a question",
    description="Stream an answer as NDJSON frames: thinking, content, then done (or error).",
    response_class=StreamingResponse,
    responses={
        200: {
            "description": "Frame stream",
            "content": {
                NDJSON_MEDIA_TYPE: {
                    "example": (
                        '{"type":"thinking","title":"Analyzing Request","description":"..."}\n'
                        '{"type":"content","text":"It is sunny in Rome. "}\n'
                        '{"type":"done"}\n'
                    )
                }
            },
        },
        500: {"description": "Model or search provider not configured"},
    },
)
async def ask(body: ChatRequest, request: Request, chat_service: ChatServiceDep) -> StreamingResponse:
    update_request_context(thread_id=body.thread_id)

    # Raises MissingCredentials before any output, rendered as a JSON error
    provider = chat_service.resolve_provider(body)

    sink = QueueFrameSink()
    token = CancellationToken()

    async def frames() -> AsyncIterator[str]:
        task = asyncio.create_task(chat_service.process_chat(body, sink, token, provider=provider))
        watcher = asyncio.create_task(_watch_disconnect(request, token))
        try:
            async for line in sink.ndjson():
                yield line
        finally:
            watcher.cancel()
            if not task.done():
                await token.cancel("Response stream closed")
                try:
                    await asyncio.wait_for(task, timeout=SHUTDOWN_GRACE_SECONDS)
                except asyncio.TimeoutError:
                    logger.warning("Answer did not stop after client disconnect", thread_id=body.thread_id)
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task
            with contextlib.suppress(asyncio.CancelledError):
                await watcher

    return StreamingResponse(frames(), media_type=NDJSON_MEDIA_TYPE)
