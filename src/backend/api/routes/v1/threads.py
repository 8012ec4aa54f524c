"""
Thread history endpoints (v1).

Threads are created implicitly by the first answered question, so a thread
with no stored messages is reported as not found.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Path, Query

from api.dependencies import Threads
from api.middleware.request_context import update_request_context
from core.exceptions import ThreadNotFoundError
from models.schemas.chat import THREAD_ID_PATTERN
from models.schemas.threads import MessageListResponse, MessageResponse, PaginationMeta, ThreadListResponse

router = APIRouter()

ThreadIdPath = Annotated[
    str,
    Path(..., pattern=THREAD_ID_PATTERN, description="Thread identifier", examples=["thread_abc123"]),
]
Offset = Annotated[int, Query(ge=0, description="Number of items to skip", examples=[0])]
Limit = Annotated[int, Query(ge=1, le=100, description="Maximum items to return", examples=[50])]


@router.get(
    "",
    response_model=ThreadListResponse,
    summary="List threads",
    description="Thread ids known to the thread store, most recently created first.",
)
async def list_threads(threads: Threads, offset: Offset = 0, limit: Limit = 50) -> ThreadListResponse:
    thread_ids = await threads.list_threads()
    return ThreadListResponse(
        threads=thread_ids[offset : offset + limit],
        pagination=PaginationMeta.for_page(len(thread_ids), offset, limit),
    )


@router.get(
    "/{thread_id}/messages",
    response_model=MessageListResponse,
    summary="List messages",
    description="Retrieve a thread's stored turns in chronological order (oldest first).",
    responses={404: {"description": "Thread not found"}},
)
async def list_messages(
    thread_id: ThreadIdPath,
    threads: Threads,
    offset: Offset = 0,
    limit: Limit = 50,
) -> MessageListResponse:
    """List messages with offset/limit pagination."""
    update_request_context(thread_id=thread_id)

    history = await threads.history(thread_id)
    if not history:
        raise ThreadNotFoundError(thread_id)

    return MessageListResponse(
        thread_id=thread_id,
        messages=[MessageResponse.from_message(m) for m in history[offset : offset + limit]],
        pagination=PaginationMeta.for_page(len(history), offset, limit),
    )
