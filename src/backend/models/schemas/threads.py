"""
Thread history API schemas.

Offset/limit pagination follows the same ``pagination`` block on every list
endpoint.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from models.thread_models import Message, MessageRole


class PaginationMeta(BaseModel):
    """Pagination metadata for list responses using offset/limit."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "total_count": 42,
                "offset": 0,
                "limit": 50,
                "has_more": False,
            }
        }
    )

    total_count: int = Field(..., ge=0, description="Total number of items")
    offset: int = Field(default=0, ge=0, description="Number of items skipped")
    limit: int = Field(default=50, ge=1, le=100, description="Maximum items returned")
    has_more: bool = Field(..., description="More items exist past this page")

    @classmethod
    def for_page(cls, total_count: int, offset: int, limit: int) -> PaginationMeta:
        return cls(total_count=total_count, offset=offset, limit=limit, has_more=offset + limit < total_count)


class MessageResponse(BaseModel):
    """One stored turn."""

    role: MessageRole = Field(..., description="Message author")
    content: str = Field(..., description="Message text")
    created_at: datetime = Field(..., description="When the turn was recorded (UTC)")

    @classmethod
    def from_message(cls, message: Message) -> MessageResponse:
        return cls(role=message.role, content=message.content, created_at=message.timestamp)


class MessageListResponse(BaseModel):
    """Paginated message list for one thread."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "thread_id": "thread_abc123",
                "messages": [
                    {"role": "user", "content": "What is the weather in Rome?", "created_at": "2025-01-15T10:30:00Z"},
                    {
                        "role": "assistant",
                        "content": "It is sunny in Rome today, around 24°C.",
                        "created_at": "2025-01-15T10:30:05Z",
                    },
                ],
                "pagination": {"total_count": 2, "offset": 0, "limit": 50, "has_more": False},
            }
        }
    )

    thread_id: str
    messages: list[MessageResponse] = Field(..., description="Messages, oldest first")
    pagination: PaginationMeta


class ThreadListResponse(BaseModel):
    """Known thread ids, most recently created first."""

    threads: list[str]
    pagination: PaginationMeta


__all__ = ["MessageListResponse", "MessageResponse", "PaginationMeta", "ThreadListResponse"]
