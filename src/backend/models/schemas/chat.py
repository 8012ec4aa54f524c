"""
Answer request schemas.

``ChatRequest`` is the one inbound shape shared by both transports: the HTTP
body of ``POST /api/v1/ask`` and, with ``thread_id`` taken from the path, the
``message`` payload on the WebSocket.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.constants import SearchProviderKind

#: Longest prompt accepted from a client
MAX_PROMPT_LENGTH = 32_000

#: Thread ids are opaque client-chosen strings, restricted to URL-safe characters
THREAD_ID_PATTERN = r"^[A-Za-z0-9][A-Za-z0-9_.:-]{0,127}$"


class ChatRequest(BaseModel):
    """One question on one thread."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "thread_id": "thread_abc123",
                "prompt": "What is the weather in Rome?",
                "search_provider": "content",
            }
        }
    )

    thread_id: str = Field(..., pattern=THREAD_ID_PATTERN, description="Conversation thread identifier")
    prompt: str = Field(..., min_length=1, max_length=MAX_PROMPT_LENGTH, description="User question")
    search_provider: SearchProviderKind = Field(
        default="content",
        description="Search backend: 'content' (Exa) or 'grounded' (Gemini with Google Search)",
    )

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("prompt must not be blank")
        return v


class WSChatMessage(BaseModel):
    """``{"type": "message"}`` payload received on ``/ws/chat/{thread_id}``."""

    type: Literal["message"] = "message"
    prompt: str
    search_provider: SearchProviderKind = "content"

    def to_request(self, thread_id: str) -> ChatRequest:
        return ChatRequest(thread_id=thread_id, prompt=self.prompt, search_provider=self.search_provider)


__all__ = ["MAX_PROMPT_LENGTH", "THREAD_ID_PATTERN", "ChatRequest", "WSChatMessage"]
