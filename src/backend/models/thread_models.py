"""
Conversation thread models.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

MessageRole = Literal["user", "assistant"]


class Message(BaseModel):
    """One entry in a thread's append-only log.

    ``finalized`` is False only for placeholders some other writer may keep
    for an answer still being generated. The assembler never feeds those to
    the model.
    """

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    finalized: bool = True


__all__ = ["Message", "MessageRole"]
