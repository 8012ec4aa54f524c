"""
Output frames streamed to clients.

These four frame shapes are the only thing a client observes. Order is
significant: clients rebuild the answer by concatenating ``content`` frames in
arrival order.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class BaseFrame(BaseModel):
    """Base class for output frames."""

    model_config = ConfigDict(frozen=True)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for JSON transport."""
        return self.model_dump()

    def to_json(self) -> str:
        """Serialize to a single JSON line."""
        return self.model_dump_json()


class ThinkingFrame(BaseFrame):
    """Progress/status update shown while the answer is prepared."""

    type: Literal["thinking"] = "thinking"
    title: str
    description: str = ""


class ContentFrame(BaseFrame):
    """A chunk of answer text."""

    type: Literal["content"] = "content"
    text: str


class DoneFrame(BaseFrame):
    """Clean completion. Never sent after a cancellation or failure."""

    type: Literal["done"] = "done"


class ErrorFrame(BaseFrame):
    """Terminal failure."""

    type: Literal["error"] = "error"
    message: str


OutputFrame = Annotated[
    ThinkingFrame | ContentFrame | DoneFrame | ErrorFrame,
    Field(discriminator="type"),
]

_frame_adapter: TypeAdapter[OutputFrame] = TypeAdapter(OutputFrame)


def parse_frame(data: dict[str, Any] | str) -> OutputFrame:
    """Parse a frame from a dict or JSON string (client side and tests)."""
    if isinstance(data, str):
        return _frame_adapter.validate_json(data)
    return _frame_adapter.validate_python(data)


__all__ = [
    "BaseFrame",
    "ContentFrame",
    "DoneFrame",
    "ErrorFrame",
    "OutputFrame",
    "ThinkingFrame",
    "parse_frame",
]
