"""Streaming adapter over the OpenAI chat completions API.

Turns a ``stream=True`` completion into a sequence of typed units:

- ``ContentDelta`` for each piece of generated text, in arrival order
- one ``ToolCallSignal`` at the end of a segment that stopped to call tools

Tool call fragments arrive spread across chunks (id and name first, then the
JSON arguments a few characters at a time), keyed by their index in the
assistant message. They are stitched back together here so the caller only
ever sees complete calls.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx
import openai

from openai import AsyncOpenAI

from core.exceptions import UpstreamStreamError
from utils.logger import logger


@dataclass(frozen=True)
class ContentDelta:
    text: str


@dataclass(frozen=True)
class ToolCall:
    """One complete function call requested by the model."""

    id: str
    name: str
    arguments: str

    def to_message_part(self) -> dict[str, Any]:
        """Shape used inside an assistant message's ``tool_calls``."""
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": self.arguments},
        }


@dataclass(frozen=True)
class ToolCallSignal:
    """The model paused generation to call one or more tools."""

    calls: tuple[ToolCall, ...]


StreamUnit = ContentDelta | ToolCallSignal


@dataclass
class _PartialCall:
    id: str = ""
    name: str = ""
    arguments: list[str] = field(default_factory=list)


class ModelStream:
    """Opens one streamed completion per segment of an answer."""

    def __init__(self, client: AsyncOpenAI, model: str):
        self.client = client
        self.model = model

    async def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[StreamUnit]:
        """Yield units for one segment.

        Raises:
            UpstreamStreamError: If the request or the stream fails
        """
        params: dict[str, Any] = {"model": self.model, "messages": messages, "stream": True}
        if tools:
            params["tools"] = tools
            params["tool_choice"] = "auto"

        try:
            response = await self.client.chat.completions.create(**params)
        except (openai.APIError, httpx.HTTPError) as e:
            raise UpstreamStreamError(f"Model request failed: {e}", cause=e) from e

        pending: dict[int, _PartialCall] = {}
        finish_reason: str | None = None
        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                delta = choice.delta
                if delta is not None:
                    if delta.content:
                        yield ContentDelta(delta.content)
                    for fragment in delta.tool_calls or []:
                        partial = pending.setdefault(fragment.index, _PartialCall())
                        if fragment.id:
                            partial.id = fragment.id
                        if fragment.function is not None:
                            if fragment.function.name:
                                partial.name += fragment.function.name
                            if fragment.function.arguments:
                                partial.arguments.append(fragment.function.arguments)
                if choice.finish_reason:
                    finish_reason = choice.finish_reason
        except (openai.APIError, httpx.HTTPError) as e:
            raise UpstreamStreamError(f"Model stream interrupted: {e}", cause=e) from e
        finally:
            await response.close()

        if pending:
            calls = tuple(
                ToolCall(id=p.id, name=p.name, arguments="".join(p.arguments))
                for _, p in sorted(pending.items())
            )
            logger.debug(
                f"Segment ended with {len(calls)} tool call(s)",
                finish_reason=finish_reason,
                tools=[c.name for c in calls],
            )
            yield ToolCallSignal(calls)
        elif finish_reason == "length":
            logger.warning("Model output truncated by token limit", model=self.model)


__all__ = ["ContentDelta", "ModelStream", "StreamUnit", "ToolCall", "ToolCallSignal"]
