"""Tool interface and per-call execution context."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel

from api.websocket.task_manager import CancellationToken
from integrations.search.base import SearchProvider

ThinkingEmitter = Callable[[str, str], Awaitable[None]]


@dataclass
class ToolContext:
    """Request-scoped collaborators handed to a tool for one call."""

    provider: SearchProvider
    cancellation_token: CancellationToken
    emit_thinking: ThinkingEmitter
    result_limit: int | None = None


class Tool(ABC):
    """A function the model may call.

    ``run`` returns the string handed back to the model as the tool result.
    Subclasses validate nothing themselves: ToolRegistry parses raw arguments
    into ``args_model`` before ``run`` is reached.
    """

    name: str
    args_model: type[BaseModel]

    @abstractmethod
    def describe(self, provider_label: str) -> str: ...

    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """JSON schema of the arguments object."""

    @abstractmethod
    async def run(self, args: BaseModel, ctx: ToolContext) -> str: ...

    def schema(self, provider_label: str) -> dict[str, Any]:
        """Chat completions tool declaration."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.describe(provider_label),
                "parameters": self.parameters(),
            },
        }


__all__ = ["Tool", "ToolContext", "ThinkingEmitter"]
