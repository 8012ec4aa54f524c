"""
Tool registry for askstream.

Holds the tools offered to the model and executes the calls it requests.
Execution never raises for ordinary failures: unknown tools, malformed
arguments and provider errors all come back as a JSON error string the model
can read and relay. Only cancellation and a closed output sink propagate,
since both mean the answer is over.
"""

from __future__ import annotations

import asyncio
import json
import time

from typing import Any

from pydantic import ValidationError

from api.services.frame_sink import SinkClosed
from core.exceptions import AppException, StreamAborted
from tools.base import Tool, ToolContext
from tools.web_search import WebSearchTool
from utils.logger import logger
from utils.metrics import tool_call_duration_seconds, tool_calls_total


def _error_result(error: str, message: str, **extra: Any) -> str:
    return json.dumps({"error": error, "message": message, **extra})


class ToolRegistry:
    """Name-indexed set of tools."""

    def __init__(self, tools: list[Tool] | None = None):
        self._tools: dict[str, Tool] = {}
        for tool in tools if tools is not None else [WebSearchTool()]:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    @property
    def names(self) -> list[str]:
        return list(self._tools)

    def tool_schemas(self, provider_label: str) -> list[dict[str, Any]]:
        """Declarations passed to the model, described for ``provider_label``."""
        return [tool.schema(provider_label) for tool in self._tools.values()]

    async def execute(self, name: str, raw_arguments: str, ctx: ToolContext) -> str:
        """Run one tool call and return its result string.

        Raises:
            StreamAborted: If the cancellation token fired around the call
            SinkClosed: If progress could not be delivered to the client
        """
        provider = ctx.provider.kind
        tool = self._tools.get(name)
        if tool is None:
            logger.warning(f"Model requested unknown tool: {name}")
            tool_calls_total.labels(tool_name=name, provider=provider, status="error").inc()
            return _error_result("tool_not_found", f"No tool named {name!r}. Available: {', '.join(self.names)}")

        try:
            args = tool.args_model.model_validate_json(raw_arguments or "{}")
        except ValidationError as e:
            logger.warning(f"Bad arguments for {name}: {e.error_count()} error(s)")
            tool_calls_total.labels(tool_name=name, provider=provider, status="bad_arguments").inc()
            return _error_result(
                "bad_arguments",
                f"Invalid arguments for {name}",
                details=[
                    {"field": ".".join(str(p) for p in err["loc"]) or None, "message": err["msg"]}
                    for err in e.errors(include_url=False)
                ],
            )

        if ctx.cancellation_token.is_cancelled:
            raise StreamAborted(ctx.cancellation_token.cancel_reason)

        start_time = time.perf_counter()
        status = "success"
        try:
            result = await tool.run(args, ctx)
        except (StreamAborted, SinkClosed, asyncio.CancelledError):
            status = "cancelled"
            raise
        except AppException as e:
            status = "error"
            result = _error_result(e.code.name.lower(), e.message)
        except Exception as e:
            status = "error"
            logger.error(f"Tool {name} failed unexpectedly: {e}", exc_info=True)
            result = _error_result("tool_execution_failed", f"{name} failed: {type(e).__name__}: {e}")
        finally:
            tool_calls_total.labels(tool_name=name, provider=provider, status=status).inc()
            tool_call_duration_seconds.labels(tool_name=name, provider=provider).observe(
                time.perf_counter() - start_time
            )

        if ctx.cancellation_token.is_cancelled:
            raise StreamAborted(ctx.cancellation_token.cancel_reason)

        logger.log_tool_call(name, args.model_dump(), result, provider=provider)
        return result


__all__ = ["ToolRegistry"]
