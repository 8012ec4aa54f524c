"""
Web search tool exposed to the model.

The tool is provider-agnostic: the request's search provider is injected
through ToolContext, and the tool's description names that provider so the
model knows what it is calling.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from core.constants import WEB_SEARCH_TOOL_NAME
from core.prompts import WEB_SEARCH_TOOL_DESCRIPTION
from models.search_models import SearchProgress
from tools.base import Tool, ToolContext


class WebSearchArgs(BaseModel):
    """Arguments the model must supply to ``webSearch``."""

    model_config = ConfigDict(extra="forbid")

    query: str = Field(..., min_length=1, max_length=500, description="The search query to perform")

    @field_validator("query")
    @classmethod
    def query_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("query must not be blank")
        return v.strip()


class WebSearchTool(Tool):
    name = WEB_SEARCH_TOOL_NAME
    args_model = WebSearchArgs

    def describe(self, provider_label: str) -> str:
        return WEB_SEARCH_TOOL_DESCRIPTION.format(provider=provider_label)

    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "The search query to perform",
                },
            },
            "required": ["query"],
            "additionalProperties": False,
        }

    async def run(self, args: BaseModel, ctx: ToolContext) -> str:
        assert isinstance(args, WebSearchArgs)
        provider = ctx.provider

        await ctx.emit_thinking(provider.announce_title, provider.announce_description)

        async def on_progress(progress: SearchProgress) -> None:
            await ctx.emit_thinking(progress.title, progress.description)

        response = await provider.search(args.query, on_progress, ctx.cancellation_token, ctx.result_limit)
        return response.to_tool_output()


__all__ = ["WebSearchArgs", "WebSearchTool"]
