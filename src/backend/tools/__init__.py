"""Model-callable tools and the registry that executes them."""

from __future__ import annotations

from tools.base import Tool, ToolContext
from tools.registry import ToolRegistry
from tools.web_search import WebSearchArgs, WebSearchTool

__all__ = ["Tool", "ToolContext", "ToolRegistry", "WebSearchArgs", "WebSearchTool"]
