"""
Normalized search result models.

Both search providers return this shape. Field names are camelCase on the
wire (``publishedDate``, ``searchQuery``, ``numResults``) because the payload
is handed to the model verbatim as tool output.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SearchResult(BaseModel):
    """One search hit."""

    model_config = ConfigDict(populate_by_name=True)

    title: str
    url: str
    content: str = ""
    snippet: str = ""
    published_date: str | None = Field(default=None, alias="publishedDate")
    author: str | None = None


class SearchResponse(BaseModel):
    """Normalized provider output."""

    model_config = ConfigDict(populate_by_name=True)

    results: list[SearchResult] = Field(default_factory=list)
    search_query: str = Field(alias="searchQuery")
    num_results: int = Field(default=0, alias="numResults")

    def to_tool_output(self) -> str:
        """JSON payload returned to the model."""
        return self.model_dump_json(by_alias=True, exclude_none=True)


class SearchProgress(BaseModel):
    """Progress event reported by a provider, forwarded as a thinking frame."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str = ""


__all__ = ["SearchProgress", "SearchResponse", "SearchResult"]
