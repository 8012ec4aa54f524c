"""Grounded search: Gemini answers the query with native Google Search grounding.

Instead of a ranked list of raw pages, the backend returns a synthesized
answer plus the web sources it grounded that answer on. The answer becomes the
first normalized result; each distinct source follows as its own result, with
the answer segments it supports as snippet.
"""

from __future__ import annotations

from typing import Any

import httpx

from google import genai
from google.genai import errors as genai_errors, types

from api.websocket.task_manager import CancellationToken
from core.constants import DEFAULT_SEARCH_RESULTS, MAX_SEARCH_RESULTS, SEARCH_SNIPPET_LENGTH
from core.exceptions import MissingCredentials, ProviderError
from integrations.search.base import ProgressCallback, SearchProvider
from models.search_models import SearchProgress, SearchResponse, SearchResult
from utils.logger import logger

GROUNDED_ANSWER_TITLE = "Grounded answer"


class GroundedSearchProvider(SearchProvider):
    """Gemini with the ``google_search`` tool."""

    kind = "grounded"
    label = "Gemini"
    announce_title = "Searching with Gemini"
    announce_description = "Retrieving high-quality web results with AI-powered search"

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "gemini-2.0-flash",
        timeout: float = 30.0,
        default_results: int = DEFAULT_SEARCH_RESULTS,
        max_results: int = MAX_SEARCH_RESULTS,
        client: genai.Client | None = None,
    ):
        if not api_key and client is None:
            raise MissingCredentials("Gemini grounded search", "GOOGLE_API_KEY")
        super().__init__(default_results=default_results, max_results=max_results)
        self.model = model
        self.timeout = timeout
        self._client = client or genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(timeout=int(timeout * 1000)),
        )
        self._config = types.GenerateContentConfig(tools=[types.Tool(google_search=types.GoogleSearch())])

    async def search(
        self,
        query: str,
        on_progress: ProgressCallback,
        cancel_token: CancellationToken,
        limit: int | None = None,
    ) -> SearchResponse:
        max_sources = self.resolve_limit(limit)

        await on_progress(
            SearchProgress(
                title="Initializing Gemini Search",
                description=f'Starting grounded search with Gemini for: "{query}"',
            )
        )
        self.ensure_not_cancelled(cancel_token)

        await on_progress(
            SearchProgress(
                title="Searching with Gemini",
                description="Running Google Search grounding and synthesizing an answer...",
            )
        )

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=query,
                config=self._config,
            )
        except genai_errors.APIError as e:
            raise await self._fail(on_progress, f"{e.code} {e.message or e.status or ''}".strip(), e) from e
        except httpx.TimeoutException as e:
            raise await self._fail(on_progress, f"request timed out after {self.timeout:.0f}s", e) from e
        except httpx.HTTPError as e:
            raise await self._fail(on_progress, str(e) or type(e).__name__, e) from e

        self.ensure_not_cancelled(cancel_token)

        answer = response.text or ""
        sources, search_queries = _grounding(response)
        if not answer and not sources:
            raise await self._fail(on_progress, "empty response from model", None)

        results = [
            SearchResult(
                title=GROUNDED_ANSWER_TITLE,
                url="",
                content=answer,
                snippet=_truncate(answer),
            )
        ]
        results.extend(sources[:max_sources])

        await on_progress(
            SearchProgress(
                title="Gemini Search Complete",
                description=f"Synthesized an answer from {min(len(sources), max_sources)} grounded sources",
            )
        )

        return SearchResponse(
            results=results,
            search_query=search_queries[0] if search_queries else query,
            num_results=len(results),
        )

    async def _fail(self, on_progress: ProgressCallback, reason: str, cause: Exception | None) -> ProviderError:
        logger.warning(f"Gemini search failed: {reason}", provider=self.kind)
        await on_progress(SearchProgress(title="Gemini Search Error", description=reason))
        return ProviderError(self.label, reason, cause=cause)


def _grounding(response: Any) -> tuple[list[SearchResult], list[str]]:
    """Extract deduplicated web sources and the backend's search queries."""
    candidate = response.candidates[0] if response.candidates else None
    metadata = getattr(candidate, "grounding_metadata", None) if candidate else None
    if metadata is None:
        return [], []

    search_queries = list(getattr(metadata, "web_search_queries", None) or [])
    chunks = getattr(metadata, "grounding_chunks", None) or []

    # Answer segments supporting each chunk, by chunk index
    supporting: dict[int, list[str]] = {}
    for support in getattr(metadata, "grounding_supports", None) or []:
        segment = getattr(support, "segment", None)
        text = getattr(segment, "text", None) if segment else None
        if not text:
            continue
        for index in getattr(support, "grounding_chunk_indices", None) or []:
            supporting.setdefault(index, []).append(text)

    sources: list[SearchResult] = []
    seen: set[str] = set()
    for index, chunk in enumerate(chunks):
        web = getattr(chunk, "web", None)
        url = getattr(web, "uri", None) if web else None
        if not url or url in seen:
            continue
        seen.add(url)
        segments = supporting.get(index, [])
        sources.append(
            SearchResult(
                title=getattr(web, "title", None) or "Untitled",
                url=url,
                content=" ".join(segments),
                snippet=_truncate(segments[0]) if segments else "",
            )
        )
    return sources, search_queries


def _truncate(text: str) -> str:
    if len(text) <= SEARCH_SNIPPET_LENGTH:
        return text
    return f"{text[:SEARCH_SNIPPET_LENGTH]}..."


__all__ = ["GroundedSearchProvider"]
