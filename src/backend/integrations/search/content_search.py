"""Content-rich search backed by the Exa REST API.

Returns full page text plus highlighted snippets. A small denylist of domains
whose pages routinely overflow the model context is always excluded.
"""

from __future__ import annotations

from typing import Any

import httpx

from api.websocket.task_manager import CancellationToken
from core.constants import DEFAULT_SEARCH_RESULTS, MAX_SEARCH_RESULTS, SEARCH_EXCLUDED_DOMAINS, SEARCH_SNIPPET_LENGTH
from core.exceptions import MissingCredentials, ProviderError
from integrations.search.base import ProgressCallback, SearchProvider
from models.search_models import SearchProgress, SearchResponse, SearchResult
from utils.logger import logger

EXA_SEARCH_PATH = "/search"


class ContentSearchProvider(SearchProvider):
    """Exa neural/keyword hybrid search with full content."""

    kind = "content"
    label = "Exa"
    announce_title = "Searching with Exa"
    announce_description = "Retrieving high-quality web results with full content analysis"

    def __init__(
        self,
        api_key: str | None,
        http_client: httpx.AsyncClient,
        *,
        base_url: str = "https://api.exa.ai",
        timeout: float = 30.0,
        default_results: int = DEFAULT_SEARCH_RESULTS,
        max_results: int = MAX_SEARCH_RESULTS,
        excluded_domains: tuple[str, ...] = SEARCH_EXCLUDED_DOMAINS,
    ):
        if not api_key:
            raise MissingCredentials("Exa search", "EXA_API_KEY")
        super().__init__(default_results=default_results, max_results=max_results)
        self._api_key = api_key
        self._http = http_client
        self.url = base_url.rstrip("/") + EXA_SEARCH_PATH
        self.timeout = timeout
        self.excluded_domains = excluded_domains

    def _payload(self, query: str, num_results: int) -> dict[str, Any]:
        return {
            "query": query,
            "numResults": num_results,
            "type": "auto",
            "excludeDomains": list(self.excluded_domains),
            "contents": {
                "text": True,
                "highlights": {"numSentences": 3, "highlightsPerUrl": 1},
            },
        }

    async def search(
        self,
        query: str,
        on_progress: ProgressCallback,
        cancel_token: CancellationToken,
        limit: int | None = None,
    ) -> SearchResponse:
        num_results = self.resolve_limit(limit)

        await on_progress(
            SearchProgress(title="Initializing Exa Search", description=f'Starting search with Exa for: "{query}"')
        )
        self.ensure_not_cancelled(cancel_token)

        await on_progress(
            SearchProgress(
                title="Searching with Exa",
                description="Retrieving high-quality search results and content...",
            )
        )

        try:
            response = await self._http.post(
                self.url,
                json=self._payload(query, num_results),
                headers={"x-api-key": self._api_key},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise await self._fail(on_progress, f"request timed out after {self.timeout:.0f}s", e) from e
        except httpx.HTTPStatusError as e:
            reason = f"HTTP {e.response.status_code} {_error_message(e.response)}".strip()
            raise await self._fail(on_progress, reason, e) from e
        except httpx.HTTPError as e:
            raise await self._fail(on_progress, str(e) or type(e).__name__, e) from e
        except ValueError as e:
            raise await self._fail(on_progress, "invalid JSON in response", e) from e

        self.ensure_not_cancelled(cancel_token)

        raw_results = data.get("results") or []
        await on_progress(
            SearchProgress(
                title="Processing Results",
                description=f"Found {len(raw_results)} relevant results, extracting content...",
            )
        )

        results = [_normalize(item) for item in raw_results]

        await on_progress(
            SearchProgress(
                title="Exa Search Complete",
                description=f"Successfully retrieved {len(results)} results with full content from Exa",
            )
        )

        return SearchResponse(results=results, search_query=query, num_results=len(results))

    async def _fail(self, on_progress: ProgressCallback, reason: str, cause: Exception) -> ProviderError:
        logger.warning(f"Exa search failed: {reason}", provider=self.kind)
        await on_progress(SearchProgress(title="Exa Search Error", description=reason))
        return ProviderError(self.label, reason, cause=cause)


def _normalize(item: dict[str, Any]) -> SearchResult:
    text = item.get("text") or ""
    highlights = item.get("highlights") or []
    if highlights:
        snippet = highlights[0]
    elif text:
        snippet = f"{text[:SEARCH_SNIPPET_LENGTH]}..."
    else:
        snippet = ""
    return SearchResult(
        title=item.get("title") or "Untitled",
        url=item.get("url") or "",
        content=text,
        snippet=snippet,
        published_date=item.get("publishedDate") or None,
        author=item.get("author") or None,
    )


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        return str(body.get("error") or body.get("message") or "")[:200]
    return ""


__all__ = ["ContentSearchProvider"]
