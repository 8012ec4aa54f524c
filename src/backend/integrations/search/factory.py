"""Chooses a search provider per request from the caller's flag."""

from __future__ import annotations

import httpx

from google import genai
from google.genai import types

from core.constants import SearchProviderKind, Settings
from integrations.search.base import SearchProvider
from integrations.search.content_search import ContentSearchProvider
from integrations.search.grounded_search import GroundedSearchProvider


class SearchProviderFactory:
    """Builds providers from settings, sharing one client per backend.

    ``create`` constructs a fresh provider each time so a missing credential
    surfaces as MissingCredentials for the request that needs it, before any
    output is produced. Network clients are built once and released by
    ``aclose``.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self.settings = settings
        self.http_client = http_client
        self._genai_client: genai.Client | None = None

    def create(self, kind: SearchProviderKind) -> SearchProvider:
        s = self.settings
        if kind == "content":
            return ContentSearchProvider(
                s.exa_api_key,
                self.http_client,
                base_url=s.exa_base_url,
                timeout=s.search_timeout_seconds,
                default_results=s.search_default_results,
                max_results=s.search_max_results,
            )
        if kind == "grounded":
            return GroundedSearchProvider(
                s.google_api_key,
                model=s.grounded_search_model,
                timeout=s.search_timeout_seconds,
                default_results=s.search_default_results,
                max_results=s.search_max_results,
                client=self._gemini_client() if s.google_api_key else None,
            )
        raise ValueError(f"Unknown search provider: {kind!r}")

    def _gemini_client(self) -> genai.Client:
        if self._genai_client is None:
            self._genai_client = genai.Client(
                api_key=self.settings.google_api_key,
                http_options=types.HttpOptions(timeout=int(self.settings.search_timeout_seconds * 1000)),
            )
        return self._genai_client

    async def aclose(self) -> None:
        await self.http_client.aclose()
        if self._genai_client is not None:
            client, self._genai_client = self._genai_client, None
            await client.aio.aclose()
            client.close()


__all__ = ["SearchProviderFactory"]
