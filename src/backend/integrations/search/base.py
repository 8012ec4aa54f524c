"""Search provider strategy interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from api.websocket.task_manager import CancellationToken
from core.constants import DEFAULT_SEARCH_RESULTS, MAX_SEARCH_RESULTS
from core.exceptions import SearchCancelled
from models.search_models import SearchProgress, SearchResponse

ProgressCallback = Callable[[SearchProgress], Awaitable[None]]


class SearchProvider(ABC):
    """One web search backend.

    Implementations raise MissingCredentials from ``__init__`` when their key
    is absent, ProviderError for backend failures, and SearchCancelled when
    the token fires around the network call.
    """

    #: Flag value that selects this provider on inbound requests
    kind: str
    #: Human-readable backend name used in progress text and errors
    label: str
    #: Thinking frame announced by the tool before the provider runs
    announce_title: str
    announce_description: str

    def __init__(self, default_results: int = DEFAULT_SEARCH_RESULTS, max_results: int = MAX_SEARCH_RESULTS):
        self.default_results = default_results
        self.max_results = max_results

    @property
    def name(self) -> str:
        return self.kind

    def resolve_limit(self, limit: int | None) -> int:
        """Clamp a requested result count to ``[1, max_results]``."""
        if limit is None or limit < 1:
            limit = self.default_results
        return min(limit, self.max_results)

    def ensure_not_cancelled(self, cancel_token: CancellationToken) -> None:
        if cancel_token.is_cancelled:
            raise SearchCancelled(self.label, cancel_token.cancel_reason)

    @abstractmethod
    async def search(
        self,
        query: str,
        on_progress: ProgressCallback,
        cancel_token: CancellationToken,
        limit: int | None = None,
    ) -> SearchResponse:
        """Run one search and return normalized results."""


__all__ = ["ProgressCallback", "SearchProvider"]
