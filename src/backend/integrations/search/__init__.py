"""Web search providers.

Two interchangeable backends behind the ``SearchProvider`` strategy:

- ``content``: Exa search with full page text and highlights
- ``grounded``: Gemini with Google Search grounding

Both return ``models.search_models.SearchResponse``.
"""

from __future__ import annotations

from integrations.search.base import ProgressCallback, SearchProvider
from integrations.search.content_search import ContentSearchProvider
from integrations.search.factory import SearchProviderFactory
from integrations.search.grounded_search import GroundedSearchProvider

__all__ = [
    "ContentSearchProvider",
    "GroundedSearchProvider",
    "ProgressCallback",
    "SearchProvider",
    "SearchProviderFactory",
]
