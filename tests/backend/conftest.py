"""Shared test fixtures for the askstream test suite.

Provides settings isolation plus in-process fakes for the upstream pieces
(model stream, search providers) so unit tests never touch the network.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

# ============================================================================
# EARLY INITIALIZATION: Runs before test collection
# ============================================================================


def _mock_settings() -> MagicMock:
    mock_settings = MagicMock()
    mock_settings.app_env = "test"
    mock_settings.app_version = "0.1.0-test"
    mock_settings.debug = False
    mock_settings.log_level = "INFO"
    mock_settings.log_content = False
    mock_settings.openai_api_key = "test-openai-key"
    mock_settings.exa_api_key = "test-exa-key"
    mock_settings.google_api_key = None
    mock_settings.thread_store = "memory"
    mock_settings.database_url = None
    mock_settings.cors_origins = ["*"]
    mock_settings.ws_heartbeat_interval = 30.0
    mock_settings.configured_credentials = {"openai": True, "exa": True, "google": False}
    return mock_settings


def pytest_configure(config: pytest.Config) -> None:
    """Patch get_settings before test modules are imported.

    Module-level ``get_settings()`` calls happen at collection time, before
    any fixture runs, so the patch has to start here.
    """
    cfg: Any = config
    patcher = patch("core.constants.get_settings", return_value=_mock_settings())
    patcher.start()
    cfg._settings_patcher = patcher


def pytest_unconfigure(config: pytest.Config) -> None:
    """Clean up settings mock after all tests complete."""
    patcher = getattr(config, "_settings_patcher", None)
    if patcher:
        patcher.stop()


# ============================================================================
# Test Isolation: Settings Management
# ============================================================================


@pytest.fixture(autouse=True)
def reset_settings_singleton() -> Generator[None, None, None]:
    """Reset the settings singleton around each test."""
    from core import constants

    constants._settings_manager._instance = None
    yield
    constants._settings_manager._instance = None


@pytest.fixture(autouse=True)
def mock_settings_for_ci(monkeypatch: pytest.MonkeyPatch) -> Generator[MagicMock, None, None]:
    """Mock settings that work without a .env file (for CI)."""
    mock_settings = _mock_settings()
    monkeypatch.setattr("core.constants.get_settings", lambda: mock_settings)
    yield mock_settings


@pytest.fixture
def settings() -> Any:
    """A real Settings instance with fast flush pacing for orchestrator tests."""
    from core.constants import Settings

    return Settings(
        app_env="test",
        openai_api_key="test-openai-key",
        exa_api_key="test-exa-key",
        google_api_key="test-google-key",
        flush_pacing_ms=0,
        flush_max_interval_ms=60,
        flush_max_chars=40,
    )


# ============================================================================
# Fakes for upstream services
# ============================================================================


class FakeModelStream:
    """Replays scripted segments in place of ModelStream.

    Each segment is a list of units (ContentDelta / ToolCallSignal). Every
    call to ``stream`` consumes the next segment and records its inputs.
    """

    def __init__(self, segments: list[list[Any]], model: str = "fake-model"):
        self.segments = list(segments)
        self.model = model
        self.calls: list[dict[str, Any]] = []
        self.client = MagicMock()
        self.client.close = AsyncMock()

    async def stream(self, messages: list[dict[str, Any]], tools: list[dict[str, Any]] | None = None) -> AsyncIterator[Any]:
        self.calls.append({"messages": [dict(m) for m in messages], "tools": tools})
        segment = self.segments.pop(0) if self.segments else []
        for unit in segment:
            if isinstance(unit, BaseException):
                raise unit
            yield unit


class FakeSearchProvider:
    """Scripted SearchProvider: reports fixed progress then returns results."""

    kind = "content"
    label = "FakeSearch"
    announce_title = "Searching with FakeSearch"
    announce_description = "Looking things up"

    def __init__(self, results: list[dict[str, str]] | None = None, error: Exception | None = None):
        self.results = results if results is not None else [
            {"title": "Rome forecast", "url": "https://weather.example/rome", "content": "Sunny, 24C"}
        ]
        self.error = error
        self.queries: list[str] = []
        self.before_return: Any = None

    async def search(self, query: str, on_progress: Any, cancel_token: Any, limit: int | None = None) -> Any:
        from models.search_models import SearchProgress, SearchResponse, SearchResult

        self.queries.append(query)
        await on_progress(SearchProgress(title="Fake search started", description=query))
        if self.before_return is not None:
            await self.before_return()
        if self.error is not None:
            raise self.error
        results = [SearchResult(**r) for r in self.results]
        await on_progress(SearchProgress(title="Fake search complete", description=f"{len(results)} results"))
        return SearchResponse(results=results, search_query=query, num_results=len(results))


@pytest.fixture
def fake_provider() -> FakeSearchProvider:
    return FakeSearchProvider()


@pytest.fixture
def mock_db_pool() -> Generator[MagicMock, None, None]:
    """Mock asyncpg.Pool for database testing."""
    pool = MagicMock()
    conn = AsyncMock()

    # transaction() is synchronous but returns an async context manager
    tx_cm = AsyncMock()
    conn.transaction = MagicMock(return_value=tx_cm)

    pool.acquire.return_value.__aenter__.return_value = conn
    yield pool


@pytest.fixture
def make_model_stream() -> type[FakeModelStream]:
    """The FakeModelStream class, for tests that script their own segments."""
    return FakeModelStream
