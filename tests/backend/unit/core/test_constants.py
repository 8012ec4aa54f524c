"""Tests for settings loading and defaults."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from pydantic import ValidationError

from core.constants import (
    FLUSH_MAX_CHARS,
    FLUSH_MAX_INTERVAL_MS,
    FLUSH_PACING_MS,
    MAX_TOOL_HOPS,
    Settings,
    _SettingsManager,
)


@pytest.fixture
def no_dotenv():
    with patch("core.constants._get_env_files", return_value=[]):
        yield


@pytest.mark.usefixtures("no_dotenv")
class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        for var in ("OPENAI_API_KEY", "EXA_API_KEY", "GOOGLE_API_KEY", "THREAD_STORE", "APP_ENV"):
            monkeypatch.delenv(var, raising=False)
        settings = Settings()
        assert settings.app_env == "development"
        assert settings.thread_store == "memory"
        assert settings.flush_max_chars == FLUSH_MAX_CHARS
        assert settings.flush_max_interval_ms == FLUSH_MAX_INTERVAL_MS
        assert settings.flush_pacing_ms == FLUSH_PACING_MS
        assert settings.max_tool_hops == MAX_TOOL_HOPS
        assert settings.configured_credentials == {"openai": False, "exa": False, "google": False}

    def test_environment_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("FLUSH_PACING_MS", "0")
        settings = Settings()
        assert settings.openai_api_key == "sk-test"
        assert settings.flush_pacing_ms == 0

    def test_key_aliases(self) -> None:
        settings = Settings(exasearch_api_key="exa-key", gemini_api_key="gem-key")
        assert settings.exa_api_key == "exa-key"
        assert settings.google_api_key == "gem-key"

    def test_blank_key_is_missing(self) -> None:
        settings = Settings(openai_api_key="   ", exa_api_key="")
        assert settings.openai_api_key is None
        assert settings.exa_api_key is None

    def test_app_env_normalized(self) -> None:
        assert Settings(app_env="TEST").app_env == "test"

    def test_invalid_app_env(self) -> None:
        with pytest.raises(ValidationError):
            Settings(app_env="staging")

    def test_invalid_thread_store(self) -> None:
        with pytest.raises(ValidationError):
            Settings(thread_store="redis")

    def test_postgres_needs_database_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(ValidationError, match="DATABASE_URL"):
            Settings(thread_store="postgres")

    def test_postgres_with_database_url(self) -> None:
        settings = Settings(thread_store="Postgres", database_url="postgresql://localhost/askstream")
        assert settings.thread_store == "postgres"

    def test_default_results_cannot_exceed_max(self) -> None:
        with pytest.raises(ValidationError):
            Settings(search_default_results=8, search_max_results=5)

    def test_negative_flush_limits_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(flush_max_chars=0)


@pytest.mark.usefixtures("no_dotenv")
class TestSettingsManager:
    def test_caches_instance(self) -> None:
        manager = _SettingsManager()
        assert manager.get() is manager.get()

    def test_reload_builds_new_instance(self) -> None:
        manager = _SettingsManager()
        first = manager.get()
        assert manager.reload() is not first

    def test_clear(self) -> None:
        manager = _SettingsManager()
        first = manager.get()
        manager.clear()
        assert manager.get() is not first
