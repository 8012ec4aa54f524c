"""
Tunables and settings for askstream.

Module-level names are fixed protocol values and defaults; ``Settings``
reads the deployable knobs from the environment and dotenv files.
"""

from __future__ import annotations

import os
import threading

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources import (
    DotEnvSettingsSource,
    PydanticBaseSettingsSource,
)

# ============================================================================
# Project Paths
# ============================================================================

#: Project root directory (parent of src/)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

#: Directory for rotating log files
LOGS_PATH = PROJECT_ROOT / "logs"

# ============================================================================
# WebSocket Message Types (client -> server)
# ============================================================================

#: Start a new answer for the given prompt
MSG_TYPE_MESSAGE = "message"

#: Cancel the in-flight answer
MSG_TYPE_INTERRUPT = "interrupt"

#: Keepalive sent by the server
MSG_TYPE_PING = "ping"

# ============================================================================
# Thinking Frame Text
# ============================================================================

#: First frame of every request (INIT state)
THINKING_ANALYZING_TITLE = "Analyzing Request"
THINKING_ANALYZING_DESCRIPTION = "Understanding your query and preparing to search for relevant information"

# ============================================================================
# Search Configuration
# ============================================================================

#: Search provider flag values accepted on inbound requests
SearchProviderKind = Literal["content", "grounded"]

#: Name of the single registered tool, as exposed to the model
WEB_SEARCH_TOOL_NAME = "webSearch"

#: Default number of results requested from the content provider
DEFAULT_SEARCH_RESULTS = 5

#: Hard ceiling on results a caller may request
MAX_SEARCH_RESULTS = 10

#: Domains never returned by the content provider
SEARCH_EXCLUDED_DOMAINS: tuple[str, ...] = ("wikipedia.org",)

#: Snippet length used when the provider returns no highlights
SEARCH_SNIPPET_LENGTH = 200

#: Appended to every provider failure message so the model can suggest a fallback
PROVIDER_ERROR_HINT = "Please try again or use a different search provider."

# ============================================================================
# Streaming / Flush Configuration
# ============================================================================

#: Flush when pending text grows past this many characters
FLUSH_MAX_CHARS = 40

#: Flush when this many milliseconds have passed since the last flush
FLUSH_MAX_INTERVAL_MS = 60

#: Pause after each flush so output reads like typing (milliseconds)
FLUSH_PACING_MS = 50

#: Safety cap on model-requested tool round trips per answer.
#: Once reached, the next segment is requested without tools.
MAX_TOOL_HOPS = 5

# ============================================================================
# Logging Configuration
# ============================================================================

#: Maximum size in bytes for log files before rotation (10MB).
LOG_MAX_SIZE = 10 * 1024 * 1024

#: Number of conversation log backups to retain during rotation.
LOG_BACKUP_COUNT_CONVERSATIONS = 5

#: Number of error log backups to retain during rotation.
LOG_BACKUP_COUNT_ERRORS = 3

#: Maximum characters to show in log previews for user input/response.
LOG_PREVIEW_LENGTH = 50

# ============================================================================
# Settings
# ============================================================================

Environment = Literal["development", "production", "test"]
_ENVIRONMENTS = ("development", "production", "test")

#: .env files live next to the import root
_BACKEND_DIR = Path(__file__).parent.parent


def _get_env_files() -> list[Path]:
    """Existing dotenv files for the current APP_ENV, lowest priority first.

    ``.env`` then ``.env.<APP_ENV>`` then ``.env.local``.
    """
    env_name = os.getenv("APP_ENV", "development").lower()
    if env_name not in _ENVIRONMENTS:
        env_name = "development"
    names = (".env", f".env.{env_name}", ".env.local")
    return [path for path in (_BACKEND_DIR / name for name in names) if path.exists()]


def _export_dotenv() -> None:
    # google-genai reads GOOGLE_API_KEY from os.environ on its own
    from dotenv import load_dotenv

    for env_file in _get_env_files():
        load_dotenv(env_file, override=True)


class Settings(BaseSettings):
    """Runtime configuration.

    Sources, strongest first: constructor kwargs, environment variables,
    then the dotenv chain from ``_get_env_files``.

    Every provider key is optional. Selecting a provider whose key is absent
    fails that request with MissingCredentials before any frame is sent.
    """

    app_env: Environment = Field(default="development", description="Application environment")
    app_version: str = Field(default="0.1.0", description="Reported by /health")

    # Model provider
    openai_api_key: str | None = Field(default=None, description="OpenAI API key for the chat model")
    openai_base_url: str | None = Field(default=None, description="Override for OpenAI-compatible endpoints")
    chat_model: str = Field(default="gpt-4o-mini", description="Chat completions model used for answers")
    http_read_timeout: float = Field(default=120.0, description="HTTP read timeout for model streaming (seconds)")

    # Search providers
    exa_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("exa_api_key", "exasearch_api_key"),
        description="Exa API key for the content search provider",
    )
    exa_base_url: str = Field(default="https://api.exa.ai", description="Exa API base URL")
    google_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("google_api_key", "gemini_api_key"),
        description="Google AI API key for the grounded search provider",
    )
    grounded_search_model: str = Field(default="gemini-2.0-flash", description="Gemini model used for grounding")
    search_default_results: int = Field(default=DEFAULT_SEARCH_RESULTS, ge=1, description="Default result count")
    search_max_results: int = Field(default=MAX_SEARCH_RESULTS, ge=1, description="Hard ceiling on result count")
    search_timeout_seconds: float = Field(default=30.0, gt=0, description="Per-call search provider timeout")

    # Streaming
    flush_max_chars: int = Field(default=FLUSH_MAX_CHARS, ge=1, description="Flush pending text past this length")
    flush_max_interval_ms: int = Field(default=FLUSH_MAX_INTERVAL_MS, ge=0, description="Flush after this long")
    flush_pacing_ms: int = Field(default=FLUSH_PACING_MS, ge=0, description="Pause after each flush")
    max_tool_hops: int = Field(default=MAX_TOOL_HOPS, ge=0, description="Tool round trips allowed per answer")

    # Thread storage
    thread_store: str = Field(default="memory", description="Thread store backend: 'memory' or 'postgres'")
    database_url: str | None = Field(default=None, description="PostgreSQL connection string")
    db_pool_min_size: int = Field(default=2, description="Minimum PostgreSQL connections")
    db_pool_max_size: int = Field(default=10, description="Maximum PostgreSQL connections")
    db_command_timeout: float = Field(default=60.0, description="Default query timeout (seconds)")

    # Logging
    debug: bool = Field(default=False, description="Debug console output and error details in responses")
    log_level: str = Field(default="INFO", description="Console log level")
    log_content: bool = Field(default=False, description="Include prompt/answer previews in logs")

    # HTTP server
    api_host: str = Field(default="0.0.0.0", description="Bind address")
    api_port: int = Field(default=8000, description="Bind port")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")

    # WebSocket
    ws_idle_timeout: float = Field(default=600.0, description="Close sockets idle this long (seconds)")
    ws_max_connections: int = Field(default=100, description="Open sockets allowed in total")
    ws_max_connections_per_thread: int = Field(default=3, description="Open sockets allowed per thread")
    ws_heartbeat_interval: float = Field(default=30.0, description="Keepalive ping interval (seconds)")

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        chain = DotEnvSettingsSource(settings_cls, env_file=_get_env_files(), env_file_encoding="utf-8")
        return (init_settings, env_settings, chain)

    @field_validator("app_env", mode="before")
    @classmethod
    def normalize_app_env(cls, v: str | None) -> str:
        value = str(v or "development").lower()
        if value not in _ENVIRONMENTS:
            raise ValueError(f"app_env must be one of {', '.join(_ENVIRONMENTS)}; got '{v}'")
        return value

    @field_validator("thread_store")
    @classmethod
    def normalize_thread_store(cls, v: str) -> str:
        value = v.lower()
        if value not in ("memory", "postgres"):
            raise ValueError("thread_store must be 'memory' or 'postgres'")
        return value

    @field_validator("openai_api_key", "exa_api_key", "google_api_key")
    @classmethod
    def blank_key_is_missing(cls, v: str | None) -> str | None:
        # KEY= lines copied from .env.example
        return v if v and v.strip() else None

    @model_validator(mode="after")
    def check_cross_fields(self) -> Settings:
        if self.thread_store == "postgres" and not self.database_url:
            raise ValueError("DATABASE_URL is required when THREAD_STORE=postgres")
        if self.search_default_results > self.search_max_results:
            raise ValueError("search_default_results cannot exceed search_max_results")
        return self

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def configured_credentials(self) -> dict[str, bool]:
        """Which upstream credentials are present (never the values)."""
        return {
            "openai": bool(self.openai_api_key),
            "exa": bool(self.exa_api_key),
            "google": bool(self.google_api_key),
        }


class _SettingsManager:
    """Builds Settings once, on first use, under a lock."""

    __slots__ = ("_instance", "_lock")

    def __init__(self) -> None:
        self._instance: Settings | None = None
        self._lock = threading.Lock()

    def _load(self) -> Settings:
        _export_dotenv()
        self._instance = Settings()
        return self._instance

    def get(self) -> Settings:
        if self._instance is None:
            with self._lock:
                if self._instance is None:
                    return self._load()
        assert self._instance is not None
        return self._instance

    def reload(self) -> Settings:
        with self._lock:
            return self._load()

    def clear(self) -> None:
        with self._lock:
            self._instance = None


_settings_manager = _SettingsManager()


def get_settings() -> Settings:
    """The process-wide Settings.

    Raises:
        ValueError: If the configuration does not validate
    """
    return _settings_manager.get()


def reload_settings() -> Settings:
    """Re-read the environment and dotenv files."""
    return _settings_manager.reload()


def clear_settings_cache() -> None:
    _settings_manager.clear()
