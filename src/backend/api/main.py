"""
askstream ASGI application.

Run with ``uvicorn api.main:app`` from ``src/backend``. The lifespan builds
the thread store, the model stream, the search provider factory and the
WebSocket manager once, and parks them on ``app.state`` for the routes.
"""

from __future__ import annotations

import time

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from api.middleware.exception_handlers import register_exception_handlers
from api.middleware.request_context import RequestContextMiddleware
from api.routes import chat
from api.routes.v1 import router as v1_router
from api.services.chat_service import ChatService
from api.services.thread_store import InMemoryThreadStore, PostgresThreadStore, ThreadStore
from api.websocket.manager import WebSocketManager
from core.constants import Settings, get_settings
from integrations.model_stream import ModelStream
from integrations.search import SearchProviderFactory
from utils.client_factory import create_http_client, create_openai_client
from utils.db_utils import check_pool_health, create_database_pool, graceful_pool_close
from utils.logger import configure_uvicorn_logging, logger

API_DESCRIPTION = """
Streaming question answering with live web search.

A chat model answers each question and may call the `webSearch` tool. The
search backend is picked per request: `content` (Exa, full page text) or
`grounded` (Gemini with Google Search grounding).

Answers arrive as frames: `thinking` progress, `content` text, then `done`
or `error`.

- `WS /ws/chat/{thread_id}`: send `{"type": "message", ...}` or `{"type": "interrupt"}`
- `POST /api/v1/ask`: the same frames as NDJSON, one per line
"""


async def _create_thread_store(app: FastAPI, settings: Settings) -> ThreadStore:
    app.state.db_pool = None
    if settings.thread_store == "memory":
        logger.info("Thread store: in-memory (history does not survive restarts)")
        return InMemoryThreadStore()

    assert settings.database_url is not None
    pool = await create_database_pool(
        dsn=settings.database_url,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        command_timeout=settings.db_command_timeout,
    )
    health = await check_pool_health(pool)
    if not health["healthy"]:
        await pool.close()
        raise RuntimeError("Database did not pass its startup health check")
    logger.info(f"Thread store: postgres (pool {health['pool_size']})")
    app.state.db_pool = pool
    return PostgresThreadStore(pool)


def _create_model_stream(settings: Settings) -> ModelStream | None:
    """None without OPENAI_API_KEY; requests then fail with MissingCredentials."""
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; answer requests will be rejected")
        return None
    client = create_openai_client(
        settings.openai_api_key,
        base_url=settings.openai_base_url,
        http_client=create_http_client(read_timeout=settings.http_read_timeout),
    )
    logger.info(f"Chat model: {settings.chat_model}")
    return ModelStream(client, settings.chat_model)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    settings = get_settings()
    app.state.started_at = time.monotonic()

    app.state.thread_store = await _create_thread_store(app, settings)
    model_stream = _create_model_stream(settings)
    search_providers = SearchProviderFactory(settings, create_http_client(read_timeout=settings.search_timeout_seconds))
    app.state.chat_service = ChatService(
        thread_store=app.state.thread_store,
        model_stream=model_stream,
        search_providers=search_providers,
        settings=settings,
    )
    app.state.ws_manager = WebSocketManager(
        idle_timeout_seconds=settings.ws_idle_timeout,
        max_connections=settings.ws_max_connections,
        max_connections_per_thread=settings.ws_max_connections_per_thread,
    )
    await app.state.ws_manager.start_idle_checker()
    logger.info(f"askstream {settings.app_version} started ({settings.app_env})")

    try:
        yield
    finally:
        logger.info("Shutting down")
        # Sockets first so no answer starts against closed clients
        await app.state.ws_manager.graceful_shutdown()
        await search_providers.aclose()
        if model_stream is not None:
            await model_stream.client.close()
        if app.state.db_pool is not None:
            await graceful_pool_close(app.state.db_pool)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    if settings.debug:
        logger.info(
            f"app_env={settings.app_env} thread_store={settings.thread_store} "
            f"chat_model={settings.chat_model} credentials={settings.configured_credentials}"
        )

    application = FastAPI(
        title="askstream API",
        description=API_DESCRIPTION,
        version=settings.app_version,
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Health", "description": "Probes for monitoring and orchestration"},
            {"name": "Ask", "description": "Streaming answers over HTTP"},
            {"name": "Threads", "description": "Thread history"},
            {"name": "WebSocket", "description": "Streaming answers over WebSocket"},
        ],
        openapi_url="/api/v1/openapi.json",
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
    )
    register_exception_handlers(application)

    # Added last, runs first
    application.add_middleware(RequestContextMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(v1_router, prefix="/api/v1")
    application.include_router(chat.router, prefix="/ws", tags=["WebSocket"])
    application.mount("/metrics", make_asgi_app())
    return application


configure_uvicorn_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings = get_settings()
    uvicorn.run(
        "api.main:app",
        host=_settings.api_host,
        port=_settings.api_port,
        reload=_settings.is_development,
        log_config=None,
    )
