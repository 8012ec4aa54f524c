"""App wiring for route tests: real routers, in-process collaborators."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from fastapi import FastAPI

from api.middleware.exception_handlers import register_exception_handlers
from api.middleware.request_context import RequestContextMiddleware
from api.routes import chat
from api.routes.v1 import router as v1_router
from api.services.chat_service import ChatService
from api.services.thread_store import InMemoryThreadStore
from api.websocket.manager import WebSocketManager


@pytest.fixture
def thread_store() -> InMemoryThreadStore:
    return InMemoryThreadStore()


@pytest.fixture
def build_app(settings: Any, thread_store: InMemoryThreadStore, fake_provider: Any):
    """Return ``build(model_stream, **state)`` producing a wired FastAPI app."""

    def build(model_stream: Any = None, *, with_context: bool = False, **state: Any) -> FastAPI:
        search_providers = MagicMock()
        search_providers.create.return_value = fake_provider

        app = FastAPI()
        register_exception_handlers(app)
        if with_context:
            app.add_middleware(RequestContextMiddleware)
        app.include_router(v1_router, prefix="/api/v1")
        app.include_router(chat.router, prefix="/ws")

        app.state.thread_store = thread_store
        app.state.db_pool = None
        app.state.started_at = None
        app.state.ws_manager = WebSocketManager()
        app.state.chat_service = ChatService(
            thread_store=thread_store,
            model_stream=model_stream,
            search_providers=search_providers,
            settings=settings,
        )
        for name, value in state.items():
            setattr(app.state, name, value)
        return app

    return build
