"""
Route dependencies.

Long-lived objects are built once in the lifespan (see ``api.main``) and
parked on ``app.state``; these providers hand them to route handlers.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from api.services.chat_service import ChatService
from api.services.thread_store import ThreadStore
from api.websocket.manager import WebSocketManager
from core.constants import Settings, get_settings


def get_app_settings() -> Settings:
    return get_settings()


def get_thread_store(request: Request) -> ThreadStore:
    return request.app.state.thread_store


def get_ws_manager(request: Request) -> WebSocketManager:
    return request.app.state.ws_manager


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


AppSettings = Annotated[Settings, Depends(get_app_settings)]
Threads = Annotated[ThreadStore, Depends(get_thread_store)]
WSManager = Annotated[WebSocketManager, Depends(get_ws_manager)]
ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
