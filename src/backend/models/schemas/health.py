"""
Probe responses for ``/api/v1/health``, ``/health/ready`` and ``/health/live``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

HealthStatus = Literal["healthy", "degraded", "unhealthy"]


class DatabaseHealth(BaseModel):
    """Pool status; only reported with the postgres thread store."""

    healthy: bool
    pool_size: int = Field(default=0, ge=0)
    pool_free: int = Field(default=0, ge=0)
    pool_used: int = Field(default=0, ge=0)


class WebSocketHealth(BaseModel):
    active_connections: int = Field(default=0, ge=0, description="Open sockets")
    active_threads: int = Field(default=0, ge=0, description="Threads with an open socket")
    shutting_down: bool = False


class CredentialsHealth(BaseModel):
    """Presence of upstream keys. Values are never echoed."""

    openai: bool = Field(..., description="Chat model (OPENAI_API_KEY)")
    exa: bool = Field(..., description="Content search (EXA_API_KEY)")
    google: bool = Field(..., description="Grounded search (GOOGLE_API_KEY)")


class HealthResponse(BaseModel):
    """Overall status plus per-component detail.

    ``degraded`` means the process is fine but cannot answer with any search
    provider (no model key, or no search key at all).
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "status": "degraded",
                "version": "0.1.0",
                "uptime_seconds": 42.0,
                "thread_store": "memory",
                "websocket": {"active_connections": 1, "active_threads": 1, "shutting_down": False},
                "credentials": {"openai": True, "exa": False, "google": False},
            }
        }
    )

    status: HealthStatus
    version: str
    uptime_seconds: float
    thread_store: Literal["memory", "postgres"]
    database: DatabaseHealth | None = None
    websocket: WebSocketHealth
    credentials: CredentialsHealth


class ReadinessResponse(BaseModel):
    ready: bool
    error: str | None = None


class LivenessResponse(BaseModel):
    alive: bool = True
