"""
Health probes.

``/health`` reports component detail, including which upstream keys are
configured, so a missing key shows up before a request trips over it.
``/health/ready`` and ``/health/live`` are the cheap probes for orchestrators.
"""

from __future__ import annotations

import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.dependencies import AppSettings, Threads, WSManager
from models.schemas.health import (
    CredentialsHealth,
    DatabaseHealth,
    HealthResponse,
    HealthStatus,
    LivenessResponse,
    ReadinessResponse,
    WebSocketHealth,
)
from utils.db_utils import check_pool_health

router = APIRouter()


def _overall_status(db: DatabaseHealth | None, ws: WebSocketHealth, credentials: CredentialsHealth) -> HealthStatus:
    if (db is not None and not db.healthy) or ws.shutting_down:
        return "unhealthy"
    if not credentials.openai or not (credentials.exa or credentials.google):
        return "degraded"
    return "healthy"


@router.get("/health", response_model=HealthResponse, summary="Health check", tags=["Health"])
async def health_check(
    request: Request,
    settings: AppSettings,
    threads: Threads,
    ws_manager: WSManager,
) -> HealthResponse:
    db_pool = getattr(request.app.state, "db_pool", None)
    database = DatabaseHealth(**await check_pool_health(db_pool)) if db_pool is not None else None

    stats = ws_manager.get_stats()
    websocket = WebSocketHealth(
        active_connections=stats["total_connections"],
        active_threads=stats["total_threads"],
        shutting_down=stats["shutting_down"],
    )
    credentials = CredentialsHealth(**settings.configured_credentials)

    started_at = getattr(request.app.state, "started_at", None)
    uptime = round(time.monotonic() - started_at, 1) if started_at is not None else 0.0

    return HealthResponse(
        status=_overall_status(database, websocket, credentials),
        version=settings.app_version,
        uptime_seconds=uptime,
        thread_store=threads.backend,
        database=database,
        websocket=websocket,
        credentials=credentials,
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    responses={503: {"description": "Starting up, or the database is unreachable"}},
    tags=["Health"],
)
async def readiness_check(request: Request) -> ReadinessResponse | JSONResponse:
    state = request.app.state
    error: str | None = None
    if getattr(state, "chat_service", None) is None:
        error = "Startup not complete"
    elif getattr(state, "db_pool", None) is not None and not (await check_pool_health(state.db_pool))["healthy"]:
        error = "Database unavailable"

    if error:
        return JSONResponse(status_code=503, content=ReadinessResponse(ready=False, error=error).model_dump())
    return ReadinessResponse(ready=True)


@router.get("/health/live", response_model=LivenessResponse, summary="Liveness probe", tags=["Health"])
async def liveness_check() -> LivenessResponse:
    return LivenessResponse()
