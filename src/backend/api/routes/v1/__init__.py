"""``/api/v1`` router: health probes, ``POST /ask`` and thread history."""

from fastapi import APIRouter

from api.routes.v1 import ask, health, threads

router = APIRouter()
router.include_router(health.router, tags=["Health"])
router.include_router(ask.router, tags=["Ask"])
router.include_router(threads.router, prefix="/threads", tags=["Threads"])

__all__ = ["router"]
