"""Health check endpoints."""
from fastapi import APIRouter, Request
from typing import Dict, Any
import time

from ...core.config import settings


router = APIRouter()


@router.get("/health", summary="Basic health check")
async def health_check(request: Request) -> Dict[str, Any]:
    """Report liveness and whether the pipeline is configured."""
    pipeline = getattr(request.app.state, "pipeline", None)
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.APP_VERSION,
        "service": settings.APP_NAME,
        "pipeline_ready": pipeline is not None
    }


@router.get("/health/cache", summary="Query cache statistics")
async def cache_stats(request: Request) -> Dict[str, Any]:
    """Entry count and size of the search result cache."""
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        return {"status": "unavailable"}
    return {"status": "ok", **pipeline.cache.get_stats()}
