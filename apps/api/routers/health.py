"""
Health check endpoints.
"""

import shutil

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from config import settings

router = APIRouter()


def _missing_media_tools() -> list:
    return [
        binary
        for binary in (settings.FFPROBE_BIN, settings.FFMPEG_BIN)
        if shutil.which(binary) is None
    ]


@router.get("/health")
async def health_check():
    """
    Health check endpoint.
    Returns overall system health status.
    """
    health_status = {
        "status": "healthy",
        "api": "up",
        "database": "unknown",
        "media_tools": "available",
    }

    # Check database connection
    try:
        from database import engine
        from sqlalchemy import text
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["database"] = "up"
    except Exception as e:
        health_status["database"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    missing = _missing_media_tools()
    if missing:
        health_status["media_tools"] = f"missing: {', '.join(missing)}"
        health_status["status"] = "degraded"

    return health_status


@router.get("/health/ready")
async def readiness_check():
    """Kubernetes-style readiness probe."""
    missing = _missing_media_tools()
    if missing:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "missing": missing},
        )
    return {"ready": True}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"alive": True}
