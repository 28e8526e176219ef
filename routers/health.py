"""Health check endpoints."""

from enum import Enum

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from core.database import get_session
from core.dates import to_iso_string, utcnow
from core.logging import get_logger

settings = get_settings()
logger = get_logger(__name__)
router = APIRouter()


class HealthStatus(str, Enum):
    """Health status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


@router.get("/health")
async def health():
    """Basic health check endpoint."""
    return {"status": "ok", "timestamp": to_iso_string(utcnow())}


@router.get("/health/ready")
async def readiness_check(session: AsyncSession = Depends(get_session)):
    """Readiness check: the database must answer."""
    checks = {}
    overall_status = HealthStatus.HEALTHY

    try:
        await session.execute(text("SELECT 1"))
        checks["database"] = {"status": "ok"}
    except Exception as e:
        logger.error("Database health check failed", error=str(e))
        checks["database"] = {"status": "error", "error": str(e)}
        overall_status = HealthStatus.UNHEALTHY

    checks["storage"] = {"backend": settings.storage_backend}

    return JSONResponse(
        status_code=200 if overall_status == HealthStatus.HEALTHY else 503,
        content={
            "status": overall_status.value,
            "checks": checks,
            "timestamp": to_iso_string(utcnow()),
            "version": settings.app_version,
        },
    )


@router.get("/health/live")
async def liveness_check():
    """Liveness probe endpoint."""
    return {"status": "alive"}
