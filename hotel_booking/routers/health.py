"""
Health Check Endpoints

- /health/live - Liveness check (is process running)
- /health/ready - Readiness check (is the database reachable)
- /health/detailed - Component checks and scheduler state (admin only)
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timezone
import time

from ..database import get_db
from ..config import get_settings
from ..services.status_scheduler import get_scheduler_status
from ..utils.dependencies import SessionContext, require_admin

router = APIRouter(prefix="/health", tags=["Health"])

API_VERSION = "1.0.0"


def get_db_health(db: Session) -> dict:
    """Check database connectivity and latency"""
    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000
        return {
            "status": "up",
            "latency_ms": round(latency_ms, 2),
            "type": db.bind.dialect.name
        }
    except SQLAlchemyError as e:
        return {
            "status": "down",
            "error": str(e)[:100]
        }


@router.get("/live")
async def liveness_check():
    """
    Liveness probe - is the process running?
    """
    return {
        "status": "alive",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@router.get("/ready")
async def readiness_check(db: Session = Depends(get_db)):
    """
    Readiness probe - is the service ready to accept traffic?
    Checks database connectivity.
    """
    db_health = get_db_health(db)

    if db_health["status"] == "up":
        return {
            "status": "ready",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={
            "status": "not_ready",
            "reason": "database_unavailable",
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )


@router.get("/detailed")
async def detailed_health_check(
    db: Session = Depends(get_db),
    ctx: SessionContext = Depends(require_admin)
):
    settings = get_settings()
    db_health = get_db_health(db)

    return {
        "status": "healthy" if db_health["status"] == "up" else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": API_VERSION,
        "environment": settings.environment,
        "checks": {
            "database": db_health,
            "status_scheduler": get_scheduler_status(),
        },
        "config": {
            "rate_limit_enabled": settings.rate_limiting_enabled,
            "redis_configured": bool(settings.redis_url),
        }
    }


@router.get("")
async def simple_health_check():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": API_VERSION
    }
