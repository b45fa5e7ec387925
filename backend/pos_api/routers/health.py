"""
Health check endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from pos_api.core.dependencies import offline_queue
from pos_api.services.domain.offline_queue import OfflineQueue
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.db import get_db
from shared.infrastructure.events import check_redis_health

logger = get_logger(__name__)

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
def health_check():
    """Basic liveness check."""
    return {
        "status": "healthy",
        "service": "pos-api",
        "environment": settings.environment,
    }


@router.get("/detailed")
async def health_check_detailed(
    db: Session = Depends(get_db),
    queue: OfflineQueue = Depends(offline_queue),
):
    """Dependency checks: backing store, Redis, offline backlog."""
    try:
        db.execute(text("SELECT 1"))
        database = "healthy"
    except SQLAlchemyError as e:
        logger.warning("Database health check failed", error=str(e))
        database = "unhealthy"

    redis_ok = await check_redis_health()
    pending = queue.pending_count()

    return {
        "status": "healthy" if database == "healthy" else "degraded",
        "dependencies": {
            "database": database,
            "redis": "healthy" if redis_ok else "unhealthy",
        },
        "offline_pending": pending,
    }
