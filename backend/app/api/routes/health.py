from datetime import UTC, datetime

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.database import get_db

router = APIRouter(tags=["health"])


def _database_ok(db: Session) -> bool:
    try:
        db.scalar(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        logger.error(f"Error en health check de BD: {e}")
        return False


@router.get("/health")
def health_check(db: Session = Depends(get_db)):
    settings = get_settings()
    services: dict[str, str] = {"database": "healthy" if _database_ok(db) else "unhealthy"}
    healthy = services["database"] == "healthy"
    health_status = {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.now(UTC).isoformat(),
        "services": services,
        "environment": settings.environment,
    }
    return JSONResponse(content=health_status, status_code=200 if healthy else 503)


@router.get("/health/live")
def liveness():
    return {"status": "alive", "timestamp": datetime.now(UTC).isoformat()}


@router.get("/health/ready")
def readiness(db: Session = Depends(get_db)):
    if not _database_ok(db):
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "timestamp": datetime.now(UTC).isoformat(),
                "services": {"database": "not_ready"},
            },
        )
    return {"status": "ready", "timestamp": datetime.now(UTC).isoformat(), "services": {"database": "ready"}}
