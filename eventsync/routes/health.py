"""
EventSync Health Check Routes
Liveness and readiness probes
"""
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..config import get_settings
from ..database import Database
from ..logging_config import db_logger

router = APIRouter(prefix="/api/health", tags=["health"])

START_TIME = datetime.now(timezone.utc)


def get_uptime() -> str:
    """Get service uptime as human-readable string"""
    delta = datetime.now(timezone.utc) - START_TIME
    hours, remainder = divmod(delta.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if delta.days > 0:
        return f"{delta.days}d {hours}h {minutes}m"
    elif hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    else:
        return f"{minutes}m {seconds}s"


def check_database(database: Database) -> Dict[str, Any]:
    """Run a trivial query against the pool"""
    if database.engine is None:
        return {"status": "unhealthy", "error": "Database is not open"}
    try:
        with database.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db_logger.error("Health check query failed", error=e)
        return {"status": "unhealthy", "error": type(e).__name__}

    return {
        "status": "healthy",
        "dialect": database.engine.dialect.name,
    }


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


# ============================================================
# ROUTES
# ============================================================

@router.get("")
@router.get("/live")
def health_live():
    """
    Liveness probe - is the service running?
    Returns 200 if the service is alive.
    """
    settings = get_settings()
    return {
        "ok": True,
        "status": "healthy",
        "environment": settings.environment,
        "version": "1.0.0",
        "uptime": get_uptime(),
        "timestamp": _timestamp(),
    }


@router.get("/ready")
def health_ready(request: Request):
    """
    Readiness probe - is the service ready to accept traffic?
    Returns 503 when the database cannot be reached.
    """
    db = check_database(request.app.state.database)
    ready = db["status"] == "healthy"

    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "ok": ready,
            "status": "ready" if ready else "not_ready",
            "checks": {"database": db},
            "timestamp": _timestamp(),
        },
    )
