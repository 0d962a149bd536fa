"""
Health check routes for load balancers and monitoring.
"""
from fastapi import APIRouter, Depends
from datetime import datetime, timezone
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Dict, Any

from ..config import get_settings
from ..database import get_db
from ..logging_config import db_logger

router = APIRouter(prefix="/api/health", tags=["health"])

settings = get_settings()

START_TIME = datetime.now(timezone.utc)


def get_uptime() -> str:
    """Get process uptime as human-readable string"""
    delta = datetime.now(timezone.utc) - START_TIME
    hours, remainder = divmod(delta.seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    if delta.days > 0:
        return f"{delta.days}d {hours}h {minutes}m"
    elif hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    else:
        return f"{minutes}m {seconds}s"


def check_database(db: Session) -> Dict[str, Any]:
    """Check database connectivity"""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db_logger.error("Health check query failed", error=e)
        return {"status": "unhealthy", "error": type(e).__name__}
    return {"status": "healthy"}


@router.get("")
def health_check(db: Session = Depends(get_db)):
    """Overall service health including the storage backend."""
    database = check_database(db)
    return {
        "status": database["status"],
        "environment": settings.environment,
        "version": "1.0.0",
        "uptime": get_uptime(),
        "database": database,
    }
