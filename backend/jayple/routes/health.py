# backend/jayple/routes/health.py
"""Health check endpoint."""

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import __version__
from ..database import get_db

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


class HealthCheckResponse(BaseModel):
    status: str
    version: str
    database: str
    timestamp: datetime


@router.get("/health", response_model=HealthCheckResponse)
def health_check(response: Response, db: Session = Depends(get_db)) -> HealthCheckResponse:
    """Service status plus a database round-trip."""
    database = "healthy"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error("Database health check failed", extra={"error": str(exc)})
        database = "unhealthy"
        response.status_code = 503

    response.headers["Cache-Control"] = "no-store"
    return HealthCheckResponse(
        status="healthy" if database == "healthy" else "degraded",
        version=__version__,
        database=database,
        timestamp=datetime.now(timezone.utc),
    )
