# backend/app/routes/health.py
"""
Health check endpoints for the application.

Used by load balancers and uptime checks. Neither endpoint requires
authentication.
"""

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.constants import API_VERSION
from ..database import get_db
from ..schemas.base_responses import HealthCheckResponse, LiveHealthResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


@router.get("/live", response_model=LiveHealthResponse)
def liveness(response: Response) -> LiveHealthResponse:
    """Liveness check that avoids touching external dependencies."""
    response.headers["Cache-Control"] = "no-store"
    return LiveHealthResponse(ok=True)


@router.get("/health", response_model=HealthCheckResponse)
def health_check(db: Session = Depends(get_db)) -> HealthCheckResponse:
    """
    Basic health check endpoint.

    Reports ``degraded`` rather than failing when the database is unreachable.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = True
        status = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}")
        db_status = False
        status = "degraded"

    return HealthCheckResponse(
        status=status,
        service=settings.app_name,
        version=API_VERSION,
        timestamp=datetime.now(timezone.utc),
        checks={"database": db_status},
    )
