# backend/barbershop/routes/health.py
"""
Health check and Prometheus scrape endpoints.

Both are public and unversioned, mounted outside ``/api``.
"""

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.orm import Session

from ..core.config import settings
from ..database import get_db
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)
router = APIRouter(tags=["health"])


class HealthCheckResponse(BaseModel):
    status: str
    service: str
    environment: str
    database: bool
    timestamp: datetime


@router.get("/health", response_model=HealthCheckResponse)
def health_check(db: Session = Depends(get_db)) -> HealthCheckResponse:
    """Report whether the service runs and the database answers."""
    try:
        db.execute(text("SELECT 1"))
        db_status = True
        status = "healthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_status = False
        status = "degraded"

    return HealthCheckResponse(
        status=status,
        service=settings.shop_name,
        environment=settings.environment,
        database=db_status,
        timestamp=datetime.now(timezone.utc),
    )


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    return Response(
        content=prometheus_metrics.get_metrics(), media_type=prometheus_metrics.get_content_type()
    )
