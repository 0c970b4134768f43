"""Health check API router."""

import logging

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sdq_tracker.core.config.settings import settings
from sdq_tracker.core.models.api import HealthCheckResponse
from sdq_tracker.infrastructure.database.connection import get_db

router = APIRouter(prefix="/health", tags=["health"])

logger = logging.getLogger(__name__)


@router.get(
    "",
    response_model=HealthCheckResponse,
    summary="Health check",
    description="Reports service status and whether the assessment database answers.",
    responses={503: {"model": HealthCheckResponse}},
)
async def health_check(
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> HealthCheckResponse:
    """Health check endpoint.

    Pings the assessment database with a trivial query. A failed ping marks
    the service degraded and answers 503 so readiness probes take it out of
    rotation.

    Returns:
        Service status information
    """
    try:
        await db.execute(text("SELECT 1"))
        database = "connected"
    except (SQLAlchemyError, OSError, TimeoutError) as e:
        logger.warning("[HEALTH] Database ping failed", extra={"error": str(e)})
        database = "unavailable"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthCheckResponse(
        status="healthy" if database == "connected" else "degraded",
        version=settings.app_version,
        service=settings.app_name,
        database=database,
    )
