"""
Health API Routes
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from report_service.config.settings import settings
from report_service.infrastructure.database.client import get_db
from report_service.infrastructure.storage import StorageProvider, get_storage_provider
from report_service.models import HealthResponse

router = APIRouter(prefix="/api/v1", tags=["health"])
logger = logging.getLogger(__name__)


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Detailed Health Check",
    description="""
Health check including storage backend and database connectivity.

**Health Status Values**:
- healthy: storage and database accessible
- degraded: one or more systems unavailable

**Authorization**: None required (public endpoint for monitoring)
    """,
    responses={
        200: {"description": "Health check completed (status may be healthy or degraded)"}
    }
)
async def health_check(
    db: AsyncSession = Depends(get_db),
    storage: StorageProvider = Depends(get_storage_provider)
) -> HealthResponse:
    """Health check endpoint"""
    storage_ok = await storage.health_check()

    db_ok = True
    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        db_ok = False

    return HealthResponse(
        status="healthy" if (storage_ok and db_ok) else "degraded",
        service=settings.service_name,
        storage_available=storage_ok,
        database_available=db_ok
    )
