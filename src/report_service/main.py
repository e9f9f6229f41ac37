"""
Incident Report Service - Main Application

FastAPI application for incident reports with media attachments.
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from report_service.config.settings import settings
from report_service.api.routes.attachments import router as attachments_router
from report_service.api.routes.health import router as health_router
from report_service.api.routes.reports import router as reports_router
from report_service.api.routes.users import router as users_router
from report_service.core.exceptions import ReportServiceError
from report_service.infrastructure.database.client import db_client

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

VERSION = "0.1.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.info(f"Starting {settings.service_name} ({settings.environment})")
    logger.info(f"Database: {settings.database_url}")

    await db_client.initialize()

    yield

    # Shutdown
    logger.info("Shutting down Incident Report Service")
    await db_client.close()


app = FastAPI(
    title="Incident Report Service",
    description="Incident reports with picture, video, audio, sketch and document attachments",
    version=VERSION,
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ReportServiceError)
async def report_service_error_handler(request: Request, exc: ReportServiceError) -> JSONResponse:
    """Map domain errors to their HTTP status"""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(users_router)
app.include_router(reports_router)
app.include_router(attachments_router)
app.include_router(health_router)

# Local blob storage is served straight from disk
if os.getenv("STORAGE_PROVIDER", "local").lower() == "local":
    app.mount(
        "/media",
        StaticFiles(directory=os.getenv("STORAGE_LOCAL_PATH", "./data/media"), check_dir=False),
        name="media"
    )


@app.get(
    "/",
    summary="Service Information",
    responses={
        200: {"description": "Service information returned successfully"}
    }
)
async def root():
    """Root endpoint"""
    return {
        "service": settings.service_name,
        "version": VERSION,
        "status": "running",
        "environment": settings.environment
    }


@app.get(
    "/health",
    summary="Health Check",
    description="Lightweight liveness check. Use `/api/v1/health` for storage and database status.",
    responses={
        200: {"description": "Service is healthy and operational"}
    }
)
async def health():
    """Simple health check"""
    return {"status": "healthy", "service": settings.service_name}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "report_service.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development"
    )
