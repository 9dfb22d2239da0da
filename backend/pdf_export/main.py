"""
Comic PDF Export Service
Backend API - FastAPI Application
"""
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.responses import JSONResponse
import logging

from pdf_export.api import exports
from pdf_export.core.config import settings
from pdf_export.services.job_processor import ExportJobProcessor
from pdf_export.services.scheduler import MaintenanceScheduler

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "comic-pdf-export-service"
SERVICE_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    job_processor = ExportJobProcessor()
    scheduler = MaintenanceScheduler(job_processor.monitor, job_processor.janitor)
    app.state.job_processor = job_processor
    scheduler.start()
    logger.info(f"{SERVICE_NAME} started. Export directory: {settings.EXPORT_OUTPUT_DIR}")
    try:
        yield
    finally:
        scheduler.shutdown()
        job_processor.shutdown()
        logger.info(f"{SERVICE_NAME} shutting down")


app = FastAPI(
    title="Comic PDF Export API",
    description="Queued multi-page PDF export with memory-aware admission",
    version=SERVICE_VERSION,
    lifespan=lifespan
)

app.include_router(exports.router, prefix=settings.API_PREFIX, tags=["exports"])


@app.get("/")
async def root():
    """Service description"""
    return {
        "message": "Comic PDF Export Service",
        "status": "running",
        "endpoints": {
            "health": "/health",
            "export_pdf": f"{settings.API_PREFIX}/export-pdf",
            "export_status": f"{settings.API_PREFIX}/export-status/{{job_id}}",
            "download_pdf": f"{settings.API_PREFIX}/download/{{job_id}}",
        }
    }


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "timestamp": datetime.now().isoformat(),
        "version": SERVICE_VERSION
    }


@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "code": "INTERNAL_ERROR",
            "message": "An internal error occurred",
            "field": None
        }
    )
