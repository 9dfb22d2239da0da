"""
Export submission, status and download API endpoints
"""
from typing import Any

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import FileResponse, JSONResponse
import logging

from pdf_export.core.exceptions import (
    AdmissionError,
    InvalidInputError,
    JobNotFoundError,
    JobNotReadyError,
)
from pdf_export.models.jobs import ExportResponse, JobInfo, JobStatus, JobStatusResponse
from pdf_export.services.job_processor import ExportJobProcessor

logger = logging.getLogger(__name__)

router = APIRouter()


def get_job_processor(request: Request) -> ExportJobProcessor:
    return request.app.state.job_processor


def _error(status_code: int, code: str, message: str, field: Any = None, **extra: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"code": code, "message": message, "field": field, **extra},
    )


def _job_not_found(job_id: str) -> JSONResponse:
    return _error(status.HTTP_404_NOT_FOUND, "JOB_NOT_FOUND", f"Job {job_id} not found", "job_id")


def _status_response(job_info: JobInfo, request: Request) -> JobStatusResponse:
    download_url = None
    if job_info.status == JobStatus.COMPLETE:
        download_url = request.url_for("download_pdf", job_id=job_info.job_id).path
    return JobStatusResponse(
        job_id=job_info.job_id,
        status=job_info.status,
        current_page=job_info.current_page,
        total_pages=job_info.total_pages,
        queue_position=job_info.queue_position,
        compression_info=job_info.compression_info,
        error=job_info.error,
        created_at=job_info.created_at,
        last_updated=job_info.last_updated,
        download_url=download_url,
    )


@router.post("/export-pdf", status_code=status.HTTP_202_ACCEPTED, response_model=ExportResponse)
async def export_pdf(
    payload: Any = Body(None),
    job_processor: ExportJobProcessor = Depends(get_job_processor),
):
    """
    Queue a PDF export of a multi-page project state
    """
    try:
        job_info = await job_processor.submit(payload)
    except InvalidInputError as e:
        return _error(status.HTTP_400_BAD_REQUEST, e.code, e.message, "pages", **e.details)
    except AdmissionError as e:
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, e.code, e.message, None, **e.details)

    return ExportResponse(
        job_id=job_info.job_id,
        message="PDF export process queued.",
        total_pages=job_info.total_pages,
        queue_position=job_info.queue_position,
    )


@router.get("/export-status/{job_id}", response_model=JobStatusResponse)
async def get_export_status(
    job_id: str,
    request: Request,
    job_processor: ExportJobProcessor = Depends(get_job_processor),
):
    """
    Get export progress by job_id
    """
    job_info = job_processor.get_job_status(job_id)
    if not job_info:
        return _job_not_found(job_id)
    return _status_response(job_info, request)


@router.get("/download/{job_id}")
async def download_pdf(
    job_id: str,
    job_processor: ExportJobProcessor = Depends(get_job_processor),
):
    """
    Download the PDF of a completed export
    """
    try:
        path = job_processor.get_artifact(job_id)
    except JobNotFoundError:
        return _job_not_found(job_id)
    except JobNotReadyError as e:
        return _error(
            status.HTTP_400_BAD_REQUEST,
            "JOB_NOT_READY",
            f"PDF not ready for download. Current status: {e.status}",
            "job_id",
            status=e.status,
        )
    except FileNotFoundError as e:
        logger.error(f"Download for job {job_id} failed: {e}")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "RESULT_NOT_AVAILABLE", "Export file is not available")

    return FileResponse(
        path,
        media_type="application/pdf",
        filename=f"comic_export_{job_id[:8]}.pdf",
    )
