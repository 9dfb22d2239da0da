"""
Job status models
"""
from pydantic import BaseModel, Field
from typing import Optional
from enum import Enum
from datetime import datetime

from .render_spec import RenderSpec


class JobStatus(str, Enum):
    """Job status enumeration"""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPRESSING = "compressing"
    COMPLETE = "complete"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETE, JobStatus.ERROR)


class CompressionInfo(BaseModel):
    """Outcome of the compression stage"""
    success: bool
    original_size: Optional[int] = None
    compressed_size: Optional[int] = None
    ratio: Optional[float] = None  # percent saved
    error: Optional[str] = None
    fallback_used: bool = False
    fallback_failed: bool = False
    fallback_impossible: bool = False
    skipped: bool = False


class JobInfo(BaseModel):
    """Job record held by the job store"""
    job_id: str
    status: JobStatus
    created_at: datetime
    last_updated: datetime
    current_page: int = 0
    total_pages: int
    queue_position: int
    artifact_dir: str
    final_artifact_path: Optional[str] = None
    compression_info: Optional[CompressionInfo] = None
    error: Optional[str] = None
    should_compress: bool = True
    compression_level: str = "recommended"
    render_spec: Optional[RenderSpec] = Field(None, exclude=True)


class JobStatusResponse(BaseModel):
    """Job snapshot returned to polling clients"""
    job_id: str
    status: JobStatus
    current_page: int
    total_pages: int
    queue_position: int
    compression_info: Optional[CompressionInfo] = None
    error: Optional[str] = None
    created_at: datetime
    last_updated: datetime
    download_url: Optional[str] = None


class ExportResponse(BaseModel):
    """Response to an accepted export submission"""
    job_id: str
    message: str
    total_pages: int
    queue_position: int
