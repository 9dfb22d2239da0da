"""
Periodic cleanup of finished jobs and their export directories
"""
import shutil
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional
import logging

from pdf_export.core.config import settings
from pdf_export.models.jobs import JobStatus
from pdf_export.services.job_store import JobStore

logger = logging.getLogger(__name__)


class Janitor:
    """
    Removes terminal jobs whose last update is older than the retention window.
    Jobs that are still queued or running are never touched, however old.
    """

    def __init__(
        self,
        job_store: JobStore,
        retention_seconds: int = settings.JOB_RETENTION_SECONDS,
        keep_failed_artifacts: bool = settings.KEEP_FAILED_ARTIFACTS,
    ):
        self._store = job_store
        self._retention = timedelta(seconds=retention_seconds)
        self._keep_failed_artifacts = keep_failed_artifacts

    def sweep(self, now: Optional[datetime] = None) -> List[str]:
        """Delete expired terminal jobs; returns the removed job ids"""
        now = now or self._store.now()
        removed: List[str] = []

        for job_info in self._store.jobs():
            if not job_info.status.is_terminal:
                continue
            if now - job_info.last_updated <= self._retention:
                continue

            logger.info(f"Removing old job: {job_info.job_id}")
            self._store.delete(job_info.job_id)
            removed.append(job_info.job_id)

            if job_info.status == JobStatus.ERROR and self._keep_failed_artifacts:
                logger.info(f"Keeping output directory of failed job {job_info.job_id}: {job_info.artifact_dir}")
                continue
            self._remove_dir(job_info.job_id, job_info.artifact_dir)

        if removed:
            logger.info(f"Cleanup finished: {len(removed)} job(s) removed, {len(self._store)} remaining")
        return removed

    def _remove_dir(self, job_id: str, artifact_dir: str) -> None:
        path = Path(artifact_dir)
        if not path.exists():
            return
        try:
            shutil.rmtree(path)
            logger.info(f"Cleaned up job output directory: {path} for job {job_id}")
        except OSError as e:
            logger.error(f"Error cleaning up job output directory {path} for job {job_id}: {e}")
