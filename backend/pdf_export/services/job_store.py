"""
In-memory job store
Owns every job record and enforces the job state machine
"""
import uuid
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional
import logging

from pdf_export.core.exceptions import InvalidTransitionError
from pdf_export.models.jobs import CompressionInfo, JobInfo, JobStatus
from pdf_export.models.render_spec import RenderSpec

logger = logging.getLogger(__name__)


# queued -> processing -> (compressing)? -> complete, error from any active state
ALLOWED_TRANSITIONS: Dict[JobStatus, frozenset] = {
    JobStatus.QUEUED: frozenset({JobStatus.PROCESSING}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPRESSING, JobStatus.COMPLETE, JobStatus.ERROR}),
    JobStatus.COMPRESSING: frozenset({JobStatus.COMPLETE, JobStatus.ERROR}),
    JobStatus.COMPLETE: frozenset(),
    JobStatus.ERROR: frozenset(),
}


class JobStore:
    """
    Process-lifetime mapping of job id to job record.

    Reads may happen from any request handler; each job has a single writer
    (the pipeline run that owns it), so no locking is needed inside one
    event loop.
    """

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._jobs: Dict[str, JobInfo] = {}
        self._issued_ids: set = set()
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def _new_job_id(self) -> str:
        job_id = str(uuid.uuid4())
        while job_id in self._issued_ids:
            job_id = str(uuid.uuid4())
        self._issued_ids.add(job_id)
        return job_id

    def create(
        self,
        render_spec: RenderSpec,
        queue_position: int,
        output_dir: str,
        compression_level: str = "recommended",
    ) -> JobInfo:
        """
        Create a queued job record.
        The artifact directory is named per submission but not created yet.
        """
        job_id = self._new_job_id()
        now = self.now()
        artifact_dir = Path(output_dir) / f"export_{int(now.timestamp() * 1000)}_{job_id}"

        job_info = JobInfo(
            job_id=job_id,
            status=JobStatus.QUEUED,
            created_at=now,
            last_updated=now,
            current_page=0,
            total_pages=render_spec.total_pages,
            queue_position=queue_position,
            artifact_dir=str(artifact_dir),
            should_compress=render_spec.should_compress,
            compression_level=compression_level,
            render_spec=render_spec,
        )
        self._jobs[job_id] = job_info
        logger.info(
            f"Job {job_id} created. Total pages: {job_info.total_pages}. "
            f"Queue position: {queue_position}. Output dir: {artifact_dir}"
        )
        return job_info

    def get(self, job_id: str) -> Optional[JobInfo]:
        return self._jobs.get(job_id)

    def snapshot(self, job_id: str) -> Optional[JobInfo]:
        """Copy of the job record without the render spec, safe to hand to readers"""
        job_info = self._jobs.get(job_id)
        if job_info is None:
            return None
        # compression_info is replaced, never mutated, so a shallow copy is enough
        return job_info.model_copy(update={"render_spec": None})

    def jobs(self) -> List[JobInfo]:
        return list(self._jobs.values())

    def delete(self, job_id: str) -> Optional[JobInfo]:
        return self._jobs.pop(job_id, None)

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._jobs

    def __len__(self) -> int:
        return len(self._jobs)

    def _require(self, job_id: str) -> JobInfo:
        job_info = self._jobs.get(job_id)
        if job_info is None:
            raise KeyError(job_id)
        return job_info

    def _touch(self, job_info: JobInfo) -> None:
        job_info.last_updated = self.now()

    def transition(self, job_id: str, status: JobStatus) -> JobInfo:
        """Move a job to a new state, rejecting illegal transitions"""
        job_info = self._require(job_id)
        if status not in ALLOWED_TRANSITIONS[job_info.status]:
            raise InvalidTransitionError(job_id, job_info.status.value, status.value)
        job_info.status = status
        self._touch(job_info)
        return job_info

    def set_progress(self, job_id: str, current_page: int) -> JobInfo:
        job_info = self._require(job_id)
        if current_page < job_info.current_page:
            raise ValueError(
                f"Job {job_id}: current_page cannot go back from {job_info.current_page} to {current_page}"
            )
        if current_page > job_info.total_pages:
            raise ValueError(
                f"Job {job_id}: current_page {current_page} exceeds total_pages {job_info.total_pages}"
            )
        job_info.current_page = current_page
        self._touch(job_info)
        return job_info

    def set_compression_info(self, job_id: str, compression_info: CompressionInfo) -> JobInfo:
        job_info = self._require(job_id)
        job_info.compression_info = compression_info
        self._touch(job_info)
        return job_info

    def complete(self, job_id: str, final_artifact_path: str) -> JobInfo:
        """Mark a job complete; the final artifact must exist right now"""
        if not Path(final_artifact_path).is_file():
            raise FileNotFoundError(f"Final artifact not found: {final_artifact_path}")
        job_info = self._require(job_id)
        if JobStatus.COMPLETE not in ALLOWED_TRANSITIONS[job_info.status]:
            raise InvalidTransitionError(job_id, job_info.status.value, JobStatus.COMPLETE.value)
        job_info.final_artifact_path = final_artifact_path
        job_info.status = JobStatus.COMPLETE
        self._touch(job_info)
        return job_info

    def fail(self, job_id: str, error: str) -> JobInfo:
        job_info = self._require(job_id)
        if JobStatus.ERROR not in ALLOWED_TRANSITIONS[job_info.status]:
            raise InvalidTransitionError(job_id, job_info.status.value, JobStatus.ERROR.value)
        job_info.error = error or "Unknown error"
        job_info.status = JobStatus.ERROR
        self._touch(job_info)
        return job_info
