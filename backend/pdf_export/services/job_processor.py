"""
In-memory export job processing service
Entry point for submissions, status polling and artifact retrieval
"""
from pathlib import Path
from typing import Any, Optional
import logging

from pdf_export.core.config import settings
from pdf_export.core.exceptions import JobNotFoundError, JobNotReadyError
from pdf_export.models.jobs import JobInfo, JobStatus
from pdf_export.services.admission import AdmissionController
from pdf_export.services.compressor import ILovePdfCompressor
from pdf_export.services.execution_queue import ExecutionQueue
from pdf_export.services.janitor import Janitor
from pdf_export.services.job_store import JobStore
from pdf_export.services.merger import PdfMerger
from pdf_export.services.pipeline import Compressor, Merger, PipelineOrchestrator, Renderer
from pdf_export.services.renderer import PageRenderer
from pdf_export.services.resource_monitor import ResourceMonitor

logger = logging.getLogger(__name__)


class ExportJobProcessor:
    """
    Wires admission, the job store, the execution queue and the pipeline.
    Submission returns as soon as the job is queued; the pipeline runs in the
    background on the queue's worker slot.
    """

    def __init__(
        self,
        job_store: Optional[JobStore] = None,
        monitor: Optional[ResourceMonitor] = None,
        queue: Optional[ExecutionQueue] = None,
        renderer: Optional[Renderer] = None,
        merger: Optional[Merger] = None,
        compressor: Optional[Compressor] = None,
        output_dir: str = settings.EXPORT_OUTPUT_DIR,
        max_queue_depth: int = settings.MAX_QUEUE_DEPTH,
        render_timeout: float = settings.PAGE_RENDER_TIMEOUT_SECONDS,
        temp_cleanup_delay: float = settings.TEMP_PAGE_CLEANUP_DELAY_SECONDS,
        default_compression_level: str = settings.DEFAULT_COMPRESSION_LEVEL,
    ):
        self.job_store = job_store or JobStore()
        self.monitor = monitor or ResourceMonitor()
        self.queue = queue or ExecutionQueue(max_concurrent=settings.MAX_CONCURRENT_EXPORTS)
        self.admission = AdmissionController(self.monitor, self.queue, max_queue_depth=max_queue_depth)
        self.renderer = renderer or PageRenderer()
        self.merger = merger or PdfMerger()
        self.pipeline = PipelineOrchestrator(
            self.job_store,
            self.renderer,
            self.merger,
            compressor or ILovePdfCompressor(),
            render_timeout=render_timeout,
            temp_cleanup_delay=temp_cleanup_delay,
        )
        self.janitor = Janitor(self.job_store)
        self._output_dir = Path(output_dir)
        self._output_dir.mkdir(parents=True, exist_ok=True)
        self._default_compression_level = default_compression_level
        logger.info(f"Export output directory: {self._output_dir}")

    async def submit(self, payload: Any) -> JobInfo:
        """
        Admit and queue a new export.
        Raises an AdmissionError subclass when rejected.
        """
        decision = self.admission.try_admit(payload)
        render_spec = decision.render_spec

        job_info = self.job_store.create(
            render_spec,
            queue_position=decision.queue_position,
            output_dir=str(self._output_dir),
            compression_level=render_spec.compression_level(self._default_compression_level),
        )
        job_id = job_info.job_id
        self.queue.submit(lambda: self.pipeline.run(job_id))
        return self.job_store.snapshot(job_id)

    def get_job_status(self, job_id: str) -> Optional[JobInfo]:
        """Snapshot of the job, or None for an unknown id"""
        return self.job_store.snapshot(job_id)

    def get_artifact(self, job_id: str) -> Path:
        """Path of the finished PDF"""
        job_info = self.job_store.snapshot(job_id)
        if job_info is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        if job_info.status != JobStatus.COMPLETE or not job_info.final_artifact_path:
            raise JobNotReadyError(job_id, job_info.status.value)

        path = Path(job_info.final_artifact_path)
        if not path.is_file():
            raise FileNotFoundError(f"Export file for job {job_id} is no longer available")
        return path

    def shutdown(self) -> None:
        """Release the render and merge thread pools"""
        self.renderer.shutdown()
        self.merger.shutdown()
        logger.info("Render and merge workers shut down")
