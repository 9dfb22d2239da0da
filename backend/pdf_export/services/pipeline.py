"""
Export pipeline
Drives one job through render -> merge -> compress -> finalize
"""
import asyncio
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Protocol, Set, Union
import logging

from pdf_export.core.config import settings
from pdf_export.core.exceptions import CompressionError, InvalidTransitionError, MergeError, RenderError
from pdf_export.models.jobs import CompressionInfo, JobInfo, JobStatus
from pdf_export.models.render_spec import RenderSpec, single_page_spec
from pdf_export.services.compressor import CompressionStats
from pdf_export.services.job_store import JobStore
from pdf_export.services.merger import MergeResult

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    async def render_page(self, page_spec: RenderSpec, output_path: str) -> str: ...

    def shutdown(self) -> None: ...


class Merger(Protocol):
    async def merge(self, pdf_paths: List[str], output_path: str) -> MergeResult: ...

    def shutdown(self) -> None: ...


class Compressor(Protocol):
    def is_available(self) -> bool: ...

    async def compress(self, input_path: str, output_path: str, compression_level: str) -> CompressionStats: ...


@dataclass
class Compressed:
    """Backend compressed the document"""
    path: str
    stats: CompressionStats


@dataclass
class FallbackCopy:
    """Backend failed; the original bytes were copied to the compressed path"""
    path: str
    original_size: int
    error: str


@dataclass
class Unavailable:
    """No compressed or copied file could be produced"""
    error: str
    input_missing: bool
    original_size: int = 0


CompressionOutcome = Union[Compressed, FallbackCopy, Unavailable]


class PipelineOrchestrator:
    """
    Sole writer of a job's state while the job is active.

    Page render failures abort the job. Merge failures are tolerated per
    page. Compression failures degrade through the fallback chain and only
    fail the job when no artifact is left at all.
    """

    def __init__(
        self,
        job_store: JobStore,
        renderer: Renderer,
        merger: Merger,
        compressor: Compressor,
        render_timeout: float = settings.PAGE_RENDER_TIMEOUT_SECONDS,
        temp_cleanup_delay: float = settings.TEMP_PAGE_CLEANUP_DELAY_SECONDS,
    ):
        self._store = job_store
        self._renderer = renderer
        self._merger = merger
        self._compressor = compressor
        self._render_timeout = render_timeout
        self._temp_cleanup_delay = temp_cleanup_delay
        self._cleanup_tasks: Set[asyncio.Task] = set()

    async def run(self, job_id: str) -> None:
        """Run a queued job to a terminal state. Never raises."""
        job_info = self._store.get(job_id)
        if job_info is None:
            logger.warning(f"Job {job_id} vanished before processing started")
            return
        if job_info.status != JobStatus.QUEUED:
            logger.warning(f"Job {job_id} is {job_info.status.value}, not queued; skipping run")
            return

        try:
            await self._run_stages(job_info)
        except Exception as e:
            logger.error(f"Job {job_id}: export process failed: {e}", exc_info=True)
            self._fail(job_id, str(e) or type(e).__name__)

    def _fail(self, job_id: str, error: str) -> None:
        try:
            self._store.fail(job_id, error)
        except (InvalidTransitionError, KeyError) as e:
            logger.error(f"Job {job_id}: could not record failure '{error}': {e}")

    async def _run_stages(self, job_info: JobInfo) -> None:
        job_id = job_info.job_id
        render_spec = job_info.render_spec
        if render_spec is None:
            raise RenderError("Job has no render specification")

        self._store.transition(job_id, JobStatus.PROCESSING)

        artifact_dir = Path(job_info.artifact_dir)
        temp_dir = artifact_dir / "temp_pages"
        temp_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Job {job_id}: temporary directory for PDF pages: {temp_dir}")

        page_paths = await self._render_pages(job_id, render_spec, temp_dir)

        stamp = int(job_info.created_at.timestamp() * 1000)
        merged_path = artifact_dir / f"comic_export_{stamp}.pdf"
        logger.info(f"Job {job_id}: all pages processed. Starting PDF merge...")
        try:
            merge_result = await self._merger.merge(page_paths, str(merged_path))
        finally:
            self._schedule_temp_cleanup(temp_dir)

        if merge_result.merged_pages == 0:
            raise MergeError(f"None of the {len(page_paths)} rendered pages could be merged")
        if merge_result.skipped:
            logger.warning(f"Job {job_id}: {len(merge_result.skipped)} page(s) skipped during merge")
        logger.info(f"Job {job_id}: final PDF merged and saved to {merged_path}")

        final_path = await self._compress_stage(job_info, str(merged_path), stamp)

        self._store.complete(job_id, final_path)
        logger.info(f"Job {job_id}: export process completed successfully. Final PDF: {final_path}")

    async def _render_pages(self, job_id: str, render_spec: RenderSpec, temp_dir: Path) -> List[str]:
        """Render pages strictly in order; the first failure aborts the job"""
        total_pages = render_spec.total_pages
        page_paths: List[str] = []

        for index in range(total_pages):
            page_number = index + 1
            logger.info(f"Job {job_id}: processing page {page_number} of {total_pages}...")
            page_spec = single_page_spec(render_spec, index)
            page_path = str(temp_dir / f"page_{page_number}.pdf")

            try:
                await asyncio.wait_for(
                    self._renderer.render_page(page_spec, page_path),
                    timeout=self._render_timeout,
                )
            except asyncio.TimeoutError:
                raise RenderError(
                    f"Page {page_number} render timed out after {self._render_timeout} seconds"
                )
            except Exception as e:
                raise RenderError(f"Failed to render page {page_number}: {e}") from e

            page_paths.append(page_path)
            self._store.set_progress(job_id, page_number)
            logger.info(f"Job {job_id}: successfully captured page {page_number} to {page_path}")

        return page_paths

    async def _compress_stage(self, job_info: JobInfo, merged_path: str, stamp: int) -> str:
        """Returns the path to serve; raises only if no artifact is left"""
        job_id = job_info.job_id

        if not job_info.should_compress:
            logger.info(f"Job {job_id}: no compression requested. Using uncompressed PDF.")
            self._store.set_compression_info(job_id, CompressionInfo(success=True, skipped=True, ratio=0))
            return merged_path

        if not self._compressor.is_available():
            logger.warning(f"Job {job_id}: compression backend not configured. Using uncompressed PDF.")
            self._store.set_compression_info(
                job_id,
                CompressionInfo(success=True, skipped=True, ratio=0, error="Compression backend not configured"),
            )
            return merged_path

        self._store.transition(job_id, JobStatus.COMPRESSING)
        compressed_path = str(Path(job_info.artifact_dir) / f"comic_export_compressed_{stamp}.pdf")
        logger.info(f"Job {job_id}: starting PDF compression (level={job_info.compression_level})")

        outcome = await self.compress_with_fallback(merged_path, compressed_path, job_info.compression_level)
        return self._apply_outcome(job_id, outcome, merged_path)

    async def compress_with_fallback(
        self,
        input_path: str,
        output_path: str,
        compression_level: str,
    ) -> CompressionOutcome:
        """Try the backend, then a plain copy of the original bytes"""
        source = Path(input_path)
        if not source.is_file():
            logger.error(f"Input file for compression not found: {input_path}")
            return Unavailable(error=f"Input file not found: {input_path}", input_missing=True)

        try:
            stats = await self._compressor.compress(input_path, output_path, compression_level)
            return Compressed(path=output_path, stats=stats)
        except Exception as e:
            logger.error(f"Error during PDF compression: {e}", exc_info=True)
            error = str(e) or type(e).__name__

        if not source.is_file():
            return Unavailable(
                error=f"{error}. Input file {input_path} not found, so fallback was impossible.",
                input_missing=True,
            )

        original_size = source.stat().st_size
        try:
            shutil.copyfile(source, output_path)
        except OSError as copy_error:
            logger.error(f"Failed to copy original file {input_path} as fallback to {output_path}: {copy_error}")
            return Unavailable(
                error=f"Compression API failed: {error}. Fallback copy also failed: {copy_error}",
                input_missing=False,
                original_size=original_size,
            )

        logger.info(f"Using original file as fallback at {output_path} due to compression error: {error}")
        return FallbackCopy(path=output_path, original_size=original_size, error=error)

    def _apply_outcome(self, job_id: str, outcome: CompressionOutcome, merged_path: str) -> str:
        if isinstance(outcome, Compressed):
            self._store.set_compression_info(job_id, CompressionInfo(
                success=True,
                original_size=outcome.stats.original_size,
                compressed_size=outcome.stats.compressed_size,
                ratio=outcome.stats.ratio,
            ))
            logger.info(f"Job {job_id}: PDF compression successful. Compressed file: {outcome.path}")
            return outcome.path

        if isinstance(outcome, FallbackCopy):
            self._store.set_compression_info(job_id, CompressionInfo(
                success=False,
                original_size=outcome.original_size,
                compressed_size=outcome.original_size,
                ratio=0.0,
                error=outcome.error,
                fallback_used=True,
            ))
            logger.warning(
                f"Job {job_id}: PDF compression failed, but fallback to original file was successful. "
                f"Path: {outcome.path}. Reason: {outcome.error}"
            )
            return outcome.path

        # Unavailable: serve the uncompressed merge if it is still there
        message = f"PDF compression failed completely. Using uncompressed file. Compression error: {outcome.error}"
        usable = Path(merged_path).is_file()
        self._store.set_compression_info(job_id, CompressionInfo(
            success=False,
            original_size=outcome.original_size,
            compressed_size=0,
            ratio=0.0,
            error=message if usable else outcome.error,
            fallback_failed=not outcome.input_missing,
            fallback_impossible=outcome.input_missing,
        ))
        if not usable:
            raise CompressionError(f"No usable PDF left after compression failure: {outcome.error}")
        logger.error(f"Job {job_id}: {message}")
        return merged_path

    def _schedule_temp_cleanup(self, temp_dir: Path) -> None:
        task = asyncio.create_task(self._remove_later(temp_dir, self._temp_cleanup_delay))
        self._cleanup_tasks.add(task)
        task.add_done_callback(self._cleanup_tasks.discard)

    async def _remove_later(self, path: Path, delay: float) -> None:
        await asyncio.sleep(delay)
        try:
            shutil.rmtree(path)
            logger.info(f"Removed temporary pages at {path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Error removing temporary pages at {path}: {e}")

    async def flush_cleanups(self) -> Any:
        """Wait for scheduled temp-page removals"""
        if self._cleanup_tasks:
            return await asyncio.gather(*list(self._cleanup_tasks))
