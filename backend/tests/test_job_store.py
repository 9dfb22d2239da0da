"""
Tests for the in-memory job store
Validates the job state machine, progress rules and artifact checks
"""
import pytest
import tempfile
import shutil
from datetime import datetime, timedelta
from pathlib import Path

from pdf_export.core.exceptions import InvalidTransitionError
from pdf_export.models.jobs import CompressionInfo, JobStatus
from pdf_export.models.render_spec import RenderSpec
from pdf_export.services.job_store import JobStore

from fakes import make_payload


class FakeClock:
    def __init__(self):
        self.current = datetime(2024, 5, 1, 12, 0, 0)

    def __call__(self):
        return self.current

    def advance(self, seconds: float):
        self.current += timedelta(seconds=seconds)


class TestJobStore:
    """Test job records and transitions"""

    def setup_method(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.clock = FakeClock()
        self.store = JobStore(clock=self.clock)
        self.spec = RenderSpec.model_validate(make_payload(pages=3))

    def teardown_method(self):
        if self.test_dir.exists():
            shutil.rmtree(self.test_dir)

    def _create(self):
        return self.store.create(self.spec, queue_position=1, output_dir=str(self.test_dir))

    def test_create_queued_job(self):
        """New jobs start queued with zero progress and a unique artifact dir"""
        job = self._create()

        assert job.status == JobStatus.QUEUED
        assert job.current_page == 0
        assert job.total_pages == 3
        assert job.queue_position == 1
        assert job.created_at == job.last_updated == self.clock.current
        assert job.job_id in Path(job.artifact_dir).name
        assert Path(job.artifact_dir).parent == self.test_dir
        assert not Path(job.artifact_dir).exists(), "Artifact dir is created by the pipeline, not the store"
        assert job.job_id in self.store
        assert len(self.store) == 1

    def test_job_ids_are_unique(self):
        ids = {self._create().job_id for _ in range(50)}
        assert len(ids) == 50

    def test_happy_path_transitions(self):
        job = self._create()
        self.clock.advance(1)
        self.store.transition(job.job_id, JobStatus.PROCESSING)
        assert self.store.get(job.job_id).last_updated == self.clock.current

        self.store.transition(job.job_id, JobStatus.COMPRESSING)
        artifact = self.test_dir / "final.pdf"
        artifact.write_bytes(b"%PDF-1.4")
        self.store.complete(job.job_id, str(artifact))

        stored = self.store.get(job.job_id)
        assert stored.status == JobStatus.COMPLETE
        assert stored.final_artifact_path == str(artifact)

    def test_queued_cannot_skip_processing(self):
        job = self._create()
        with pytest.raises(InvalidTransitionError):
            self.store.transition(job.job_id, JobStatus.COMPLETE)
        with pytest.raises(InvalidTransitionError):
            self.store.fail(job.job_id, "boom")
        assert self.store.get(job.job_id).status == JobStatus.QUEUED

    def test_terminal_states_are_final(self):
        job = self._create()
        self.store.transition(job.job_id, JobStatus.PROCESSING)
        self.store.fail(job.job_id, "Page 2 render timed out")

        for target in JobStatus:
            with pytest.raises(InvalidTransitionError):
                self.store.transition(job.job_id, target)

        stored = self.store.get(job.job_id)
        assert stored.status == JobStatus.ERROR
        assert stored.error == "Page 2 render timed out"

    def test_complete_requires_existing_artifact(self):
        job = self._create()
        self.store.transition(job.job_id, JobStatus.PROCESSING)

        with pytest.raises(FileNotFoundError):
            self.store.complete(job.job_id, str(self.test_dir / "missing.pdf"))

        stored = self.store.get(job.job_id)
        assert stored.status == JobStatus.PROCESSING
        assert stored.final_artifact_path is None

    def test_progress_is_monotonic_and_bounded(self):
        job = self._create()
        self.store.transition(job.job_id, JobStatus.PROCESSING)
        self.store.set_progress(job.job_id, 1)
        self.store.set_progress(job.job_id, 2)

        with pytest.raises(ValueError):
            self.store.set_progress(job.job_id, 1)
        with pytest.raises(ValueError):
            self.store.set_progress(job.job_id, 4)

        assert self.store.get(job.job_id).current_page == 2

    def test_unknown_job(self):
        assert self.store.get("nope") is None
        assert self.store.snapshot("nope") is None
        with pytest.raises(KeyError):
            self.store.transition("nope", JobStatus.PROCESSING)

    def test_snapshot_is_detached_and_drops_render_spec(self):
        job = self._create()
        snapshot = self.store.snapshot(job.job_id)

        assert snapshot.render_spec is None
        assert self.store.get(job.job_id).render_spec is not None

        self.store.transition(job.job_id, JobStatus.PROCESSING)
        assert snapshot.status == JobStatus.QUEUED

    def test_compression_info_and_delete(self):
        job = self._create()
        self.store.set_compression_info(job.job_id, CompressionInfo(success=True, skipped=True, ratio=0))
        assert self.store.get(job.job_id).compression_info.skipped is True

        removed = self.store.delete(job.job_id)
        assert removed.job_id == job.job_id
        assert job.job_id not in self.store
        assert self.store.delete(job.job_id) is None
