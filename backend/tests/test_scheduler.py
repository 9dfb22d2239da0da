"""
Tests for the maintenance scheduler
"""
import asyncio

from pdf_export.services.janitor import Janitor
from pdf_export.services.job_store import JobStore
from pdf_export.services.resource_monitor import ResourceMonitor
from pdf_export.services.scheduler import MaintenanceScheduler

from fakes import fixed_sampler


class TestMaintenanceScheduler:
    """Test job registration and the periodic callbacks"""

    def setup_method(self):
        self.monitor = ResourceMonitor(sampler=fixed_sampler(100), collect_hook=None)
        self.janitor = Janitor(JobStore(), retention_seconds=60)

    def test_registers_jobs(self):
        async def scenario():
            scheduler = MaintenanceScheduler(self.monitor, self.janitor, 60, 3600)
            scheduler.start()
            job_ids = sorted(job.id for job in scheduler.scheduler.get_jobs())
            running = scheduler.scheduler.running
            scheduler.shutdown()
            return job_ids, running, scheduler.scheduler.running

        job_ids, running, still_running = asyncio.run(scenario())
        assert job_ids == ["sample_memory", "sweep_jobs"]
        assert running is True
        assert still_running is False

    def test_callbacks_sample_and_sweep(self):
        scheduler = MaintenanceScheduler(self.monitor, self.janitor, 60, 3600)
        asyncio.run(scheduler._sample_memory())
        asyncio.run(scheduler._sweep_jobs())
        assert self.monitor.last_sample.rss_mb == 100
