"""Background maintenance: memory sampling and job cleanup, using APScheduler."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from pdf_export.core.config import settings
from pdf_export.services.janitor import Janitor
from pdf_export.services.resource_monitor import ResourceMonitor

logger = logging.getLogger(__name__)


class MaintenanceScheduler:
    """Runs the resource monitor and the janitor on fixed intervals."""

    def __init__(
        self,
        monitor: ResourceMonitor,
        janitor: Janitor,
        sample_interval_seconds: int = settings.MEMORY_SAMPLE_INTERVAL_SECONDS,
        janitor_interval_seconds: int = settings.JANITOR_INTERVAL_SECONDS,
    ):
        self.scheduler = AsyncIOScheduler()
        self.monitor = monitor
        self.janitor = janitor
        self.sample_interval_seconds = sample_interval_seconds
        self.janitor_interval_seconds = janitor_interval_seconds

    # Coroutines run on the event loop, so the job store is never touched from a thread
    async def _sample_memory(self) -> None:
        self.monitor.sample()

    async def _sweep_jobs(self) -> None:
        self.janitor.sweep()

    def start(self) -> None:
        """Register jobs and start the scheduler on the running event loop."""
        self.scheduler.add_job(
            func=self._sample_memory,
            trigger=IntervalTrigger(seconds=self.sample_interval_seconds),
            id="sample_memory",
            name="Sample process memory",
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.add_job(
            func=self._sweep_jobs,
            trigger=IntervalTrigger(seconds=self.janitor_interval_seconds),
            id="sweep_jobs",
            name="Remove expired export jobs",
            max_instances=1,
            coalesce=True,
            misfire_grace_time=60,
        )
        self.scheduler.start()
        logger.info(
            f"Maintenance scheduler started - memory every {self.sample_interval_seconds}s, "
            f"cleanup every {self.janitor_interval_seconds}s"
        )

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Maintenance scheduler stopped")
