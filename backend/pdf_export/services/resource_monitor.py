"""
Process memory monitor
Samples RSS at a fixed interval and logs elevated usage
"""
import gc
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Optional
import logging

import psutil

from pdf_export.core.config import settings

logger = logging.getLogger(__name__)

MB = 1024 * 1024


@dataclass
class MemorySample:
    """Process memory usage in MB"""
    rss_mb: float
    vms_mb: float = 0.0
    percent: float = 0.0
    timestamp: datetime = field(default_factory=datetime.now)

    def as_dict(self) -> Dict[str, float]:
        return {
            "rss_mb": round(self.rss_mb),
            "vms_mb": round(self.vms_mb),
            "percent": round(self.percent, 2),
        }


def psutil_sampler(process: Optional[psutil.Process] = None) -> Callable[[], MemorySample]:
    process = process or psutil.Process()

    def sample() -> MemorySample:
        info = process.memory_info()
        return MemorySample(
            rss_mb=info.rss / MB,
            vms_mb=info.vms / MB,
            percent=process.memory_percent(),
        )

    return sample


class ResourceMonitor:
    """
    Advisory memory instrumentation.
    Admission decisions read from here; the monitor itself never rejects work.
    """

    def __init__(
        self,
        soft_limit_mb: int = settings.MEMORY_SOFT_LIMIT_MB,
        warning_limit_mb: int = settings.MEMORY_WARNING_LIMIT_MB,
        hard_limit_mb: int = settings.MEMORY_HARD_LIMIT_MB,
        sampler: Optional[Callable[[], MemorySample]] = None,
        collect_hook: Optional[Callable[[], object]] = gc.collect,
    ):
        self.soft_limit_mb = soft_limit_mb
        self.warning_limit_mb = warning_limit_mb
        self.hard_limit_mb = hard_limit_mb
        self._sampler = sampler or psutil_sampler()
        self._collect_hook = collect_hook
        self._last_sample: Optional[MemorySample] = None

    @property
    def last_sample(self) -> Optional[MemorySample]:
        return self._last_sample

    def sample(self, collect: bool = True) -> MemorySample:
        """
        Take a sample and log it.
        With `collect`, garbage is collected above the soft limit.
        """
        sample = self._sampler()
        self._last_sample = sample
        rss = round(sample.rss_mb)

        if rss > self.warning_limit_mb:
            logger.warning(f"HIGH MEMORY WARNING! RSS Usage: {rss}MB (Limit: {self.hard_limit_mb}MB)")
        elif rss > self.soft_limit_mb:
            logger.warning(f"Memory usage elevated: {rss}MB")
        else:
            logger.info(f"Memory usage: {sample.as_dict()}")

        if collect and rss > self.soft_limit_mb and self._collect_hook is not None:
            logger.info("Running garbage collection due to high memory usage...")
            self._collect_hook()

        return sample

    def current_rss_mb(self) -> float:
        """RSS of the last sample, sampling once if nothing was recorded yet"""
        if self._last_sample is None:
            self.sample()
        return self._last_sample.rss_mb

    def is_over_hard_limit(self) -> bool:
        return self.current_rss_mb() > self.hard_limit_mb
