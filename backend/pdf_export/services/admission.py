"""
Admission control for export submissions
Decides, before anything is queued, whether a new job may be accepted
"""
from dataclasses import dataclass
from typing import Any
import logging

from pydantic import ValidationError

from pdf_export.core.config import settings
from pdf_export.core.exceptions import InvalidInputError, QueueFullError, ServerOverloadedError
from pdf_export.models.render_spec import RenderSpec
from pdf_export.services.execution_queue import ExecutionQueue
from pdf_export.services.resource_monitor import ResourceMonitor

logger = logging.getLogger(__name__)


@dataclass
class AdmissionDecision:
    """Accepted submission"""
    render_spec: RenderSpec
    queue_position: int


class AdmissionController:
    """Gatekeeper: memory first, then queue depth, then input shape"""

    def __init__(
        self,
        monitor: ResourceMonitor,
        queue: ExecutionQueue,
        max_queue_depth: int = settings.MAX_QUEUE_DEPTH,
    ):
        self._monitor = monitor
        self._queue = queue
        self._max_queue_depth = max_queue_depth

    def try_admit(self, payload: Any) -> AdmissionDecision:
        """
        Accept or reject a submission.
        Raises ServerOverloadedError, QueueFullError or InvalidInputError.
        """
        sample = self._monitor.sample(collect=False)
        logger.info(f"Export request. Current memory usage: {sample.as_dict()}")
        if sample.rss_mb > self._monitor.hard_limit_mb:
            logger.error("Memory usage too high, rejecting request")
            raise ServerOverloadedError(
                "Server temporarily overloaded. Please try again in a few moments.",
                {"memory_usage": sample.as_dict()},
            )

        queue_length = self._queue.depth()
        logger.info(f"Current queue length: {queue_length}")
        if queue_length >= self._max_queue_depth:
            logger.error("Queue too long, rejecting request")
            raise QueueFullError(
                "Server is busy processing other exports. Please try again later.",
                {"queue_length": queue_length},
            )

        render_spec = self._parse(payload)
        return AdmissionDecision(render_spec=render_spec, queue_position=queue_length + 1)

    def _parse(self, payload: Any) -> RenderSpec:
        if isinstance(payload, RenderSpec):
            return payload
        if not isinstance(payload, dict):
            raise InvalidInputError("Invalid or empty project state.")

        pages = payload.get("pages")
        if not isinstance(pages, list) or len(pages) == 0:
            logger.error("Invalid or empty project state received.")
            raise InvalidInputError("Invalid or empty project state.")

        try:
            return RenderSpec.model_validate(payload)
        except ValidationError as e:
            logger.error(f"Malformed project state: {e}")
            raise InvalidInputError(
                "Malformed project state.",
                {"errors": [
                    f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
                ]},
            ) from e
