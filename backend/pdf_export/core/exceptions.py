"""
Error taxonomy for the export service
"""
from typing import Any, Dict, Optional


class ExportServiceError(Exception):
    """Base class for export service errors"""


class AdmissionError(ExportServiceError):
    """Raised when a submission is rejected before a job is created"""

    code = "ADMISSION_REJECTED"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ServerOverloadedError(AdmissionError):
    """Process memory is above the hard limit"""

    code = "SERVER_OVERLOADED"


class QueueFullError(AdmissionError):
    """Too many exports are already waiting"""

    code = "QUEUE_FULL"


class InvalidInputError(AdmissionError):
    """Render specification is empty or malformed"""

    code = "INVALID_INPUT"


class RenderError(ExportServiceError):
    """A page could not be rendered"""


class MergeError(ExportServiceError):
    """No page survived the merge"""


class CompressionError(ExportServiceError):
    """The compression backend failed"""


class InvalidTransitionError(ExportServiceError):
    """Raised on an illegal job state transition"""

    def __init__(self, job_id: str, current: str, target: str) -> None:
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(f"Job {job_id} cannot move from '{current}' to '{target}'")


class JobNotFoundError(ExportServiceError):
    """Unknown job id"""


class JobNotReadyError(ExportServiceError):
    """Job exists but has no downloadable artifact yet"""

    def __init__(self, job_id: str, status: str) -> None:
        self.job_id = job_id
        self.status = status
        super().__init__(f"Job {job_id} is not complete. Current status: {status}")
