"""
Exception taxonomy for the dashboard client.

User-facing failures (validation, submission, upload) are raised to the
caller at the point of the failed action. Poll failures are raised by the
gateway but caught per job by the reconciliation controller.
"""

from typing import Optional


class QuantifierError(Exception):
    """Base exception for the dashboard client."""

    pass


class GatewayError(QuantifierError):
    """Transport failure or non-2xx response from the backend."""

    def __init__(self, message: str = "Request failed", status_code: Optional[int] = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class ValidationError(GatewayError):
    """Bad user input; no state was changed."""

    pass


class SubmissionError(GatewayError):
    """Analysis job failed to start; no job was registered."""

    pass


class UploadError(GatewayError):
    """Document upload rejected or failed in transport."""

    pass


class PollError(GatewayError):
    """Job status fetch failed. Non-fatal: the job is retried on a later tick."""

    def __init__(self, job_id: str, message: str = "Request failed", status_code: Optional[int] = None):
        self.job_id = job_id
        super().__init__(message, status_code)
