"""In-memory registry of analysis jobs and their last known status.

Status only ever moves forward: {pending, processing} -> {completed,
failed, unreachable}. Snapshots are immutable; each update replaces the
stored ``AnalysisJob`` with a new copy.
"""

import logging
from typing import Optional

from quantifier.schemas.analysis import AnalysisJob, JobStatus, JobStatusUpdate

logger = logging.getLogger(__name__)


class JobRegistry:
    def __init__(self):
        self._jobs: dict[str, AnalysisJob] = {}

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, job_id: str) -> bool:
        return job_id in self._jobs

    def insert(self, job_id: str, initial_status: JobStatus = JobStatus.PENDING, **fields) -> AnalysisJob:
        job = AnalysisJob(id=job_id, status=initial_status, **fields)
        if job_id in self._jobs:
            logger.warning(f"Job {job_id} registered twice, replacing previous snapshot")
        self._jobs[job_id] = job
        return job

    def get(self, job_id: str) -> Optional[AnalysisJob]:
        return self._jobs.get(job_id)

    def active_jobs(self) -> set[str]:
        return {job_id for job_id, job in self._jobs.items() if job.status.is_active}

    def snapshots(self) -> dict[str, AnalysisJob]:
        return dict(self._jobs)

    def clear(self) -> None:
        self._jobs.clear()

    def apply_update(self, job_id: str, update: JobStatusUpdate) -> bool:
        """Apply a polled status. Returns True only on the transition into COMPLETED."""
        job = self._jobs.get(job_id)
        if job is None:
            logger.warning(f"Ignoring status for unknown job {job_id} (stale response)")
            return False

        if job.status.is_terminal and update.status != job.status:
            logger.warning(
                f"Ignoring {update.status.value} for job {job_id}: already {job.status.value}"
            )
            return False

        transitioned = update.status == JobStatus.COMPLETED and job.status != JobStatus.COMPLETED
        changes = {
            "progress": update.progress,
            "message": update.message,
            "poll_failures": 0,
            "skip_ticks": 0,
        }
        if update.status != job.status:
            changes["status"] = update.status
            logger.info(f"Job {job_id}: {job.status.value} -> {update.status.value}")
        self._jobs[job_id] = job.model_copy(update=changes)
        return transitioned

    def record_poll_failure(self, job_id: str, skip_ticks: int = 0) -> Optional[AnalysisJob]:
        """Count a failed status fetch without touching the job's status."""
        job = self._jobs.get(job_id)
        if job is None:
            return None
        job = job.model_copy(update={"poll_failures": job.poll_failures + 1, "skip_ticks": skip_ticks})
        self._jobs[job_id] = job
        return job

    def consume_skip(self, job_id: str) -> bool:
        """Returns True if this tick should skip the job (backing off), decrementing the counter."""
        job = self._jobs.get(job_id)
        if job is None or job.skip_ticks <= 0:
            return False
        self._jobs[job_id] = job.model_copy(update={"skip_ticks": job.skip_ticks - 1})
        return True

    def mark_unreachable(self, job_id: str, message: str) -> bool:
        job = self._jobs.get(job_id)
        if job is None or job.status.is_terminal:
            return False
        self._jobs[job_id] = job.model_copy(
            update={"status": JobStatus.UNREACHABLE, "message": message, "skip_ticks": 0}
        )
        logger.warning(f"Job {job_id}: {job.status.value} -> unreachable ({message})")
        return True
