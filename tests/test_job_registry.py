"""Tests for job registry transition rules."""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from hypothesis import given, settings
from hypothesis import strategies as st

from quantifier.schemas.analysis import JobStatus, JobStatusUpdate
from quantifier.services.jobs.registry import JobRegistry

REMOTE_STATUSES = [JobStatus.PENDING, JobStatus.PROCESSING, JobStatus.COMPLETED, JobStatus.FAILED]
RANK = {
    JobStatus.PENDING: 0,
    JobStatus.PROCESSING: 0,
    JobStatus.COMPLETED: 1,
    JobStatus.FAILED: 1,
    JobStatus.UNREACHABLE: 1,
}


def _update(status: JobStatus, progress: int = 0, message: str = "") -> JobStatusUpdate:
    return JobStatusUpdate(status=status, progress=progress, message=message)


class TestInsertAndLookup:
    def test_insert_pending(self):
        reg = JobRegistry()
        job = reg.insert("job-1", JobStatus.PENDING, message="Starting...")
        assert job.status == JobStatus.PENDING
        assert job.progress == 0
        assert reg.get("job-1").message == "Starting..."

    def test_get_unknown(self):
        assert JobRegistry().get("missing") is None

    def test_active_jobs(self):
        reg = JobRegistry()
        reg.insert("a")
        reg.insert("b", JobStatus.PROCESSING)
        reg.insert("c", JobStatus.COMPLETED)
        reg.insert("d", JobStatus.FAILED)
        assert reg.active_jobs() == {"a", "b"}

    def test_clear(self):
        reg = JobRegistry()
        reg.insert("a")
        reg.clear()
        assert len(reg) == 0
        assert reg.active_jobs() == set()


class TestApplyUpdate:
    def test_unknown_job_is_noop(self):
        reg = JobRegistry()
        assert reg.apply_update("ghost", _update(JobStatus.COMPLETED)) is False
        assert reg.get("ghost") is None

    def test_progress_and_message_overwrite(self):
        reg = JobRegistry()
        reg.insert("a")
        reg.apply_update("a", _update(JobStatus.PROCESSING, 30, "Extracting risk sections"))
        reg.apply_update("a", _update(JobStatus.PROCESSING, 60, "Scoring"))
        job = reg.get("a")
        assert job.status == JobStatus.PROCESSING
        assert job.progress == 60
        assert job.message == "Scoring"

    def test_completed_edge_signalled_once(self):
        reg = JobRegistry()
        reg.insert("a")
        assert reg.apply_update("a", _update(JobStatus.PROCESSING, 30)) is False
        assert reg.apply_update("a", _update(JobStatus.COMPLETED, 100)) is True
        assert reg.apply_update("a", _update(JobStatus.COMPLETED, 100)) is False
        assert reg.get("a").status == JobStatus.COMPLETED

    def test_failed_is_terminal_without_signal(self):
        reg = JobRegistry()
        reg.insert("a")
        assert reg.apply_update("a", _update(JobStatus.FAILED, 40, "Parser crashed")) is False
        assert reg.get("a").status == JobStatus.FAILED
        assert reg.active_jobs() == set()

    def test_terminal_never_reopens(self):
        reg = JobRegistry()
        reg.insert("a")
        reg.apply_update("a", _update(JobStatus.COMPLETED, 100, "Done"))
        assert reg.apply_update("a", _update(JobStatus.PROCESSING, 50, "late")) is False
        job = reg.get("a")
        assert job.status == JobStatus.COMPLETED
        assert job.message == "Done"

    def test_completed_not_overwritten_by_failed(self):
        reg = JobRegistry()
        reg.insert("a")
        reg.apply_update("a", _update(JobStatus.COMPLETED, 100))
        assert reg.apply_update("a", _update(JobStatus.FAILED)) is False
        assert reg.get("a").status == JobStatus.COMPLETED

    def test_progress_clamped(self):
        update = JobStatusUpdate(status=JobStatus.PROCESSING, progress=140, message=None)
        assert update.progress == 100
        assert update.message == ""


class TestPollFailures:
    def test_failure_count_and_reset(self):
        reg = JobRegistry()
        reg.insert("a")
        reg.record_poll_failure("a", skip_ticks=1)
        reg.record_poll_failure("a", skip_ticks=3)
        assert reg.get("a").poll_failures == 2
        assert reg.get("a").status == JobStatus.PENDING
        reg.apply_update("a", _update(JobStatus.PROCESSING, 10))
        assert reg.get("a").poll_failures == 0
        assert reg.get("a").skip_ticks == 0

    def test_consume_skip(self):
        reg = JobRegistry()
        reg.insert("a")
        reg.record_poll_failure("a", skip_ticks=2)
        assert reg.consume_skip("a") is True
        assert reg.consume_skip("a") is True
        assert reg.consume_skip("a") is False

    def test_mark_unreachable(self):
        reg = JobRegistry()
        reg.insert("a", JobStatus.PROCESSING)
        assert reg.mark_unreachable("a", "gave up") is True
        assert reg.get("a").status == JobStatus.UNREACHABLE
        assert reg.active_jobs() == set()
        assert reg.apply_update("a", _update(JobStatus.COMPLETED)) is False

    def test_mark_unreachable_ignores_terminal(self):
        reg = JobRegistry()
        reg.insert("a", JobStatus.COMPLETED)
        assert reg.mark_unreachable("a", "gave up") is False
        assert reg.get("a").status == JobStatus.COMPLETED


class TestTransitionProperties:
    @given(st.lists(st.sampled_from(REMOTE_STATUSES), max_size=30))
    @settings(max_examples=200)
    def test_status_rank_never_decreases(self, statuses):
        reg = JobRegistry()
        reg.insert("a")
        previous = RANK[JobStatus.PENDING]
        for s in statuses:
            reg.apply_update("a", _update(s))
            current = RANK[reg.get("a").status]
            assert current >= previous
            previous = current

    @given(st.lists(st.sampled_from(REMOTE_STATUSES), max_size=30))
    @settings(max_examples=200)
    def test_completion_signalled_at_most_once(self, statuses):
        reg = JobRegistry()
        reg.insert("a")
        signals = sum(1 for s in statuses if reg.apply_update("a", _update(s)))
        reached = reg.get("a").status == JobStatus.COMPLETED
        assert signals == (1 if reached else 0)
