"""Analysis job tracking: registry, poll timer and reconciliation."""

from quantifier.services.jobs.registry import JobRegistry
from quantifier.services.jobs.scheduler import PollingScheduler
from quantifier.services.jobs.state import DashboardState
from quantifier.services.jobs.controller import ReconciliationController

__all__ = [
    "JobRegistry",
    "PollingScheduler",
    "DashboardState",
    "ReconciliationController",
]
