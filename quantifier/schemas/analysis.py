"""Pydantic schemas for analysis jobs and risk results."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    # Local only: the status endpoint stopped answering for this job
    UNREACHABLE = "unreachable"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def is_active(self) -> bool:
        return self in ACTIVE_STATUSES


ACTIVE_STATUSES = frozenset({JobStatus.PENDING, JobStatus.PROCESSING})
TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.UNREACHABLE})


class ScopeToken(BaseModel):
    """Identifies one mounted company view. A fresh token is minted on every selection."""

    company_symbol: Optional[str] = None
    generation: int = 0

    model_config = ConfigDict(frozen=True)


class SubmittedJob(BaseModel):
    job_id: str

    model_config = ConfigDict(extra="ignore")


class JobStatusUpdate(BaseModel):
    status: JobStatus
    progress: int = 0
    message: str = ""

    model_config = ConfigDict(extra="ignore")

    @field_validator("progress", mode="before")
    @classmethod
    def clamp_progress(cls, v) -> int:
        if v is None:
            return 0
        return max(0, min(100, int(v)))

    @field_validator("message", mode="before")
    @classmethod
    def none_message(cls, v) -> str:
        return v or ""


class AnalysisJob(BaseModel):
    id: str
    status: JobStatus = JobStatus.PENDING
    progress: int = 0
    message: str = ""
    company_symbol: Optional[str] = None
    fiscal_year: Optional[int] = None
    scope: ScopeToken = Field(default_factory=ScopeToken)

    # Consecutive failed status fetches, and ticks left to skip before the next try
    poll_failures: int = 0
    skip_ticks: int = 0

    model_config = ConfigDict(frozen=True)


class RiskResult(BaseModel):
    fiscal_year: int
    urgency_score: float = Field(ge=0, le=100)
    sentiment_delta: Optional[float] = None
    risk_categories: dict[str, float] = Field(default_factory=dict)
    key_phrases: list[str] = Field(default_factory=list)
    new_risks: list[str] = Field(default_factory=list)
    summary: str = ""
    analyzed_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("risk_categories", "key_phrases", "new_risks", mode="before")
    @classmethod
    def none_as_empty(cls, v, info):
        if v is None:
            return {} if info.field_name == "risk_categories" else []
        return v
