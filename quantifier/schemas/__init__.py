"""Pydantic schemas for backend responses and dashboard state."""

from quantifier.schemas.company import Company, CompanyDraft, Document
from quantifier.schemas.analysis import (
    AnalysisJob,
    JobStatus,
    JobStatusUpdate,
    RiskResult,
    ScopeToken,
    SubmittedJob,
)

__all__ = [
    "Company",
    "CompanyDraft",
    "Document",
    "AnalysisJob",
    "JobStatus",
    "JobStatusUpdate",
    "RiskResult",
    "ScopeToken",
    "SubmittedJob",
]
