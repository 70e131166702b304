"""Shared fixtures: an in-memory stand-in for the backend API."""

import os
import sys
from datetime import datetime

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from quantifier.errors import PollError, SubmissionError
from quantifier.schemas.analysis import JobStatus, JobStatusUpdate, RiskResult, SubmittedJob
from quantifier.schemas.company import Company, Document


def status(value: str, progress: int = 0, message: str = "") -> JobStatusUpdate:
    return JobStatusUpdate(status=JobStatus(value), progress=progress, message=message)


def risk_result(year: int, urgency: float = 50.0, delta=None, categories=None) -> RiskResult:
    return RiskResult(
        fiscal_year=year,
        urgency_score=urgency,
        sentiment_delta=delta,
        risk_categories=categories or {},
        key_phrases=["supply chain disruption"],
        new_risks=[],
        summary=f"FY{year} summary",
        analyzed_at=datetime(year + 1, 5, 1),
    )


class FakeGateway:
    """Scripted backend. Status responses per job are consumed in order; the last one repeats."""

    def __init__(self):
        self.companies = [
            Company(symbol="INFY", name="Infosys", sector="IT"),
            Company(symbol="TCS", name="Tata Consultancy Services"),
        ]
        self.documents: dict[str, list[Document]] = {}
        self.history: dict[str, list[RiskResult]] = {}
        self.statuses: dict[str, list] = {}
        self.submit_error = None
        self.history_errors: list[Exception] = []
        self.status_calls: list[str] = []
        self.history_calls: list[str] = []
        self._job_counter = 0

    async def list_companies(self):
        return list(self.companies)

    async def create_company(self, company):
        self.companies.append(company)
        return company

    async def list_documents(self, company_symbol):
        return list(self.documents.get(company_symbol, []))

    async def upload_document(self, file, company_symbol, fiscal_year):
        doc = Document(company_symbol=company_symbol, fiscal_year=fiscal_year, page_count=120, word_count=48000)
        self.documents.setdefault(company_symbol, []).append(doc)
        return doc

    async def submit_analysis(self, company_symbol, fiscal_year):
        if self.submit_error:
            raise self.submit_error
        self._job_counter += 1
        return SubmittedJob(job_id=f"job-{self._job_counter}")

    async def fetch_job_status(self, job_id):
        self.status_calls.append(job_id)
        queue = self.statuses.get(job_id)
        if not queue:
            raise PollError(job_id, "no response scripted")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    async def fetch_risk_history(self, company_symbol):
        self.history_calls.append(company_symbol)
        if self.history_errors:
            raise self.history_errors.pop(0)
        return list(self.history.get(company_symbol, []))


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def failing_submit(gateway):
    gateway.submit_error = SubmissionError("Document not found for FY2024", status_code=404)
    return gateway
