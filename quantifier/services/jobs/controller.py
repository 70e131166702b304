"""Reconciliation controller: submit -> register -> poll -> reload.

Ties the RemoteGateway, the DashboardState (job registry, selected
company) and the PollingScheduler together. Everything runs on one event
loop; the only suspension points are the awaited gateway calls.

The history reload fires once per job, on the edge into ``completed``,
and only when the job was started in the company view that is still
mounted (its scope token matches the current one).
"""

import logging
from typing import Awaitable, Callable, Optional

from quantifier.config import Settings, settings as default_settings
from quantifier.errors import GatewayError, PollError, ValidationError
from quantifier.schemas.analysis import AnalysisJob, JobStatus, JobStatusUpdate
from quantifier.schemas.company import Company, CompanyDraft, Document
from quantifier.services.analytics import AnalyticsViewModel
from quantifier.services.gateway import RemoteGateway, UploadFile
from quantifier.services.jobs.scheduler import PollingScheduler
from quantifier.services.jobs.state import DashboardState

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[AnalysisJob], Awaitable[None]]


class ReconciliationController:
    def __init__(
        self,
        gateway: RemoteGateway,
        state: Optional[DashboardState] = None,
        *,
        config: Optional[Settings] = None,
        on_completed: Optional[CompletionCallback] = None,
        interval_seconds: Optional[float] = None,
    ):
        self.gateway = gateway
        self.state = state or DashboardState()
        self.config = config or default_settings
        self.scheduler = PollingScheduler(
            self.on_tick,
            self._has_active_jobs,
            interval_seconds=interval_seconds,
            config=self.config,
        )
        self._on_completed = on_completed or self._reload_after_completion

    def _has_active_jobs(self) -> bool:
        return bool(self.state.jobs.active_jobs())

    # --- Companies ---

    async def load_companies(self) -> list[Company]:
        self.state.companies = await self.gateway.list_companies()
        return self.state.companies

    async def create_company(self, symbol: str, name: str, sector: Optional[str] = None) -> Company:
        draft = CompanyDraft(symbol=symbol or "", name=name or "", sector=sector)
        missing = draft.missing_fields()
        if missing:
            raise ValidationError(f"Please fill in {' and '.join(missing)}")
        company = await self.gateway.create_company(draft.to_company())
        await self.load_companies()
        logger.info(f"Company {company.symbol} created")
        return company

    async def select_company(self, symbol: str) -> Company:
        """Tear down the current company view and mount ``symbol``."""
        company = self.state.find_company(symbol)
        if company is None:
            await self.load_companies()
            company = self.state.find_company(symbol)
        if company is None:
            raise ValidationError(f"Unknown company: {symbol}")

        self.scheduler.stop()
        self.state.enter_scope(company)
        logger.info(f"Selected {company.symbol} (scope {self.state.scope.generation})")

        await self.load_documents()
        await self.reload_history()
        return company

    async def shutdown(self) -> None:
        await self.scheduler.aclose()

    # --- Documents and history ---

    async def load_documents(self) -> list[Document]:
        scope = self.state.scope
        if scope.company_symbol is None:
            return []
        try:
            documents = await self.gateway.list_documents(scope.company_symbol)
        except GatewayError as e:
            logger.error(f"Failed to load documents for {scope.company_symbol}: {e}")
            return self.state.documents
        if self.state.scope == scope:
            self.state.documents = documents
        return documents

    async def reload_history(self) -> bool:
        """Refetch the selected company's risk history. Returns False if it was not applied."""
        scope = self.state.scope
        if scope.company_symbol is None:
            return False
        try:
            history = await self.gateway.fetch_risk_history(scope.company_symbol)
        except GatewayError as e:
            logger.error(f"Failed to load risk history for {scope.company_symbol}: {e}")
            return False
        if self.state.scope != scope:
            logger.info(f"Discarding risk history for {scope.company_symbol}: view changed")
            return False
        self.state.risk_history = history
        return True

    async def upload_document(self, file: UploadFile, fiscal_year: int) -> Document:
        company = self.state.selected
        if company is None:
            raise ValidationError("Select a company before uploading")
        document = await self.gateway.upload_document(file, company.symbol, fiscal_year)
        logger.info(f"Uploaded FY{fiscal_year} document for {company.symbol}")
        await self.load_documents()
        return document

    # --- Jobs ---

    async def start_job(self, company_symbol: Optional[str] = None, fiscal_year: Optional[int] = None) -> str:
        """Submit an analysis job and start polling it. SubmissionError leaves nothing registered."""
        symbol = company_symbol or self.state.scope.company_symbol
        if symbol is None:
            raise ValidationError("Select a company before starting an analysis")
        if fiscal_year is None:
            raise ValidationError("Fiscal year is required")

        scope = self.state.scope
        submitted = await self.gateway.submit_analysis(symbol, fiscal_year)
        if self.state.scope != scope:
            logger.warning(f"Job {submitted.job_id} submitted for a view that was torn down, not tracking it")
            return submitted.job_id

        self.state.jobs.insert(
            submitted.job_id,
            JobStatus.PENDING,
            message="Starting...",
            company_symbol=symbol,
            fiscal_year=fiscal_year,
            scope=scope,
        )
        logger.info(f"Job {submitted.job_id} submitted for {symbol} FY{fiscal_year}")
        self.scheduler.ensure_running()
        return submitted.job_id

    async def on_tick(self) -> None:
        """Fetch and apply the status of every active job, one job at a time."""
        scope = self.state.scope
        active = [job_id for job_id, job in self.state.jobs.snapshots().items() if job.status.is_active]
        for job_id in active:
            if self.state.scope != scope:
                return
            if self.state.jobs.consume_skip(job_id):
                continue
            try:
                update = await self.gateway.fetch_job_status(job_id)
            except PollError as e:
                self._record_poll_failure(job_id, e)
                continue
            if self.state.scope != scope:
                logger.info(f"Discarding status for job {job_id}: view changed")
                return
            await self.apply_status(job_id, update)

        if not self._has_active_jobs():
            self.scheduler.stop()

    async def apply_status(self, job_id: str, update: JobStatusUpdate) -> bool:
        """Apply one status response. Returns True if it fired the completion callback."""
        if not self.state.jobs.apply_update(job_id, update):
            return False

        job = self.state.jobs.get(job_id)
        if job.scope != self.state.scope or job.company_symbol != self.state.scope.company_symbol:
            logger.info(f"Job {job_id} completed outside the current view, not reloading")
            return False
        logger.info(f"Job {job_id} completed for {job.company_symbol} FY{job.fiscal_year}")
        try:
            await self._on_completed(job)
        except Exception:
            # the completed status is already committed; keep polling the rest
            logger.exception(f"Completion handler failed for job {job_id}")
        return True

    def _record_poll_failure(self, job_id: str, error: PollError) -> None:
        job = self.state.jobs.get(job_id)
        if job is None:
            return
        failures = job.poll_failures + 1
        limit = self.config.max_poll_failures
        if limit and failures >= limit:
            self.state.jobs.record_poll_failure(job_id)
            self.state.jobs.mark_unreachable(
                job_id, f"Status unavailable after {failures} attempts: {error.message}"
            )
            return
        skip = self.config.backoff_ticks(failures) if limit else 0
        self.state.jobs.record_poll_failure(job_id, skip_ticks=skip)
        logger.warning(f"Error polling job {job_id} (attempt {failures}): {error.message}")

    async def _reload_after_completion(self, job: AnalysisJob) -> None:
        await self.reload_history()

    # --- Presentation ---

    def job_snapshots(self) -> dict[str, AnalysisJob]:
        return self.state.jobs.snapshots()

    def analytics(self) -> AnalyticsViewModel:
        return AnalyticsViewModel.from_history(self.state.risk_history)
