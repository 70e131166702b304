"""Async HTTP client for the Narrative Quantifier backend API.

Stateless apart from the underlying connection pool: every response is
decoded into the schemas in ``quantifier.schemas`` before it leaves this
module, and every failure is raised as a ``GatewayError`` subclass.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, BinaryIO, Optional, Union

import httpx

from quantifier.config import Settings, settings as default_settings
from quantifier.errors import GatewayError, PollError, SubmissionError, UploadError, ValidationError
from quantifier.schemas.analysis import JobStatusUpdate, RiskResult, SubmittedJob
from quantifier.schemas.company import Company, Document

logger = logging.getLogger(__name__)

UploadFile = Union[str, Path, BinaryIO]


def _error_detail(resp: httpx.Response) -> str:
    """Pull the ``detail`` message out of an error response, FastAPI style."""
    try:
        body = resp.json()
    except ValueError:
        return "Request failed"
    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, list):
        msgs = [str(d.get("msg", d)) if isinstance(d, dict) else str(d) for d in detail]
        return "; ".join(msgs) or "Request failed"
    return str(detail) if detail else "Request failed"


def _decode_list(model, data: Any, endpoint: str) -> list:
    """Validate a JSON array of rows; a malformed body is a GatewayError."""
    if not isinstance(data, list):
        raise GatewayError(f"{endpoint} returned {type(data).__name__}, expected a list")
    try:
        return [model.model_validate(row) for row in data]
    except ValueError as e:
        raise GatewayError(f"{endpoint} returned a malformed row: {e}") from e


class RemoteGateway:
    """Client for the company, document, analysis and results endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        self.base_url = (base_url or config.api_base_url).rstrip("/")
        self.client = http_client or httpx.AsyncClient(timeout=timeout or config.request_timeout_seconds)
        self._owns_client = http_client is None

    async def __aenter__(self) -> "RemoteGateway":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _request(self, method: str, endpoint: str, **kwargs) -> Any:
        url = f"{self.base_url}{endpoint}"
        logger.debug(f"{method} {url}")
        try:
            resp = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise GatewayError(f"{method} {endpoint} failed: {e}") from e
        if resp.is_error:
            raise GatewayError(_error_detail(resp), status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            raise GatewayError(f"{method} {endpoint} returned invalid JSON", status_code=resp.status_code) from e

    # --- Companies ---

    async def list_companies(self) -> list[Company]:
        data = await self._request("GET", "/api/companies")
        return _decode_list(Company, data, "/api/companies")

    async def create_company(self, company: Company) -> Company:
        """Create a company. Raises ValidationError when symbol or name is missing."""
        if not company.symbol.strip() or not company.name.strip():
            raise ValidationError("Please fill in symbol and name")
        try:
            data = await self._request("POST", "/api/companies", json=company.model_dump())
        except GatewayError as e:
            if e.status_code in (400, 409, 422):
                raise ValidationError(e.message, e.status_code) from e
            raise
        return Company.model_validate(data)

    # --- Documents ---

    async def upload_document(self, file: UploadFile, company_symbol: str, fiscal_year: int) -> Document:
        """Upload one document as a single multipart request."""
        form = {"company_symbol": company_symbol, "fiscal_year": str(fiscal_year)}
        try:
            if isinstance(file, (str, Path)):
                path = Path(file)
                with open(path, "rb") as f:
                    data = await self._request(
                        "POST", "/api/documents/upload", data=form, files={"file": (path.name, f.read())}
                    )
            else:
                name = Path(getattr(file, "name", "document.pdf")).name
                data = await self._request(
                    "POST", "/api/documents/upload", data=form, files={"file": (name, file.read())}
                )
        except OSError as e:
            raise UploadError(f"Could not read upload file: {e}") from e
        except GatewayError as e:
            raise UploadError(e.message, e.status_code) from e

        try:
            data.setdefault("company_symbol", company_symbol)
            data.setdefault("fiscal_year", fiscal_year)
            return Document.model_validate(data)
        except (ValueError, TypeError, AttributeError) as e:
            raise UploadError(f"Unexpected upload response: {e}") from e

    async def list_documents(self, company_symbol: str) -> list[Document]:
        endpoint = f"/api/documents/{company_symbol}"
        return _decode_list(Document, await self._request("GET", endpoint), endpoint)

    # --- Analysis ---

    async def submit_analysis(self, company_symbol: str, fiscal_year: int) -> SubmittedJob:
        form = {"company_symbol": company_symbol, "fiscal_year": str(fiscal_year)}
        try:
            data = await self._request("POST", "/api/analysis/risk-evolution", data=form)
            return SubmittedJob.model_validate(data)
        except GatewayError as e:
            raise SubmissionError(e.message, e.status_code) from e
        except ValueError as e:
            # malformed body, e.g. no job_id
            raise SubmissionError(f"Unexpected submit response: {e}") from e

    async def fetch_job_status(self, job_id: str) -> JobStatusUpdate:
        try:
            data = await self._request("GET", f"/api/analysis/status/{job_id}")
            return JobStatusUpdate.model_validate(data)
        except GatewayError as e:
            raise PollError(job_id, e.message, e.status_code) from e
        except ValueError as e:
            raise PollError(job_id, f"Unexpected status response: {e}") from e

    # --- Results ---

    async def fetch_risk_history(self, company_symbol: str) -> list[RiskResult]:
        """Risk results for a company, ordered by fiscal year ascending."""
        endpoint = f"/api/results/risk-evolution/{company_symbol}"
        results = _decode_list(RiskResult, await self._request("GET", endpoint), endpoint)
        return sorted(results, key=lambda r: r.fiscal_year)
