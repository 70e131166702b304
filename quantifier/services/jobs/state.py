"""Dashboard state owned by one ReconciliationController."""

from dataclasses import dataclass, field
from typing import Optional

from quantifier.schemas.analysis import RiskResult, ScopeToken
from quantifier.schemas.company import Company, Document
from quantifier.services.jobs.registry import JobRegistry


@dataclass
class DashboardState:
    """Mutable view state. One instance per mounted dashboard; pass a fresh one per test."""

    jobs: JobRegistry = field(default_factory=JobRegistry)
    companies: list[Company] = field(default_factory=list)
    selected: Optional[Company] = None
    scope: ScopeToken = field(default_factory=ScopeToken)
    documents: list[Document] = field(default_factory=list)
    risk_history: list[RiskResult] = field(default_factory=list)

    def enter_scope(self, company: Optional[Company]) -> ScopeToken:
        """Switch to a new company view, discarding everything loaded for the old one."""
        self.selected = company
        self.scope = ScopeToken(
            company_symbol=company.symbol if company else None,
            generation=self.scope.generation + 1,
        )
        self.jobs.clear()
        self.documents = []
        self.risk_history = []
        return self.scope

    def find_company(self, symbol: str) -> Optional[Company]:
        symbol = symbol.upper()
        return next((c for c in self.companies if c.symbol.upper() == symbol), None)
