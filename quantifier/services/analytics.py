"""Chart-ready view model derived from a company's risk history.

Everything here is a pure function of its inputs: no fetching, no caching.
Callers recompute on every render.
"""

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional, Sequence

import pandas as pd

from quantifier.schemas.analysis import AnalysisJob, RiskResult
from quantifier.schemas.company import Document

TREND_COLUMNS = ["label", "urgency", "sentiment_magnitude"]


def normalize_category(category: str) -> str:
    """'operational_risk' -> 'OPERATIONAL RISK'."""
    return category.replace("_", " ").upper()


def fiscal_label(fiscal_year: int) -> str:
    return f"FY{fiscal_year}"


def latest(history: Sequence[RiskResult]) -> Optional[RiskResult]:
    """The last result, which is the greatest fiscal year for ascending input."""
    return history[-1] if history else None


def trend_series(history: Sequence[RiskResult]) -> list[dict]:
    return [
        {
            "label": fiscal_label(r.fiscal_year),
            "urgency": r.urgency_score,
            "sentiment_magnitude": abs(r.sentiment_delta or 0),
        }
        for r in history
    ]


def radar_series(result: Optional[RiskResult]) -> list[dict]:
    if result is None:
        return []
    return [
        {"label": normalize_category(category), "magnitude": abs(score)}
        for category, score in result.risk_categories.items()
    ]


def show_trend(history: Sequence[RiskResult]) -> bool:
    """A trend line needs at least two points."""
    return len(history) > 1


def trend_frame(history: Sequence[RiskResult]) -> pd.DataFrame:
    """Trend series as a DataFrame indexed by fiscal-year label, for chart widgets."""
    return pd.DataFrame(trend_series(history), columns=TREND_COLUMNS).set_index("label")


def format_sentiment_delta(delta: Optional[float]) -> str:
    if not delta:
        return "N/A"
    sign = "+" if delta > 0 else ""
    return f"{sign}{delta:.1f}%"


def format_urgency(score: float) -> str:
    return f"{score:.1f}/100"


def history_cards(history: Sequence[RiskResult]) -> list[dict]:
    """One summary card per analyzed fiscal year, in input order."""
    return [
        {
            "label": f"FY {r.fiscal_year}",
            "analyzed_at": r.analyzed_at,
            "urgency": format_urgency(r.urgency_score),
            "summary": r.summary,
            "category_count": len(r.risk_categories),
            "new_risk_count": len(r.new_risks),
            "key_phrase_count": len(r.key_phrases),
        }
        for r in history
    ]


def document_for_year(documents: Iterable[Document], fiscal_year: int) -> Optional[Document]:
    return next((d for d in documents if d.fiscal_year == fiscal_year), None)


def upload_slots(documents: Sequence[Document], years: Sequence[int]) -> list[dict]:
    """Per fiscal year: the uploaded document, if any, and whether analysis can start."""
    slots = []
    for year in years:
        doc = document_for_year(documents, year)
        slots.append({"fiscal_year": year, "document": doc, "can_analyze": doc is not None})
    return slots


def active_progress(jobs: Mapping[str, AnalysisJob]) -> list[dict]:
    return [
        {"job_id": job_id, "message": job.message, "progress": job.progress}
        for job_id, job in jobs.items()
        if job.status.is_active
    ]


@dataclass(frozen=True)
class AnalyticsViewModel:
    """Snapshot of the derived analytics for one loaded history."""

    history: tuple[RiskResult, ...] = field(default_factory=tuple)

    @classmethod
    def from_history(cls, history: Iterable[RiskResult]) -> "AnalyticsViewModel":
        return cls(history=tuple(history))

    def latest(self) -> Optional[RiskResult]:
        return latest(self.history)

    def trend_series(self) -> list[dict]:
        return trend_series(self.history)

    def radar_series(self, result: Optional[RiskResult] = None) -> list[dict]:
        """Radar points for ``result``, or for the latest result when omitted."""
        return radar_series(result if result is not None else self.latest())

    def show_trend(self) -> bool:
        return show_trend(self.history)

    def trend_frame(self) -> pd.DataFrame:
        return trend_frame(self.history)

    def history_cards(self) -> list[dict]:
        return history_cards(self.history)

    def headline(self) -> Optional[dict]:
        """Metric tiles for the latest result."""
        result = self.latest()
        if result is None:
            return None
        return {
            "urgency": format_urgency(result.urgency_score),
            "sentiment_delta": format_sentiment_delta(result.sentiment_delta),
            "fiscal_year": fiscal_label(result.fiscal_year),
            "analyzed_at": result.analyzed_at,
            "key_phrases": list(result.key_phrases),
            "new_risks": list(result.new_risks),
            "summary": result.summary,
        }
