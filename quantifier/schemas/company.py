"""Pydantic schemas for companies and uploaded documents."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class Company(BaseModel):
    symbol: str
    name: str
    sector: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @property
    def label(self) -> str:
        return f"{self.symbol} - {self.name}"


class Document(BaseModel):
    company_symbol: str
    fiscal_year: int
    page_count: int = 0
    word_count: int = 0
    upload_date: Optional[datetime] = None
    filename: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra="ignore")


class CompanyDraft(BaseModel):
    """Form input for a new company, before validation."""

    symbol: str = ""
    name: str = ""
    sector: Optional[str] = Field(default=None)

    def missing_fields(self) -> list[str]:
        return [f for f in ("symbol", "name") if not getattr(self, f).strip()]

    def to_company(self) -> Company:
        sector = (self.sector or "").strip() or None
        return Company(symbol=self.symbol.strip().upper(), name=self.name.strip(), sector=sector)
