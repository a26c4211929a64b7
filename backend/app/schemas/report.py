"""
Report schemas.
"""
from typing import Any, Optional
from datetime import date
from decimal import Decimal
from pydantic import BaseModel

from app.schemas.finance import ContributionResponse


class ReportRange(BaseModel):
    start: Optional[date] = None
    end: Optional[date] = None


class RegistrationReport(BaseModel):
    range: Optional[ReportRange] = None
    counts: dict[str, int]
    rows: dict[str, list[dict[str, Any]]]


class ContributionGroup(BaseModel):
    key: str
    name: str
    count: int
    pledged: Decimal
    paid: Decimal
    discount: Decimal
    remaining: Decimal
    progress: int


class MonthlyProgress(BaseModel):
    month: str
    pledged: Decimal
    paid: Decimal
    progress: int


class FinanceReport(BaseModel):
    range: Optional[ReportRange] = None
    pending: list[ContributionResponse]
    finished: list[ContributionResponse]
    total_pledged: Decimal
    total_paid: Decimal
    total_remaining: Decimal
    by_type: list[ContributionGroup]
    by_contributor: list[ContributionGroup]
    monthly: list[MonthlyProgress]
    budgets_approved_total: Decimal
