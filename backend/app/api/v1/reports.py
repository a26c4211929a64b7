"""
Report endpoints.

Both reports accept ``period`` (``YYYY``, ``YYYY-MM`` or ``YYYY-MM-DD``) or
explicit ``start_date`` / ``end_date``. An unparseable period means no
date filter.
"""
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.db.base import get_db
from app.core.permissions import require_tab
from app.models.user import User
from app.models.member import Member
from app.models.attendance import Attendance
from app.models.salvation import Salvation
from app.models.testimony import Testimony
from app.models.training import Training
from app.models.budget import Budget, BudgetStatus
from app.models.contribution import Contribution
from app.schemas.finance import ContributionResponse
from app.schemas.registration import (
    MemberResponse, AttendanceResponse, SalvationResponse, TestimonyResponse, TrainingResponse,
)
from app.schemas.report import ReportRange, RegistrationReport, FinanceReport
from app.services.reports import (
    resolve_range, datetime_bounds, contribution_totals, group_contributions, monthly_progress,
)

router = APIRouter()


def date_filter(query, column, start: Optional[date], end: Optional[date]):
    if start is not None:
        query = query.where(column >= start)
    if end is not None:
        query = query.where(column <= end)
    return query


def created_filter(query, column, start: Optional[date], end: Optional[date]):
    lower, upper = datetime_bounds(start, end)
    if lower is not None:
        query = query.where(column >= lower)
    if upper is not None:
        query = query.where(column < upper)
    return query


@router.get("/registration", response_model=RegistrationReport)
async def registration_report(
    period: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tab("reports"))
):
    """Members, attendance, salvations, testimonies and trainings in range."""
    date_range = resolve_range(period, start_date, end_date)
    start, end = date_range if date_range else (None, None)

    sources = [
        ("members", created_filter(select(Member), Member.created, start, end)
            .order_by(Member.member_number), MemberResponse),
        ("attendance", date_filter(select(Attendance), Attendance.attendance_date, start, end)
            .order_by(Attendance.attendance_date), AttendanceResponse),
        ("salvations", date_filter(select(Salvation), Salvation.salvation_date, start, end)
            .order_by(Salvation.salvation_date), SalvationResponse),
        ("testimonies", date_filter(select(Testimony), Testimony.testimony_date, start, end)
            .order_by(Testimony.testimony_date), TestimonyResponse),
        ("trainings", date_filter(select(Training), Training.training_date, start, end)
            .order_by(Training.training_date), TrainingResponse),
    ]

    counts: dict[str, int] = {}
    rows: dict[str, list[dict]] = {}
    for name, query, schema in sources:
        result = await db.execute(query)
        items = [schema.model_validate(r).model_dump(mode="json") for r in result.scalars().all()]
        counts[name] = len(items)
        rows[name] = items

    return RegistrationReport(
        range=ReportRange(start=start, end=end) if date_range else None,
        counts=counts,
        rows=rows,
    )


@router.get("/finance", response_model=FinanceReport)
async def finance_report(
    period: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tab("reports_finance"))
):
    """Contribution progress and approved budget total in range."""
    date_range = resolve_range(period, start_date, end_date)
    start, end = date_range if date_range else (None, None)

    result = await db.execute(
        created_filter(select(Contribution), Contribution.created, start, end)
        .order_by(Contribution.created)
    )
    contributions = list(result.scalars().all())
    totals = contribution_totals(contributions)

    budget_total = await db.execute(
        created_filter(
            select(func.coalesce(func.sum(Budget.amount), 0)).where(Budget.status == BudgetStatus.APPROVED),
            Budget.created, start, end,
        )
    )

    return FinanceReport(
        range=ReportRange(start=start, end=end) if date_range else None,
        pending=[ContributionResponse.model_validate(c) for c in contributions if c.remaining > 0],
        finished=[ContributionResponse.model_validate(c) for c in contributions if c.remaining <= 0],
        total_pledged=totals["pledged"],
        total_paid=totals["paid"],
        total_remaining=totals["remaining"],
        by_type=group_contributions(contributions, "contribution_type"),
        by_contributor=group_contributions(contributions, "contributor"),
        monthly=monthly_progress(contributions),
        budgets_approved_total=Decimal(str(budget_total.scalar() or 0)),
    )
