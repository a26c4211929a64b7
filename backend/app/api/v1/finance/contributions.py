"""
Contribution ("michango") endpoints: pledges, payments and progress.
"""
import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.db.base import get_db
from app.core.permissions import require_tab
from app.models.user import User
from app.models.member import Member
from app.models.contribution import Contribution, remaining_amount
from app.schemas.finance import ContributionCreate, ContributionPayment, ContributionResponse
from app.schemas.report import ContributionGroup, MonthlyProgress
from app.services.reports import datetime_bounds, group_contributions, monthly_progress

logger = logging.getLogger(__name__)

router = APIRouter()

contribution_access = require_tab("finance", "michango")


@router.post("/contributions", response_model=ContributionResponse, status_code=status.HTTP_201_CREATED)
async def record_contribution(
    data: ContributionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(contribution_access)
):
    """Record a pledge. Name and phone default to the member's record."""
    full_name = data.full_name
    phone = data.phone
    member_number = data.member_number.strip().upper() if data.member_number else None

    if member_number:
        result = await db.execute(select(Member).where(Member.member_number == member_number))
        member = result.scalar_one_or_none()
        if member is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Member not found"
            )
        full_name = full_name or member.full_name
        phone = phone or member.phone

    if not full_name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"full_name": {"message": "A name or member number is required"}}
        )

    contribution = Contribution(
        member_number=member_number,
        full_name=full_name,
        phone=phone,
        contribution_type=data.contribution_type.strip(),
        pledged=data.pledged,
        paid=data.paid,
        discount=data.discount,
        remaining=remaining_amount(data.pledged, data.paid, data.discount),
        recorded_by_id=current_user.id,
    )
    db.add(contribution)
    await db.flush()
    logger.info(f"Contribution recorded: contribution={contribution.id}, type={contribution.contribution_type}")
    return ContributionResponse.model_validate(contribution)


@router.get("/contributions", response_model=list[ContributionResponse])
async def list_contributions(
    state: Optional[Literal["pending", "finished"]] = None,
    contribution_type: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(contribution_access)
):
    """``pending`` still owes something; ``finished`` is fully covered."""
    query = select(Contribution)
    if state == "pending":
        query = query.where(Contribution.remaining > 0)
    elif state == "finished":
        query = query.where(Contribution.remaining <= 0)
    if contribution_type:
        query = query.where(Contribution.contribution_type == contribution_type)

    result = await db.execute(query.order_by(Contribution.created.desc()))
    return [ContributionResponse.model_validate(c) for c in result.scalars().all()]


@router.post("/contributions/{contribution_id}/payments", response_model=ContributionResponse)
async def add_payment(
    contribution_id: str,
    data: ContributionPayment,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(contribution_access)
):
    result = await db.execute(select(Contribution).where(Contribution.id == contribution_id))
    contribution = result.scalar_one_or_none()
    if contribution is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Contribution not found"
        )

    contribution.paid = contribution.paid + data.amount
    contribution.remaining = remaining_amount(contribution.pledged, contribution.paid, contribution.discount)
    await db.flush()
    return ContributionResponse.model_validate(contribution)


@router.get("/contributions/summary", response_model=dict[str, list[ContributionGroup]])
async def contribution_summary(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(contribution_access)
):
    """Totals by type and by contributor."""
    rows = await fetch_contributions(db, start_date, end_date)
    return {
        "by_type": group_contributions(rows, "contribution_type"),
        "by_contributor": group_contributions(rows, "contributor"),
    }


@router.get("/contributions/progress", response_model=list[MonthlyProgress])
async def contribution_progress(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(contribution_access)
):
    return monthly_progress(await fetch_contributions(db, start_date, end_date))


async def fetch_contributions(
    db: AsyncSession,
    start_date: Optional[date],
    end_date: Optional[date],
) -> list[Contribution]:
    lower, upper = datetime_bounds(start_date, end_date)
    query = select(Contribution)
    if lower is not None:
        query = query.where(Contribution.created >= lower)
    if upper is not None:
        query = query.where(Contribution.created < upper)
    result = await db.execute(query.order_by(Contribution.created))
    return list(result.scalars().all())
