"""
Pastor service summaries and their approval queue.

Pastors submit a summary per service (tab ``summary``); reviewers approve
or reject pending ones (tab ``approval``). Approved and rejected archives
have their own tabs.
"""
import logging
from math import ceil
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.db.base import get_db
from app.core.permissions import require_tab
from app.models.user import User
from app.models.pastor_summary import PastorSummary, ReviewStatus
from app.schemas.common import PaginatedResponse
from app.schemas.pastoral import SummaryCreate, SummaryApprove, SummaryReject, SummaryResponse
from app.services.workflows import transition_status

logger = logging.getLogger(__name__)

router = APIRouter()


def clean_entries(entries: list[str]) -> list[str]:
    """Drop blank list entries and surrounding whitespace."""
    return [entry.strip() for entry in entries if entry and entry.strip()]


async def list_by_status(
    db: AsyncSession,
    review_status: ReviewStatus,
    page: int,
    perPage: int,
    branch: Optional[str] = None,
) -> PaginatedResponse[SummaryResponse]:
    query = select(PastorSummary).where(PastorSummary.status == review_status)
    if branch:
        query = query.where(PastorSummary.branch == branch)

    count_query = select(func.count()).select_from(query.subquery())
    total_items = (await db.execute(count_query)).scalar() or 0

    query = (
        query.order_by(PastorSummary.service_date.desc(), PastorSummary.created.desc())
        .offset((page - 1) * perPage)
        .limit(perPage)
    )
    result = await db.execute(query)

    return PaginatedResponse(
        page=page,
        perPage=perPage,
        totalItems=total_items,
        totalPages=ceil(total_items / perPage) if total_items > 0 else 1,
        items=[SummaryResponse.model_validate(s) for s in result.scalars().all()]
    )


@router.post("/summaries", response_model=SummaryResponse, status_code=status.HTTP_201_CREATED)
async def submit_summary(
    data: SummaryCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tab("summary"))
):
    """Submit a service summary for review."""
    errors = {}
    for field in ("branch", "pastor_name", "summary"):
        if not getattr(data, field).strip():
            errors[field] = {"message": "This field is required"}
    if errors:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=errors)

    summary = PastorSummary(
        branch=data.branch.strip(),
        pastor_name=data.pastor_name.strip(),
        service_date=data.service_date,
        summary=data.summary.strip(),
        events=clean_entries(data.events),
        services=clean_entries(data.services),
        advice=data.advice,
        status=ReviewStatus.PENDING,
        submitted_by_id=current_user.id,
    )
    db.add(summary)
    await db.flush()
    logger.info(f"Summary submitted: summary={summary.id}, branch={summary.branch}")
    return SummaryResponse.model_validate(summary)


@router.get("/summaries/pending", response_model=PaginatedResponse[SummaryResponse])
async def list_pending_summaries(
    page: int = Query(1, ge=1),
    perPage: int = Query(30, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tab("approval"))
):
    return await list_by_status(db, ReviewStatus.PENDING, page, perPage)


@router.get("/summaries/approved", response_model=PaginatedResponse[SummaryResponse])
async def list_approved_summaries(
    page: int = Query(1, ge=1),
    perPage: int = Query(30, ge=1, le=500),
    branch: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tab("approved"))
):
    return await list_by_status(db, ReviewStatus.APPROVED, page, perPage, branch)


@router.get("/summaries/rejected", response_model=PaginatedResponse[SummaryResponse])
async def list_rejected_summaries(
    page: int = Query(1, ge=1),
    perPage: int = Query(30, ge=1, le=500),
    branch: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tab("rejected"))
):
    return await list_by_status(db, ReviewStatus.REJECTED, page, perPage, branch)


@router.post("/summaries/{summary_id}/approve", response_model=SummaryResponse)
async def approve_summary(
    summary_id: str,
    data: Optional[SummaryApprove] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tab("approval"))
):
    approver = (data.approved_by or "").strip() if data else ""
    summary = await transition_status(
        db, PastorSummary, summary_id,
        [ReviewStatus.PENDING],
        ReviewStatus.APPROVED,
        approved_by=approver or current_user.full_name,
    )
    return SummaryResponse.model_validate(summary)


@router.post("/summaries/{summary_id}/reject", response_model=SummaryResponse)
async def reject_summary(
    summary_id: str,
    data: SummaryReject,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tab("approval"))
):
    """Reject a pending summary; a reason is required."""
    reason = (data.reason or "").strip()
    if not reason:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"reason": {"message": "A rejection reason is required"}}
        )

    summary = await transition_status(
        db, PastorSummary, summary_id,
        [ReviewStatus.PENDING],
        ReviewStatus.REJECTED,
        rejected_by=(data.rejected_by or "").strip() or current_user.full_name,
        rejection_reason=reason,
    )
    return SummaryResponse.model_validate(summary)
