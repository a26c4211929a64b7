"""
Budget endpoints.

A budget sits in exactly one of the pending / approved / declined queues.
Decisions are guarded status updates (see ``app.services.workflows``), so
two people deciding the same budget at once cannot make it disappear from
every queue: the second decision gets 409 and changes nothing.
"""
import logging
from datetime import datetime, timezone
from math import ceil
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.db.base import get_db
from app.core.config import settings
from app.core.permissions import require_tab
from app.models.user import User
from app.models.budget import Budget, BudgetStatus, BUDGET_TRANSITIONS
from app.schemas.common import PaginatedResponse
from app.schemas.finance import BudgetCreate, BudgetDecline, BudgetResponse, BudgetQueuesResponse
from app.services.workflows import transition_status

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_DECLINE_REASON = "Declined by pastor"

budget_access = require_tab("finance", "bajeti")
decision_access = require_tab("bajeti")


@router.post("/budgets", response_model=BudgetResponse, status_code=status.HTTP_201_CREATED)
async def create_budget(
    data: BudgetCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(budget_access)
):
    """Submit a budget request; it starts in the pending queue."""
    budget = Budget(
        title=data.title.strip(),
        description=data.description,
        amount=data.amount,
        currency=(data.currency or settings.DEFAULT_CURRENCY).upper(),
        department=data.department,
        note=data.note,
        requested_by=data.requested_by or current_user.full_name,
        requested_by_id=current_user.id,
        status=BudgetStatus.PENDING,
    )
    db.add(budget)
    await db.flush()
    logger.info(f"Budget submitted: budget={budget.id}, amount={budget.amount} {budget.currency}")
    return BudgetResponse.model_validate(budget)


@router.get("/budgets", response_model=PaginatedResponse[BudgetResponse])
async def list_budgets(
    page: int = Query(1, ge=1),
    perPage: int = Query(30, ge=1, le=500),
    status_filter: Optional[BudgetStatus] = Query(BudgetStatus.PENDING, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(budget_access)
):
    """One queue of budgets, newest first."""
    query = select(Budget)
    if status_filter is not None:
        query = query.where(Budget.status == status_filter)

    count_query = select(func.count()).select_from(query.subquery())
    total_items = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(Budget.created.desc()).offset((page - 1) * perPage).limit(perPage)
    result = await db.execute(query)

    return PaginatedResponse(
        page=page,
        perPage=perPage,
        totalItems=total_items,
        totalPages=ceil(total_items / perPage) if total_items > 0 else 1,
        items=[BudgetResponse.model_validate(b) for b in result.scalars().all()]
    )


@router.get("/budgets/queues", response_model=BudgetQueuesResponse)
async def budget_queue_counts(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(budget_access)
):
    result = await db.execute(select(Budget.status, func.count(Budget.id)).group_by(Budget.status))
    counts = {s.value: 0 for s in BudgetStatus}
    for budget_status, count in result.all():
        counts[BudgetStatus(budget_status).value] = count
    return BudgetQueuesResponse(**counts)


@router.get("/budgets/{budget_id}", response_model=BudgetResponse)
async def get_budget(
    budget_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(budget_access)
):
    result = await db.execute(select(Budget).where(Budget.id == budget_id))
    budget = result.scalar_one_or_none()
    if budget is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Budget not found"
        )
    return BudgetResponse.model_validate(budget)


@router.post("/budgets/{budget_id}/approve", response_model=BudgetResponse)
async def approve_budget(
    budget_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(decision_access)
):
    budget = await transition_status(
        db, Budget, budget_id,
        BUDGET_TRANSITIONS[BudgetStatus.APPROVED],
        BudgetStatus.APPROVED,
        decided_by=current_user.full_name,
        decided_at=datetime.now(timezone.utc),
        declined_reason=None,
    )
    return BudgetResponse.model_validate(budget)


@router.post("/budgets/{budget_id}/decline", response_model=BudgetResponse)
async def decline_budget(
    budget_id: str,
    data: Optional[BudgetDecline] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(decision_access)
):
    reason = (data.reason or "").strip() if data else ""
    budget = await transition_status(
        db, Budget, budget_id,
        BUDGET_TRANSITIONS[BudgetStatus.DECLINED],
        BudgetStatus.DECLINED,
        decided_by=current_user.full_name,
        decided_at=datetime.now(timezone.utc),
        declined_reason=reason or DEFAULT_DECLINE_REASON,
    )
    return BudgetResponse.model_validate(budget)


@router.post("/budgets/{budget_id}/requeue", response_model=BudgetResponse)
async def requeue_budget(
    budget_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(decision_access)
):
    """Send a declined budget back to the pending queue."""
    budget = await transition_status(
        db, Budget, budget_id,
        BUDGET_TRANSITIONS[BudgetStatus.PENDING],
        BudgetStatus.PENDING,
        decided_by=None,
        decided_at=None,
        declined_reason=None,
    )
    return BudgetResponse.model_validate(budget)
