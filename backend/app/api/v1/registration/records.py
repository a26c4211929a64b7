"""
Salvation ("wokovu"), testimony ("ushuhuda") and training ("mafunzo") records.
"""
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from app.db.base import get_db
from app.core.permissions import require_tab
from app.models.user import User
from app.models.salvation import Salvation
from app.models.testimony import Testimony
from app.models.training import Training, TrainingStatus
from app.schemas.registration import (
    SalvationCreate, SalvationResponse,
    TestimonyCreate, TestimonyResponse,
    TrainingCreate, TrainingResponse,
)
from app.services.workflows import transition_status
from app.api.v1.registration.members import get_member_or_404

logger = logging.getLogger(__name__)

router = APIRouter()

salvation_access = require_tab("usajili", "wokovu")
testimony_access = require_tab("usajili", "ushuhuda")
training_access = require_tab("usajili", "mafunzo")


def filter_member_and_date(query, model, date_column, member_id: Optional[str], on: Optional[date]):
    if member_id:
        query = query.where(model.member_id == member_id)
    if on is not None:
        query = query.where(date_column == on)
    return query


# ============================================================================
# SALVATIONS
# ============================================================================

@router.post("/salvations", response_model=SalvationResponse, status_code=status.HTTP_201_CREATED)
async def record_salvation(
    data: SalvationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(salvation_access)
):
    member = await get_member_or_404(db, data.member_id)
    salvation = Salvation(
        member_id=member.id,
        member_number=member.member_number,
        full_name=member.full_name,
        salvation_date=data.salvation_date,
        notes=data.notes,
    )
    db.add(salvation)
    await db.flush()
    logger.info(f"Salvation recorded: member={member.member_number}")
    return SalvationResponse.model_validate(salvation)


@router.get("/salvations", response_model=list[SalvationResponse])
async def list_salvations(
    member_id: Optional[str] = None,
    on: Optional[date] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(salvation_access)
):
    query = filter_member_and_date(select(Salvation), Salvation, Salvation.salvation_date, member_id, on)
    result = await db.execute(query.order_by(Salvation.salvation_date.desc()))
    return [SalvationResponse.model_validate(s) for s in result.scalars().all()]


# ============================================================================
# TESTIMONIES
# ============================================================================

@router.post("/testimonies", response_model=TestimonyResponse, status_code=status.HTTP_201_CREATED)
async def record_testimony(
    data: TestimonyCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(testimony_access)
):
    """Record a testimony; visitors without a member record are allowed."""
    testimony = Testimony(
        testimony_date=data.testimony_date,
        witness_name=data.witness_name.strip(),
        problem=data.problem,
        testimony=data.testimony,
    )
    if data.member_id:
        member = await get_member_or_404(db, data.member_id)
        testimony.member_id = member.id
        testimony.member_number = member.member_number
        testimony.full_name = member.full_name

    db.add(testimony)
    await db.flush()
    return TestimonyResponse.model_validate(testimony)


@router.get("/testimonies", response_model=list[TestimonyResponse])
async def list_testimonies(
    member_id: Optional[str] = None,
    on: Optional[date] = Query(None, alias="date"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(testimony_access)
):
    query = filter_member_and_date(select(Testimony), Testimony, Testimony.testimony_date, member_id, on)
    result = await db.execute(query.order_by(Testimony.testimony_date.desc()))
    return [TestimonyResponse.model_validate(t) for t in result.scalars().all()]


# ============================================================================
# TRAININGS
# ============================================================================

@router.post("/trainings", response_model=TrainingResponse, status_code=status.HTTP_201_CREATED)
async def record_training(
    data: TrainingCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(training_access)
):
    """Record a lesson; only members with a salvation record can be trained."""
    member = await get_member_or_404(db, data.member_id)

    saved = await db.execute(select(Salvation.id).where(Salvation.member_id == member.id).limit(1))
    if saved.scalar_one_or_none() is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"member_id": {"message": "Member has no salvation record"}}
        )

    training = Training(
        member_id=member.id,
        lesson=data.lesson,
        training_date=data.training_date,
        teacher=data.teacher,
        advice=data.advice,
        ministry=data.ministry,
        status=TrainingStatus.PENDING,
    )
    try:
        async with db.begin_nested():
            db.add(training)
    except IntegrityError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This lesson is already recorded for the member on that date"
        )
    return TrainingResponse.model_validate(training)


@router.get("/trainings", response_model=list[TrainingResponse])
async def list_trainings(
    member_id: Optional[str] = None,
    on: Optional[date] = Query(None, alias="date"),
    status_filter: Optional[TrainingStatus] = Query(None, alias="status"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(training_access)
):
    query = filter_member_and_date(select(Training), Training, Training.training_date, member_id, on)
    if status_filter is not None:
        query = query.where(Training.status == status_filter)
    result = await db.execute(query.order_by(Training.training_date.desc()))
    return [TrainingResponse.model_validate(t) for t in result.scalars().all()]


@router.post("/trainings/{training_id}/approve", response_model=TrainingResponse)
async def approve_training(
    training_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(training_access)
):
    training = await transition_status(
        db, Training, training_id, [TrainingStatus.PENDING], TrainingStatus.APPROVED
    )
    return TrainingResponse.model_validate(training)
