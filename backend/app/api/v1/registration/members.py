"""
Member registration ("muumini") and attendance ("mahadhurio") endpoints.
"""
import logging
from datetime import date
from math import ceil
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from app.db.base import get_db
from app.core.permissions import require_tab
from app.models.user import User
from app.models.member import Member
from app.models.attendance import Attendance
from app.schemas.common import PaginatedResponse
from app.schemas.registration import (
    MemberCreate, MemberResponse,
    AttendanceCreate, AttendanceResponse, AttendanceRecordResult,
)
from app.services.registration import create_member, record_attendance

logger = logging.getLogger(__name__)

router = APIRouter()

members_access = require_tab("usajili", "muumini")
attendance_access = require_tab("usajili", "mahadhurio")


async def get_member_or_404(db: AsyncSession, member_id: str) -> Member:
    result = await db.execute(select(Member).where(Member.id == member_id))
    member = result.scalar_one_or_none()
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Member not found"
        )
    return member


@router.post("/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def register_member(
    data: MemberCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(members_access)
):
    """Register a member; the member number is assigned here."""
    member = await create_member(
        db,
        full_name=data.full_name.strip(),
        phone=data.phone,
        gender=data.gender,
        age_group=data.age_group,
        envelope_number=data.envelope_number,
        branch=data.branch or current_user.branch,
        registered_by_id=current_user.id,
    )
    logger.info(f"Member registered: {member.member_number}")
    return MemberResponse.model_validate(member)


@router.get("/members", response_model=PaginatedResponse[MemberResponse])
async def list_members(
    page: int = Query(1, ge=1),
    perPage: int = Query(30, ge=1, le=500),
    q: Optional[str] = Query(None, description="Search by member number, name or phone"),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(members_access)
):
    query = select(Member)
    if q:
        pattern = f"%{q.strip()}%"
        query = query.where(or_(
            Member.member_number.ilike(pattern),
            Member.full_name.ilike(pattern),
            Member.phone.ilike(pattern),
        ))

    count_query = select(func.count()).select_from(query.subquery())
    total_items = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(Member.member_number).offset((page - 1) * perPage).limit(perPage)
    result = await db.execute(query)

    return PaginatedResponse(
        page=page,
        perPage=perPage,
        totalItems=total_items,
        totalPages=ceil(total_items / perPage) if total_items > 0 else 1,
        items=[MemberResponse.model_validate(m) for m in result.scalars().all()]
    )


@router.get("/members/by-number/{member_number}", response_model=MemberResponse)
async def get_member_by_number(
    member_number: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(members_access)
):
    result = await db.execute(
        select(Member).where(Member.member_number == member_number.strip().upper())
    )
    member = result.scalar_one_or_none()
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Member not found"
        )
    return MemberResponse.model_validate(member)


@router.get("/members/{member_id}", response_model=MemberResponse)
async def get_member(
    member_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(members_access)
):
    return MemberResponse.model_validate(await get_member_or_404(db, member_id))


@router.post("/attendance", response_model=AttendanceRecordResult)
async def register_attendance(
    data: AttendanceCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(attendance_access)
):
    """Record attendance; a second record for the same day updates the first."""
    member = await get_member_or_404(db, data.member_id)
    row, updated = await record_attendance(
        db, member, data.attendance_date, data.attendance_type, data.service_type
    )
    message = "Attendance updated." if updated else "Attendance recorded."
    return AttendanceRecordResult(
        record=AttendanceResponse.model_validate(row),
        updated=updated,
        message=message,
    )


@router.get("/attendance", response_model=list[AttendanceResponse])
async def list_attendance(
    attendance_date: Optional[date] = Query(None, alias="date"),
    member_id: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(attendance_access)
):
    query = select(Attendance)
    if attendance_date is not None:
        query = query.where(Attendance.attendance_date == attendance_date)
    if member_id:
        query = query.where(Attendance.member_id == member_id)
    result = await db.execute(query.order_by(Attendance.attendance_date.desc(), Attendance.member_number))
    return [AttendanceResponse.model_validate(a) for a in result.scalars().all()]
