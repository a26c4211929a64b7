"""
Registration helpers: member numbers and attendance upsert.

Both writes race with concurrent requests on a unique constraint. The
insert runs inside a savepoint so a lost race rolls back only that insert;
the caller's transaction stays usable and the write is retried.
"""
import logging
from datetime import date

from fastapi import HTTPException, status
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.member import Member
from app.models.attendance import Attendance

logger = logging.getLogger(__name__)

MEMBER_NUMBER_ATTEMPTS = 5


def format_member_number(sequence: int) -> str:
    """RHEMA + sequence padded to at least three digits (RHEMA007, RHEMA1234)."""
    return f"{settings.MEMBER_NUMBER_PREFIX}{sequence:03d}"


async def next_member_number(db: AsyncSession) -> str:
    """First unused member number after the current member count."""
    count = (await db.execute(select(func.count(Member.id)))).scalar() or 0
    sequence = count + 1
    while True:
        candidate = format_member_number(sequence)
        existing = await db.execute(select(Member.id).where(Member.member_number == candidate))
        if existing.scalar_one_or_none() is None:
            return candidate
        sequence += 1


async def create_member(db: AsyncSession, **fields) -> Member:
    """Insert a member under the next free number, retrying when another request takes it first."""
    for attempt in range(1, MEMBER_NUMBER_ATTEMPTS + 1):
        member = Member(member_number=await next_member_number(db), **fields)
        try:
            async with db.begin_nested():
                db.add(member)
        except IntegrityError:
            logger.info(f"Member number {member.member_number} taken concurrently, retrying (attempt {attempt})")
            continue
        return member

    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail={"code": "member_number_busy", "message": "Could not assign a member number. Please try again."}
    )


async def _attendance_for_day(db: AsyncSession, member_id: str, attendance_date: date):
    result = await db.execute(
        select(Attendance).where(
            Attendance.member_id == member_id,
            Attendance.attendance_date == attendance_date,
        )
    )
    return result.scalar_one_or_none()


async def record_attendance(
    db: AsyncSession,
    member: Member,
    attendance_date: date,
    attendance_type: str,
    service_type: str,
) -> tuple[Attendance, bool]:
    """
    Record attendance for a member on a day.

    Returns (row, updated): a member has at most one row per day, so a
    second registration updates the existing row instead of adding one.
    """
    existing = await _attendance_for_day(db, member.id, attendance_date)

    if existing is None:
        attendance = Attendance(
            member_id=member.id,
            member_number=member.member_number,
            full_name=member.full_name,
            attendance_date=attendance_date,
            attendance_type=attendance_type,
            service_type=service_type,
        )
        try:
            async with db.begin_nested():
                db.add(attendance)
        except IntegrityError:
            existing = await _attendance_for_day(db, member.id, attendance_date)
            if existing is None:
                raise
        else:
            return attendance, False

    existing.attendance_type = attendance_type
    existing.service_type = service_type
    await db.flush()
    logger.info(f"Attendance updated: member={member.member_number}, date={attendance_date}")
    return existing, True
