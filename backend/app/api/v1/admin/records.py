"""
Record management - admin only.

Admins browse, correct and delete registration and finance rows table by
table. New rows still go through the regular create endpoints so member
numbers, snapshots and balances are filled in the usual way.
"""
import logging
from math import ceil
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, status, Query
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.core.permissions import require_admin
from app.models.user import User
from app.models.member import Member
from app.models.attendance import Attendance
from app.models.salvation import Salvation
from app.models.testimony import Testimony
from app.models.training import Training
from app.models.contribution import Contribution, remaining_amount
from app.schemas.admin import (
    AttendanceUpdate,
    BulkDeleteRequest,
    BulkDeleteResponse,
    ContributionUpdate,
    MemberUpdate,
    SalvationUpdate,
    TestimonyUpdate,
    TrainingUpdate,
)
from app.schemas.common import PaginatedResponse
from app.schemas.finance import ContributionResponse
from app.schemas.registration import (
    AttendanceResponse,
    MemberResponse,
    SalvationResponse,
    TestimonyResponse,
    TrainingResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# table name -> (model, update schema, response schema)
MANAGED_TABLES: dict[str, tuple[Any, type[BaseModel], type[BaseModel]]] = {
    "members": (Member, MemberUpdate, MemberResponse),
    "attendance": (Attendance, AttendanceUpdate, AttendanceResponse),
    "salvations": (Salvation, SalvationUpdate, SalvationResponse),
    "testimonies": (Testimony, TestimonyUpdate, TestimonyResponse),
    "trainings": (Training, TrainingUpdate, TrainingResponse),
    "contributions": (Contribution, ContributionUpdate, ContributionResponse),
}


def get_table_or_404(table: str) -> tuple[Any, type[BaseModel], type[BaseModel]]:
    entry = MANAGED_TABLES.get(table)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown table: {table}"
        )
    return entry


async def get_record_or_404(db: AsyncSession, model, record_id: str):
    result = await db.execute(select(model).where(model.id == record_id))
    record = result.scalar_one_or_none()
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Record not found"
        )
    return record


def serialize(response_schema: type[BaseModel], record) -> dict[str, Any]:
    return response_schema.model_validate(record).model_dump(mode="json")


@router.get("")
async def list_tables(current_user: User = Depends(require_admin)):
    return {"tables": list(MANAGED_TABLES)}


@router.get("/{table}", response_model=PaginatedResponse[dict[str, Any]])
async def list_records(
    table: str,
    page: int = Query(1, ge=1),
    perPage: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    model, _, response_schema = get_table_or_404(table)

    total_items = (await db.execute(select(func.count(model.id)))).scalar() or 0
    result = await db.execute(
        select(model)
        .order_by(model.created.desc())
        .offset((page - 1) * perPage)
        .limit(perPage)
    )
    return PaginatedResponse(
        page=page,
        perPage=perPage,
        totalItems=total_items,
        totalPages=ceil(total_items / perPage) if total_items > 0 else 1,
        items=[serialize(response_schema, r) for r in result.scalars().all()]
    )


@router.patch("/{table}/{record_id}")
async def update_record(
    table: str,
    record_id: str,
    payload: dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Apply a partial edit; a contribution's remaining balance is recomputed."""
    model, update_schema, response_schema = get_table_or_404(table)

    try:
        changes = update_schema.model_validate(payload).model_dump(exclude_unset=True)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False))

    if not changes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update"
        )

    # Explicit nulls are only allowed on nullable columns
    columns = model.__table__.columns
    for field, value in changes.items():
        if value is None and not columns[field].nullable:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail={field: {"message": "This field cannot be empty."}}
            )

    record = await get_record_or_404(db, model, record_id)
    try:
        async with db.begin_nested():
            for field, value in changes.items():
                setattr(record, field, value)
            if model is Contribution:
                record.remaining = remaining_amount(record.pledged, record.paid, record.discount)
    except IntegrityError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "duplicate_record", "message": "Another record already has these values."}
        )

    await db.refresh(record)
    logger.info(f"Record updated by admin: table={table}, record={record_id}, fields={sorted(changes)}")
    return serialize(response_schema, record)


@router.delete("/{table}/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_record(
    table: str,
    record_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    model, _, _ = get_table_or_404(table)
    record = await get_record_or_404(db, model, record_id)
    await db.delete(record)
    await db.flush()
    logger.info(f"Record deleted by admin: table={table}, record={record_id}")


@router.post("/{table}/bulk-delete", response_model=BulkDeleteResponse)
async def bulk_delete_records(
    table: str,
    data: BulkDeleteRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Delete the listed rows; ids that do not exist are reported back."""
    model, _, _ = get_table_or_404(table)
    requested = list(dict.fromkeys(data.ids))

    result = await db.execute(select(model.id).where(model.id.in_(requested)))
    found = set(result.scalars().all())

    if found:
        await db.execute(delete(model).where(model.id.in_(sorted(found))))
        await db.flush()

    missing = [record_id for record_id in requested if record_id not in found]
    logger.info(f"Records bulk deleted by admin: table={table}, deleted={len(found)}, missing={len(missing)}")
    return BulkDeleteResponse(deleted=len(found), missing=missing)
