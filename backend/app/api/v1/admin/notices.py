"""
Public notice ("tangazo") management - admin only.
"""
import logging
from math import ceil

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from app.db.base import get_db
from app.core.permissions import require_admin
from app.models.user import User
from app.models.notice import Notice
from app.schemas.common import PaginatedResponse
from app.schemas.pastoral import NoticeCreate, NoticeResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=NoticeResponse, status_code=status.HTTP_201_CREATED)
async def create_notice(
    data: NoticeCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    notice = Notice(title=data.title, message=data.message, image_url=data.image_url)
    db.add(notice)
    await db.flush()
    logger.info(f"Notice created: notice={notice.id}")
    return NoticeResponse.model_validate(notice)


@router.get("", response_model=PaginatedResponse[NoticeResponse])
async def list_notices(
    page: int = Query(1, ge=1),
    perPage: int = Query(30, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    total_items = (await db.execute(select(func.count(Notice.id)))).scalar() or 0
    result = await db.execute(
        select(Notice)
        .order_by(Notice.created.desc())
        .offset((page - 1) * perPage)
        .limit(perPage)
    )
    return PaginatedResponse(
        page=page,
        perPage=perPage,
        totalItems=total_items,
        totalPages=ceil(total_items / perPage) if total_items > 0 else 1,
        items=[NoticeResponse.model_validate(n) for n in result.scalars().all()]
    )


@router.delete("/{notice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_notice(
    notice_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    result = await db.execute(select(Notice).where(Notice.id == notice_id))
    notice = result.scalar_one_or_none()
    if notice is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Notice not found"
        )
    await db.delete(notice)
    await db.flush()
    logger.info(f"Notice deleted: notice={notice_id}")
