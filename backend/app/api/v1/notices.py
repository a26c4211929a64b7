"""
Public notice endpoint for the login screen.
"""
from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.db.base import get_db
from app.models.notice import Notice
from app.schemas.pastoral import NoticeResponse

router = APIRouter()


@router.get("/latest", response_model=Optional[NoticeResponse])
async def latest_notice(
    db: AsyncSession = Depends(get_db)
):
    """Most recent notice, or null when none exists. No login required."""
    result = await db.execute(select(Notice).order_by(Notice.created.desc()).limit(1))
    notice = result.scalar_one_or_none()
    if notice is None:
        return None
    return NoticeResponse.model_validate(notice)
