"""
Branch listing for pickers.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.db.base import get_db
from app.core.deps import get_current_user
from app.models.user import User

router = APIRouter()


@router.get("/branches", response_model=list[str])
async def list_branches(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Distinct branches of active users."""
    result = await db.execute(
        select(User.branch)
        .where(User.is_active == True, User.branch.is_not(None), User.branch != "")
        .distinct()
        .order_by(User.branch)
    )
    return [branch for branch in result.scalars().all()]
