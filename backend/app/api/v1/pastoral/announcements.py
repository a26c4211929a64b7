"""
Pastor announcements ("matangazo") handed to the media team.

Pastors create announcements (one per receiver) with an optional media
file; the media team approves or rejects them.
"""
import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, Query, UploadFile, File, Form
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.db.base import get_db
from app.core.permissions import require_tab
from app.models.user import User
from app.models.pastor_summary import ReviewStatus
from app.models.pastor_announcement import PastorAnnouncement
from app.schemas.pastoral import AnnouncementResponse, AnnouncementStatusUpdate
from app.services.storage import save_upload, public_url
from app.services.workflows import transition_status

logger = logging.getLogger(__name__)

router = APIRouter()

ANNOUNCEMENT_BUCKET = "matangazo"


@router.post("/announcements", response_model=list[AnnouncementResponse], status_code=status.HTTP_201_CREATED)
async def create_announcements(
    title: str = Form(...),
    receiver_names: list[str] = Form(...),
    receiver_role: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    scheduled_for: Optional[date] = Form(None),
    file: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tab("matangazo"))
):
    """Create one announcement per receiver, sharing one uploaded file."""
    receivers = [name.strip() for name in receiver_names if name and name.strip()]
    if not title.strip() or not receivers:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A title and at least one receiver are required"
        )

    media_url = None
    if file is not None and file.filename:
        stored = await save_upload(db, ANNOUNCEMENT_BUCKET, file, current_user.id)
        media_url = public_url(stored.bucket, stored.name)

    announcements = []
    for receiver in receivers:
        announcement = PastorAnnouncement(
            receiver_name=receiver,
            receiver_role=receiver_role,
            title=title.strip(),
            description=description,
            media_url=media_url,
            scheduled_for=scheduled_for,
            status=ReviewStatus.PENDING,
            created_by_id=current_user.id,
        )
        db.add(announcement)
        announcements.append(announcement)

    await db.flush()
    logger.info(f"Announcements created: count={len(announcements)}, by={current_user.id}")
    return [AnnouncementResponse.model_validate(a) for a in announcements]


@router.get("/announcements", response_model=list[AnnouncementResponse])
async def list_announcements(
    status_filter: Optional[ReviewStatus] = Query(None, alias="status"),
    receiver: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tab("matangazo", "media"))
):
    query = select(PastorAnnouncement)
    if status_filter is not None:
        query = query.where(PastorAnnouncement.status == status_filter)
    if receiver:
        query = query.where(PastorAnnouncement.receiver_name == receiver)
    result = await db.execute(query.order_by(PastorAnnouncement.created.desc()))
    return [AnnouncementResponse.model_validate(a) for a in result.scalars().all()]


@router.patch("/announcements/{announcement_id}", response_model=AnnouncementResponse)
async def set_announcement_status(
    announcement_id: str,
    data: AnnouncementStatusUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tab("media"))
):
    """Approve or reject a pending announcement."""
    if data.status == ReviewStatus.PENDING:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"status": {"message": "An announcement can only be approved or rejected"}}
        )

    announcement = await transition_status(
        db, PastorAnnouncement, announcement_id,
        [ReviewStatus.PENDING],
        data.status,
    )
    logger.info(f"Announcement {announcement.id} set to {data.status.value} by {current_user.id}")
    return AnnouncementResponse.model_validate(announcement)
