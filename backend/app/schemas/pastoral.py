"""
Pastoral schemas: service summaries, announcements and public notices.
"""
from typing import Optional
from datetime import date
from pydantic import BaseModel, Field

from app.models.pastor_summary import ReviewStatus
from app.schemas.common import BaseResponse


class SummaryCreate(BaseModel):
    branch: str = Field(..., min_length=1, max_length=100)
    pastor_name: str = Field(..., min_length=1, max_length=200)
    service_date: date
    summary: str = Field(..., min_length=1)
    events: list[str] = Field(default_factory=list)
    services: list[str] = Field(default_factory=list)
    advice: Optional[str] = None


class SummaryApprove(BaseModel):
    approved_by: Optional[str] = Field(None, max_length=200)


class SummaryReject(BaseModel):
    reason: Optional[str] = None
    rejected_by: Optional[str] = Field(None, max_length=200)


class SummaryResponse(BaseResponse):
    branch: str
    pastor_name: str
    service_date: date
    summary: str
    events: list[str] = []
    services: list[str] = []
    advice: Optional[str] = None
    status: ReviewStatus
    approved_by: Optional[str] = None
    rejected_by: Optional[str] = None
    rejection_reason: Optional[str] = None


class AnnouncementResponse(BaseResponse):
    receiver_name: str
    receiver_role: Optional[str] = None
    title: str
    description: Optional[str] = None
    media_url: Optional[str] = None
    scheduled_for: Optional[date] = None
    status: ReviewStatus


class AnnouncementStatusUpdate(BaseModel):
    status: ReviewStatus


class NoticeCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1)
    image_url: Optional[str] = Field(None, max_length=500)


class NoticeResponse(BaseResponse):
    title: str
    message: str
    image_url: Optional[str] = None
