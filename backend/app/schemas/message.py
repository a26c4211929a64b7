"""
Messaging schemas.
"""
from typing import Optional
from pydantic import BaseModel, Field

from app.schemas.common import BaseResponse


class MessageCreate(BaseModel):
    """Direct (recipient_id), branch (recipient_branch) or broadcast (neither)."""
    body: str = Field(..., min_length=1)
    recipient_id: Optional[str] = None
    recipient_branch: Optional[str] = Field(None, max_length=100)
    reply_to_id: Optional[str] = None


class MessageRecordResponse(BaseResponse):
    body: str
    sender_id: str
    sender_name: str
    recipient_id: Optional[str] = None
    recipient_branch: Optional[str] = None
    is_broadcast: bool = False
    reply_to_id: Optional[str] = None
    read_by: list[str] = []
    is_read: bool = False
