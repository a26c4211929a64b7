"""
Storage schemas.
"""
from typing import Optional
from pydantic import BaseModel

from app.schemas.common import BaseResponse


class StoredObjectResponse(BaseResponse):
    bucket: str
    name: str
    original_name: Optional[str] = None
    content_type: Optional[str] = None
    size: int
    size_display: str
    event_type: str
    is_archived: bool = False
    is_deleted: bool = False
    public_url: str


class BucketInfo(BaseModel):
    name: str
    size: int
    size_display: str


class BucketListResponse(BaseModel):
    items: list[BucketInfo]
    total_size: int
    total_size_display: str


class UsageResponse(BaseModel):
    bucket: Optional[str] = None
    total_bytes: int
    total_display: str
    by_type: dict[str, int]
    by_day: dict[str, int]


class CleanupSuggestion(BaseModel):
    object: StoredObjectResponse
    reasons: list[str]


class StoredObjectFlags(BaseModel):
    is_archived: Optional[bool] = None
    is_deleted: Optional[bool] = None
