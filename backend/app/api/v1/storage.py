"""
Bucket storage endpoints.

Endpoints:
- GET /api/v1/storage/buckets - Buckets with total sizes
- GET /api/v1/storage/buckets/{bucket}/objects - List objects
- POST /api/v1/storage/buckets/{bucket}/objects - Upload object
- GET /api/v1/storage/buckets/{bucket}/objects/{name} - Object metadata
- GET /api/v1/storage/buckets/{bucket}/objects/{name}/download - Download
- PATCH /api/v1/storage/buckets/{bucket}/objects/{name} - Archive / soft delete
- DELETE /api/v1/storage/buckets/{bucket}/objects/{name} - Remove
- GET /api/v1/storage/public/{bucket}/{name} - Public URL target
- GET /api/v1/storage/usage - Usage by type and day
- GET /api/v1/storage/cleanup - Cleanup suggestions

Permissions:
- Usage report: tab ``usage``
- Everything else except public reads: tab ``storage``
"""
import logging
import os
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status, UploadFile, File
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.db.base import get_db
from app.core.permissions import require_tab
from app.models.user import User
from app.models.stored_object import StoredObject
from app.schemas.storage import (
    StoredObjectResponse, StoredObjectFlags, BucketInfo, BucketListResponse,
    UsageResponse, CleanupSuggestion,
)
from app.services import storage

logger = logging.getLogger(__name__)

router = APIRouter()

storage_access = require_tab("storage")


def object_to_response(obj: StoredObject) -> StoredObjectResponse:
    return StoredObjectResponse(
        id=obj.id,
        bucket=obj.bucket,
        name=obj.name,
        original_name=obj.original_name,
        content_type=obj.content_type,
        size=obj.size or 0,
        size_display=storage.format_bytes(obj.size or 0),
        event_type=obj.event_type,
        is_archived=obj.is_archived,
        is_deleted=obj.is_deleted,
        public_url=storage.public_url(obj.bucket, obj.name),
        created=obj.created,
        updated=obj.updated,
    )


def file_response(obj: StoredObject) -> FileResponse:
    path = storage.object_path(obj)
    if not os.path.exists(path):
        raise HTTPException(status_code=404, detail="Stored file missing")
    return FileResponse(path, filename=obj.original_name or obj.name, media_type=obj.content_type)


@router.get("/buckets", response_model=BucketListResponse)
async def list_buckets(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(storage_access)
):
    sizes = await storage.bucket_sizes(db)
    total = sum(sizes.values())
    return BucketListResponse(
        items=[
            BucketInfo(name=name, size=size, size_display=storage.format_bytes(size))
            for name, size in sizes.items()
        ],
        total_size=total,
        total_size_display=storage.format_bytes(total),
    )


@router.get("/buckets/{bucket}/objects", response_model=list[StoredObjectResponse])
async def list_objects(
    bucket: str,
    include_deleted: bool = False,
    archived: Optional[bool] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(storage_access)
):
    storage.ensure_bucket(bucket)
    query = select(StoredObject).where(StoredObject.bucket == bucket)
    if not include_deleted:
        query = query.where(StoredObject.is_deleted == False)
    if archived is not None:
        query = query.where(StoredObject.is_archived == archived)
    result = await db.execute(query.order_by(StoredObject.created.desc()))
    return [object_to_response(o) for o in result.scalars().all()]


@router.post("/buckets/{bucket}/objects", response_model=StoredObjectResponse, status_code=status.HTTP_201_CREATED)
async def upload_object(
    bucket: str,
    upload: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(storage_access)
):
    obj = await storage.save_upload(db, bucket, upload, current_user.id)
    return object_to_response(obj)


@router.get("/buckets/{bucket}/objects/{name}", response_model=StoredObjectResponse)
async def get_object(
    bucket: str,
    name: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(storage_access)
):
    return object_to_response(await storage.get_object(db, bucket, name))


@router.get("/buckets/{bucket}/objects/{name}/download")
async def download_object(
    bucket: str,
    name: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(storage_access)
):
    return file_response(await storage.get_object(db, bucket, name))


@router.patch("/buckets/{bucket}/objects/{name}", response_model=StoredObjectResponse)
async def update_object_flags(
    bucket: str,
    name: str,
    data: StoredObjectFlags,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(storage_access)
):
    """Archive or soft delete an object (or undo either)."""
    obj = await storage.get_object(db, bucket, name)
    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(obj, field, value)
    await db.flush()
    logger.info(f"Object flags updated: {bucket}/{name}, archived={obj.is_archived}, deleted={obj.is_deleted}")
    return object_to_response(obj)


@router.delete("/buckets/{bucket}/objects/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_object(
    bucket: str,
    name: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(storage_access)
):
    obj = await storage.get_object(db, bucket, name)
    await storage.remove_object(db, obj)


@router.get("/public/{bucket}/{name}")
async def public_object(
    bucket: str,
    name: str,
    db: AsyncSession = Depends(get_db)
):
    """Serve an object by its public URL; soft-deleted objects are hidden."""
    obj = await storage.get_object(db, bucket, name)
    if obj.is_deleted:
        raise HTTPException(status_code=404, detail="Object not found")
    return file_response(obj)


@router.get("/usage", response_model=UsageResponse)
async def usage(
    bucket: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_tab("usage"))
):
    """Bytes stored in total, per upload type and per upload day."""
    query = select(StoredObject).where(StoredObject.is_deleted == False)
    if bucket:
        storage.ensure_bucket(bucket)
        query = query.where(StoredObject.bucket == bucket)
    result = await db.execute(query)
    breakdown = storage.usage_breakdown(result.scalars().all())
    return UsageResponse(
        bucket=bucket,
        total_display=storage.format_bytes(breakdown["total_bytes"]),
        **breakdown,
    )


@router.get("/cleanup", response_model=list[CleanupSuggestion])
async def cleanup_suggestions(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(storage_access)
):
    """Objects over the size limit or not touched for a long time."""
    result = await db.execute(
        select(StoredObject)
        .where(StoredObject.is_deleted == False)
        .order_by(StoredObject.size.desc())
    )
    candidates = storage.cleanup_candidates(result.scalars().all(), datetime.now(timezone.utc))
    return [
        CleanupSuggestion(object=object_to_response(obj), reasons=reasons)
        for obj, reasons in candidates
    ]
