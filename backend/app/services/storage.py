"""
Bucket storage service.

Storage:
- Buckets are directories under STORAGE_DIR, named in STORAGE_BUCKETS
- Object naming: {uuid15}_{original_filename}
- Object metadata (size, type, flags) is kept in the stored_objects table
- Max object size: configurable via settings.MAX_UPLOAD_SIZE
- A file written by a request that rolls back is removed again; a
  removed object loses its file only after the row deletion commits
"""
import logging
import os
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Iterable, Optional

from fastapi import HTTPException, UploadFile, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.time_gate import ensure_aware
from app.db.base import on_rollback
from app.models.base import new_record_id
from app.models.stored_object import StoredObject

logger = logging.getLogger(__name__)

BYTE_UNITS = ["B", "KB", "MB", "GB", "TB"]


def ensure_bucket(bucket: str) -> str:
    """Return the directory for a configured bucket, creating it if needed."""
    if bucket not in settings.STORAGE_BUCKETS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Bucket '{bucket}' not found"
        )
    bucket_dir = os.path.join(settings.STORAGE_DIR, bucket)
    os.makedirs(bucket_dir, exist_ok=True)
    return bucket_dir


def object_path(obj: StoredObject) -> str:
    return os.path.join(settings.STORAGE_DIR, obj.bucket, obj.name)


def public_url(bucket: str, name: str) -> str:
    return f"{settings.PUBLIC_STORAGE_URL.rstrip('/')}/{bucket}/{name}"


def discard_file(path: str) -> None:
    """Remove a stored file; a file that is already gone is fine."""
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
    except OSError:
        logger.exception(f"Failed to remove stored file {path}")


def classify_content_type(content_type: Optional[str]) -> str:
    """Upload category for the usage report."""
    if not content_type:
        return "other"
    major = content_type.split("/", 1)[0]
    if major in ("image", "video", "audio"):
        return major
    if content_type in ("application/pdf", "application/msword") or major == "text":
        return "document"
    return "other"


def format_bytes(size: int) -> str:
    """Human readable size, e.g. 1536 -> '1.5 KB'."""
    if size <= 0:
        return "0 B"
    index = 0
    scaled = float(size)
    while scaled >= 1024 and index < len(BYTE_UNITS) - 1:
        scaled /= 1024
        index += 1
    value = round(scaled, 2)
    if value == int(value):
        value = int(value)
    return f"{value} {BYTE_UNITS[index]}"


async def save_upload(
    db: AsyncSession,
    bucket: str,
    upload: UploadFile,
    uploaded_by_id: Optional[str],
) -> StoredObject:
    """Write an uploaded file into a bucket and record its metadata."""
    bucket_dir = ensure_bucket(bucket)

    content = await upload.read()
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File exceeds the {format_bytes(settings.MAX_UPLOAD_SIZE)} limit"
        )

    original_name = os.path.basename(upload.filename or "uploaded_file")
    stored_name = f"{new_record_id()}_{original_name}"
    stored_path = os.path.join(bucket_dir, stored_name)

    try:
        with open(stored_path, "wb") as f:
            f.write(content)
    except OSError as e:
        logger.exception(f"Failed to store object {bucket}/{stored_name}")
        raise HTTPException(status_code=500, detail=f"Failed to store file: {e}")

    obj = StoredObject(
        bucket=bucket,
        name=stored_name,
        original_name=original_name,
        content_type=upload.content_type,
        size=len(content),
        event_type=classify_content_type(upload.content_type),
        uploaded_by_id=uploaded_by_id,
    )
    db.add(obj)
    try:
        await db.flush()
    except Exception:
        discard_file(stored_path)
        raise
    on_rollback(db, lambda: discard_file(stored_path))
    logger.info(f"Stored object {bucket}/{stored_name} ({len(content)} bytes)")
    return obj


async def get_object(db: AsyncSession, bucket: str, name: str) -> StoredObject:
    result = await db.execute(
        select(StoredObject).where(
            StoredObject.bucket == bucket,
            StoredObject.name == name,
        )
    )
    obj = result.scalar_one_or_none()
    if obj is None:
        raise HTTPException(status_code=404, detail="Object not found")
    return obj


async def remove_object(db: AsyncSession, obj: StoredObject) -> None:
    """
    Delete the metadata row, then the bytes.

    The row deletion is committed first: if the commit fails the file is
    still there for the row that remains.
    """
    path = object_path(obj)
    label = f"{obj.bucket}/{obj.name}"
    await db.delete(obj)
    await db.commit()
    discard_file(path)
    logger.info(f"Removed object {label}")


async def bucket_sizes(db: AsyncSession) -> dict[str, int]:
    """Total bytes per configured bucket (soft-deleted objects excluded)."""
    result = await db.execute(
        select(StoredObject.bucket, func.coalesce(func.sum(StoredObject.size), 0))
        .where(StoredObject.is_deleted == False)
        .group_by(StoredObject.bucket)
    )
    sizes = {bucket: 0 for bucket in settings.STORAGE_BUCKETS}
    for bucket, total in result.all():
        sizes[bucket] = int(total)
    return sizes


def usage_breakdown(objects: Iterable[StoredObject]) -> dict:
    """Total bytes, bytes per upload category and bytes per upload day."""
    total = 0
    by_type: dict[str, int] = defaultdict(int)
    by_day: dict[str, int] = defaultdict(int)
    for obj in objects:
        size = obj.size or 0
        total += size
        by_type[obj.event_type or "other"] += size
        by_day[ensure_aware(obj.created).date().isoformat()] += size
    return {
        "total_bytes": total,
        "by_type": dict(by_type),
        "by_day": dict(sorted(by_day.items())),
    }


def is_large(obj: StoredObject) -> bool:
    return (obj.size or 0) > settings.CLEANUP_LARGE_FILE_BYTES


def is_stale(obj: StoredObject, now: datetime) -> bool:
    cutoff = now - timedelta(days=settings.CLEANUP_STALE_DAYS)
    return ensure_aware(obj.updated or obj.created) < cutoff


def cleanup_candidates(objects: Iterable[StoredObject], now: datetime) -> list[tuple[StoredObject, list[str]]]:
    """Objects worth removing: larger than the size limit or untouched for too long."""
    candidates = []
    for obj in objects:
        reasons = []
        if is_large(obj):
            reasons.append("large")
        if is_stale(obj, now):
            reasons.append("stale")
        if reasons:
            candidates.append((obj, reasons))
    return candidates
