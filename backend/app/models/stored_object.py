"""
Stored object metadata for the bucket storage.
"""
from typing import Optional
from sqlalchemy import String, Integer, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import BaseModel


class StoredObject(BaseModel):
    """An object in a storage bucket; the bytes live under STORAGE_DIR/{bucket}/{name}."""
    __tablename__ = "stored_objects"
    __table_args__ = (
        UniqueConstraint("bucket", "name", name="uq_stored_objects_bucket_name"),
    )

    bucket: Mapped[str] = mapped_column(String(63), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    content_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    size: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Upload category used by the usage report (e.g. image, video, audio)
    event_type: Mapped[str] = mapped_column(String(50), default="other", nullable=False)

    is_archived: Mapped[bool] = mapped_column(Boolean, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False)

    uploaded_by_id: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)

    def __repr__(self) -> str:
        return f"<StoredObject {self.bucket}/{self.name}>"
