"""
Pastor announcement model ("matangazo") sent to media for publishing.
"""
from typing import Optional
from datetime import date
from sqlalchemy import String, Text, Date, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import BaseModel
from app.models.pastor_summary import ReviewStatus


class PastorAnnouncement(BaseModel):
    __tablename__ = "pastor_announcements"

    receiver_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    receiver_role: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    media_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    scheduled_for: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    status: Mapped[ReviewStatus] = mapped_column(
        SQLEnum(
            ReviewStatus,
            name="reviewstatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=ReviewStatus.PENDING,
        nullable=False,
        index=True
    )

    created_by_id: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)

    def __repr__(self) -> str:
        return f"<PastorAnnouncement {self.title} ({self.status.value})>"
