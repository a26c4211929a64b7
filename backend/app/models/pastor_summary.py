"""
Pastor service summary model ("muhtasari").
"""
from typing import Optional
from datetime import date
from enum import Enum
from sqlalchemy import String, Text, Date, JSON, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import BaseModel


class ReviewStatus(str, Enum):
    """Review state shared by summaries and announcements."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PastorSummary(BaseModel):
    __tablename__ = "pastor_summaries"

    branch: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    pastor_name: Mapped[str] = mapped_column(String(200), nullable=False)
    service_date: Mapped[date] = mapped_column(Date, nullable=False)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    events: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    services: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    advice: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

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
    approved_by: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    rejected_by: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    submitted_by_id: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)

    def __repr__(self) -> str:
        return f"<PastorSummary {self.branch} {self.service_date} ({self.status.value})>"
