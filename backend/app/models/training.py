"""
Discipleship training model ("mafunzo").
"""
from typing import Optional
from datetime import date
from enum import Enum
from sqlalchemy import String, Text, Date, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import BaseModel


class TrainingStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"


class Training(BaseModel):
    """A lesson taught to a saved member; a lesson is taught at most once a day."""
    __tablename__ = "trainings"
    __table_args__ = (
        UniqueConstraint("member_id", "lesson", "training_date", name="uq_trainings_member_lesson_date"),
    )

    member_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    lesson: Mapped[str] = mapped_column(String(200), nullable=False)
    training_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    teacher: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    advice: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ministry: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    status: Mapped[TrainingStatus] = mapped_column(
        SQLEnum(
            TrainingStatus,
            name="trainingstatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=TrainingStatus.PENDING,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<Training {self.lesson} {self.training_date}>"
