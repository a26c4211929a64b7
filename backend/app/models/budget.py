"""
Budget model.

A budget moves between the pending, approved and declined queues by a
single status update; it is never copied between tables.
"""
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum
from sqlalchemy import String, Text, Numeric, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import BaseModel


class BudgetStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"


# Allowed transitions: target status -> statuses it may be reached from
BUDGET_TRANSITIONS: dict[BudgetStatus, tuple[BudgetStatus, ...]] = {
    BudgetStatus.APPROVED: (BudgetStatus.PENDING,),
    BudgetStatus.DECLINED: (BudgetStatus.PENDING,),
    BudgetStatus.PENDING: (BudgetStatus.DECLINED,),
}


class Budget(BaseModel):
    __tablename__ = "budgets"

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="TZS", nullable=False)
    department: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    requested_by: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    requested_by_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    status: Mapped[BudgetStatus] = mapped_column(
        SQLEnum(
            BudgetStatus,
            name="budgetstatus",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=BudgetStatus.PENDING,
        nullable=False,
        index=True
    )

    decided_by: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    decided_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    declined_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<Budget {self.title} ({self.status.value})>"
