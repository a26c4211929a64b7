"""
Contribution model ("michango") - pledges by members and what is paid so far.
"""
from typing import Optional
from decimal import Decimal
from sqlalchemy import String, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import BaseModel


def remaining_amount(pledged: Decimal, paid: Decimal, discount: Decimal) -> Decimal:
    """Outstanding balance of a pledge; never negative."""
    return max(Decimal("0"), pledged - (paid + discount))


class Contribution(BaseModel):
    __tablename__ = "contributions"

    member_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True, index=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    contribution_type: Mapped[str] = mapped_column(String(100), nullable=False, index=True)

    pledged: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False)
    paid: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), default=Decimal("0"), nullable=False)
    discount: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), default=Decimal("0"), nullable=False)
    remaining: Mapped[Decimal] = mapped_column(Numeric(precision=15, scale=2), nullable=False, index=True)

    recorded_by_id: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)

    def __repr__(self) -> str:
        return f"<Contribution {self.full_name} {self.contribution_type}>"
