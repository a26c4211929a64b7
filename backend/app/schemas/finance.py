"""
Finance schemas: budgets and contributions.
"""
from typing import Optional
from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field

from app.models.budget import BudgetStatus
from app.schemas.common import BaseResponse


class BudgetCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    amount: Decimal = Field(..., gt=0, decimal_places=2)
    currency: Optional[str] = Field(None, max_length=3)
    department: Optional[str] = Field(None, max_length=100)
    note: Optional[str] = None
    requested_by: Optional[str] = Field(None, max_length=200)


class BudgetDecline(BaseModel):
    reason: Optional[str] = None


class BudgetResponse(BaseResponse):
    title: str
    description: Optional[str] = None
    amount: Decimal
    currency: str
    department: Optional[str] = None
    note: Optional[str] = None
    requested_by: Optional[str] = None
    requested_by_id: Optional[str] = None
    status: BudgetStatus
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None
    declined_reason: Optional[str] = None


class BudgetQueuesResponse(BaseModel):
    """Counts per queue."""
    pending: int
    approved: int
    declined: int


class ContributionCreate(BaseModel):
    member_number: Optional[str] = Field(None, max_length=30)
    full_name: Optional[str] = Field(None, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    contribution_type: str = Field(..., min_length=1, max_length=100)
    pledged: Decimal = Field(..., gt=0, decimal_places=2)
    paid: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    discount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)


class ContributionPayment(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2)


class ContributionResponse(BaseResponse):
    member_number: Optional[str] = None
    full_name: str
    phone: Optional[str] = None
    contribution_type: str
    pledged: Decimal
    paid: Decimal
    discount: Decimal
    remaining: Decimal
