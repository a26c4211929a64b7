"""
Admin schemas: tab assignment, account state, password resets and record edits.
"""
from typing import Optional
from datetime import date, datetime
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field

from app.models.member import Gender, AgeGroup
from app.models.user import UserRole
from app.schemas.auth import UserResponse


class AllowedTabsUpdate(BaseModel):
    """Replace a user's explicit tab list; an empty list restores the role default."""
    allowed_tabs: list[str]


class TabToggle(BaseModel):
    tab: str


class UserAdminUpdate(BaseModel):
    role: Optional[UserRole] = None
    branch: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None
    active_until: Optional[datetime] = None


class UserTabsResponse(BaseModel):
    user: UserResponse
    tabs: list[str]


class UsersByRoleResponse(BaseModel):
    """Users grouped by role, each with their resolved tabs."""
    groups: dict[str, list[UserTabsResponse]]
    all_tabs: list[str]


class ReactivationCandidate(BaseModel):
    user: UserResponse
    requested_at: Optional[datetime] = None
    can_reactivate: bool
    remaining: str
    message: str


class ResetInitiatedResponse(BaseModel):
    user_id: str
    otp: str
    reset_status: str


# ---------------------------------------------------------------------------
# Record management: partial updates for registration and finance rows.
# Unknown keys are refused so identifiers, snapshots and workflow status
# cannot be rewritten through this path.
# ---------------------------------------------------------------------------

class RecordUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")


class MemberUpdate(RecordUpdate):
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    gender: Optional[Gender] = None
    age_group: Optional[AgeGroup] = None
    envelope_number: Optional[str] = Field(None, max_length=30)
    branch: Optional[str] = Field(None, max_length=100)


class AttendanceUpdate(RecordUpdate):
    attendance_date: Optional[date] = None
    attendance_type: Optional[str] = Field(None, min_length=1, max_length=50)
    service_type: Optional[str] = Field(None, min_length=1, max_length=100)


class SalvationUpdate(RecordUpdate):
    salvation_date: Optional[date] = None
    notes: Optional[str] = None


class TestimonyUpdate(RecordUpdate):
    testimony_date: Optional[date] = None
    witness_name: Optional[str] = Field(None, min_length=1, max_length=200)
    problem: Optional[str] = None
    testimony: Optional[str] = Field(None, min_length=1)


class TrainingUpdate(RecordUpdate):
    lesson: Optional[str] = Field(None, min_length=1, max_length=200)
    training_date: Optional[date] = None
    teacher: Optional[str] = Field(None, max_length=200)
    advice: Optional[str] = None
    ministry: Optional[str] = Field(None, max_length=200)


class ContributionUpdate(RecordUpdate):
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=30)
    contribution_type: Optional[str] = Field(None, min_length=1, max_length=100)
    pledged: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    paid: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    discount: Optional[Decimal] = Field(None, ge=0, decimal_places=2)


class BulkDeleteRequest(BaseModel):
    ids: list[str] = Field(..., min_length=1, max_length=500)


class BulkDeleteResponse(BaseModel):
    deleted: int
    missing: list[str]
