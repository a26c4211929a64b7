"""
Authentication and user schemas.
"""
from typing import Optional
from pydantic import BaseModel, EmailStr, Field
from datetime import datetime

from app.models.user import UserRole
from app.schemas.common import BaseResponse


class UserCreate(BaseModel):
    """Admin-side user registration request."""
    email: EmailStr
    username: Optional[str] = Field(None, max_length=100)
    full_name: str = Field(..., min_length=1, max_length=200)
    password: str = Field(..., min_length=8)
    passwordConfirm: str = Field(..., min_length=8)
    role: UserRole = UserRole.USER
    branch: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    profile_url: Optional[str] = Field(None, max_length=500)
    allowed_tabs: list[str] = Field(default_factory=list)


class UserLogin(BaseModel):
    """Login request."""
    email: EmailStr
    password: str = Field(..., min_length=1)


class UserResponse(BaseResponse):
    """User record as returned to clients (never includes secrets)."""
    email: str
    username: Optional[str] = None
    full_name: str
    role: UserRole
    branch: Optional[str] = None
    phone: Optional[str] = None
    profile_url: Optional[str] = None
    is_active: bool = True
    active_until: Optional[datetime] = None
    last_login: Optional[datetime] = None
    reactivation_requested_at: Optional[datetime] = None
    login_attempts: int = 0
    reset_status: Optional[str] = None
    allowed_tabs: Optional[list[str]] = None


class SessionResponse(BaseModel):
    """Current user plus what they may navigate to."""
    record: UserResponse
    tabs: list[str]
    panels: list[str]


class TokenResponse(SessionResponse):
    """Auth token response."""
    token: str


class TabCheckResponse(BaseModel):
    tab: str
    allowed: bool


class UserUpdate(BaseModel):
    """Own profile update request."""
    full_name: Optional[str] = Field(None, min_length=1, max_length=200)
    username: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=30)
    profile_url: Optional[str] = Field(None, max_length=500)


class ReactivationRequest(BaseModel):
    email: EmailStr


class OtpVerifyRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., min_length=4, max_length=10)


class OtpVerifyResponse(BaseModel):
    valid: bool
    message: str


class SetPasswordRequest(BaseModel):
    """New password after an approved reset, proven by the reset code."""
    email: EmailStr
    otp: str = Field(..., min_length=4, max_length=10)
    password: str = Field(..., min_length=8)
    passwordConfirm: str = Field(..., min_length=8)


class ResetStatusResponse(BaseModel):
    """Where a user is in the password reset sequence."""
    email: str
    reset_status: Optional[str] = None
    ready_at: Optional[str] = None
    can_proceed: bool
    remaining: Optional[str] = None
    message: str
