"""
Authentication endpoints.

Login runs the account checks in ``app.services.accounts.authenticate``;
password reset steps that belong to the user (OTP check, new password) and
the reactivation request live here too. Admin-side steps are under
``/api/v1/admin``.
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.base import get_db
from app.core.access import can_access_tab, panels_for_role, ALL_TABS
from app.core.deps import get_current_user
from app.core.permissions import user_tabs
from app.core.security import create_access_token
from app.models.user import User
from app.schemas.auth import (
    UserLogin, UserResponse, UserUpdate, TokenResponse, SessionResponse,
    TabCheckResponse, ReactivationRequest, OtpVerifyRequest, OtpVerifyResponse,
    SetPasswordRequest, ResetStatusResponse,
)
from app.schemas.common import MessageResponse
from app.services import accounts, password_reset

logger = logging.getLogger(__name__)

router = APIRouter()


def session_response(user: User) -> SessionResponse:
    return SessionResponse(
        record=UserResponse.model_validate(user),
        tabs=user_tabs(user),
        panels=panels_for_role(user.role),
    )


def token_response(user: User) -> TokenResponse:
    session = session_response(user)
    return TokenResponse(
        token=create_access_token(user.id, role=user.role.value),
        record=session.record,
        tabs=session.tabs,
        panels=session.panels,
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """Authenticate with email and password."""
    user = await accounts.authenticate(
        db,
        credentials.email,
        credentials.password,
        datetime.now(timezone.utc),
    )
    await db.flush()
    return token_response(user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    current_user: User = Depends(get_current_user)
):
    """Issue a fresh token for the current user."""
    return token_response(current_user)


@router.get("/me", response_model=SessionResponse)
async def get_me(
    current_user: User = Depends(get_current_user)
):
    """Current user with resolved tabs and panels."""
    return session_response(current_user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    user_data: UserUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update own profile fields."""
    update_data = user_data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(current_user, field, value)

    await db.flush()
    return UserResponse.model_validate(current_user)


@router.get("/tabs/{tab}", response_model=TabCheckResponse)
async def check_tab(
    tab: str,
    current_user: User = Depends(get_current_user)
):
    """Navigation gate: may the current user open ``tab``?"""
    if tab not in ALL_TABS:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown tab '{tab}'"
        )
    return TabCheckResponse(
        tab=tab,
        allowed=can_access_tab(current_user.role, current_user.allowed_tabs, tab),
    )


@router.post("/request-reactivation", response_model=MessageResponse)
async def request_reactivation(
    data: ReactivationRequest,
    db: AsyncSession = Depends(get_db)
):
    """Record a reactivation request for a locked account."""
    user = await accounts.get_user_by_email(db, data.email)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Account not found"
        )
    if user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Account is already active"
        )

    user.reactivation_requested_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info(f"Reactivation requested: user={user.id}")
    return MessageResponse(message="Reactivation requested. An administrator will review it.")


@router.post("/verify-otp", response_model=OtpVerifyResponse)
async def verify_otp(
    data: OtpVerifyRequest,
    db: AsyncSession = Depends(get_db)
):
    """Check the reset code the administrator handed out."""
    user = await accounts.get_user_by_email(db, data.email)
    if user is None or not password_reset.verify_otp(user, data.otp.strip()):
        return OtpVerifyResponse(valid=False, message="Invalid code or no reset request is waiting.")
    return OtpVerifyResponse(valid=True, message="Code verified. Wait for administrator approval.")


@router.post("/set-password", response_model=MessageResponse)
async def set_password(
    data: SetPasswordRequest,
    db: AsyncSession = Depends(get_db)
):
    """Choose a new password once the reset wait is over."""
    if data.password != data.passwordConfirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"passwordConfirm": {"message": "Passwords do not match"}}
        )

    user = await accounts.get_user_by_email(db, data.email)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Account not found"
        )

    try:
        password_reset.set_new_password(user, data.otp.strip(), data.password, datetime.now(timezone.utc))
    except HTTPException:
        # Keep the wrong-code counter
        await db.commit()
        raise
    await db.flush()
    return MessageResponse(message="Password changed. You can log in after one hour.")


@router.get("/reset-status", response_model=ResetStatusResponse)
async def reset_status(
    email: str,
    db: AsyncSession = Depends(get_db)
):
    """Where an account is in the reset sequence, with the time left on the current wait."""
    user = await accounts.get_user_by_email(db, email)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Account not found"
        )

    decision = password_reset.reset_progress(user, datetime.now(timezone.utc))
    return ResetStatusResponse(
        email=user.email,
        reset_status=user.reset_status,
        ready_at=password_reset.ready_at(user),
        can_proceed=decision.permitted,
        remaining=None if decision.permitted else decision.remaining_display,
        message=decision.message,
    )
