"""
Admin-approved password reset workflow.

Reset state lives in the user's metadata blob:

- ``reset_status``: one of ``ResetStatus`` or absent
- ``password_reset_otp``: code handed to the user by the admin; required
  again when the new password is chosen
- ``password_reset_failures``: wrong codes entered at the password step
- ``password_reset_ready_at``: ISO timestamp gating the next step

Sequence::

    waiting_approval -> approved_by_admin -> ready_for_user
        -> wait_before_login -> (cleared)

The first login after admin approval starts a one hour wait before the
user may choose a new password; after setting it the user waits another
hour before logging in.
"""
import logging
from datetime import datetime, timedelta
from typing import NoReturn, Optional

from fastapi import HTTPException, status

from app.core.config import settings
from app.core.security import generate_otp, get_password_hash, otp_matches
from app.core.time_gate import GateDecision, check_ready_at
from app.models.user import User, ResetStatus

logger = logging.getLogger(__name__)

RESET_KEYS = (
    "reset_status", "password_reset_otp", "password_reset_ready_at", "password_reset_failures",
)


def reset_delay() -> timedelta:
    return timedelta(hours=settings.PASSWORD_RESET_DELAY_HOURS)


def _set_reset_state(
    user: User,
    reset_status: Optional[ResetStatus],
    ready_at: Optional[datetime] = None,
    otp: Optional[str] = None,
    keep_otp: bool = False,
) -> None:
    """Replace the reset fields while keeping other metadata (allowed_tabs)."""
    meta = dict(user.meta or {})
    if keep_otp:
        otp = meta.get("password_reset_otp")
    for key in RESET_KEYS:
        meta.pop(key, None)
    if reset_status is not None:
        meta["reset_status"] = reset_status.value
    if ready_at is not None:
        meta["password_reset_ready_at"] = ready_at.isoformat()
    if otp is not None:
        meta["password_reset_otp"] = otp
    user.meta = meta


def ready_at(user: User) -> Optional[str]:
    return (user.meta or {}).get("password_reset_ready_at")


def start_reset(user: User) -> str:
    """Issue an OTP and wait for admin approval. Returns the OTP."""
    otp = generate_otp()
    _set_reset_state(user, ResetStatus.WAITING_APPROVAL, otp=otp)
    logger.info(f"Password reset started: user={user.id}")
    return otp


def verify_otp(user: User, otp: str) -> bool:
    meta = user.meta or {}
    return (
        meta.get("reset_status") == ResetStatus.WAITING_APPROVAL.value
        and otp_matches(meta.get("password_reset_otp"), otp)
    )


def approve_reset(user: User) -> None:
    if user.reset_status != ResetStatus.WAITING_APPROVAL.value:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="No password reset request is waiting for approval"
        )
    _set_reset_state(user, ResetStatus.APPROVED_BY_ADMIN, keep_otp=True)
    logger.info(f"Password reset approved: user={user.id}")


def expire_account(user: User) -> None:
    _set_reset_state(user, ResetStatus.EXPIRED)
    user.active_until = None


def clear_reset(user: User) -> None:
    _set_reset_state(user, None)


def password_step_gate(user: User, now: datetime) -> GateDecision:
    """
    Whether the user may choose a new password now.

    Allowed only in ``ready_for_user``; a missing ready time does not block.
    """
    if user.reset_status != ResetStatus.READY_FOR_USER.value:
        return GateDecision(False, timedelta(0), "Account is not at the set-password step.")
    if ready_at(user) is None:
        return GateDecision(True, timedelta(0), "You can now set a new password.")
    return check_ready_at(ready_at(user), now)


def reset_progress(user: User, now: datetime) -> GateDecision:
    """Whether the current reset step can be taken yet, for status polling."""
    reset_status = user.reset_status
    if reset_status == ResetStatus.READY_FOR_USER.value:
        return password_step_gate(user, now)
    if reset_status == ResetStatus.WAIT_BEFORE_LOGIN.value:
        if ready_at(user) is None:
            return GateDecision(True, timedelta(0), "You can log in with your new password.")
        return check_ready_at(ready_at(user), now)
    if reset_status == ResetStatus.WAITING_APPROVAL.value:
        return GateDecision(False, timedelta(0), "Waiting for administrator approval.")
    if reset_status == ResetStatus.APPROVED_BY_ADMIN.value:
        return GateDecision(True, timedelta(0), "Approved. Log in to start the waiting period.")
    if reset_status == ResetStatus.EXPIRED.value:
        return GateDecision(False, timedelta(0), "Account validity has expired. Contact an administrator.")
    return GateDecision(False, timedelta(0), "No password reset is in progress.")


def login_reset_gate(user: User, now: datetime) -> None:
    """
    Apply the reset sequence at login time.

    Raises HTTPException(403) while the account is mid-reset; returns when
    login may continue (clearing a finished ``wait_before_login`` state).
    """
    reset_status = user.reset_status

    if reset_status == ResetStatus.APPROVED_BY_ADMIN.value:
        _set_reset_state(user, ResetStatus.READY_FOR_USER, ready_at=now + reset_delay(), keep_otp=True)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": "reset_wait_started",
                "message": "Your reset request was approved. Log in again after one hour.",
                "ready_at": ready_at(user),
            }
        )

    if reset_status == ResetStatus.READY_FOR_USER.value:
        decision = password_step_gate(user, now)
        if not decision.permitted:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail={
                    "code": "reset_wait",
                    "message": "Wait for the waiting period before setting a new password.",
                    "remaining": decision.remaining_display,
                }
            )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": "password_reset_required",
                "message": "Enter your reset code and a new password to continue.",
            }
        )

    if reset_status == ResetStatus.WAIT_BEFORE_LOGIN.value:
        if ready_at(user) is not None:
            decision = check_ready_at(ready_at(user), now)
            if not decision.permitted:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail={
                        "code": "login_wait",
                        "message": "Password changed. Log in again after the waiting period.",
                        "remaining": decision.remaining_display,
                    }
                )
        clear_reset(user)


def reject_reset_code(user: User) -> NoReturn:
    """Count a wrong code; too many cancels the reset so the admin must start over."""
    meta = dict(user.meta or {})
    failures = int(meta.get("password_reset_failures") or 0) + 1
    if failures >= settings.RESET_CODE_MAX_ATTEMPTS:
        clear_reset(user)
        logger.warning(f"Password reset cancelled after {failures} wrong codes: user={user.id}")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": "reset_cancelled",
                "message": "Too many wrong codes. Ask the administrator to start a new reset.",
            }
        )
    meta["password_reset_failures"] = failures
    user.meta = meta
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"code": "invalid_code", "message": "The reset code is not valid."}
    )


def set_new_password(user: User, otp: str, password: str, now: datetime) -> None:
    """
    Store the new password and start the wait before the next login.

    The reset code issued to the admin must be presented again; knowing the
    account's email is not enough.
    """
    decision = password_step_gate(user, now)
    if not decision.permitted:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": "reset_not_ready",
                "message": decision.message,
                "remaining": decision.remaining_display,
            }
        )

    if not otp_matches((user.meta or {}).get("password_reset_otp"), otp):
        reject_reset_code(user)

    user.password_hash = get_password_hash(password)
    user.active_until = now + timedelta(days=settings.ACCOUNT_VALIDITY_DAYS)
    user.login_attempts = 0
    _set_reset_state(user, ResetStatus.WAIT_BEFORE_LOGIN, ready_at=now + reset_delay())
    logger.info(f"Password reset completed: user={user.id}")
