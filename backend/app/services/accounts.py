"""
Account service: login checks, throttling and reactivation.

Checks that change the account (failed attempts, expiry, reset steps) are
committed before the denial is raised so they survive the request's
rollback.
"""
import logging
from datetime import datetime, timedelta
from typing import NoReturn

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.config import settings
from app.core.security import verify_password
from app.core.time_gate import GateDecision, check_delay, ensure_aware
from app.models.user import User
from app.services import password_reset

logger = logging.getLogger(__name__)

NO_REACTIVATION_REQUEST = "This account has not requested reactivation."


async def _deny(db: AsyncSession, exc: HTTPException) -> NoReturn:
    await db.commit()
    raise exc


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


def is_locked_out(user: User, now: datetime) -> bool:
    """Too many recent failures: blocked until the lockout window passes."""
    if (user.login_attempts or 0) < settings.LOGIN_LOCKOUT_ATTEMPTS:
        return False
    if user.last_failed_login is None:
        return False
    window = timedelta(minutes=settings.LOGIN_LOCKOUT_MINUTES)
    return now - ensure_aware(user.last_failed_login) < window


def register_failed_login(user: User, now: datetime) -> None:
    user.login_attempts = (user.login_attempts or 0) + 1
    user.last_failed_login = now
    if user.login_attempts >= settings.LOGIN_DEACTIVATE_ATTEMPTS:
        user.is_active = False
        logger.warning(f"Account deactivated after {user.login_attempts} failed logins: user={user.id}")


async def authenticate(db: AsyncSession, email: str, password: str, now: datetime) -> User:
    """Run every login check in order and return the user on success."""
    user = await get_user_by_email(db, email)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "not_found", "message": "Account not found."}
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "inactive", "message": "Your account is locked. Please contact the administrator."}
        )

    if user.active_until is not None and now > ensure_aware(user.active_until):
        password_reset.expire_account(user)
        logger.info(f"Account validity expired: user={user.id}")
        await _deny(db, HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"code": "expired", "message": "Your account has expired. Please contact the administrator."}
        ))

    try:
        password_reset.login_reset_gate(user, now)
    except HTTPException as exc:
        await _deny(db, exc)

    if is_locked_out(user, now):
        await _deny(db, HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "code": "locked_out",
                "message": f"Locked for {settings.LOGIN_LOCKOUT_MINUTES} minutes after "
                           f"{settings.LOGIN_LOCKOUT_ATTEMPTS} failed login attempts.",
            }
        ))

    if not verify_password(password, user.password_hash):
        register_failed_login(user, now)
        await _deny(db, HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "invalid_credentials", "message": "Invalid email or password."}
        ))

    user.login_attempts = 0
    user.last_login = now
    logger.info(f"Login succeeded: user={user.id}")
    return user


def reactivation_gate(user: User, now: datetime) -> GateDecision:
    return check_delay(
        user.reactivation_requested_at,
        timedelta(hours=settings.REACTIVATION_DELAY_HOURS),
        now,
        missing_message=NO_REACTIVATION_REQUEST,
    )


def reactivate(user: User, now: datetime) -> None:
    """Re-enable an account once the reactivation delay has passed."""
    if user.is_active:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Account is already active"
        )

    decision = reactivation_gate(user, now)
    if not decision.permitted:
        logger.warning(f"Reactivation refused: user={user.id}, remaining={decision.remaining_display}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "code": "reactivation_wait" if user.reactivation_requested_at else "no_request",
                "message": decision.message,
                "remaining": decision.remaining_display,
            }
        )

    user.is_active = True
    user.login_attempts = 0
    user.reactivation_requested_at = None
    logger.info(f"Account reactivated: user={user.id}")
