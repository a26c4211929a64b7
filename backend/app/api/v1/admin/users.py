"""
User administration - admin role only.

Provides endpoints to:
- register users and list them grouped by role with their resolved tabs
- replace a user's explicit tab list or toggle a single tab
- change role, branch, active flag and validity date; delete users
- review reactivation requests and reactivate (48 hour gate)
- initiate and approve password resets
"""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.db.base import get_db
from app.core.access import ALL_TABS, normalize_tab_list, resolve_tabs
from app.core.permissions import require_admin, user_tabs
from app.core.security import get_password_hash
from app.models.user import User, UserRole
from app.schemas.auth import UserCreate, UserResponse
from app.schemas.admin import (
    AllowedTabsUpdate, TabToggle, UserAdminUpdate, UserTabsResponse,
    UsersByRoleResponse, ReactivationCandidate, ResetInitiatedResponse,
)
from app.schemas.common import MessageResponse
from app.services import accounts, password_reset

logger = logging.getLogger(__name__)

router = APIRouter()


async def get_user_or_404(db: AsyncSession, user_id: str) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )
    return user


def user_tabs_response(user: User) -> UserTabsResponse:
    return UserTabsResponse(user=UserResponse.model_validate(user), tabs=user_tabs(user))


def store_allowed_tabs(user: User, tabs: list[str]) -> None:
    """Validate and store an explicit tab list; empty removes the override."""
    try:
        cleaned = normalize_tab_list(tabs)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"allowed_tabs": {"message": str(e)}}
        )
    meta = dict(user.meta or {})
    if cleaned:
        meta["allowed_tabs"] = cleaned
    else:
        meta.pop("allowed_tabs", None)
    user.meta = meta


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register_user(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Register a new user account."""
    if user_data.password != user_data.passwordConfirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"passwordConfirm": {"message": "Passwords do not match"}}
        )

    email = user_data.email.strip().lower()
    if await accounts.get_user_by_email(db, email) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"email": {"message": "Email already registered"}}
        )

    user = User(
        email=email,
        username=user_data.username,
        full_name=user_data.full_name,
        password_hash=get_password_hash(user_data.password),
        role=user_data.role,
        branch=user_data.branch,
        phone=user_data.phone,
        profile_url=user_data.profile_url,
        is_active=True,
        login_attempts=0,
        meta={},
    )
    store_allowed_tabs(user, user_data.allowed_tabs)

    db.add(user)
    await db.flush()
    logger.info(f"User registered: user={user.id}, role={user.role.value}, by={current_user.id}")
    return UserResponse.model_validate(user)


@router.get("", response_model=UsersByRoleResponse)
async def list_users_by_role(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """All users grouped by role, each with the tabs they resolve to."""
    result = await db.execute(select(User).order_by(User.full_name))
    users = result.scalars().all()

    groups: dict[str, list[UserTabsResponse]] = {role.value: [] for role in UserRole}
    for user in users:
        groups[user.role.value].append(user_tabs_response(user))

    return UsersByRoleResponse(groups=groups, all_tabs=list(ALL_TABS))


@router.get("/inactive", response_model=list[ReactivationCandidate])
async def list_inactive_users(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Locked accounts with their reactivation countdown."""
    result = await db.execute(
        select(User)
        .where(User.is_active == False)
        .order_by(User.reactivation_requested_at.desc())
    )
    now = datetime.now(timezone.utc)

    candidates = []
    for user in result.scalars().all():
        decision = accounts.reactivation_gate(user, now)
        candidates.append(ReactivationCandidate(
            user=UserResponse.model_validate(user),
            requested_at=user.reactivation_requested_at,
            can_reactivate=decision.permitted,
            remaining=decision.remaining_display,
            message=decision.message,
        ))
    return candidates


@router.get("/{user_id}", response_model=UserTabsResponse)
async def get_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    return user_tabs_response(await get_user_or_404(db, user_id))


@router.put("/{user_id}/tabs", response_model=UserTabsResponse)
async def update_allowed_tabs(
    user_id: str,
    data: AllowedTabsUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Replace the user's explicit tab list."""
    user = await get_user_or_404(db, user_id)
    store_allowed_tabs(user, data.allowed_tabs)
    await db.flush()
    logger.info(f"Allowed tabs updated: user={user.id}, tabs={user.allowed_tabs}")
    return user_tabs_response(user)


@router.post("/{user_id}/tabs/toggle", response_model=UserTabsResponse)
async def toggle_tab(
    user_id: str,
    data: TabToggle,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """
    Flip one tab on or off.

    The toggle starts from what the user currently sees, so the first
    toggle turns the role default into an explicit list.
    """
    user = await get_user_or_404(db, user_id)
    current = resolve_tabs(user.role, user.allowed_tabs)
    if data.tab in current:
        current.remove(data.tab)
    else:
        current.append(data.tab)
    store_allowed_tabs(user, current)
    await db.flush()
    return user_tabs_response(user)


@router.patch("/{user_id}", response_model=UserTabsResponse)
async def update_user(
    user_id: str,
    data: UserAdminUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Change role, branch, active flag or validity date."""
    user = await get_user_or_404(db, user_id)

    update_data = data.model_dump(exclude_unset=True)
    for field, value in update_data.items():
        setattr(user, field, value)
    if update_data.get("is_active"):
        user.login_attempts = 0

    await db.flush()
    logger.info(f"User updated: user={user.id}, fields={sorted(update_data)}")
    return user_tabs_response(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    user = await get_user_or_404(db, user_id)
    if user.id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account"
        )

    await db.delete(user)
    await db.flush()
    logger.info(f"User deleted: user={user_id}, by={current_user.id}")


@router.post("/{user_id}/reactivate", response_model=UserResponse)
async def reactivate_user(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Reactivate a locked account 48 hours after its request."""
    user = await get_user_or_404(db, user_id)
    accounts.reactivate(user, datetime.now(timezone.utc))
    await db.flush()
    return UserResponse.model_validate(user)


@router.post("/{user_id}/password-reset", response_model=ResetInitiatedResponse)
async def initiate_password_reset(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Start a reset; the code is returned for the admin to pass on."""
    user = await get_user_or_404(db, user_id)
    otp = password_reset.start_reset(user)
    await db.flush()
    return ResetInitiatedResponse(user_id=user.id, otp=otp, reset_status=user.reset_status)


@router.post("/{user_id}/password-reset/approve", response_model=MessageResponse)
async def approve_password_reset(
    user_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    user = await get_user_or_404(db, user_id)
    password_reset.approve_reset(user)
    await db.flush()
    return MessageResponse(message="Reset approved. The user can log in after one hour to set a new password.")
