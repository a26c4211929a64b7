"""Role & tab permission dependencies.

Every protected route declares the tab (or role) it belongs to; the tab
list itself comes from ``app.core.access.resolve_tabs``.
"""
import logging
from typing import Callable

from fastapi import Depends, HTTPException, status

from app.core.access import resolve_tabs
from app.core.deps import get_current_user
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)


def user_tabs(user: User) -> list[str]:
    return resolve_tabs(user.role, user.allowed_tabs)


def is_admin(user: User | None) -> bool:
    if user is None:
        return False
    return user.role == UserRole.ADMIN


def require_tab(*tabs: str) -> Callable:
    """Dependency factory: the current user must see at least one of ``tabs``."""
    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        visible = user_tabs(current_user)
        if not any(tab in visible for tab in tabs):
            logger.warning(f"Tab access denied: user={current_user.id}, tabs={tabs}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have permission to access this section"
            )
        return current_user

    return dependency


def require_role(*roles: UserRole) -> Callable:
    """Dependency factory: the current user must hold one of ``roles``."""
    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            logger.warning(f"Role access denied: user={current_user.id}, role={current_user.role}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient role"
            )
        return current_user

    return dependency


require_admin = require_role(UserRole.ADMIN)
