"""
Role/tab access resolution.

Pure functions mapping a user's role and optional explicit allow-list to
the navigation tabs they may see and open. No database access happens
here; ``app.core.permissions`` applies the result at the request boundary.
"""
from typing import Iterable, Optional, Union

from app.models.user import UserRole

# Every tab known to the application, in display order.
ALL_TABS: tuple[str, ...] = (
    "home", "usajili", "mafunzo", "reports", "messages", "profile",
    "muumini", "mahadhurio", "wokovu", "ushuhuda",
    "dashboard", "bajeti", "summary", "approval", "approved", "rejected", "matangazo",
    "media", "storage", "usage",
    "finance", "michango", "reports_finance",
)

ROLE_DEFAULT_TABS: dict[UserRole, tuple[str, ...]] = {
    UserRole.ADMIN: ALL_TABS,
    UserRole.PASTOR: (
        "dashboard", "usajili", "messages", "reports",
        "summary", "approval", "matangazo", "profile",
    ),
    UserRole.USHER: ("home", "usajili", "reports", "profile"),
    UserRole.FINANCE: ("finance", "profile", "messages"),
    UserRole.MEDIA: ("media", "profile", "messages"),
    UserRole.USER: ("dashboard", "messages", "profile"),
}

# Panels reachable from the home dashboard.
ALL_PANELS: tuple[str, ...] = ("admin", "usher", "pastor", "media", "finance")


def _coerce_role(role: Union[UserRole, str, None]) -> Optional[UserRole]:
    if role is None:
        return None
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def resolve_tabs(
    role: Union[UserRole, str, None],
    allowed_tabs: Optional[Iterable[str]] = None,
) -> list[str]:
    """
    Return the tabs a user may see.

    Admins always get every tab. For other roles a non-empty explicit
    allow-list replaces the role default entirely; unknown tab names in it
    are ignored. Unknown roles get no tabs.
    """
    resolved_role = _coerce_role(role)
    if resolved_role is None:
        return []
    if resolved_role == UserRole.ADMIN:
        return list(ALL_TABS)

    explicit = list(allowed_tabs or [])
    if explicit:
        known = set(ALL_TABS)
        tabs: list[str] = []
        for tab in explicit:
            if tab in known and tab not in tabs:
                tabs.append(tab)
        return tabs

    return list(ROLE_DEFAULT_TABS.get(resolved_role, ()))


def can_access_tab(
    role: Union[UserRole, str, None],
    allowed_tabs: Optional[Iterable[str]],
    tab: str,
) -> bool:
    return tab in resolve_tabs(role, allowed_tabs)


def panels_for_role(role: Union[UserRole, str, None]) -> list[str]:
    """Panels the home dashboard lets this role enter."""
    resolved_role = _coerce_role(role)
    if resolved_role is None:
        return []
    if resolved_role == UserRole.ADMIN:
        return list(ALL_PANELS)
    if resolved_role.value in ALL_PANELS:
        return [resolved_role.value]
    return []


def normalize_tab_list(tabs: Iterable[str]) -> list[str]:
    """Validate an allow-list before it is stored. Raises ValueError on unknown tabs."""
    known = set(ALL_TABS)
    result: list[str] = []
    for tab in tabs:
        if tab not in known:
            raise ValueError(f"Unknown tab: {tab}")
        if tab not in result:
            result.append(tab)
    return result
