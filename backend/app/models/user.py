"""
User model.
"""
from typing import Any, Optional
from datetime import datetime
from enum import Enum
from sqlalchemy import String, Boolean, Integer, DateTime, JSON, Enum as SQLEnum
from sqlalchemy.ext.mutable import MutableDict
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import BaseModel


class UserRole(str, Enum):
    """Role of a user account; drives the default navigation tabs."""
    ADMIN = "admin"
    USHER = "usher"
    PASTOR = "pastor"
    MEDIA = "media"
    FINANCE = "finance"
    USER = "user"


class ResetStatus(str, Enum):
    """Steps of the admin-approved password reset sequence."""
    WAITING_APPROVAL = "waiting_approval"
    APPROVED_BY_ADMIN = "approved_by_admin"
    READY_FOR_USER = "ready_for_user"
    WAIT_BEFORE_LOGIN = "wait_before_login"
    EXPIRED = "expired"


class User(BaseModel):
    """User account for authentication, role and tab access."""
    __tablename__ = "users"

    # Core auth fields
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    username: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    role: Mapped[UserRole] = mapped_column(
        SQLEnum(
            UserRole,
            name="userrole",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=UserRole.USER,
        nullable=False,
        index=True
    )

    # Profile
    branch: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    profile_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Account state
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    active_until: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reactivation_requested_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    # Login tracking
    login_attempts: Mapped[int] = mapped_column(Integer, default=0)
    last_failed_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Free-form metadata: allowed_tabs, reset_status, password_reset_otp,
    # password_reset_ready_at (ISO-8601 string)
    meta: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        MutableDict.as_mutable(JSON),
        default=dict,
        nullable=False
    )

    @property
    def allowed_tabs(self) -> Optional[list[str]]:
        tabs = (self.meta or {}).get("allowed_tabs")
        return tabs if isinstance(tabs, list) else None

    @property
    def reset_status(self) -> Optional[str]:
        return (self.meta or {}).get("reset_status")

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role.value})>"
