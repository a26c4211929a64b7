"""
SQLAlchemy models for the Rhema church management API.

Modules:
- Accounts: Users (roles, allowed tabs, password-reset state)
- Registration: Members, attendance, salvations, testimonies, trainings
- Finance: Budgets, contributions
- Pastoral: Service summaries, announcements, public notices
- Messaging: Messages
- Storage: Stored objects
"""
# Accounts
from app.models.user import User, UserRole, ResetStatus

# Registration module
from app.models.member import Member, Gender, AgeGroup
from app.models.attendance import Attendance
from app.models.salvation import Salvation
from app.models.testimony import Testimony
from app.models.training import Training, TrainingStatus

# Finance module
from app.models.budget import Budget, BudgetStatus, BUDGET_TRANSITIONS
from app.models.contribution import Contribution

# Pastoral module
from app.models.pastor_summary import PastorSummary, ReviewStatus
from app.models.pastor_announcement import PastorAnnouncement
from app.models.notice import Notice

# Messaging
from app.models.message import Message

# Storage
from app.models.stored_object import StoredObject

__all__ = [
    # Accounts
    "User",
    "UserRole",
    "ResetStatus",
    # Registration
    "Member",
    "Gender",
    "AgeGroup",
    "Attendance",
    "Salvation",
    "Testimony",
    "Training",
    "TrainingStatus",
    # Finance
    "Budget",
    "BudgetStatus",
    "BUDGET_TRANSITIONS",
    "Contribution",
    # Pastoral
    "PastorSummary",
    "ReviewStatus",
    "PastorAnnouncement",
    "Notice",
    # Messaging
    "Message",
    # Storage
    "StoredObject",
]
