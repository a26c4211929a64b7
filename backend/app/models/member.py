"""
Member model - registered congregation members ("watu").
"""
from typing import Optional
from enum import Enum
from sqlalchemy import String, Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import BaseModel


class Gender(str, Enum):
    MALE = "me"
    FEMALE = "ke"


class AgeGroup(str, Enum):
    CHILD = "mtoto"
    YOUTH = "kijana"
    ADULT = "mzee"


class Member(BaseModel):
    """
    Congregation member.

    Each member gets a sequential member number (e.g. RHEMA007) that the
    attendance, salvation, testimony and contribution records refer to.
    """
    __tablename__ = "members"

    member_number: Mapped[str] = mapped_column(String(30), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    gender: Mapped[Gender] = mapped_column(
        SQLEnum(
            Gender,
            name="gender",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=Gender.MALE,
        nullable=False
    )
    age_group: Mapped[AgeGroup] = mapped_column(
        SQLEnum(
            AgeGroup,
            name="agegroup",
            create_constraint=True,
            values_callable=lambda x: [e.value for e in x]
        ),
        default=AgeGroup.ADULT,
        nullable=False
    )

    envelope_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    branch: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    registered_by_id: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)

    def __repr__(self) -> str:
        return f"<Member {self.member_number} {self.full_name}>"
