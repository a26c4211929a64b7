"""
Testimony model ("ushuhuda").
"""
from typing import Optional
from datetime import date
from sqlalchemy import String, Text, Date, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import BaseModel


class Testimony(BaseModel):
    __tablename__ = "testimonies"

    member_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("members.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    member_number: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    testimony_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    witness_name: Mapped[str] = mapped_column(String(200), nullable=False)
    problem: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    testimony: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<Testimony {self.witness_name} {self.testimony_date}>"
