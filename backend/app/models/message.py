"""
Internal message model.
"""
from typing import Optional
from sqlalchemy import String, Text, Boolean, JSON, ForeignKey
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import Mapped, mapped_column
from app.models.base import BaseModel


class Message(BaseModel):
    """
    Message sent to one user, to every user of a branch, or to everyone.

    ``is_broadcast`` is set when neither a recipient nor a branch is given.
    """
    __tablename__ = "messages"

    body: Mapped[str] = mapped_column(Text, nullable=False)

    sender_id: Mapped[str] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    sender_name: Mapped[str] = mapped_column(String(200), nullable=False)

    recipient_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    recipient_branch: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, index=True)
    is_broadcast: Mapped[bool] = mapped_column(Boolean, default=False)

    reply_to_id: Mapped[Optional[str]] = mapped_column(
        String(15),
        ForeignKey("messages.id", ondelete="SET NULL"),
        nullable=True
    )

    read_by: Mapped[list[str]] = mapped_column(
        MutableList.as_mutable(JSON),
        default=list,
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<Message {self.id} from {self.sender_id}>"
