"""
Internal messaging endpoints.

A message goes to one user, to every user of a branch, or to everyone
(broadcast) when neither is given. Clients poll the inbox.
"""
import logging
from math import ceil

from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from app.db.base import get_db
from app.core.permissions import require_tab, is_admin
from app.models.user import User
from app.models.message import Message
from app.schemas.common import PaginatedResponse
from app.schemas.message import MessageCreate, MessageRecordResponse

logger = logging.getLogger(__name__)

router = APIRouter()

messages_access = require_tab("messages")


def message_to_response(message: Message, user: User) -> MessageRecordResponse:
    read_by = list(message.read_by or [])
    return MessageRecordResponse(
        id=message.id,
        body=message.body,
        sender_id=message.sender_id,
        sender_name=message.sender_name,
        recipient_id=message.recipient_id,
        recipient_branch=message.recipient_branch,
        is_broadcast=message.is_broadcast,
        reply_to_id=message.reply_to_id,
        read_by=read_by,
        is_read=user.id in read_by or message.sender_id == user.id,
        created=message.created,
        updated=message.updated,
    )


def addressed_to(user: User):
    """Filter for messages the user should see in the inbox."""
    conditions = [Message.recipient_id == user.id, Message.is_broadcast == True]
    if user.branch:
        conditions.append(Message.recipient_branch == user.branch)
    return or_(*conditions)


async def get_message_or_404(db: AsyncSession, message_id: str) -> Message:
    result = await db.execute(select(Message).where(Message.id == message_id))
    message = result.scalar_one_or_none()
    if message is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Message not found"
        )
    return message


async def paginate(db: AsyncSession, query, page: int, perPage: int, user: User) -> PaginatedResponse[MessageRecordResponse]:
    count_query = select(func.count()).select_from(query.subquery())
    total_items = (await db.execute(count_query)).scalar() or 0

    result = await db.execute(
        query.order_by(Message.created.desc()).offset((page - 1) * perPage).limit(perPage)
    )
    return PaginatedResponse(
        page=page,
        perPage=perPage,
        totalItems=total_items,
        totalPages=ceil(total_items / perPage) if total_items > 0 else 1,
        items=[message_to_response(m, user) for m in result.scalars().all()]
    )


@router.post("", response_model=MessageRecordResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    data: MessageCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(messages_access)
):
    if not data.body.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"body": {"message": "Message cannot be empty"}}
        )

    if data.recipient_id:
        recipient = await db.execute(select(User.id).where(User.id == data.recipient_id))
        if recipient.scalar_one_or_none() is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Recipient not found"
            )
    if data.reply_to_id:
        await get_message_or_404(db, data.reply_to_id)

    message = Message(
        body=data.body.strip(),
        sender_id=current_user.id,
        sender_name=current_user.full_name,
        recipient_id=data.recipient_id,
        recipient_branch=None if data.recipient_id else data.recipient_branch,
        is_broadcast=not data.recipient_id and not data.recipient_branch,
        reply_to_id=data.reply_to_id,
        read_by=[],
    )
    db.add(message)
    await db.flush()
    return message_to_response(message, current_user)


@router.get("/inbox", response_model=PaginatedResponse[MessageRecordResponse])
async def inbox(
    page: int = Query(1, ge=1),
    perPage: int = Query(30, ge=1, le=500),
    unread: bool = False,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(messages_access)
):
    """Messages addressed to the user, their branch or everyone."""
    query = select(Message).where(addressed_to(current_user), Message.sender_id != current_user.id)
    if unread:
        rows = (await db.execute(query)).scalars().all()
        unread_ids = [m.id for m in rows if current_user.id not in (m.read_by or [])]
        query = select(Message).where(Message.id.in_(unread_ids))
    return await paginate(db, query, page, perPage, current_user)


@router.get("/sent", response_model=PaginatedResponse[MessageRecordResponse])
async def sent(
    page: int = Query(1, ge=1),
    perPage: int = Query(30, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(messages_access)
):
    query = select(Message).where(Message.sender_id == current_user.id)
    return await paginate(db, query, page, perPage, current_user)


@router.post("/{message_id}/read", response_model=MessageRecordResponse)
async def mark_read(
    message_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(messages_access)
):
    message = await get_message_or_404(db, message_id)
    visible = await db.execute(
        select(Message.id).where(Message.id == message_id, addressed_to(current_user))
    )
    if visible.scalar_one_or_none() is None and message.sender_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This message is not addressed to you"
        )

    if current_user.id not in message.read_by:
        message.read_by.append(current_user.id)
        await db.flush()
    return message_to_response(message, current_user)


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    message_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(messages_access)
):
    """Only the sender or an admin may delete a message."""
    message = await get_message_or_404(db, message_id)
    if message.sender_id != current_user.id and not is_admin(current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the sender or an administrator can delete this message"
        )
    await db.delete(message)
    await db.flush()
    logger.info(f"Message deleted: message={message_id}, by={current_user.id}")
