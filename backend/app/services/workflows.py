"""
Status transitions for reviewed records (budgets, summaries, announcements).

A transition is one guarded UPDATE: the row changes status only if it is
still in an allowed source status. Zero matched rows means the record was
already moved (or does not exist) and nothing is written, so a record is
always in exactly one queue.
"""
import logging
from typing import Any, Iterable

from fastapi import HTTPException, status
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


async def transition_status(
    db: AsyncSession,
    model: Any,
    record_id: str,
    from_statuses: Iterable[Any],
    to_status: Any,
    **values: Any,
) -> Any:
    """
    Move ``record_id`` to ``to_status`` if it is in one of ``from_statuses``.

    Extra column values are written in the same statement. Returns the
    refreshed row. Raises 404 for a missing row and 409 when the row is
    in another status.
    """
    sources = list(from_statuses)
    result = await db.execute(
        update(model)
        .where(model.id == record_id, model.status.in_(sources))
        .values(status=to_status, **values)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        existing = (await db.execute(select(model).where(model.id == record_id))).scalar_one_or_none()
        if existing is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"{model.__name__} not found"
            )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "code": "stale_status",
                "message": f"{model.__name__} is {existing.status.value}, cannot move to {to_status.value}",
            }
        )

    await db.flush()
    row = (
        await db.execute(
            select(model)
            .where(model.id == record_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one()
    logger.info(f"{model.__name__} {record_id} moved to {to_status.value}")
    return row
