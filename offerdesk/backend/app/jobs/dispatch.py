from __future__ import annotations

from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..integrations.base import NotificationSink
from ..integrations.services.outbox import dispatch_pending_events
from ..models import Integration, OutboxEvent, OutboxStatus


async def run_dispatch(
    session: AsyncSession,
    batch_size: int | None = None,
    sinks: Sequence[NotificationSink] | None = None,
) -> dict[str, Any]:
    return await dispatch_pending_events(session=session, batch_size=batch_size, sinks=sinks)


async def has_dispatch_work(session: AsyncSession, now: datetime) -> bool:
    """
    True when at least one integration is enabled and an outbox event is due.
    """
    enabled = (
        await session.execute(select(func.count()).select_from(Integration).where(Integration.enabled == True))  # noqa: E712
    ).scalar_one()
    if int(enabled) == 0:
        return False

    due = (
        await session.execute(
            select(func.count())
            .select_from(OutboxEvent)
            .where(OutboxEvent.status == OutboxStatus.pending)
            .where(or_(OutboxEvent.next_attempt_at.is_(None), OutboxEvent.next_attempt_at <= now))
        )
    ).scalar_one()
    return int(due) > 0
