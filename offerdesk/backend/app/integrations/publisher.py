# app/integrations/publisher.py
from __future__ import annotations

import logging

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..models import OutboxEvent
from ..service_layer.unit_of_work import SqlAlchemyUnitOfWork
from .base import Notification, NotificationPublisher
from .services.outbox import enqueue_notification

log = logging.getLogger(__name__)


class OutboxWriter:
    """
    Writes a notification into the outbox in its own unit of work.
    Never raises: a failed notification is logged and dropped so it can't
    change the outcome of the operation that triggered it.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        self._session_maker = session_maker

    async def write(self, notification: Notification) -> OutboxEvent | None:
        try:
            async with SqlAlchemyUnitOfWork(self._session_maker) as uow:
                ev = await enqueue_notification(uow.session, notification)
            return ev
        except Exception:
            log.exception("failed to enqueue notification %r (%s)", notification.subject, notification.topic)
            return None


class BackgroundPublisher(NotificationPublisher):
    """Defers the outbox write until after the HTTP response has been sent."""

    def __init__(self, background_tasks: BackgroundTasks, writer: OutboxWriter) -> None:
        self._tasks = background_tasks
        self._writer = writer

    def publish(self, notification: Notification) -> None:
        self._tasks.add_task(self._writer.write, notification)


class CollectingPublisher(NotificationPublisher):
    """
    Buffers notifications in memory. Jobs flush it after their own commit.
    """

    def __init__(self) -> None:
        self.pending: list[Notification] = []

    def publish(self, notification: Notification) -> None:
        self.pending.append(notification)

    async def flush(self, writer: OutboxWriter) -> int:
        written = 0
        while self.pending:
            if await writer.write(self.pending.pop(0)) is not None:
                written += 1
        return written
