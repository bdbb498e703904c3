# app/jobs/scheduler.py
from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..config import Settings, settings as default_settings
from ..integrations.publisher import CollectingPublisher, OutboxWriter
from ..service_layer.jobruns import run_recorded
from .dispatch import has_dispatch_work, run_dispatch
from .expiry import run_expiry

log = logging.getLogger(__name__)


async def dispatch_quiet(session_maker: async_sessionmaker[AsyncSession]) -> None:
    """
    Quiet-by-default posture:
    - If there are no enabled integrations, do nothing.
    - If there are no due outbox events, do nothing.
    """
    async with session_maker() as session:
        if not await has_dispatch_work(session, datetime.utcnow()):
            return

    # do actual dispatch outside the count transaction
    async with session_maker() as session:
        await run_recorded(session, "dispatch_scheduled", lambda: run_dispatch(session))


async def expire_offers(session_maker: async_sessionmaker[AsyncSession], expiry_days: int | None) -> None:
    if not expiry_days:
        return

    publisher = CollectingPublisher()
    async with session_maker() as session:
        await run_recorded(
            session,
            "expire_offers_scheduled",
            lambda: run_expiry(session, publisher, expiry_days=expiry_days),
            meta={"expiry_days": expiry_days},
        )
    # notifications only after the expiry commit
    await publisher.flush(OutboxWriter(session_maker))


def build_scheduler(
    session_maker: async_sessionmaker[AsyncSession],
    settings: Settings | None = None,
) -> AsyncIOScheduler:
    cfg = settings or default_settings
    sched = AsyncIOScheduler()

    sched.add_job(
        lambda: asyncio.create_task(dispatch_quiet(session_maker)),
        "interval",
        minutes=cfg.SCHED_DISPATCH_INTERVAL_MINUTES,
        id="dispatch",
    )

    if cfg.OFFER_EXPIRY_DAYS:
        sched.add_job(
            lambda: asyncio.create_task(expire_offers(session_maker, cfg.OFFER_EXPIRY_DAYS)),
            "interval",
            minutes=cfg.SCHED_EXPIRY_INTERVAL_MINUTES,
            id="expire_offers",
        )
    else:
        log.info("offer expiry disabled (OFFER_EXPIRY_DAYS unset)")

    return sched
