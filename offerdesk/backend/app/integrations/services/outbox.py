from __future__ import annotations

import asyncio
import json
import logging
import random
from datetime import datetime, timedelta
from typing import Any, Sequence

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import settings
from ...models import OutboxEvent, OutboxStatus, Integration, IntegrationType
from ..base import Notification, NotificationSink
from ..webhook import WebhookSink

log = logging.getLogger(__name__)


async def enqueue_event(session: AsyncSession, topic: str, payload: dict[str, Any]) -> OutboxEvent:
    ev = OutboxEvent(
        topic=topic,
        payload_json=json.dumps(payload, default=str),
        status=OutboxStatus.pending,
        attempts=0,
        last_error=None,
        next_attempt_at=None,
    )
    session.add(ev)
    await session.flush()
    return ev


async def enqueue_notification(session: AsyncSession, notification: Notification) -> OutboxEvent:
    return await enqueue_event(session, notification.topic, notification.to_payload())


async def build_sinks(session: AsyncSession) -> list[WebhookSink]:
    sinks: list[WebhookSink] = []
    rows = (await session.execute(select(Integration).where(Integration.enabled == True))).scalars().all()  # noqa: E712
    for integ in rows:
        if integ.type != IntegrationType.webhook:
            continue
        cfg = json.loads(integ.config_json or "{}")
        url = cfg.get("url")
        if not url:
            log.warning("integration %s has no url; skipping", integ.name)
            continue
        sinks.append(WebhookSink(url=url, secret=cfg.get("secret"), timeout_s=settings.WEBHOOK_TIMEOUT_S))
    return sinks


def compute_backoff_seconds(
    attempts_after_increment: int,
    base_seconds: float | None = None,
    cap_seconds: float | None = None,
) -> float:
    """
    Exponential backoff with jitter.
    attempts_after_increment: 1,2,3,... (after we increment attempts)
    """
    base = settings.OUTBOX_BACKOFF_BASE_SECONDS if base_seconds is None else base_seconds
    cap = settings.OUTBOX_BACKOFF_CAP_SECONDS if cap_seconds is None else cap_seconds
    exp = base * (2 ** max(0, attempts_after_increment - 1))
    capped = min(exp, cap)
    jitter = random.uniform(0.0, min(base, capped))
    return capped + jitter


async def dispatch_pending_events(
    session: AsyncSession,
    batch_size: int | None = None,
    max_attempts: int | None = None,
    rps: float | None = None,
    sinks: Sequence[NotificationSink] | None = None,
) -> dict[str, Any]:
    """
    Dispatch outbox events to enabled sinks.
    Quiet-by-default:
      - If there are no enabled sinks, returns immediately without doing any HTTP calls.
    Reliability:
      - Exponential backoff + jitter on failures, stored in next_attempt_at.
      - Marks as failed if max attempts reached.
      - Rate-limits webhook delivery.
    """
    batch_size = batch_size or settings.OUTBOX_BATCH_SIZE
    max_attempts = max_attempts or settings.OUTBOX_MAX_ATTEMPTS
    rps = settings.OUTBOX_WEBHOOK_RPS if rps is None else rps

    if sinks is None:
        sinks = await build_sinks(session)
    if not sinks:
        return {"delivered": 0, "failed": 0, "sinks": 0, "events": 0, "skipped_no_sinks": 1}

    now = datetime.utcnow()

    stmt = (
        select(OutboxEvent)
        .where(OutboxEvent.status == OutboxStatus.pending)
        .where(OutboxEvent.attempts < max_attempts)
        .where(or_(OutboxEvent.next_attempt_at.is_(None), OutboxEvent.next_attempt_at <= now))
        .order_by(OutboxEvent.id.asc())
        .limit(batch_size)
    )
    events = (await session.execute(stmt)).scalars().all()

    delivered = 0
    failed = 0

    # Convert RPS into per-request delay
    delay = 0.0 if rps <= 0 else (1.0 / rps)

    for ev in events:
        payload = json.loads(ev.payload_json)

        ok_all = True
        last_err = None

        for sink in sinks:
            res = await sink.deliver(ev.topic, {"event_id": ev.id, **payload})
            if delay > 0:
                await asyncio.sleep(delay)

            if not res.ok:
                ok_all = False
                last_err = res.error

        # update attempt accounting
        ev.attempts += 1
        ev.last_error = last_err
        ev.updated_at = datetime.utcnow()

        if ok_all:
            ev.status = OutboxStatus.delivered
            ev.delivered_at = datetime.utcnow()
            ev.next_attempt_at = None
            delivered += 1
        else:
            if ev.attempts >= max_attempts:
                ev.status = OutboxStatus.failed
                ev.next_attempt_at = None
                failed += 1
                log.error("outbox event %s (%s) failed permanently: %s", ev.id, ev.topic, last_err)
            else:
                backoff_s = compute_backoff_seconds(ev.attempts)
                ev.next_attempt_at = datetime.utcnow() + timedelta(seconds=backoff_s)
                log.warning(
                    "outbox event %s (%s) attempt %d failed, retry in %.0fs: %s",
                    ev.id, ev.topic, ev.attempts, backoff_s, last_err,
                )

        await session.flush()

    return {
        "delivered": delivered,
        "failed": failed,
        "sinks": len(sinks),
        "events": len(events),
        "skipped_no_sinks": 0,
    }
