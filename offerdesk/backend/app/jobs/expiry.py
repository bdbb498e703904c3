# app/jobs/expiry.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ..integrations.base import NotificationPublisher
from ..service_layer.use_cases.offers import OfferLifecycle

log = logging.getLogger(__name__)


async def run_expiry(
    session: AsyncSession,
    publisher: NotificationPublisher,
    *,
    expiry_days: int | None,
    now: datetime | None = None,
    limit: int | None = None,
) -> dict[str, Any]:
    """
    Expire PENDING / COUNTERED offers untouched for `expiry_days`.
    A None or non-positive `expiry_days` turns the sweep off.
    """
    if not expiry_days or expiry_days <= 0:
        return {"enabled": False, "cutoff": None, "expired": 0, "offer_ids": []}

    cutoff = (now or datetime.utcnow()) - timedelta(days=expiry_days)
    lifecycle = OfferLifecycle(session, publisher)
    expired = await lifecycle.expire_stale_offers(older_than=cutoff, limit=limit)

    if expired:
        log.info("expired %d offers last touched before %s", len(expired), cutoff.isoformat())
    return {
        "enabled": True,
        "cutoff": cutoff,
        "expired": len(expired),
        "offer_ids": [o.id for o in expired],
    }
