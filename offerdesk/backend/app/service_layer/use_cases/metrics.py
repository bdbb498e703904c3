# app/service_layer/use_cases/metrics.py
from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ...adapters.sqlalchemy_repos import SqlAlchemyRepos
from ...domain.types import BuyerSource, OfferStatus
from ...models import Offer


def _status_key(status: OfferStatus | str | None) -> str:
    if status is None:
        return OfferStatus.PENDING.value
    return status.value if isinstance(status, OfferStatus) else str(status)


def build_trend(rows: list[tuple[datetime, Any]]) -> list[dict[str, Any]]:
    """
    [(timestamp, status), ...] -> one row per calendar day, ascending:
      {"date": "YYYY-MM-DD", "total": n, "PENDING": k, ...}
    Status keys only appear for statuses seen on that day.
    """
    by_day: dict[str, dict[str, int]] = defaultdict(lambda: {"total": 0})
    for ts, status in rows:
        day = by_day[ts.date().isoformat()]
        day["total"] += 1
        key = _status_key(status)
        day[key] = day.get(key, 0) + 1
    return [{"date": d, **counts} for d, counts in sorted(by_day.items())]


async def offer_stats(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    trend_days: int = 30,
    top_n: int = 5,
) -> dict[str, Any]:
    repos = SqlAlchemyRepos(session)

    by_status: dict[str, int] = {}
    for status, n in await repos.offers.group_count_by_field(Offer.status):
        by_status[_status_key(status)] = n
    total = sum(by_status.values())

    since = (now or datetime.utcnow()) - timedelta(days=trend_days)
    trend = build_trend(await repos.offers.timestamps_and_statuses_since(since))

    top = await repos.offers.group_count_by_field(Offer.property_id, limit=top_n)
    summaries = await repos.properties.summaries([pid for pid, _ in top])
    top_properties = [
        {"property_id": pid, "count": n, "property": summaries[pid]}
        for pid, n in top
    ]

    return {
        "total": total,
        "by_status": by_status,
        "trend": trend,
        "top_properties": top_properties,
    }


async def buyer_stats(session: AsyncSession) -> dict[str, Any]:
    repos = SqlAlchemyRepos(session)
    buyers = await repos.buyers.list_all()

    by_area: dict[str, int] = defaultdict(int)
    by_type: dict[str, int] = defaultdict(int)
    by_source: dict[str, int] = defaultdict(int)
    monthly_growth: dict[str, int] = defaultdict(int)

    for b in buyers:
        for area in b.preferred_areas or []:
            by_area[area] += 1
        if b.buyer_type:
            by_type[b.buyer_type.value] += 1
        by_source[b.source or "Unknown"] += 1
        if b.created_at:
            monthly_growth[b.created_at.strftime("%Y-%m")] += 1

    return {
        "total_count": len(buyers),
        "vip_count": sum(1 for b in buyers if b.source == BuyerSource.VIP),
        "by_area": dict(by_area),
        "by_type": dict(by_type),
        "by_source": dict(by_source),
        "monthly_growth": dict(sorted(monthly_growth.items())),
    }
