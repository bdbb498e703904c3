# app/adapters/repos/properties.py
from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...domain.types import PriceThresholds
from ...models import Property

UNKNOWN_PROPERTY: dict[str, Any] = {
    "title": "Unknown Property",
    "street_address": "Unknown Address",
    "city": "",
    "state": "",
}


class PropertyRepository:
    """
    Read-only view over listings. Listings are maintained elsewhere; offers
    only need prices and a display summary.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, property_id: int) -> Property | None:
        q = select(Property).where(Property.id == property_id)
        return (await self.session.execute(q)).scalars().first()

    async def get_many(self, ids: list[int]) -> dict[int, Property]:
        if not ids:
            return {}
        rows = (await self.session.execute(select(Property).where(Property.id.in_(ids)))).scalars().all()
        return {p.id: p for p in rows}

    async def summaries(self, ids: list[int]) -> dict[int, dict[str, Any]]:
        """
        Display summary per id. Ids with no listing get UNKNOWN_PROPERTY.
        """
        found = await self.get_many(ids)
        out: dict[int, dict[str, Any]] = {}
        for pid in ids:
            prop = found.get(pid)
            if prop is None:
                out[pid] = {"id": pid, **UNKNOWN_PROPERTY}
                continue
            out[pid] = {
                "id": prop.id,
                "title": prop.title,
                "street_address": prop.street_address,
                "city": prop.city,
                "state": prop.state,
            }
        return out


def thresholds_for(prop: Property) -> PriceThresholds:
    return PriceThresholds(
        asking_price=float(prop.asking_price),
        min_price=float(prop.min_price) if prop.min_price is not None else None,
    )
