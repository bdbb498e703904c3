# app/adapters/repos/offers.py
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Select, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from ...domain.filters import OfferFilter, Page
from ...models import Buyer, Offer, OfferHistory


class OfferRepository:
    """
    Persistence seam for offers. Flushes, never commits: the caller owns the
    transaction boundary.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ---- writes ----

    async def create(self, **values: Any) -> Offer:
        offer = Offer(**values)
        self.session.add(offer)
        await self.session.flush()
        return offer

    async def update_by_id(self, offer_id: int, **values: Any) -> Offer | None:
        offer = await self.find_by_id(offer_id)
        if offer is None:
            return None
        for k, v in values.items():
            setattr(offer, k, v)
        await self.session.flush()
        return offer

    async def raise_price_if_unchanged(
        self,
        offer_id: int,
        *,
        expected_price: float,
        values: dict[str, Any],
    ) -> bool:
        """
        Compare-and-set on offered_price. Returns False when another writer
        changed the price since it was read.
        """
        stmt = (
            update(Offer)
            .where(Offer.id == offer_id)
            .where(Offer.offered_price == expected_price)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        res = await self.session.execute(stmt)
        return (res.rowcount or 0) == 1

    async def append_history(self, offer: Offer, entry: OfferHistory) -> OfferHistory:
        offer.history.append(entry)
        await self.session.flush()
        return entry

    async def delete_for_buyer(self, buyer_id: int) -> int:
        offer_ids = select(Offer.id).where(Offer.buyer_id == buyer_id)
        await self.session.execute(delete(OfferHistory).where(OfferHistory.offer_id.in_(offer_ids)))
        res = await self.session.execute(delete(Offer).where(Offer.buyer_id == buyer_id))
        return int(res.rowcount or 0)

    # ---- reads ----

    async def find_by_id(self, offer_id: int, *, refresh: bool = False) -> Offer | None:
        q = select(Offer).where(Offer.id == offer_id)
        if refresh:
            q = q.execution_options(populate_existing=True)
        return (await self.session.execute(q)).scalars().first()

    async def find_for_buyer_and_property(self, buyer_id: int, property_id: int) -> Offer | None:
        q = select(Offer).where(Offer.buyer_id == buyer_id, Offer.property_id == property_id)
        return (await self.session.execute(q)).scalars().first()

    async def find_many(
        self,
        flt: OfferFilter | None = None,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[Offer]:
        q = self._apply_filter(select(Offer), flt).order_by(Offer.timestamp.desc(), Offer.id.desc())
        if offset:
            q = q.offset(offset)
        if limit is not None:
            q = q.limit(limit)
        return list((await self.session.execute(q)).scalars().unique().all())

    async def count(self, flt: OfferFilter | None = None) -> int:
        q = self._apply_filter(select(func.count(Offer.id)).select_from(Offer), flt)
        return int((await self.session.execute(q)).scalar_one())

    async def group_count_by_field(
        self,
        field: InstrumentedAttribute,
        flt: OfferFilter | None = None,
        *,
        limit: int | None = None,
    ) -> list[tuple[Any, int]]:
        """
        [(value, count), ...] ordered by count desc, then value asc.
        """
        n = func.count(Offer.id).label("n")
        q = self._apply_filter(select(field, n).select_from(Offer), flt).group_by(field).order_by(n.desc(), field.asc())
        if limit is not None:
            q = q.limit(limit)
        rows = (await self.session.execute(q)).all()
        return [(value, int(count)) for value, count in rows]

    async def paginate(self, flt: OfferFilter | None, page: int = 1, limit: int = 20) -> Page[Offer]:
        page = max(1, int(page))
        limit = max(1, int(limit))
        total = await self.count(flt)
        items = await self.find_many(flt, offset=(page - 1) * limit, limit=limit)
        return Page(items=items, total=total, page=page, limit=limit)

    async def find_stale(self, statuses: list[Any], *, older_than: datetime, limit: int | None = None) -> list[Offer]:
        q = (
            select(Offer)
            .where(Offer.status.in_(statuses))
            .where(Offer.timestamp < older_than)
            .order_by(Offer.timestamp.asc(), Offer.id.asc())
        )
        if limit is not None:
            q = q.limit(limit)
        return list((await self.session.execute(q)).scalars().unique().all())

    async def timestamps_and_statuses_since(self, since: datetime) -> list[tuple[datetime, Any]]:
        q = (
            select(Offer.timestamp, Offer.status)
            .where(Offer.timestamp >= since)
            .order_by(Offer.timestamp.desc())
        )
        return [(ts, st) for ts, st in (await self.session.execute(q)).all()]

    # ---- helpers ----

    @staticmethod
    def _apply_filter(q: Select, flt: OfferFilter | None) -> Select:
        if flt is None:
            return q

        if flt.status is not None:
            q = q.where(Offer.status == flt.status)
        if flt.property_id is not None:
            q = q.where(Offer.property_id == flt.property_id)
        if flt.buyer_id is not None:
            q = q.where(Offer.buyer_id == flt.buyer_id)
        if flt.start is not None:
            q = q.where(Offer.timestamp >= flt.start)
        if flt.end is not None:
            q = q.where(Offer.timestamp <= flt.end)

        if flt.search:
            like = f"%{flt.search}%"
            q = q.join(Buyer, Buyer.id == Offer.buyer_id).where(
                or_(
                    Buyer.first_name.ilike(like),
                    Buyer.last_name.ilike(like),
                    Buyer.email.ilike(like),
                    Buyer.phone.contains(flt.search),
                )
            )
        return q
