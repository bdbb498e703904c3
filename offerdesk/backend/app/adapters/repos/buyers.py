# app/adapters/repos/buyers.py
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ...models import Buyer


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def normalize_phone(phone: str | None) -> str:
    return (phone or "").strip()


class BuyerRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, buyer_id: int, *, with_offers: bool = False) -> Buyer | None:
        q = select(Buyer).where(Buyer.id == buyer_id)
        if with_offers:
            q = q.options(selectinload(Buyer.offers)).execution_options(populate_existing=True)
        return (await self.session.execute(q)).scalars().first()

    async def find_by_email_or_phone(self, *, email: str | None, phone: str | None) -> Buyer | None:
        conds = []
        if normalize_email(email):
            conds.append(Buyer.email == normalize_email(email))
        if normalize_phone(phone):
            conds.append(Buyer.phone == normalize_phone(phone))
        if not conds:
            return None
        q = select(Buyer).where(or_(*conds)).order_by(Buyer.id.asc())
        return (await self.session.execute(q)).scalars().first()

    async def find_by_email(self, email: str) -> Buyer | None:
        q = select(Buyer).where(Buyer.email == normalize_email(email))
        return (await self.session.execute(q)).scalars().first()

    async def find_by_phone(self, phone: str) -> Buyer | None:
        q = select(Buyer).where(Buyer.phone == normalize_phone(phone))
        return (await self.session.execute(q)).scalars().first()

    async def find_by_external_id(self, external_id: str) -> Buyer | None:
        q = select(Buyer).where(Buyer.external_id == external_id)
        return (await self.session.execute(q)).scalars().first()

    async def create(self, **values: Any) -> Buyer:
        values["email"] = normalize_email(values.get("email"))
        values["phone"] = normalize_phone(values.get("phone"))
        values.setdefault("preferred_areas", [])
        buyer = Buyer(**values)
        self.session.add(buyer)
        await self.session.flush()
        return buyer

    async def find_or_create(self, *, email: str, phone: str, **defaults: Any) -> tuple[Buyer, bool]:
        """
        Returns (buyer, created). Matching on either normalized email or phone.
        """
        buyer = await self.find_by_email_or_phone(email=email, phone=phone)
        if buyer is not None:
            return buyer, False
        buyer = await self.create(email=email, phone=phone, **defaults)
        return buyer, True

    async def update(self, buyer: Buyer, **values: Any) -> Buyer:
        if "email" in values:
            values["email"] = normalize_email(values["email"])
        if "phone" in values:
            values["phone"] = normalize_phone(values["phone"])
        for k, v in values.items():
            setattr(buyer, k, v)
        buyer.updated_at = datetime.utcnow()
        await self.session.flush()
        return buyer

    async def delete(self, buyer: Buyer) -> None:
        await self.session.execute(delete(Buyer).where(Buyer.id == buyer.id))
        self.session.expunge(buyer)

    async def list_all(self, *, with_offers: bool = False) -> list[Buyer]:
        q = select(Buyer).order_by(Buyer.created_at.desc(), Buyer.id.desc())
        if with_offers:
            q = q.options(selectinload(Buyer.offers))
        return list((await self.session.execute(q)).scalars().all())

    async def list_by_ids(self, ids: list[int], *, include_unsubscribed: bool = False) -> list[Buyer]:
        if not ids:
            return []
        q = select(Buyer).where(Buyer.id.in_(ids)).order_by(Buyer.id.asc())
        if not include_unsubscribed:
            q = q.where(Buyer.unsubscribed == False)  # noqa: E712
        return list((await self.session.execute(q)).scalars().all())

    async def list_by_area(self, area_id: str) -> list[Buyer]:
        # preferred_areas is a JSON list; membership is checked in Python so the
        # same query works on SQLite and Postgres.
        rows = await self.list_all()
        return [b for b in rows if area_id in (b.preferred_areas or [])]

    async def count(self, *, source: str | None = None) -> int:
        q = select(func.count(Buyer.id))
        if source is not None:
            q = q.where(Buyer.source == source)
        return int((await self.session.execute(q)).scalar_one())
