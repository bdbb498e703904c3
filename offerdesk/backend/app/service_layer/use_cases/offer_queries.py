# app/service_layer/use_cases/offer_queries.py
from __future__ import annotations

import csv
import io
from typing import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from ...adapters.sqlalchemy_repos import SqlAlchemyRepos
from ...domain.errors import NotFound, ValidationError
from ...domain.filters import OfferFilter, Page
from ...domain.formatting import full_name
from ...models import Buyer, Offer

EXPORT_HEADERS = ["Property", "Buyer Name", "Buyer Email", "Offer Price", "Status", "Date"]


async def offers_for_property(session: AsyncSession, property_id: int) -> list[Offer]:
    repos = SqlAlchemyRepos(session)
    return await repos.offers.find_many(OfferFilter(property_id=property_id))


async def offers_for_buyer(
    session: AsyncSession,
    *,
    buyer_id: int | None = None,
    email: str | None = None,
    phone: str | None = None,
) -> tuple[Buyer, list[Offer]]:
    if buyer_id is None and not email and not phone:
        raise ValidationError("At least one of buyerId, email or phone is required.")

    repos = SqlAlchemyRepos(session)
    if buyer_id is not None:
        buyer = await repos.buyers.get(buyer_id)
    elif email:
        buyer = await repos.buyers.find_by_email(email)
    else:
        buyer = await repos.buyers.find_by_phone(phone or "")

    if buyer is None:
        raise NotFound("Buyer not found with the provided information.")

    offers = await repos.offers.find_many(OfferFilter(buyer_id=buyer.id))
    return buyer, offers


async def search_offers(session: AsyncSession, flt: OfferFilter, *, page: int, limit: int) -> Page[Offer]:
    repos = SqlAlchemyRepos(session)
    return await repos.offers.paginate(flt, page=page, limit=limit)


async def export_offers_csv(session: AsyncSession, flt: OfferFilter) -> str:
    """
    All offers matching `flt`, newest first, as CSV text.
    """
    repos = SqlAlchemyRepos(session)
    offers = await repos.offers.find_many(flt)
    summaries = await repos.properties.summaries(sorted({o.property_id for o in offers}))
    return render_offers_csv(offers, summaries)


def render_offers_csv(offers: Iterable[Offer], property_summaries: dict[int, dict]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for o in offers:
        summary = property_summaries.get(o.property_id)
        label = f"{summary['title']} ({o.property_id})" if summary else f"ID: {o.property_id}"
        buyer = o.buyer
        writer.writerow(
            [
                label,
                full_name(buyer.first_name, buyer.last_name) if buyer else "",
                buyer.email if buyer else "",
                f"{float(o.offered_price):.2f}",
                o.status.value,
                o.timestamp.date().isoformat(),
            ]
        )
    return buf.getvalue()
