# app/entrypoints/api/routers/offers.py
from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from ....adapters.sqlalchemy_repos import SqlAlchemyRepos
from ....config import Settings
from ....domain.errors import NotFound
from ....domain.filters import OfferFilter
from ....domain.types import OfferStatus
from ....schemas import (
    BuyerOffers,
    BuyerSummary,
    OfferCreate,
    OfferOut,
    OfferPage,
    OfferStats,
    OfferStatusUpdate,
    OfferSubmitOut,
    OfferUpdateOut,
    Pagination,
    PropertyOffers,
)
from ....service_layer.use_cases.metrics import offer_stats
from ....service_layer.use_cases.offer_queries import (
    export_offers_csv,
    offers_for_buyer,
    offers_for_property,
    search_offers,
)
from ....service_layer.use_cases.offers import BuyerIdentity, OfferLifecycle
from ..deps import actor_id, get_lifecycle, get_session, get_settings, require_api_key

router = APIRouter(prefix="/offers", tags=["offers"])


def _filter_from_query(
    status: str | None = Query(None),
    search: str | None = Query(None),
    start_date: date | None = Query(None, alias="startDate"),
    end_date: date | None = Query(None, alias="endDate"),
    property_id: int | None = Query(None, alias="propertyId"),
) -> OfferFilter:
    return OfferFilter.from_query(
        status=status,
        search=search,
        start_date=start_date,
        end_date=end_date,
        property_id=property_id,
    )


# ----- Buyer-facing -----

@router.post("", response_model=OfferSubmitOut, status_code=201)
async def submit_offer(
    body: OfferCreate,
    response: Response,
    lifecycle: OfferLifecycle = Depends(get_lifecycle),
    session: AsyncSession = Depends(get_session),
) -> OfferSubmitOut:
    identity = BuyerIdentity(
        email=body.email,
        phone=body.phone,
        first_name=body.first_name,
        last_name=body.last_name,
        buyer_type=body.buyer_type,
    )
    res = await lifecycle.submit_offer(identity, body.property_id, body.offered_price)
    await session.commit()

    if not res.created:
        response.status_code = 200
    return OfferSubmitOut(
        message=res.message,
        offer=OfferOut.from_offer(res.offer),
        below_minimum=res.below_minimum,
        warning=res.warning,
    )


@router.get("/property/{property_id}", response_model=PropertyOffers)
async def property_offers(
    property_id: int,
    session: AsyncSession = Depends(get_session),
) -> PropertyOffers:
    offers = await offers_for_property(session, property_id)
    return PropertyOffers(
        property_id=property_id,
        total_offers=len(offers),
        offers=[OfferOut.from_offer(o) for o in offers],
    )


@router.get("/buyer", response_model=BuyerOffers)
async def buyer_offers(
    buyer_id: int | None = Query(None, alias="buyerId"),
    email: str | None = Query(None),
    phone: str | None = Query(None),
    session: AsyncSession = Depends(get_session),
) -> BuyerOffers:
    buyer, offers = await offers_for_buyer(session, buyer_id=buyer_id, email=email, phone=phone)
    return BuyerOffers(
        buyer=BuyerSummary.from_buyer(buyer),
        total_offers=len(offers),
        offers=[OfferOut.from_offer(o) for o in offers],
    )


# ----- Admin -----

@router.get("/all", response_model=OfferPage, dependencies=[Depends(require_api_key)])
async def all_offers(
    flt: OfferFilter = Depends(_filter_from_query),
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_session),
) -> OfferPage:
    limit = min(limit or settings.OFFERS_PAGE_SIZE, settings.OFFERS_MAX_PAGE_SIZE)
    result = await search_offers(session, flt, page=page, limit=limit)
    return OfferPage(
        offers=[OfferOut.from_offer(o) for o in result.items],
        pagination=Pagination(total=result.total, page=result.page, limit=result.limit, pages=result.pages),
    )


@router.get("/export", dependencies=[Depends(require_api_key)])
async def export_offers(
    flt: OfferFilter = Depends(_filter_from_query),
    session: AsyncSession = Depends(get_session),
) -> Response:
    body = await export_offers_csv(session, flt)
    filename = f"offers_export_{datetime.utcnow().date().isoformat()}.csv"
    return Response(
        content=body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/stats", response_model=OfferStats, dependencies=[Depends(require_api_key)])
async def stats(
    settings: Settings = Depends(get_settings),
    session: AsyncSession = Depends(get_session),
) -> OfferStats:
    res = await offer_stats(
        session,
        trend_days=settings.STATS_TREND_DAYS,
        top_n=settings.STATS_TOP_PROPERTIES,
    )
    return OfferStats(**res)


@router.get("/{offer_id}", response_model=OfferOut, dependencies=[Depends(require_api_key)])
async def get_offer(
    offer_id: int,
    session: AsyncSession = Depends(get_session),
) -> OfferOut:
    offer = await SqlAlchemyRepos(session).offers.find_by_id(offer_id)
    if offer is None:
        raise NotFound("Offer not found")
    return OfferOut.from_offer(offer)


@router.put("/{offer_id}", response_model=OfferUpdateOut, dependencies=[Depends(require_api_key)])
async def update_offer_status(
    offer_id: int,
    body: OfferStatusUpdate,
    actor: str = Depends(actor_id),
    lifecycle: OfferLifecycle = Depends(get_lifecycle),
    session: AsyncSession = Depends(get_session),
) -> OfferUpdateOut:
    res = await lifecycle.transition_offer(
        offer_id,
        OfferStatus(body.offer_status),
        counter_price=body.counter_price,
        actor_id=actor,
    )
    await session.commit()
    return OfferUpdateOut(
        message=res.message,
        offer=OfferOut.from_offer(res.offer),
        counter_price=res.counter_price,
    )
