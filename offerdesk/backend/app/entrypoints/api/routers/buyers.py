# app/entrypoints/api/routers/buyers.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ....domain.errors import ValidationError
from ....integrations.publisher import BackgroundPublisher
from ....schemas import (
    BuyerCreate,
    BuyerEmailRequest,
    BuyerEmailResult,
    BuyerImportRequest,
    BuyerImportResult,
    BuyerImportResults,
    BuyerMessage,
    BuyerOut,
    BuyersByArea,
    BuyerStats,
    BuyerUpdate,
    VipBuyerCreate,
)
from ....service_layer.use_cases import buyers as uc
from ....service_layer.use_cases.metrics import buyer_stats
from ..deps import get_publisher, get_session, require_api_key

router = APIRouter(prefix="/buyers", tags=["buyers"])


@router.post("", response_model=BuyerMessage, status_code=201, dependencies=[Depends(require_api_key)])
async def create_buyer(
    body: BuyerCreate,
    session: AsyncSession = Depends(get_session),
) -> BuyerMessage:
    buyer = await uc.create_buyer(
        session,
        email=body.email,
        phone=body.phone,
        buyer_type=body.buyer_type,
        first_name=body.first_name,
        last_name=body.last_name,
        source=body.source,
        preferred_areas=body.preferred_areas,
    )
    await session.commit()
    return BuyerMessage(message="Buyer created successfully.", buyer=BuyerOut.from_buyer(buyer))


@router.get("", response_model=list[BuyerOut], dependencies=[Depends(require_api_key)])
async def list_buyers(session: AsyncSession = Depends(get_session)) -> list[BuyerOut]:
    return [BuyerOut.from_buyer(b) for b in await uc.list_buyers(session)]


@router.get("/stats", response_model=BuyerStats, dependencies=[Depends(require_api_key)])
async def stats(session: AsyncSession = Depends(get_session)) -> BuyerStats:
    return BuyerStats(**await buyer_stats(session))


@router.get("/by-external-id", response_model=BuyerOut)
async def by_external_id(
    external_id: str | None = Query(None, alias="externalId"),
    session: AsyncSession = Depends(get_session),
) -> BuyerOut:
    if not external_id:
        raise ValidationError("External ID is required")
    return BuyerOut.from_buyer(await uc.buyer_by_external_id(session, external_id))


@router.get("/area/{area_id}", response_model=BuyersByArea, dependencies=[Depends(require_api_key)])
async def by_area(area_id: str, session: AsyncSession = Depends(get_session)) -> BuyersByArea:
    buyers = await uc.buyers_by_area(session, area_id)
    return BuyersByArea(area_id=area_id, count=len(buyers), buyers=[BuyerOut.from_buyer(b) for b in buyers])


@router.post("/vip", response_model=BuyerMessage, status_code=201)
async def create_vip_buyer(
    body: VipBuyerCreate,
    session: AsyncSession = Depends(get_session),
) -> BuyerMessage:
    buyer = await uc.create_vip_buyer(
        session,
        email=body.email,
        phone=body.phone,
        buyer_type=body.buyer_type,
        first_name=body.first_name,
        last_name=body.last_name,
        preferred_areas=body.preferred_areas,
        external_id=body.external_id,
    )
    await session.commit()
    return BuyerMessage(message="VIP Buyer created successfully.", buyer=BuyerOut.from_buyer(buyer))


@router.post("/email", response_model=BuyerEmailResult, dependencies=[Depends(require_api_key)])
async def email_buyers(
    body: BuyerEmailRequest,
    publisher: BackgroundPublisher = Depends(get_publisher),
    session: AsyncSession = Depends(get_session),
) -> BuyerEmailResult:
    res = await uc.send_email_to_buyers(
        session,
        publisher,
        buyer_ids=body.buyer_ids,
        subject=body.subject,
        content=body.content,
        include_unsubscribed=body.include_unsubscribed,
    )
    return BuyerEmailResult(**res)


@router.post("/import", response_model=BuyerImportResult, dependencies=[Depends(require_api_key)])
async def import_buyers(
    body: BuyerImportRequest,
    session: AsyncSession = Depends(get_session),
) -> BuyerImportResult:
    res = await uc.import_buyers(session, body.buyers, source=body.source)
    await session.commit()
    return BuyerImportResult(
        message=(
            f"Processed {len(body.buyers)} buyers: {res.created} created, "
            f"{res.updated} updated, {res.failed} failed"
        ),
        results=BuyerImportResults(created=res.created, updated=res.updated, failed=res.failed, errors=res.errors),
    )


@router.get("/{buyer_id}", response_model=BuyerOut, dependencies=[Depends(require_api_key)])
async def get_buyer(buyer_id: int, session: AsyncSession = Depends(get_session)) -> BuyerOut:
    return BuyerOut.from_buyer(await uc.get_buyer(session, buyer_id))


@router.put("/{buyer_id}", response_model=BuyerOut, dependencies=[Depends(require_api_key)])
async def update_buyer(
    buyer_id: int,
    body: BuyerUpdate,
    session: AsyncSession = Depends(get_session),
) -> BuyerOut:
    buyer = await uc.update_buyer(
        session,
        buyer_id,
        email=body.email,
        phone=body.phone,
        first_name=body.first_name,
        last_name=body.last_name,
        buyer_type=body.buyer_type,
        source=body.source,
        preferred_areas=body.preferred_areas,
    )
    out = BuyerOut.from_buyer(buyer)
    await session.commit()
    return out


@router.delete("/{buyer_id}", response_model=BuyerMessage, dependencies=[Depends(require_api_key)])
async def delete_buyer(buyer_id: int, session: AsyncSession = Depends(get_session)) -> BuyerMessage:
    buyer = await uc.delete_buyer(session, buyer_id)
    out = BuyerOut.from_buyer(buyer)
    await session.commit()
    return BuyerMessage(message="Buyer and associated offers deleted successfully", buyer=out)
