# app/entrypoints/api/routers/jobs.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ....config import Settings
from ....integrations.publisher import BackgroundPublisher
from ....jobs.dispatch import run_dispatch
from ....jobs.expiry import run_expiry
from ....schemas import DispatchResult, ExpiryResult
from ....service_layer.jobruns import run_recorded
from ..deps import get_publisher, get_session, get_settings, require_api_key

router = APIRouter(prefix="/jobs", tags=["jobs"], dependencies=[Depends(require_api_key)])


@router.post("/dispatch", response_model=DispatchResult)
async def dispatch_outbox(
    batch_size: int = Query(50, ge=1, le=500),
    session: AsyncSession = Depends(get_session),
) -> DispatchResult:
    result = await run_recorded(
        session,
        "dispatch_api",
        lambda: run_dispatch(session=session, batch_size=batch_size),
        meta={"batch_size": batch_size},
    )
    return DispatchResult(**result)


@router.post("/expire-offers", response_model=ExpiryResult)
async def expire_offers(
    days: int | None = Query(None, ge=1, description="Overrides OFFER_EXPIRY_DAYS"),
    limit: int | None = Query(None, ge=1, le=5000),
    settings: Settings = Depends(get_settings),
    publisher: BackgroundPublisher = Depends(get_publisher),
    session: AsyncSession = Depends(get_session),
) -> ExpiryResult:
    expiry_days = days or settings.OFFER_EXPIRY_DAYS
    result = await run_recorded(
        session,
        "expire_offers_api",
        lambda: run_expiry(session, publisher, expiry_days=expiry_days, limit=limit),
        meta={"expiry_days": expiry_days, "limit": limit},
    )
    return ExpiryResult(**result)
