# app/entrypoints/api/routers/integrations.py
from __future__ import annotations

import json

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ....domain.errors import Conflict, NotFound, ValidationError
from ....integrations.services.disable import find_integration, update_integration
from ....models import Integration, IntegrationType
from ....schemas import IntegrationCreate, IntegrationOut
from ..deps import get_session, require_api_key

router = APIRouter(prefix="/integrations", tags=["integrations"], dependencies=[Depends(require_api_key)])


def _out(integ: Integration) -> IntegrationOut:
    return IntegrationOut(
        id=integ.id,
        name=integ.name,
        type=integ.type.value,
        enabled=integ.enabled,
        created_at=integ.created_at,
    )


@router.post("", response_model=IntegrationOut, status_code=201)
async def create_integration(
    body: IntegrationCreate,
    session: AsyncSession = Depends(get_session),
) -> IntegrationOut:
    if body.type != "webhook":
        raise ValidationError("Only webhook integrations are supported")

    if await find_integration(session, name=body.name) is not None:
        raise Conflict("Integration name already exists. Use PATCH to update/disable.")

    integ = Integration(
        name=body.name,
        type=IntegrationType.webhook,
        enabled=body.enabled,
        config_json=json.dumps({"url": body.url, "secret": body.secret}),
    )
    session.add(integ)
    await session.commit()
    return _out(integ)


@router.patch("/{integration_id}", response_model=IntegrationOut)
async def patch_integration(
    integration_id: int,
    enabled: bool | None = None,
    url: str | None = None,
    secret: str | None = None,
    session: AsyncSession = Depends(get_session),
) -> IntegrationOut:
    integ = await find_integration(session, integration_id=integration_id)
    if integ is None:
        raise NotFound("Integration not found")

    await update_integration(session, integ, enabled=enabled, url=url, secret=secret)
    await session.commit()
    return _out(integ)


@router.get("", response_model=list[IntegrationOut])
async def list_integrations(session: AsyncSession = Depends(get_session)) -> list[IntegrationOut]:
    rows = (await session.execute(select(Integration).order_by(Integration.id.asc()))).scalars().all()
    return [_out(i) for i in rows]
