# app/integrations/services/disable.py
from __future__ import annotations

import json
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ...models import Integration, IntegrationType


async def find_integration(
    session: AsyncSession,
    *,
    integration_id: int | None = None,
    name: str | None = None,
) -> Optional[Integration]:
    if integration_id is None and name is None:
        raise ValueError("Provide integration_id or name")

    if integration_id is not None and name is not None:
        raise ValueError("Provide only one of integration_id or name")

    if integration_id is not None:
        q = select(Integration).where(Integration.id == integration_id)
    else:
        q = select(Integration).where(Integration.name == name)
    return (await session.execute(q)).scalars().first()


async def update_integration(
    session: AsyncSession,
    integ: Integration,
    *,
    enabled: bool | None = None,
    url: str | None = None,
    secret: str | None = None,
) -> Integration:
    """
    Toggle / reconfigure a webhook sink.

    - Does NOT commit (caller controls transaction boundaries)
    - Flushes so the change is visible inside the same transaction
    """
    if enabled is not None:
        integ.enabled = bool(enabled)

    if integ.type == IntegrationType.webhook and (url is not None or secret is not None):
        cfg = json.loads(integ.config_json or "{}")
        if url is not None:
            cfg["url"] = url
        if secret is not None:
            cfg["secret"] = secret
        integ.config_json = json.dumps(cfg)

    await session.flush()
    return integ


async def disable_integration(
    session: AsyncSession,
    *,
    integration_id: int | None = None,
    name: str | None = None,
) -> bool:
    """
    Returns True if something was disabled, False if not found.
    """
    integ = await find_integration(session, integration_id=integration_id, name=name)
    if integ is None:
        return False
    await update_integration(session, integ, enabled=False)
    return True
