# app/service_layer/demo_seed.py
from __future__ import annotations

import json
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Integration, IntegrationType, Property

DEMO_PROPERTIES: list[dict[str, Any]] = [
    {
        "title": "Maple Street Bungalow",
        "street_address": "123 Maple St",
        "city": "Birmingham",
        "state": "MI",
        "zipcode": "48009",
        "asking_price": 300000.0,
        "min_price": 250000.0,
    },
    {
        "title": "Lakeview Ranch",
        "street_address": "45 Shore Dr",
        "city": "Lake Orion",
        "state": "MI",
        "zipcode": "48362",
        "asking_price": 425000.0,
        "min_price": 390000.0,
    },
    {
        "title": "Downtown Loft",
        "street_address": "900 Woodward Ave",
        "city": "Detroit",
        "state": "MI",
        "zipcode": "48226",
        "asking_price": 210000.0,
        "min_price": None,
    },
]


async def seed_demo(
    session: AsyncSession,
    *,
    url: str = "https://example.com",
    enable_demo_webhook: bool = False,
) -> dict[str, Any]:
    """
    Idempotent demo seed:
    - creates/updates the demo properties (keyed by title)
    - creates/updates one webhook integration, disabled unless asked
    - safe to run multiple times
    """
    created = updated = 0
    for data in DEMO_PROPERTIES:
        row = (await session.execute(select(Property).where(Property.title == data["title"]))).scalars().first()
        if row:
            for k, v in data.items():
                setattr(row, k, v)
            updated += 1
        else:
            session.add(Property(**data))
            created += 1
    await session.flush()

    cfg = {"url": url, "secret": None}
    integ = (await session.execute(select(Integration).where(Integration.name == "demo_webhook"))).scalars().first()
    if integ:
        integ.type = IntegrationType.webhook
        integ.enabled = enable_demo_webhook
        integ.config_json = json.dumps(cfg)
    else:
        session.add(
            Integration(
                name="demo_webhook",
                type=IntegrationType.webhook,
                enabled=enable_demo_webhook,
                config_json=json.dumps(cfg),
            )
        )
    await session.flush()

    return {
        "properties_created": created,
        "properties_updated": updated,
        "enable_demo_webhook": enable_demo_webhook,
        "url": url,
    }
