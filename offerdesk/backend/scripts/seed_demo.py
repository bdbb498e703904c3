from __future__ import annotations

import argparse
import asyncio

from app.config import settings
from app.db import build_engine, build_session_maker, create_schema
from app.service_layer.demo_seed import seed_demo


async def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--enable", action="store_true", help="Enable the demo webhook integration (NOT recommended by default)")
    parser.add_argument("--url", default="https://example.com", help="Demo webhook URL")
    args = parser.parse_args()

    engine = build_engine(settings.OFFERDESK_DB_URL)
    try:
        await create_schema(engine)
        async with build_session_maker(engine)() as session:
            res = await seed_demo(session, url=args.url, enable_demo_webhook=args.enable)
            await session.commit()
    finally:
        await engine.dispose()

    print(
        f"Seeded demo data: {res['properties_created']} properties created, "
        f"{res['properties_updated']} updated. webhook enabled={args.enable} url={args.url}"
    )


if __name__ == "__main__":
    asyncio.run(main())
