# scripts/init_db.py
import asyncio

from app.config import settings
from app.db import build_engine, create_schema


async def main() -> None:
    engine = build_engine(settings.OFFERDESK_DB_URL)
    try:
        await create_schema(engine)
    finally:
        await engine.dispose()
    print(f"OK: created all tables (idempotent) in {settings.OFFERDESK_DB_URL}")


if __name__ == "__main__":
    asyncio.run(main())
