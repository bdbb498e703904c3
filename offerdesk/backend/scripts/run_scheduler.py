from __future__ import annotations

import asyncio
import logging

from app.config import settings
from app.db import build_engine, build_session_maker, create_schema
from app.jobs.scheduler import build_scheduler
from app.logging_setup import configure_logging


async def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    log = logging.getLogger(__name__)

    engine = build_engine(settings.OFFERDESK_DB_URL)
    await create_schema(engine)

    scheduler = build_scheduler(build_session_maker(engine), settings)
    scheduler.start()
    log.info("Scheduler started")

    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        scheduler.shutdown()
        await engine.dispose()
        log.info("Scheduler stopped")


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
