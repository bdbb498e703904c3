# app/entrypoints/fastapi_app.py
from __future__ import annotations

import logging

from fastapi import FastAPI

from ..config import Settings, settings as default_settings
from ..db import build_engine, build_session_maker, create_schema
from ..integrations.publisher import OutboxWriter
from ..logging_setup import configure_logging
from .api.errors import register_exception_handlers
from .api.routers import buyers, health, integrations, jobs, offers

log = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    cfg = settings or default_settings
    configure_logging(cfg.LOG_LEVEL)

    app = FastAPI(title="OfferDesk - Offer Management")

    engine = build_engine(cfg.OFFERDESK_DB_URL)
    session_maker = build_session_maker(engine)
    app.state.settings = cfg
    app.state.engine = engine
    app.state.session_maker = session_maker
    app.state.outbox_writer = OutboxWriter(session_maker)

    @app.on_event("startup")
    async def _startup() -> None:
        # Single place where DB tables are created in dev.
        await create_schema(engine)
        log.info("offerdesk started (env=%s)", cfg.ENV)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await engine.dispose()

    register_exception_handlers(app)

    # Routers
    app.include_router(health.router)
    app.include_router(offers.router)
    app.include_router(buyers.router)
    app.include_router(integrations.router)
    app.include_router(jobs.router)

    return app
