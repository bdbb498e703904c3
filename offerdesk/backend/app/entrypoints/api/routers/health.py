# app/entrypoints/api/routers/health.py
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import get_session, get_settings, require_api_key

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(session: AsyncSession = Depends(get_session)) -> dict[str, str]:
    await session.execute(text("SELECT 1"))
    return {"status": "ok"}


@router.get("/debug/config", dependencies=[Depends(require_api_key)])
def debug_config(request: Request) -> dict[str, Any]:
    def _redact(v: str | None) -> str | None:
        if not v:
            return v
        if len(v) <= 8:
            return "***"
        return v[:4] + "***" + v[-4:]

    s = get_settings(request)
    return {
        "ENV": s.ENV,
        "OFFERDESK_DB_URL": s.OFFERDESK_DB_URL,
        "API_KEY": _redact(s.API_KEY),
        "OFFER_STRICT_TRANSITIONS": s.OFFER_STRICT_TRANSITIONS,
        "OFFER_EXPIRY_DAYS": s.OFFER_EXPIRY_DAYS,
        "OUTBOX_MAX_ATTEMPTS": s.OUTBOX_MAX_ATTEMPTS,
        "OUTBOX_WEBHOOK_RPS": s.OUTBOX_WEBHOOK_RPS,
    }
