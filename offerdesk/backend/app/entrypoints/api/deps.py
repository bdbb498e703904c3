# app/entrypoints/api/deps.py
from __future__ import annotations

from fastapi import BackgroundTasks, Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ...config import Settings
from ...db import get_session
from ...integrations.publisher import BackgroundPublisher
from ...service_layer.use_cases.offers import OfferLifecycle

__all__ = [
    "get_session",
    "get_settings",
    "get_publisher",
    "get_lifecycle",
    "actor_id",
    "require_api_key",
]


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def require_api_key(
    request: Request,
    x_api_key: str | None = Header(default=None, alias="X-API-Key"),
) -> None:
    api_key = get_settings(request).API_KEY
    if api_key:
        if not x_api_key or x_api_key != api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")


def actor_id(x_actor_id: str | None = Header(default=None, alias="X-Actor-Id")) -> str:
    return (x_actor_id or "").strip() or "unknown"


def get_publisher(request: Request, background_tasks: BackgroundTasks) -> BackgroundPublisher:
    return BackgroundPublisher(background_tasks, request.app.state.outbox_writer)


def get_lifecycle(
    request: Request,
    session: AsyncSession = Depends(get_session),
    publisher: BackgroundPublisher = Depends(get_publisher),
) -> OfferLifecycle:
    return OfferLifecycle(
        session,
        publisher,
        strict_transitions=get_settings(request).OFFER_STRICT_TRANSITIONS,
    )
