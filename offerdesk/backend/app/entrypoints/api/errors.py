# app/entrypoints/api/errors.py
"""
Exception handlers. Every error leaves the API as {"message": ..., **payload}.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from ...domain.errors import OfferDeskError
from ...models import Buyer, Offer
from ...schemas import BuyerOut, OfferOut

log = logging.getLogger(__name__)

GENERIC_MESSAGE = "An unexpected error occurred. Please try again later."


def _serialize(value: Any) -> Any:
    if isinstance(value, Offer):
        return OfferOut.from_offer(value).model_dump(mode="json", by_alias=True)
    if isinstance(value, Buyer):
        return BuyerOut.from_buyer(value).model_dump(mode="json", by_alias=True)
    return jsonable_encoder(value)


def describe_validation_errors(exc: RequestValidationError) -> str:
    parts: list[str] = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path", "header")]
        field = ".".join(loc) or "request"
        parts.append(f"{field}: {err.get('msg', 'invalid value')}")
    return "Invalid request: " + "; ".join(parts) if parts else "Invalid request"


async def _offerdesk_error(request: Request, exc: OfferDeskError) -> JSONResponse:
    if exc.http_status >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    body = {"message": exc.message}
    body.update({k: _serialize(v) for k, v in exc.payload.items()})
    return JSONResponse(status_code=exc.http_status, content=body)


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"message": describe_validation_errors(exc)})


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _db_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    log.exception("database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": GENERIC_MESSAGE})


async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
    log.exception("unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": GENERIC_MESSAGE})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(OfferDeskError, _offerdesk_error)
    app.add_exception_handler(RequestValidationError, _validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(SQLAlchemyError, _db_error)
    app.add_exception_handler(Exception, _unhandled)
