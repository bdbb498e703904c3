from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy import inspect

from .domain.types import BuyerType
from .models import Buyer, Offer, OfferHistory

OfferStatusName = Literal["PENDING", "ACCEPTED", "REJECTED", "COUNTERED", "EXPIRED"]


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _loaded(obj: Any, attr: str) -> bool:
    return attr not in inspect(obj).unloaded


# ----- Buyers -----

class BuyerSummary(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: str

    @classmethod
    def from_buyer(cls, b: Buyer) -> "BuyerSummary":
        return cls(id=b.id, first_name=b.first_name, last_name=b.last_name, email=b.email, phone=b.phone)


class BuyerOfferSummary(CamelModel):
    id: int
    property_id: int
    offered_price: float
    offer_status: str
    timestamp: datetime


class BuyerOut(CamelModel):
    id: int
    email: str
    phone: str
    first_name: str
    last_name: str
    buyer_type: str | None = None
    preferred_areas: list[str] = Field(default_factory=list)
    source: str | None = None
    external_id: str | None = None
    unsubscribed: bool = False
    created_at: datetime
    updated_at: datetime
    offers: list[BuyerOfferSummary] | None = None

    @classmethod
    def from_buyer(cls, b: Buyer) -> "BuyerOut":
        offers = None
        if _loaded(b, "offers"):
            offers = [
                BuyerOfferSummary(
                    id=o.id,
                    property_id=o.property_id,
                    offered_price=o.offered_price,
                    offer_status=o.status.value,
                    timestamp=o.timestamp,
                )
                for o in sorted(b.offers, key=lambda o: o.timestamp, reverse=True)
            ]
        return cls(
            id=b.id,
            email=b.email,
            phone=b.phone,
            first_name=b.first_name,
            last_name=b.last_name,
            buyer_type=b.buyer_type.value if b.buyer_type else None,
            preferred_areas=list(b.preferred_areas or []),
            source=b.source,
            external_id=b.external_id,
            unsubscribed=bool(b.unsubscribed),
            created_at=b.created_at,
            updated_at=b.updated_at,
            offers=offers,
        )


class BuyerCreate(CamelModel):
    email: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    buyer_type: BuyerType
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    source: str | None = None
    preferred_areas: list[str] | None = None


class BuyerUpdate(CamelModel):
    email: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    buyer_type: BuyerType | None = None
    source: str | None = None
    preferred_areas: list[str] | None = None


class VipBuyerCreate(CamelModel):
    email: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    buyer_type: BuyerType
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    preferred_areas: list[str]
    external_id: str | None = None


class BuyerMessage(CamelModel):
    message: str
    buyer: BuyerOut


class BuyersByArea(CamelModel):
    area_id: str
    count: int
    buyers: list[BuyerOut]


class BuyerEmailRequest(CamelModel):
    buyer_ids: list[int]
    subject: str
    content: str
    include_unsubscribed: bool = False


class EmailQueued(CamelModel):
    buyer_id: int
    email: str
    name: str
    status: str


class BuyerEmailResult(CamelModel):
    message: str
    emails_sent: list[EmailQueued]
    failed_count: int


class BuyerImportRequest(CamelModel):
    buyers: list[dict[str, Any]]
    source: str | None = None


class BuyerImportResults(CamelModel):
    created: int
    updated: int
    failed: int
    errors: list[dict[str, Any]]


class BuyerImportResult(CamelModel):
    message: str
    results: BuyerImportResults


class BuyerStats(CamelModel):
    total_count: int
    vip_count: int
    by_area: dict[str, int]
    by_type: dict[str, int]
    by_source: dict[str, int]
    monthly_growth: dict[str, int]


# ----- Offers -----

class HistoryEntryOut(CamelModel):
    timestamp: datetime
    from_status: str
    to_status: str
    counter_price: float | None = None
    updated_by: str

    @classmethod
    def from_entry(cls, h: OfferHistory) -> "HistoryEntryOut":
        return cls(
            timestamp=h.timestamp,
            from_status=h.from_status.value,
            to_status=h.to_status.value,
            counter_price=h.counter_price,
            updated_by=h.updated_by,
        )


class OfferOut(CamelModel):
    id: int
    property_id: int
    buyer_id: int
    offered_price: float
    offer_status: str
    counter_price: float | None = None
    timestamp: datetime
    modification_history: list[HistoryEntryOut] = Field(default_factory=list)
    buyer: BuyerSummary | None = None

    @classmethod
    def from_offer(cls, o: Offer) -> "OfferOut":
        history = [HistoryEntryOut.from_entry(h) for h in o.history] if _loaded(o, "history") else []
        buyer = BuyerSummary.from_buyer(o.buyer) if _loaded(o, "buyer") and o.buyer is not None else None
        return cls(
            id=o.id,
            property_id=o.property_id,
            buyer_id=o.buyer_id,
            offered_price=o.offered_price,
            offer_status=o.status.value,
            counter_price=o.counter_price,
            timestamp=o.timestamp,
            modification_history=history,
            buyer=buyer,
        )


class OfferCreate(CamelModel):
    email: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)
    buyer_type: BuyerType | None = None
    property_id: int
    offered_price: float = Field(..., gt=0)
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)


class OfferSubmitOut(CamelModel):
    message: str
    offer: OfferOut
    below_minimum: bool = False
    warning: str | None = None


class OfferStatusUpdate(CamelModel):
    offer_status: OfferStatusName
    counter_price: float | None = None


class OfferUpdateOut(CamelModel):
    message: str
    offer: OfferOut
    counter_price: float | None = None


class PropertyOffers(CamelModel):
    property_id: int
    total_offers: int
    offers: list[OfferOut]


class BuyerOffers(CamelModel):
    buyer: BuyerSummary
    total_offers: int
    offers: list[OfferOut]


class Pagination(CamelModel):
    total: int
    page: int
    limit: int
    pages: int


class OfferPage(CamelModel):
    offers: list[OfferOut]
    pagination: Pagination


class PropertySummary(CamelModel):
    id: int
    title: str
    street_address: str
    city: str
    state: str


class TopProperty(CamelModel):
    property_id: int
    count: int
    property: PropertySummary


class OfferStats(CamelModel):
    total: int
    by_status: dict[str, int]
    # {"date": "YYYY-MM-DD", "total": n, "<STATUS>": k, ...}
    trend: list[dict[str, Any]]
    top_properties: list[TopProperty]


# ----- Integrations / jobs -----

class IntegrationCreate(BaseModel):
    name: str
    type: Literal["webhook"] = "webhook"
    enabled: bool = True
    url: str
    secret: str | None = None


class IntegrationOut(BaseModel):
    id: int
    name: str
    type: str
    enabled: bool
    created_at: datetime


class DispatchResult(BaseModel):
    delivered: int
    failed: int
    sinks: int | None = None
    events: int | None = None
    skipped_no_sinks: int | None = None


class ExpiryResult(BaseModel):
    enabled: bool
    cutoff: datetime | None = None
    expired: int = 0
    offer_ids: list[int] = Field(default_factory=list)

