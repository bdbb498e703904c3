# app/domain/types.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OfferStatus(str, Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    COUNTERED = "COUNTERED"
    EXPIRED = "EXPIRED"


class BuyerType(str, Enum):
    CashBuyer = "CashBuyer"
    Investor = "Investor"
    Realtor = "Realtor"
    Builder = "Builder"
    Developer = "Developer"
    Wholesaler = "Wholesaler"
    OwnerOccupant = "OwnerOccupant"


class BuyerSource:
    """Provenance tags written to Buyer.source."""

    PROPERTY_OFFER = "Property Offer"
    VIP = "VIP Buyers List"
    MANUAL = "Manual Entry"
    CSV_IMPORT = "CSV Import"


@dataclass(frozen=True)
class PriceThresholds:
    asking_price: float
    min_price: float | None = None


@dataclass(frozen=True)
class Resolution:
    status: OfferStatus
    below_minimum: bool
