# app/integrations/templates.py
"""
Message templates for offer and buyer notifications.

Every template returns a Notification with a stable topic (used as the
webhook event type), a human subject/body and a small structured payload.
"""
from __future__ import annotations

from typing import Any

from ..domain.formatting import format_price, full_name
from ..domain.types import OfferStatus
from ..models import Buyer, Offer, Property
from .base import Notification

NEW_OFFER = "New Offer Submitted"
LOW_OFFER = "Low Offer Submitted"
UPDATED_OFFER = "Offer Updated"
OFFER_ACCEPTED = "Offer Accepted"
OFFER_REJECTED = "Offer Rejected"
OFFER_COUNTERED = "Offer Countered"
OFFER_STATUS_UPDATED = "Offer Status Updated"


def _property_label(prop: Property | None) -> str:
    if prop is None:
        return "Unknown Property"
    parts = [prop.street_address, prop.city, prop.state]
    addr = ", ".join(p for p in parts if p)
    return f"{prop.title} ({addr})" if addr else prop.title


def _offer_data(offer: Offer | None, prop: Property | None, buyer: Buyer | None, price: float) -> dict[str, Any]:
    return {
        "offer_id": offer.id if offer is not None else None,
        "property_id": prop.id if prop is not None else (offer.property_id if offer is not None else None),
        "buyer_id": buyer.id if buyer is not None else None,
        "buyer_email": buyer.email if buyer is not None else None,
        "offered_price": float(price),
        "status": offer.status.value if offer is not None else None,
    }


def _buyer_lines(buyer: Buyer) -> str:
    return (
        f"Buyer: {full_name(buyer.first_name, buyer.last_name)}\n"
        f"Email: {buyer.email}\n"
        f"Phone: {buyer.phone}\n"
        f"Buyer type: {buyer.buyer_type.value if buyer.buyer_type else 'n/a'}"
    )


def new_offer_template(prop: Property, buyer: Buyer, offered_price: float, offer: Offer | None = None) -> Notification:
    body = (
        f"A new offer of {format_price(offered_price)} was submitted on {_property_label(prop)}.\n"
        f"Asking price: {format_price(prop.asking_price)}\n"
        f"{_buyer_lines(buyer)}"
    )
    return Notification(
        topic="offer.created",
        subject=NEW_OFFER,
        body=body,
        data=_offer_data(offer, prop, buyer, offered_price),
    )


def low_offer_template(prop: Property, buyer: Buyer, offered_price: float, offer: Offer | None = None) -> Notification:
    body = (
        f"An offer of {format_price(offered_price)} on {_property_label(prop)} is below the "
        f"minimum price of {format_price(prop.min_price)}.\n"
        f"Asking price: {format_price(prop.asking_price)}\n"
        f"{_buyer_lines(buyer)}"
    )
    return Notification(
        topic="offer.low",
        subject=LOW_OFFER,
        body=body,
        data=_offer_data(offer, prop, buyer, offered_price),
    )


def updated_offer_template(
    prop: Property,
    buyer: Buyer,
    offered_price: float,
    offer: Offer | None = None,
    previous_price: float | None = None,
) -> Notification:
    prev = f" (previously {format_price(previous_price)})" if previous_price is not None else ""
    body = (
        f"{full_name(buyer.first_name, buyer.last_name)} raised their offer on {_property_label(prop)} "
        f"to {format_price(offered_price)}{prev}.\n"
        f"Asking price: {format_price(prop.asking_price)}\n"
        f"{_buyer_lines(buyer)}"
    )
    data = _offer_data(offer, prop, buyer, offered_price)
    data["previous_price"] = previous_price
    return Notification(topic="offer.updated", subject=UPDATED_OFFER, body=body, data=data)


def status_change_template(
    prop: Property | None,
    offer: Offer,
    previous_status: OfferStatus,
    counter_price: float | None = None,
) -> Notification:
    """Keyed by the new status: accepted / rejected / countered / generic."""
    buyer = offer.buyer
    label = _property_label(prop)
    name = full_name(buyer.first_name, buyer.last_name) if buyer is not None else "Buyer"

    if offer.status == OfferStatus.ACCEPTED:
        subject = OFFER_ACCEPTED
        body = f"Hi {name}, your offer of {format_price(offer.offered_price)} on {label} has been accepted."
    elif offer.status == OfferStatus.REJECTED:
        subject = OFFER_REJECTED
        body = f"Hi {name}, your offer of {format_price(offer.offered_price)} on {label} was not accepted."
    elif offer.status == OfferStatus.COUNTERED:
        subject = OFFER_COUNTERED
        body = (
            f"Hi {name}, the seller countered your offer of {format_price(offer.offered_price)} "
            f"on {label} at {format_price(counter_price)}."
        )
    else:
        subject = OFFER_STATUS_UPDATED
        body = f"Hi {name}, your offer on {label} is now {offer.status.value.lower()}."

    data = _offer_data(offer, prop, buyer, offer.offered_price)
    data["previous_status"] = previous_status.value
    data["counter_price"] = counter_price
    return Notification(topic=f"offer.{offer.status.value.lower()}", subject=subject, body=body, data=data)


def buyer_email_template(buyer: Buyer, subject: str, content: str) -> Notification:
    """
    Personalised bulk email. Supported placeholders:
    {firstName} {lastName} {email} {preferredAreas}
    """
    personalised = (
        content.replace("{firstName}", buyer.first_name or "")
        .replace("{lastName}", buyer.last_name or "")
        .replace("{email}", buyer.email or "")
        .replace("{preferredAreas}", ", ".join(buyer.preferred_areas or []))
    )
    return Notification(
        topic="buyer.email",
        subject=subject,
        body=personalised,
        data={"buyer_id": buyer.id, "to": buyer.email},
    )
