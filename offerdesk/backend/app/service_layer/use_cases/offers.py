# app/service_layer/use_cases/offers.py
"""
Offer lifecycle: buyer submissions (create or raise) and admin status
transitions.

The engine flushes but never commits; the caller owns the transaction.
Notifications go through a NotificationPublisher, which only schedules work
and never raises, so a delivery problem can't undo a persisted change.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ...adapters.repos.properties import thresholds_for
from ...adapters.sqlalchemy_repos import SqlAlchemyRepos
from ...domain.errors import Conflict, NotFound, StaleOffer, ValidationError
from ...domain.formatting import format_price
from ...domain.policies import resolve_offer_status, validate_transition
from ...domain.types import BuyerSource, BuyerType, OfferStatus
from ...integrations.base import NotificationPublisher
from ...integrations.templates import (
    low_offer_template,
    new_offer_template,
    status_change_template,
    updated_offer_template,
)
from ...models import Buyer, Offer, OfferHistory, Property

log = logging.getLogger(__name__)

AUTO_RESOLUTION_ACTOR = "auto-resolution"
EXPIRY_ACTOR = "system:expiry"

MSG_ACCEPTED = "Congratulations! Your offer has been automatically accepted."
MSG_CREATED = "Offer created successfully."
MSG_RAISED = "Your previous offer was updated to the new higher price."


@dataclass(frozen=True)
class BuyerIdentity:
    email: str
    phone: str
    first_name: str
    last_name: str
    buyer_type: BuyerType | None = None


@dataclass
class SubmitResult:
    offer: Offer
    message: str
    created: bool
    below_minimum: bool
    warning: str | None = None


@dataclass
class TransitionResult:
    offer: Offer
    message: str
    counter_price: float | None = None


def _below_minimum_warning(prop: Property) -> str:
    return (
        f"Your offer is below the minimum price of {format_price(prop.min_price)}. "
        "Consider offering a higher price."
    )


class OfferLifecycle:
    def __init__(
        self,
        session: AsyncSession,
        publisher: NotificationPublisher,
        *,
        strict_transitions: bool = False,
    ) -> None:
        self.session = session
        self.repos = SqlAlchemyRepos(session)
        self.publisher = publisher
        self.strict_transitions = strict_transitions

    # ------------------------------------------------------------------
    # Buyer submissions
    # ------------------------------------------------------------------
    async def submit_offer(self, identity: BuyerIdentity, property_id: int, offered_price: float) -> SubmitResult:
        price = float(offered_price)
        if price <= 0:
            raise ValidationError("Offered price must be a positive number.")

        try:
            return await self._submit(identity, property_id, price)
        except IntegrityError:
            # A concurrent submission inserted the same buyer or (buyer, property)
            # offer first. Start over once; the second pass finds those rows.
            log.info("offer submit race on property %s for %s; retrying", property_id, identity.email)
            await self.session.rollback()
            return await self._submit(identity, property_id, price)

    async def _submit(self, identity: BuyerIdentity, property_id: int, price: float) -> SubmitResult:
        prop = await self.repos.properties.get(property_id)
        if prop is None:
            raise NotFound(f"Property {property_id} not found.")

        buyer, created_buyer = await self.repos.buyers.find_or_create(
            email=identity.email,
            phone=identity.phone,
            first_name=identity.first_name,
            last_name=identity.last_name,
            buyer_type=identity.buyer_type,
            source=BuyerSource.PROPERTY_OFFER,
        )
        if created_buyer:
            log.info("created buyer %s from offer submission", buyer.id)

        existing = await self.repos.offers.find_for_buyer_and_property(buyer.id, prop.id)
        if existing is not None:
            return await self._raise_offer(existing, prop, buyer, price)
        return await self._create_offer(prop, buyer, price)

    async def _create_offer(self, prop: Property, buyer: Buyer, price: float) -> SubmitResult:
        resolution = resolve_offer_status(price, thresholds_for(prop))
        now = datetime.utcnow()

        offer = await self.repos.offers.create(
            property_id=prop.id,
            buyer_id=buyer.id,
            buyer=buyer,
            offered_price=price,
            status=resolution.status,
            timestamp=now,
            created_at=now,
            history=[],
        )
        log.info("offer %s created on property %s at %s -> %s", offer.id, prop.id, price, resolution.status.value)

        warning = _below_minimum_warning(prop) if resolution.below_minimum else None
        if resolution.below_minimum:
            message = (
                f"Offer submitted successfully, but it is below the minimum price of "
                f"{format_price(prop.min_price)}. Consider offering a higher price."
            )
            self.publisher.publish(low_offer_template(prop, buyer, price, offer))
        else:
            message = MSG_ACCEPTED if resolution.status == OfferStatus.ACCEPTED else MSG_CREATED
            self.publisher.publish(new_offer_template(prop, buyer, price, offer))

        return SubmitResult(
            offer=offer,
            message=message,
            created=True,
            below_minimum=resolution.below_minimum,
            warning=warning,
        )

    async def _raise_offer(self, offer: Offer, prop: Property, buyer: Buyer, price: float) -> SubmitResult:
        thresholds = thresholds_for(prop)
        resolution = resolve_offer_status(price, thresholds)
        previous_price = float(offer.offered_price)
        previous_status = offer.status

        # compare-and-set on the previously read price, one retry on a lost race
        for attempt in (1, 2):
            previous_price = float(offer.offered_price)
            previous_status = offer.status
            if price <= previous_price:
                raise StaleOffer(
                    f"You have already made an offer of {format_price(previous_price)}. "
                    "Offer a higher price to update.",
                    existing_price=previous_price,
                    payload={"existingOffer": offer},
                )

            applied = await self.repos.offers.raise_price_if_unchanged(
                offer.id,
                expected_price=previous_price,
                values={
                    "offered_price": price,
                    "status": resolution.status,
                    "counter_price": None,
                    "timestamp": datetime.utcnow(),
                },
            )
            offer = await self.repos.offers.find_by_id(offer.id, refresh=True)
            if offer is None:
                raise NotFound("Offer not found.")
            if applied:
                break
            log.warning("offer %s price changed concurrently (attempt %d)", offer.id, attempt)
        else:
            raise Conflict("The offer was modified concurrently. Please try again.")

        if resolution.status != previous_status:
            await self.repos.offers.append_history(
                offer,
                OfferHistory(
                    timestamp=datetime.utcnow(),
                    from_status=previous_status,
                    to_status=resolution.status,
                    updated_by=AUTO_RESOLUTION_ACTOR,
                ),
            )
        log.info(
            "offer %s raised %s -> %s (%s -> %s)",
            offer.id, previous_price, price, previous_status.value, resolution.status.value,
        )

        self.publisher.publish(updated_offer_template(prop, buyer, price, offer, previous_price=previous_price))

        message = MSG_RAISED
        warning = None
        if resolution.below_minimum:
            warning = _below_minimum_warning(prop)
            message = f"{MSG_RAISED} {warning}"

        return SubmitResult(
            offer=offer,
            message=message,
            created=False,
            below_minimum=resolution.below_minimum,
            warning=warning,
        )

    # ------------------------------------------------------------------
    # Admin transitions
    # ------------------------------------------------------------------
    async def transition_offer(
        self,
        offer_id: int,
        target_status: OfferStatus,
        counter_price: float | None = None,
        actor_id: str | None = None,
    ) -> TransitionResult:
        offer = await self.repos.offers.find_by_id(offer_id)
        if offer is None:
            raise NotFound("Offer not found")

        previous = offer.status
        applied = validate_transition(previous, target_status, counter_price, strict=self.strict_transitions)

        offer.status = target_status
        offer.counter_price = applied
        await self.repos.offers.append_history(
            offer,
            OfferHistory(
                timestamp=datetime.utcnow(),
                from_status=previous,
                to_status=target_status,
                counter_price=applied,
                updated_by=actor_id or "unknown",
            ),
        )
        log.info("offer %s %s -> %s by %s", offer.id, previous.value, target_status.value, actor_id or "unknown")

        prop = await self.repos.properties.get(offer.property_id)
        self.publisher.publish(status_change_template(prop, offer, previous, applied))

        return TransitionResult(
            offer=offer,
            message=f"Offer has been {target_status.value.lower()} successfully",
            counter_price=applied,
        )

    async def expire_stale_offers(self, *, older_than: datetime, limit: int | None = None) -> list[Offer]:
        """
        Moves open offers (PENDING / COUNTERED) last touched before `older_than`
        to EXPIRED.
        """
        stale = await self.repos.offers.find_stale(
            [OfferStatus.PENDING, OfferStatus.COUNTERED],
            older_than=older_than,
            limit=limit,
        )
        expired: list[Offer] = []
        for offer in stale:
            res = await self.transition_offer(offer.id, OfferStatus.EXPIRED, actor_id=EXPIRY_ACTOR)
            expired.append(res.offer)
        return expired
