# app/domain/policies.py
from __future__ import annotations

from .errors import InvalidTransition, ValidationError
from .types import OfferStatus, PriceThresholds, Resolution


def is_below_minimum(offered_price: float, thresholds: PriceThresholds) -> bool:
    if thresholds.min_price is None:
        return False
    return float(offered_price) < float(thresholds.min_price)


def resolve_offer_status(offered_price: float, thresholds: PriceThresholds) -> Resolution:
    """
    Threshold rule, applied identically on create and on raise:
      - at or above asking -> ACCEPTED
      - below a set minimum -> REJECTED
      - anything else       -> PENDING

    below_minimum is reported separately from the status.
    """
    price = float(offered_price)
    below = is_below_minimum(price, thresholds)

    if price >= float(thresholds.asking_price):
        return Resolution(status=OfferStatus.ACCEPTED, below_minimum=below)
    if below:
        return Resolution(status=OfferStatus.REJECTED, below_minimum=True)
    return Resolution(status=OfferStatus.PENDING, below_minimum=False)


# Only consulted when strict transitions are enabled.
ALLOWED_TRANSITIONS: dict[OfferStatus, frozenset[OfferStatus]] = {
    OfferStatus.PENDING: frozenset(OfferStatus),
    OfferStatus.COUNTERED: frozenset(
        {OfferStatus.COUNTERED, OfferStatus.ACCEPTED, OfferStatus.REJECTED, OfferStatus.EXPIRED}
    ),
    OfferStatus.ACCEPTED: frozenset(),
    OfferStatus.REJECTED: frozenset(),
    OfferStatus.EXPIRED: frozenset(),
}


def validate_transition(
    current: OfferStatus,
    target: OfferStatus,
    counter_price: float | None,
    *,
    strict: bool = False,
) -> float | None:
    """
    Returns the counter price to record (None unless target is COUNTERED).
    """
    applied: float | None = None
    if target == OfferStatus.COUNTERED:
        if counter_price is None or float(counter_price) <= 0:
            raise ValidationError("Counter offer requires a valid price")
        applied = float(counter_price)

    if strict and target not in ALLOWED_TRANSITIONS.get(current, frozenset()):
        raise InvalidTransition(
            f"Offer cannot move from {current.value} to {target.value}",
            payload={"fromStatus": current.value, "toStatus": target.value},
        )
    return applied
