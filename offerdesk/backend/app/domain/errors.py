"""Exception hierarchy for offer and buyer operations.

Each error knows the HTTP status it maps to and an optional payload that is
merged into the JSON error body, so callers can react to the conflicting
record without a second request.
"""
from __future__ import annotations

from typing import Any


class OfferDeskError(Exception):
    """Base exception for all domain errors."""

    http_status = 500

    def __init__(self, message: str, *, payload: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.payload = payload or {}


class ValidationError(OfferDeskError):
    """Missing or malformed input."""

    http_status = 400


class InvalidTransition(ValidationError):
    """Status change refused by the strict transition matrix."""


class NotFound(OfferDeskError):
    """Referenced buyer, offer or property does not exist."""

    http_status = 404


class Conflict(OfferDeskError):
    """The request collides with an existing record."""

    http_status = 409

    def __init__(
        self,
        message: str,
        *,
        payload: dict[str, Any] | None = None,
        http_status: int | None = None,
    ) -> None:
        super().__init__(message, payload=payload)
        if http_status is not None:
            self.http_status = http_status


class StaleOffer(Conflict):
    """A resubmitted offer does not exceed the buyer's existing offer."""

    http_status = 400

    def __init__(self, message: str, *, existing_price: float, payload: dict[str, Any] | None = None) -> None:
        super().__init__(message, payload=payload)
        self.existing_price = existing_price


class InternalError(OfferDeskError):
    """Persistence or unexpected failure. The message is safe to show clients."""

    http_status = 500
