# app/service_layer/use_cases/buyers.py
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from ...adapters.repos.buyers import normalize_email, normalize_phone
from ...adapters.sqlalchemy_repos import SqlAlchemyRepos
from ...domain.errors import Conflict, NotFound, ValidationError
from ...domain.formatting import full_name
from ...domain.types import BuyerSource, BuyerType
from ...integrations.base import NotificationPublisher
from ...integrations.templates import buyer_email_template
from ...models import Buyer

log = logging.getLogger(__name__)


@dataclass
class ImportResult:
    created: int = 0
    updated: int = 0
    failed: int = 0
    errors: list[dict[str, Any]] = field(default_factory=list)


def _parse_buyer_type(raw: Any, default: BuyerType | None = None) -> BuyerType | None:
    if raw is None or raw == "":
        return default
    if isinstance(raw, BuyerType):
        return raw
    try:
        return BuyerType(str(raw).strip())
    except ValueError:
        raise ValidationError(f"Invalid buyerType: {raw}")


async def create_buyer(
    session: AsyncSession,
    *,
    email: str,
    phone: str,
    buyer_type: BuyerType,
    first_name: str,
    last_name: str,
    source: str | None = None,
    preferred_areas: list[str] | None = None,
    external_id: str | None = None,
) -> Buyer:
    repos = SqlAlchemyRepos(session)
    existing = await repos.buyers.find_by_email_or_phone(email=email, phone=phone)
    if existing is not None:
        raise Conflict(
            "A buyer with this email or phone number already exists.",
            payload={"existingBuyer": existing},
        )
    buyer = await repos.buyers.create(
        email=email,
        phone=phone,
        buyer_type=buyer_type,
        first_name=first_name,
        last_name=last_name,
        source=source or BuyerSource.MANUAL,
        preferred_areas=list(preferred_areas or []),
        external_id=external_id,
    )
    log.info("buyer %s created (source=%s)", buyer.id, buyer.source)
    return buyer


async def create_vip_buyer(
    session: AsyncSession,
    *,
    email: str,
    phone: str,
    buyer_type: BuyerType,
    first_name: str,
    last_name: str,
    preferred_areas: list[str],
    external_id: str | None = None,
) -> Buyer:
    """
    Upsert on email/phone; an existing buyer is promoted to the VIP list.
    """
    repos = SqlAlchemyRepos(session)
    buyer = await repos.buyers.find_by_email_or_phone(email=email, phone=phone)
    values = {
        "first_name": first_name,
        "last_name": last_name,
        "buyer_type": buyer_type,
        "preferred_areas": list(preferred_areas),
        "source": BuyerSource.VIP,
    }
    if external_id is not None:
        values["external_id"] = external_id
    if buyer is not None:
        return await repos.buyers.update(buyer, **values)
    return await repos.buyers.create(email=email, phone=phone, **values)


async def get_buyer(session: AsyncSession, buyer_id: int, *, with_offers: bool = True) -> Buyer:
    buyer = await SqlAlchemyRepos(session).buyers.get(buyer_id, with_offers=with_offers)
    if buyer is None:
        raise NotFound("Buyer not found")
    return buyer


async def list_buyers(session: AsyncSession) -> list[Buyer]:
    return await SqlAlchemyRepos(session).buyers.list_all(with_offers=True)


async def buyers_by_area(session: AsyncSession, area_id: str) -> list[Buyer]:
    return await SqlAlchemyRepos(session).buyers.list_by_area(area_id)


async def buyer_by_external_id(session: AsyncSession, external_id: str) -> Buyer:
    buyer = await SqlAlchemyRepos(session).buyers.find_by_external_id(external_id)
    if buyer is None:
        raise NotFound("Buyer not found")
    return buyer


async def update_buyer(
    session: AsyncSession,
    buyer_id: int,
    *,
    email: str,
    phone: str,
    first_name: str,
    last_name: str,
    buyer_type: BuyerType | None = None,
    source: str | None = None,
    preferred_areas: list[str] | None = None,
) -> Buyer:
    repos = SqlAlchemyRepos(session)
    buyer = await repos.buyers.get(buyer_id)
    if buyer is None:
        raise NotFound("Buyer not found")

    if normalize_email(email) != buyer.email:
        other = await repos.buyers.find_by_email(email)
        if other is not None and other.id != buyer.id:
            raise Conflict("Email already in use by another buyer", http_status=400)

    if normalize_phone(phone) != buyer.phone:
        other = await repos.buyers.find_by_phone(phone)
        if other is not None and other.id != buyer.id:
            raise Conflict("Phone number already in use by another buyer", http_status=400)

    values: dict[str, Any] = {
        "email": email,
        "phone": phone,
        "first_name": first_name,
        "last_name": last_name,
    }
    if buyer_type is not None:
        values["buyer_type"] = buyer_type
    if source is not None:
        values["source"] = source
    if preferred_areas is not None:
        values["preferred_areas"] = list(preferred_areas)

    await repos.buyers.update(buyer, **values)
    return await get_buyer(session, buyer.id)


async def delete_buyer(session: AsyncSession, buyer_id: int) -> Buyer:
    """Deletes the buyer and, first, all of its offers."""
    repos = SqlAlchemyRepos(session)
    buyer = await repos.buyers.get(buyer_id)
    if buyer is None:
        raise NotFound("Buyer not found")

    removed = await repos.offers.delete_for_buyer(buyer.id)
    await repos.buyers.delete(buyer)
    log.info("buyer %s deleted with %d offers", buyer_id, removed)
    return buyer


async def import_buyers(
    session: AsyncSession,
    rows: list[dict[str, Any]],
    *,
    source: str | None = None,
) -> ImportResult:
    """
    Create-or-update each row independently. A bad row is counted as failed
    and does not stop the import.
    """
    if not rows:
        raise ValidationError("No buyer data provided")

    source = source or BuyerSource.CSV_IMPORT
    repos = SqlAlchemyRepos(session)
    result = ImportResult()

    for row in rows:
        email = row.get("email")
        phone = row.get("phone")
        first_name = row.get("firstName") or row.get("first_name")
        last_name = row.get("lastName") or row.get("last_name")
        if not (email and phone and first_name and last_name):
            result.failed += 1
            result.errors.append({"data": row, "reason": "Missing required fields"})
            continue

        try:
            buyer_type = _parse_buyer_type(row.get("buyerType") or row.get("buyer_type"))
            areas = row.get("preferredAreas") or row.get("preferred_areas")
            async with session.begin_nested():
                existing = await repos.buyers.find_by_email_or_phone(email=email, phone=phone)
                if existing is not None:
                    await repos.buyers.update(
                        existing,
                        first_name=first_name,
                        last_name=last_name,
                        buyer_type=buyer_type or existing.buyer_type,
                        preferred_areas=list(areas) if areas else list(existing.preferred_areas or []),
                        source=source,
                    )
                    result.updated += 1
                else:
                    await repos.buyers.create(
                        email=email,
                        phone=phone,
                        first_name=first_name,
                        last_name=last_name,
                        buyer_type=buyer_type or BuyerType.Investor,
                        preferred_areas=list(areas or []),
                        source=source,
                    )
                    result.created += 1
        except Exception as e:
            log.warning("buyer import row failed: %s", e)
            result.failed += 1
            result.errors.append({"data": row, "reason": getattr(e, "message", None) or str(e)})

    log.info("buyer import: %d created, %d updated, %d failed", result.created, result.updated, result.failed)
    return result


async def send_email_to_buyers(
    session: AsyncSession,
    publisher: NotificationPublisher,
    *,
    buyer_ids: list[int],
    subject: str,
    content: str,
    include_unsubscribed: bool = False,
) -> dict[str, Any]:
    if not buyer_ids:
        raise ValidationError("At least one buyer ID is required")
    if not subject or not content:
        raise ValidationError("Email subject and content are required")

    buyers = await SqlAlchemyRepos(session).buyers.list_by_ids(buyer_ids, include_unsubscribed=include_unsubscribed)
    if not buyers:
        raise NotFound("No eligible buyers found with the provided IDs")

    emails_sent = []
    for b in buyers:
        publisher.publish(buyer_email_template(b, subject, content))
        emails_sent.append(
            {
                "buyer_id": b.id,
                "email": b.email,
                "name": full_name(b.first_name, b.last_name),
                "status": "queued",
            }
        )

    return {
        "message": f"Successfully queued emails to {len(emails_sent)} buyers",
        "emails_sent": emails_sent,
        "failed_count": len(buyer_ids) - len(emails_sent),
    }
