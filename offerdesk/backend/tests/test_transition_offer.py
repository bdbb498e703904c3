from datetime import datetime, timedelta

import pytest

from app.domain.errors import InvalidTransition, NotFound, ValidationError
from app.domain.types import OfferStatus
from app.integrations.templates import OFFER_ACCEPTED, OFFER_COUNTERED, OFFER_STATUS_UPDATED
from app.jobs.expiry import run_expiry
from app.models import Offer
from app.service_layer.use_cases.offers import EXPIRY_ACTOR, BuyerIdentity, OfferLifecycle


async def _pending_offer(lc: OfferLifecycle, property_id: int, n: int = 1, price: float = 275000) -> Offer:
    ident = BuyerIdentity(email=f"b{n}@example.com", phone=f"555-{n:04d}", first_name="Pat", last_name=f"B{n}")
    res = await lc.submit_offer(ident, property_id, price)
    return res.offer


@pytest.mark.asyncio
async def test_counter_appends_exactly_one_history_entry(session, seeded_property, publisher):
    lc = OfferLifecycle(session, publisher)
    offer = await _pending_offer(lc, seeded_property.id)
    publisher.pending.clear()

    res = await lc.transition_offer(offer.id, OfferStatus.COUNTERED, 290000, actor_id="admin-1")

    assert res.offer.status == OfferStatus.COUNTERED
    assert res.offer.counter_price == 290000
    assert res.counter_price == 290000
    assert res.message == "Offer has been countered successfully"
    assert len(res.offer.history) == 1
    h = res.offer.history[0]
    assert (h.from_status, h.to_status) == (OfferStatus.PENDING, OfferStatus.COUNTERED)
    assert h.counter_price == 290000
    assert h.updated_by == "admin-1"

    assert [n.subject for n in publisher.pending] == [OFFER_COUNTERED]


@pytest.mark.parametrize("counter", [None, 0, -100])
@pytest.mark.asyncio
async def test_invalid_counter_changes_nothing(session, seeded_property, publisher, counter):
    lc = OfferLifecycle(session, publisher)
    offer = await _pending_offer(lc, seeded_property.id)

    with pytest.raises(ValidationError):
        await lc.transition_offer(offer.id, OfferStatus.COUNTERED, counter, actor_id="admin-1")

    fresh = await session.get(Offer, offer.id)
    assert fresh.status == OfferStatus.PENDING
    assert fresh.history == []


@pytest.mark.asyncio
async def test_accept_after_counter_clears_counter_price(session, seeded_property, publisher):
    lc = OfferLifecycle(session, publisher)
    offer = await _pending_offer(lc, seeded_property.id)
    await lc.transition_offer(offer.id, OfferStatus.COUNTERED, 290000, actor_id="admin-1")
    res = await lc.transition_offer(offer.id, OfferStatus.ACCEPTED, actor_id="admin-2")

    assert res.offer.counter_price is None
    assert res.counter_price is None
    assert [h.to_status for h in res.offer.history] == [OfferStatus.COUNTERED, OfferStatus.ACCEPTED]
    assert res.offer.history[1].counter_price is None
    assert publisher.pending[-1].subject == OFFER_ACCEPTED


@pytest.mark.asyncio
async def test_missing_actor_recorded_as_unknown(session, seeded_property, publisher):
    lc = OfferLifecycle(session, publisher)
    offer = await _pending_offer(lc, seeded_property.id)
    res = await lc.transition_offer(offer.id, OfferStatus.REJECTED)
    assert res.offer.history[0].updated_by == "unknown"


@pytest.mark.asyncio
async def test_transition_does_not_touch_timestamp(session, seeded_property, publisher):
    lc = OfferLifecycle(session, publisher)
    offer = await _pending_offer(lc, seeded_property.id)
    before = offer.timestamp
    res = await lc.transition_offer(offer.id, OfferStatus.REJECTED, actor_id="a")
    assert res.offer.timestamp == before


@pytest.mark.asyncio
async def test_unknown_offer(session, publisher):
    lc = OfferLifecycle(session, publisher)
    with pytest.raises(NotFound):
        await lc.transition_offer(12345, OfferStatus.ACCEPTED, actor_id="a")


@pytest.mark.asyncio
async def test_any_to_any_by_default(session, seeded_property, publisher):
    lc = OfferLifecycle(session, publisher)
    offer = await _pending_offer(lc, seeded_property.id)
    await lc.transition_offer(offer.id, OfferStatus.REJECTED, actor_id="a")
    res = await lc.transition_offer(offer.id, OfferStatus.ACCEPTED, actor_id="a")
    assert res.offer.status == OfferStatus.ACCEPTED


@pytest.mark.asyncio
async def test_strict_mode_refuses_reopening(session, seeded_property, publisher):
    lc = OfferLifecycle(session, publisher, strict_transitions=True)
    offer = await _pending_offer(lc, seeded_property.id)
    await lc.transition_offer(offer.id, OfferStatus.REJECTED, actor_id="a")

    with pytest.raises(InvalidTransition):
        await lc.transition_offer(offer.id, OfferStatus.ACCEPTED, actor_id="a")

    fresh = await session.get(Offer, offer.id)
    assert fresh.status == OfferStatus.REJECTED
    assert len(fresh.history) == 1


@pytest.mark.asyncio
async def test_expiry_moves_stale_open_offers(session, seeded_property, publisher):
    lc = OfferLifecycle(session, publisher)
    old = await _pending_offer(lc, seeded_property.id, n=1)
    recent = await _pending_offer(lc, seeded_property.id, n=2)
    accepted = await _pending_offer(lc, seeded_property.id, n=3, price=300000)

    old.timestamp = datetime.utcnow() - timedelta(days=45)
    accepted.timestamp = datetime.utcnow() - timedelta(days=45)
    await session.flush()
    publisher.pending.clear()

    res = await run_expiry(session, publisher, expiry_days=30)

    assert res["enabled"] is True
    assert res["offer_ids"] == [old.id]
    assert old.status == OfferStatus.EXPIRED
    assert old.history[-1].updated_by == EXPIRY_ACTOR
    assert recent.status == OfferStatus.PENDING
    assert accepted.status == OfferStatus.ACCEPTED
    assert [n.subject for n in publisher.pending] == [OFFER_STATUS_UPDATED]


@pytest.mark.asyncio
async def test_expiry_disabled_without_days(session, publisher):
    res = await run_expiry(session, publisher, expiry_days=None)
    assert res == {"enabled": False, "cutoff": None, "expired": 0, "offer_ids": []}
