import pytest
from sqlalchemy import func, select

from app.domain.errors import Conflict, NotFound, ValidationError
from app.domain.types import BuyerSource, BuyerType, OfferStatus
from app.models import Buyer, Offer, OfferHistory
from app.service_layer.use_cases import buyers as uc
from app.service_layer.use_cases.offers import BuyerIdentity, OfferLifecycle


async def _create(session, n: int = 1, **kw) -> Buyer:
    return await uc.create_buyer(
        session,
        email=kw.get("email", f"dir{n}@example.com"),
        phone=kw.get("phone", f"810-{n:04d}"),
        buyer_type=kw.get("buyer_type", BuyerType.Investor),
        first_name=kw.get("first_name", "Dana"),
        last_name=kw.get("last_name", f"D{n}"),
        preferred_areas=kw.get("preferred_areas"),
        source=kw.get("source"),
    )


@pytest.mark.asyncio
async def test_create_defaults_and_normalises(session):
    b = await _create(session, email="  Mixed@Case.COM ")
    assert b.email == "mixed@case.com"
    assert b.source == BuyerSource.MANUAL
    assert b.preferred_areas == []


@pytest.mark.asyncio
async def test_create_conflict_carries_existing_buyer(session):
    first = await _create(session, 1)
    with pytest.raises(Conflict) as ei:
        await _create(session, 2, phone=first.phone)
    assert ei.value.http_status == 409
    assert ei.value.payload["existingBuyer"].id == first.id


@pytest.mark.asyncio
async def test_update_rejects_email_or_phone_of_other_buyer(session):
    a = await _create(session, 1)
    b = await _create(session, 2)

    with pytest.raises(Conflict) as ei:
        await uc.update_buyer(session, b.id, email=a.email, phone=b.phone, first_name="x", last_name="y")
    assert ei.value.http_status == 400
    assert ei.value.message == "Email already in use by another buyer"

    with pytest.raises(Conflict) as ei:
        await uc.update_buyer(session, b.id, email=b.email, phone=a.phone, first_name="x", last_name="y")
    assert ei.value.message == "Phone number already in use by another buyer"


@pytest.mark.asyncio
async def test_update_keeps_unspecified_fields(session):
    b = await _create(session, 1, preferred_areas=["troy"])
    updated = await uc.update_buyer(
        session, b.id, email=b.email, phone=b.phone, first_name="New", last_name="Name"
    )
    assert updated.first_name == "New"
    assert updated.buyer_type == BuyerType.Investor
    assert updated.preferred_areas == ["troy"]
    assert updated.offers == []


@pytest.mark.asyncio
async def test_get_unknown_buyer(session):
    with pytest.raises(NotFound):
        await uc.get_buyer(session, 404)


@pytest.mark.asyncio
async def test_delete_cascades_offers_and_history(session, seeded_property, publisher):
    lc = OfferLifecycle(session, publisher)
    res = await lc.submit_offer(
        BuyerIdentity(email="gone@example.com", phone="1", first_name="G", last_name="O"), seeded_property.id, 260000
    )
    await lc.transition_offer(res.offer.id, OfferStatus.REJECTED, actor_id="a")
    await session.commit()

    await uc.delete_buyer(session, res.offer.buyer_id)
    await session.commit()

    for model in (Buyer, Offer, OfferHistory):
        assert (await session.execute(select(func.count(model.id)))).scalar_one() == 0


@pytest.mark.asyncio
async def test_vip_upsert_promotes_existing_buyer(session):
    b = await _create(session, 1)
    vip = await uc.create_vip_buyer(
        session,
        email=b.email,
        phone="other",
        buyer_type=BuyerType.CashBuyer,
        first_name="Vip",
        last_name="Person",
        preferred_areas=["novi"],
        external_id="auth|123",
    )
    assert vip.id == b.id
    assert vip.source == BuyerSource.VIP
    assert vip.preferred_areas == ["novi"]

    found = await uc.buyer_by_external_id(session, "auth|123")
    assert found.id == b.id


@pytest.mark.asyncio
async def test_vip_upsert_without_external_id_keeps_linked_identity(session):
    b = await _create(session, 1)
    common = dict(
        email=b.email,
        phone=b.phone,
        buyer_type=BuyerType.Investor,
        first_name="Vip",
        last_name="Person",
        preferred_areas=["novi"],
    )
    await uc.create_vip_buyer(session, external_id="auth|123", **common)

    again = await uc.create_vip_buyer(session, **{**common, "preferred_areas": ["troy"]})
    assert again.id == b.id
    assert again.preferred_areas == ["troy"]
    assert again.external_id == "auth|123"
    assert (await uc.buyer_by_external_id(session, "auth|123")).id == b.id


@pytest.mark.asyncio
async def test_buyers_by_area(session):
    await _create(session, 1, preferred_areas=["troy", "novi"])
    await _create(session, 2, preferred_areas=["novi"])
    await _create(session, 3)
    assert len(await uc.buyers_by_area(session, "novi")) == 2
    assert len(await uc.buyers_by_area(session, "troy")) == 1
    assert await uc.buyers_by_area(session, "flint") == []


@pytest.mark.asyncio
async def test_import_counts_rows(session):
    existing = await _create(session, 1)
    rows = [
        {"email": "new1@example.com", "phone": "900-1", "firstName": "N", "lastName": "One"},
        {"email": existing.email, "phone": existing.phone, "firstName": "Renamed", "lastName": "Buyer"},
        {"email": "missing@example.com", "firstName": "No", "lastName": "Phone"},
        {"email": "bad@example.com", "phone": "900-2", "firstName": "B", "lastName": "T", "buyerType": "Alien"},
    ]
    res = await uc.import_buyers(session, rows)

    assert (res.created, res.updated, res.failed) == (1, 1, 2)
    assert res.errors[0]["reason"] == "Missing required fields"
    assert "Invalid buyerType" in res.errors[1]["reason"]

    created = (await session.execute(select(Buyer).where(Buyer.email == "new1@example.com"))).scalars().one()
    assert created.buyer_type == BuyerType.Investor
    assert created.source == BuyerSource.CSV_IMPORT
    assert existing.first_name == "Renamed"


@pytest.mark.asyncio
async def test_import_requires_rows(session):
    with pytest.raises(ValidationError):
        await uc.import_buyers(session, [])


@pytest.mark.asyncio
async def test_email_skips_unsubscribed_and_personalises(session, publisher):
    a = await _create(session, 1, first_name="Ada", preferred_areas=["troy", "novi"])
    b = await _create(session, 2)
    b.unsubscribed = True
    await session.flush()

    res = await uc.send_email_to_buyers(
        session,
        publisher,
        buyer_ids=[a.id, b.id],
        subject="New listings",
        content="Hi {firstName}, new homes in {preferredAreas}.",
    )
    assert res["failed_count"] == 1
    assert [e["buyer_id"] for e in res["emails_sent"]] == [a.id]
    assert res["emails_sent"][0]["status"] == "queued"
    assert publisher.pending[0].body == "Hi Ada, new homes in troy, novi."
    assert publisher.pending[0].topic == "buyer.email"

    res = await uc.send_email_to_buyers(
        session, publisher, buyer_ids=[b.id], subject="s", content="c", include_unsubscribed=True
    )
    assert res["failed_count"] == 0


@pytest.mark.asyncio
async def test_email_validation(session, publisher):
    with pytest.raises(ValidationError):
        await uc.send_email_to_buyers(session, publisher, buyer_ids=[], subject="s", content="c")
    with pytest.raises(ValidationError):
        await uc.send_email_to_buyers(session, publisher, buyer_ids=[1], subject="", content="c")
    with pytest.raises(NotFound):
        await uc.send_email_to_buyers(session, publisher, buyer_ids=[99], subject="s", content="c")
