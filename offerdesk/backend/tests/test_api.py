import httpx
import pytest
from sqlalchemy import select

from app.config import Settings
from app.db import create_schema
from app.entrypoints.fastapi_app import create_app
from app.models import JobRun, JobRunStatus, OutboxEvent, Property

ADMIN = {"X-API-Key": "test-key"}


@pytest.fixture
async def app():
    app = create_app(Settings(OFFERDESK_DB_URL="sqlite+aiosqlite:///:memory:", API_KEY="test-key"))
    await create_schema(app.state.engine)
    async with app.state.session_maker() as session:
        session.add(
            Property(
                title="Maple Street Bungalow",
                street_address="123 Maple St",
                city="Birmingham",
                state="MI",
                asking_price=300000.0,
                min_price=250000.0,
            )
        )
        await session.commit()
    try:
        yield app
    finally:
        await app.state.engine.dispose()


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


def _offer_body(price, **kw):
    body = {
        "email": "api@example.com",
        "phone": "555-1000",
        "firstName": "Api",
        "lastName": "Buyer",
        "propertyId": 1,
        "offeredPrice": price,
    }
    body.update(kw)
    return body


@pytest.mark.asyncio
async def test_submit_create_raise_and_stale(client):
    r = await client.post("/offers", json=_offer_body(275000, buyerType="Investor"))
    assert r.status_code == 201
    data = r.json()
    assert data["belowMinimum"] is False
    assert data["offer"]["offerStatus"] == "PENDING"
    assert data["offer"]["offeredPrice"] == 275000
    assert data["offer"]["buyer"]["email"] == "api@example.com"
    assert data["offer"]["modificationHistory"] == []

    r = await client.post("/offers", json=_offer_body(305000))
    assert r.status_code == 200
    assert r.json()["offer"]["offerStatus"] == "ACCEPTED"
    assert r.json()["offer"]["id"] == data["offer"]["id"]

    r = await client.post("/offers", json=_offer_body(300000))
    assert r.status_code == 400
    body = r.json()
    assert "$305,000" in body["message"]
    assert body["existingOffer"]["offeredPrice"] == 305000


@pytest.mark.asyncio
async def test_submit_below_minimum_has_warning(client):
    r = await client.post("/offers", json=_offer_body(240000))
    assert r.status_code == 201
    data = r.json()
    assert data["offer"]["offerStatus"] == "REJECTED"
    assert data["belowMinimum"] is True
    assert "$250,000" in data["warning"]


@pytest.mark.asyncio
async def test_submit_validation_and_unknown_property(client):
    body = _offer_body(275000)
    del body["firstName"]
    r = await client.post("/offers", json=body)
    assert r.status_code == 400
    assert "firstName" in r.json()["message"]

    r = await client.post("/offers", json=_offer_body(0))
    assert r.status_code == 400

    r = await client.post("/offers", json=_offer_body(275000, propertyId=999))
    assert r.status_code == 404
    assert r.json() == {"message": "Property 999 not found."}


@pytest.mark.asyncio
async def test_submit_enqueues_notification_after_response(client, app):
    r = await client.post("/offers", json=_offer_body(240000))
    assert r.status_code == 201

    async with app.state.session_maker() as session:
        events = (await session.execute(select(OutboxEvent))).scalars().all()
    assert [e.topic for e in events] == ["offer.low"]


@pytest.mark.asyncio
async def test_admin_routes_require_api_key(client):
    for path in ("/offers/all", "/offers/stats", "/offers/export", "/offers/1", "/buyers"):
        r = await client.get(path)
        assert r.status_code == 401, path
        assert r.json() == {"message": "Invalid API key"}


@pytest.mark.asyncio
async def test_transition_over_http(client):
    offer_id = (await client.post("/offers", json=_offer_body(275000))).json()["offer"]["id"]

    r = await client.put(f"/offers/{offer_id}", json={"offerStatus": "COUNTERED"}, headers=ADMIN)
    assert r.status_code == 400
    assert r.json()["message"] == "Counter offer requires a valid price"

    r = await client.put(
        f"/offers/{offer_id}",
        json={"offerStatus": "COUNTERED", "counterPrice": 290000},
        headers={**ADMIN, "X-Actor-Id": "agent-7"},
    )
    assert r.status_code == 200
    data = r.json()
    assert data["message"] == "Offer has been countered successfully"
    assert data["counterPrice"] == 290000
    assert data["offer"]["counterPrice"] == 290000
    history = data["offer"]["modificationHistory"]
    assert len(history) == 1
    assert history[0]["fromStatus"] == "PENDING"
    assert history[0]["updatedBy"] == "agent-7"

    r = await client.put(f"/offers/{offer_id}", json={"offerStatus": "WITHDRAWN"}, headers=ADMIN)
    assert r.status_code == 400

    r = await client.put("/offers/999", json={"offerStatus": "ACCEPTED"}, headers=ADMIN)
    assert r.status_code == 404

    r = await client.get(f"/offers/{offer_id}", headers=ADMIN)
    assert r.json()["offerStatus"] == "COUNTERED"


@pytest.mark.asyncio
async def test_listing_export_and_stats(client):
    for n, price in enumerate([240000, 275000, 310000]):
        await client.post("/offers", json=_offer_body(price, email=f"l{n}@example.com", phone=f"l{n}"))

    r = await client.get("/offers/all", params={"status": "PENDING"}, headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["pagination"] == {"total": 1, "page": 1, "limit": 20, "pages": 1}

    r = await client.get("/offers/all", params={"limit": 2, "page": 2}, headers=ADMIN)
    assert len(r.json()["offers"]) == 1
    assert r.json()["pagination"]["pages"] == 2

    r = await client.get("/offers/all", params={"status": "BOGUS"}, headers=ADMIN)
    assert r.status_code == 400

    r = await client.get("/offers/export", headers=ADMIN)
    assert r.headers["content-type"].startswith("text/csv")
    assert "attachment" in r.headers["content-disposition"]
    assert r.text.splitlines()[0] == "Property,Buyer Name,Buyer Email,Offer Price,Status,Date"
    assert len(r.text.splitlines()) == 4

    r = await client.get("/offers/stats", headers=ADMIN)
    stats = r.json()
    assert stats["total"] == 3
    assert stats["byStatus"] == {"REJECTED": 1, "PENDING": 1, "ACCEPTED": 1}
    assert stats["topProperties"][0]["propertyId"] == 1
    assert stats["topProperties"][0]["property"]["streetAddress"] == "123 Maple St"

    r = await client.get("/offers/property/1")
    assert r.json()["totalOffers"] == 3

    r = await client.get("/offers/buyer", params={"email": "l1@example.com"})
    assert r.json()["totalOffers"] == 1
    assert r.json()["buyer"]["firstName"] == "Api"


@pytest.mark.asyncio
async def test_buyer_endpoints(client):
    body = {
        "email": "dir@example.com",
        "phone": "700-1",
        "buyerType": "Investor",
        "firstName": "Dir",
        "lastName": "Buyer",
        "preferredAreas": ["troy"],
    }
    r = await client.post("/buyers", json=body, headers=ADMIN)
    assert r.status_code == 201
    buyer = r.json()["buyer"]
    assert buyer["source"] == "Manual Entry"

    r = await client.post("/buyers", json=body, headers=ADMIN)
    assert r.status_code == 409
    assert r.json()["existingBuyer"]["id"] == buyer["id"]

    r = await client.get("/buyers/area/troy", headers=ADMIN)
    assert r.json()["count"] == 1

    r = await client.get(f"/buyers/{buyer['id']}", headers=ADMIN)
    assert r.json()["offers"] == []

    r = await client.get("/buyers/by-external-id")
    assert r.status_code == 400

    r = await client.delete(f"/buyers/{buyer['id']}", headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["message"] == "Buyer and associated offers deleted successfully"

    r = await client.get(f"/buyers/{buyer['id']}", headers=ADMIN)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_health(client):
    r = await client.get("/health")
    assert r.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_job_endpoints_record_runs(client, app):
    r = await client.post("/jobs/dispatch", headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["delivered"] == 0

    r = await client.post("/jobs/expire-offers", headers=ADMIN)
    assert r.status_code == 200
    assert r.json() == {"enabled": False, "cutoff": None, "expired": 0, "offer_ids": []}

    async with app.state.session_maker() as session:
        runs = (await session.execute(select(JobRun).order_by(JobRun.id))).scalars().all()
    assert [(jr.job_name, jr.status) for jr in runs] == [
        ("dispatch_api", JobRunStatus.success),
        ("expire_offers_api", JobRunStatus.success),
    ]
