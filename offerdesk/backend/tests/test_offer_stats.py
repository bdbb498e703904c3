from datetime import datetime, timedelta

import pytest

from app.domain.types import BuyerSource, BuyerType, OfferStatus
from app.models import Buyer, Offer, Property
from app.service_layer.use_cases.metrics import build_trend, buyer_stats, offer_stats

NOW = datetime(2024, 6, 30, 18, 0, 0)


async def _buyer(session, n: int, **kw) -> Buyer:
    b = Buyer(
        email=f"s{n}@example.com",
        phone=f"248-{n:04d}",
        first_name="S",
        last_name=str(n),
        preferred_areas=kw.get("areas", []),
        buyer_type=kw.get("buyer_type"),
        source=kw.get("source"),
        created_at=kw.get("created_at", NOW),
    )
    session.add(b)
    await session.flush()
    return b


async def _offer(session, property_id: int, buyer: Buyer, status: OfferStatus, ts: datetime) -> Offer:
    o = Offer(property_id=property_id, buyer_id=buyer.id, offered_price=100000, status=status, timestamp=ts, created_at=ts)
    session.add(o)
    await session.flush()
    return o


@pytest.mark.asyncio
async def test_offer_stats_fixture(session, seeded_property, open_property):
    p1, p2 = seeded_property.id, open_property.id
    fixture = [
        (p1, OfferStatus.PENDING, NOW - timedelta(days=1)),
        (p1, OfferStatus.PENDING, NOW - timedelta(days=1)),
        (p1, OfferStatus.ACCEPTED, NOW - timedelta(days=2)),
        (p2, OfferStatus.REJECTED, NOW - timedelta(days=2)),
        (p2, OfferStatus.COUNTERED, NOW - timedelta(days=40)),
        (555, OfferStatus.PENDING, NOW - timedelta(days=3)),
    ]
    for i, (pid, status, ts) in enumerate(fixture):
        await _offer(session, pid, await _buyer(session, i), status, ts)
    await session.commit()

    stats = await offer_stats(session, now=NOW)

    assert stats["by_status"] == {"PENDING": 3, "ACCEPTED": 1, "REJECTED": 1, "COUNTERED": 1}
    assert stats["total"] == 6 == sum(stats["by_status"].values())

    # the 40-day-old offer falls outside the trend window
    assert stats["trend"] == [
        {"date": "2024-06-27", "total": 1, "PENDING": 1},
        {"date": "2024-06-28", "total": 2, "ACCEPTED": 1, "REJECTED": 1},
        {"date": "2024-06-29", "total": 2, "PENDING": 2},
    ]

    top = stats["top_properties"]
    assert [(t["property_id"], t["count"]) for t in top] == [(p1, 3), (p2, 2), (555, 1)]
    assert top[0]["property"]["title"] == "Maple Street Bungalow"
    assert top[2]["property"]["title"] == "Unknown Property"
    assert top[2]["property"]["street_address"] == "Unknown Address"


@pytest.mark.asyncio
async def test_top_properties_ties_by_id_and_limit(session):
    for n in range(7):
        session.add(
            Property(title=f"P{n}", street_address="x", city="c", state="MI", asking_price=1.0)
        )
    await session.flush()
    for i, pid in enumerate([7, 3, 5, 1, 2, 6, 4]):
        await _offer(session, pid, await _buyer(session, i), OfferStatus.PENDING, NOW)
    await session.commit()

    stats = await offer_stats(session, now=NOW, top_n=5)
    assert [t["property_id"] for t in stats["top_properties"]] == [1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_empty_stats(session):
    stats = await offer_stats(session, now=NOW)
    assert stats == {"total": 0, "by_status": {}, "trend": [], "top_properties": []}


def test_build_trend_sorts_ascending():
    rows = [
        (datetime(2024, 1, 3, 9), OfferStatus.PENDING),
        (datetime(2024, 1, 1, 23, 59), OfferStatus.ACCEPTED),
        (datetime(2024, 1, 3, 1), OfferStatus.PENDING),
    ]
    assert build_trend(rows) == [
        {"date": "2024-01-01", "total": 1, "ACCEPTED": 1},
        {"date": "2024-01-03", "total": 2, "PENDING": 2},
    ]


@pytest.mark.asyncio
async def test_buyer_stats(session):
    await _buyer(session, 1, areas=["detroit", "troy"], buyer_type=BuyerType.Investor, source=BuyerSource.VIP,
                 created_at=datetime(2024, 5, 2))
    await _buyer(session, 2, areas=["troy"], buyer_type=BuyerType.Investor, source=BuyerSource.MANUAL,
                 created_at=datetime(2024, 5, 20))
    await _buyer(session, 3, buyer_type=BuyerType.Realtor, created_at=datetime(2024, 6, 1))
    await session.commit()

    stats = await buyer_stats(session)
    assert stats["total_count"] == 3
    assert stats["vip_count"] == 1
    assert stats["by_area"] == {"detroit": 1, "troy": 2}
    assert stats["by_type"] == {"Investor": 2, "Realtor": 1}
    assert stats["by_source"] == {"VIP Buyers List": 1, "Manual Entry": 1, "Unknown": 1}
    assert stats["monthly_growth"] == {"2024-05": 2, "2024-06": 1}
