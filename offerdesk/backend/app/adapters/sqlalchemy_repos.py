# app/adapters/sqlalchemy_repos.py
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from .repos.buyers import BuyerRepository
from .repos.offers import OfferRepository
from .repos.properties import PropertyRepository


class SqlAlchemyRepos:
    """All repositories bound to one session (one unit of work)."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.buyers = BuyerRepository(session)
        self.offers = OfferRepository(session)
        self.properties = PropertyRepository(session)
