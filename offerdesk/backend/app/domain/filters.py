from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Generic, TypeVar

from .errors import ValidationError
from .types import OfferStatus

T = TypeVar("T")

ALL_STATUSES = "ALL"


@dataclass(frozen=True)
class OfferFilter:
    status: OfferStatus | None = None
    property_id: int | None = None
    buyer_id: int | None = None
    start: datetime | None = None
    end: datetime | None = None
    search: str | None = None

    @classmethod
    def from_query(
        cls,
        *,
        status: str | None = None,
        property_id: int | None = None,
        buyer_id: int | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        search: str | None = None,
    ) -> "OfferFilter":
        """
        Build a filter from loose query params.

        - status "ALL" (or blank) means no status filter
        - the end date is widened to the last microsecond of that day
        """
        st: OfferStatus | None = None
        if status and status.strip().upper() != ALL_STATUSES:
            try:
                st = OfferStatus(status.strip().upper())
            except ValueError:
                raise ValidationError(f"Invalid status: {status}")

        start = datetime.combine(start_date, time.min) if start_date else None
        end = end_of_day(end_date) if end_date else None

        term = (search or "").strip() or None
        return cls(status=st, property_id=property_id, buyer_id=buyer_id, start=start, end=end, search=term)


def end_of_day(d: date) -> datetime:
    return datetime.combine(d, time(23, 59, 59, 999999))


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0
