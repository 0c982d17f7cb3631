"""Hotel availability lookups built on the CRM client and the normaliser."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Callable, List, Optional

from hotel_gateway.availability.dates import DEFAULT_WINDOW_DAYS, parse_date_range
from hotel_gateway.availability.models import (
    AvailabilityContext,
    RoomTypeCalendar,
    RoomTypeSummary,
    StayDefaults,
)
from hotel_gateway.availability.normalizer import (
    UNKNOWN_ROOM_TYPE,
    normalize,
    parse_room_row,
    select_calendar,
)

from .metasphere_client import MetasphereClient

logger = logging.getLogger(__name__)


def as_yes_no(value: object, default: str = "no") -> str:
    """Upstream expects the pet flag as ``yes``/``no``."""
    text = str(value if value is not None else "").strip().lower()
    if text in ("1", "yes", "true"):
        return "yes"
    if text in ("0", "no", "false"):
        return "no"
    return default


@dataclass(frozen=True)
class Guests:
    adults: int = 1
    children: int = 0
    infants: int = 0
    pet: str = "no"

    def __post_init__(self) -> None:
        object.__setattr__(self, "pet", as_yes_no(self.pet))

    def to_dict(self) -> dict[str, object]:
        return {"adult": self.adults, "child": self.children, "infant": self.infants, "pet": self.pet}


@dataclass(frozen=True)
class SearchSummary:
    """Discovery view of a stay: how many nights are bookable and what they cost at best."""

    hotel_id: str
    check_in: date
    check_out: date
    guests: Guests
    currency_code: str
    room_type_count: int
    available_nights: int
    nightly_count: int
    total_price: float
    daily_prices: dict[str, float]

    def to_dict(self) -> dict[str, object]:
        return {
            "hotelId": self.hotel_id,
            "checkIn": self.check_in.isoformat(),
            "checkOut": self.check_out.isoformat(),
            "guests": self.guests.to_dict(),
            "currencyCode": self.currency_code,
            "roomTypeCount": self.room_type_count,
            "availableNights": self.available_nights,
            "baseQualifiedRate": {
                "totalPrice": self.total_price,
                "nightlyCount": self.nightly_count,
                "dailyPrices": dict(self.daily_prices),
            },
        }


class AvailabilityService:
    """Availability views for a single hotel."""

    def __init__(
        self,
        client: MetasphereClient,
        *,
        hotel_id: str,
        currency: str = "CAD",
        window_days: int = DEFAULT_WINDOW_DAYS,
        room_type_lookahead_days: int = 30,
        defaults: Optional[StayDefaults] = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.client = client
        self.hotel_id = hotel_id
        self.currency = currency.upper()
        self.window_days = window_days
        self.room_type_lookahead_days = room_type_lookahead_days
        self.defaults = defaults
        self._today = today

    async def context(
        self, start: object, end: object, *, currency: Optional[str] = None
    ) -> AvailabilityContext:
        start_date, end_date = parse_date_range(start, end)
        rows = await self.client.fetch_status_rows(
            self.hotel_id, start_date, end_date, window_days=self.window_days
        )
        return normalize(
            rows,
            start_date,
            end_date,
            currency=(currency or self.currency).upper(),
            defaults=self.defaults,
        )

    async def calendar(
        self,
        start: object,
        end: object,
        *,
        room_type_id: Optional[str] = None,
        currency: Optional[str] = None,
    ) -> RoomTypeCalendar:
        """Calendar for one room type, falling back to the whole hotel."""
        context = await self.context(start, end, currency=currency)
        return select_calendar(context, room_type_id)

    async def room_results(
        self, start: object, end: object, *, currency: Optional[str] = None
    ) -> List[RoomTypeCalendar]:
        """One calendar per room type, ordered by room type name."""
        context = await self.context(start, end, currency=currency)
        return [context.by_room_type[summary.room_type_id] for summary in context.room_types]

    async def room_types(self) -> List[RoomTypeSummary]:
        """Room types offered over the next few weeks, ordered by name."""
        start = self._today()
        end = start + timedelta(days=self.room_type_lookahead_days)
        rows = await self.client.fetch_status_rows(self.hotel_id, start, end, window_days=self.window_days)
        seen: dict[str, RoomTypeSummary] = {}
        for raw in rows:
            row = parse_room_row(raw)
            if row is None or row.room_type_id in seen or row.room_type_id == UNKNOWN_ROOM_TYPE:
                continue
            seen[row.room_type_id] = RoomTypeSummary(row.room_type_id, row.room_type_name)
        return sorted(seen.values(), key=lambda item: (item.room_type_name or "", item.room_type_id))

    async def search(
        self,
        check_in: object,
        check_out: object,
        *,
        guests: Optional[Guests] = None,
        currency: Optional[str] = None,
    ) -> SearchSummary:
        guests = guests or Guests()
        context = await self.context(check_in, check_out, currency=currency)
        aggregated = context.aggregated
        return SearchSummary(
            hotel_id=self.hotel_id,
            check_in=context.start_date,
            check_out=context.end_date,
            guests=guests,
            currency_code=(currency or self.currency).upper(),
            room_type_count=len(context.room_types),
            available_nights=aggregated.available_nights,
            nightly_count=len(aggregated.daily_prices),
            total_price=aggregated.total_price,
            daily_prices=dict(aggregated.daily_prices),
        )
