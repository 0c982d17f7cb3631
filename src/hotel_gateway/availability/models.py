"""Dataclasses for upstream availability rows and the normalised per-date calendar."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

DEFAULT_MIN_NIGHTS = 1
DEFAULT_MAX_NIGHTS = 365


@dataclass(slots=True)
class DayDetail:
    """One date of one upstream row, with values already parsed."""

    date: date
    status: str
    inventory: int
    available: bool
    price: float
    min_stay: Optional[int] = None
    max_stay: Optional[int] = None


@dataclass(slots=True)
class RoomRow:
    """One room type's rates for one upstream fetch window."""

    room_type_id: str
    room_type_name: Optional[str]
    currency: Optional[str]
    min_nights: Optional[int]
    max_nights: Optional[int]
    details: List[DayDetail] = field(default_factory=list)


@dataclass(slots=True)
class StayDefaults:
    """Stay-length bounds applied when a date carries none of its own."""

    min_nights: Optional[int] = None
    max_nights: Optional[int] = None

    def widen(self, min_nights: Optional[int], max_nights: Optional[int]) -> None:
        if min_nights is not None and (self.min_nights is None or min_nights < self.min_nights):
            self.min_nights = min_nights
        if max_nights is not None and (self.max_nights is None or max_nights > self.max_nights):
            self.max_nights = max_nights

    def resolved(self, fallback: Optional["StayDefaults"] = None) -> "StayDefaults":
        fallback_min = fallback.min_nights if fallback and fallback.min_nights is not None else DEFAULT_MIN_NIGHTS
        fallback_max = fallback.max_nights if fallback and fallback.max_nights is not None else DEFAULT_MAX_NIGHTS
        return StayDefaults(
            min_nights=self.min_nights if self.min_nights is not None else fallback_min,
            max_nights=self.max_nights if self.max_nights is not None else fallback_max,
        )

    def to_dict(self) -> dict[str, object]:
        return {"minNights": self.min_nights, "maxNights": self.max_nights}


@dataclass(slots=True)
class DateBucket:
    """Merged state of one calendar date across every contributing row."""

    date: date
    available: bool = False
    inventory: int = 0
    min_available_price: Optional[float] = None
    min_any_price: Optional[float] = None
    min_stay: Optional[int] = None
    max_stay: Optional[int] = None

    @property
    def best_price(self) -> Optional[float]:
        if self.min_available_price is not None:
            return self.min_available_price
        return self.min_any_price

    def merge(
        self,
        *,
        available: bool,
        inventory: int,
        price: float,
        min_stay: Optional[int],
        max_stay: Optional[int],
    ) -> None:
        if available:
            self.available = True
        self.inventory += max(inventory, 0)

        if price > 0:
            if self.min_any_price is None or price < self.min_any_price:
                self.min_any_price = price
            if available and (self.min_available_price is None or price < self.min_available_price):
                self.min_available_price = price

        if min_stay is not None and (self.min_stay is None or min_stay < self.min_stay):
            self.min_stay = min_stay
        if max_stay is not None and (self.max_stay is None or max_stay > self.max_stay):
            self.max_stay = max_stay

    def to_dict(self) -> dict[str, object]:
        return {
            "date": self.date.isoformat(),
            "available": self.available,
            "inventory": self.inventory,
            "price": self.best_price,
            "bestAvailablePrice": self.min_available_price,
            "bestAnyPrice": self.min_any_price,
            "minStay": self.min_stay,
            "maxStay": self.max_stay,
        }


@dataclass(slots=True)
class NormalizedCalendar:
    """Per-date maps keyed by ISO date, in ascending date order."""

    daily_prices: Dict[str, float] = field(default_factory=dict)
    availability: Dict[str, int] = field(default_factory=dict)
    min_stay: Dict[str, int] = field(default_factory=dict)
    max_stay: Dict[str, int] = field(default_factory=dict)
    defaults: StayDefaults = field(default_factory=StayDefaults)
    days: List[DateBucket] = field(default_factory=list)

    @property
    def available_nights(self) -> int:
        return sum(1 for flag in self.availability.values() if flag == 1)

    @property
    def total_price(self) -> float:
        return sum(self.daily_prices.values())

    def to_dict(self) -> dict[str, object]:
        return {
            "dailyPrices": dict(self.daily_prices),
            "availability": dict(self.availability),
            "minStay": dict(self.min_stay),
            "maxStay": dict(self.max_stay),
            "defaults": self.defaults.to_dict(),
            "days": [bucket.to_dict() for bucket in self.days],
        }


@dataclass(slots=True)
class RoomTypeSummary:
    room_type_id: str
    room_type_name: Optional[str] = None

    def to_dict(self) -> dict[str, object]:
        return {"roomTypeId": self.room_type_id, "roomTypeName": self.room_type_name}


@dataclass(slots=True)
class RoomTypeCalendar:
    """A calendar scoped to one room type, or to the whole hotel when ``room_type_id`` is None."""

    room_type_id: Optional[str]
    room_type_name: Optional[str]
    currency_code: str
    calendar: NormalizedCalendar

    def to_dict(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "roomTypeId": self.room_type_id,
            "roomTypeName": self.room_type_name,
            "currencyCode": self.currency_code,
        }
        payload.update(self.calendar.to_dict())
        return payload


@dataclass(slots=True)
class AvailabilityContext:
    """Output of :func:`hotel_gateway.availability.normalize`."""

    start_date: date
    end_date: date
    aggregated: NormalizedCalendar
    by_room_type: Dict[str, RoomTypeCalendar]
    room_types: List[RoomTypeSummary]
    currency_code: str

    def to_dict(self) -> dict[str, object]:
        return {
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "currencyCode": self.currency_code,
            "aggregated": self.aggregated.to_dict(),
            "byRoomType": {key: value.to_dict() for key, value in self.by_room_type.items()},
            "roomTypes": [summary.to_dict() for summary in self.room_types],
        }
