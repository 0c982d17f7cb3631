"""Merge upstream rate/status rows into a per-date availability calendar."""
from __future__ import annotations

import logging
import math
import re
from datetime import date
from typing import Any, Dict, Iterable, List, Optional

from .dates import each_date, parse_iso_date
from .models import (
    AvailabilityContext,
    DateBucket,
    DayDetail,
    NormalizedCalendar,
    RoomRow,
    RoomTypeCalendar,
    RoomTypeSummary,
    StayDefaults,
)

logger = logging.getLogger(__name__)

UNKNOWN_ROOM_TYPE = "unknown"

BLOCKED_STATUSES = frozenset(
    {
        "reserved",
        "unavailable",
        "blocked",
        "booked",
        "closed",
        "close",
        "blackout",
        "soldout",
        "sold_out",
        "not available",
    }
)
OPEN_STATUSES = frozenset({"available", "open"})

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LEADING_INT = re.compile(r"^[+-]?\d+")


def _first(mapping: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = mapping.get(key)
        if value is not None:
            return value
    return None


def to_number(value: Any) -> float:
    """Permissive price parsing: strip currency symbols and separators; garbage is 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = _NON_NUMERIC.sub("", str(value))
        try:
            number = float(cleaned)
        except ValueError:
            return 0.0
    return number if math.isfinite(number) else 0.0


def to_int(value: Any) -> Optional[int]:
    """Leading integer of ``value`` (``"3 nights"`` -> 3); None when there is none."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    match = _LEADING_INT.match(str(value).strip())
    return int(match.group(0)) if match else None


def parse_inventory_count(value: Any) -> int:
    """Rooms left for a date: numbers are floored, yes-like keywords count as one."""
    if value is None:
        return 0
    normalized = str(value).strip().lower()
    if not normalized:
        return 0
    try:
        number = float(normalized)
    except ValueError:
        return 1 if normalized in ("true", "yes", "available") else 0
    if not math.isfinite(number) or number <= 0:
        return 0
    return math.floor(number)


def resolve_availability(status: Any, inventory: int) -> bool:
    """Explicit status keywords win; otherwise any inventory means bookable."""
    normalized = str(status or "").strip().lower()
    if normalized in BLOCKED_STATUSES:
        return False
    if normalized in OPEN_STATUSES:
        return True
    return inventory > 0


def parse_day_detail(raw: Any) -> Optional[DayDetail]:
    if not isinstance(raw, dict):
        return None
    day = parse_iso_date(str(_first(raw, "date", "Date") or "")[:10])
    if day is None:
        return None
    status = str(_first(raw, "Status", "status") or "").strip().lower()
    inventory = parse_inventory_count(_first(raw, "isAvailable", "available", "Available", "isAvail"))
    return DayDetail(
        date=day,
        status=status,
        inventory=inventory,
        available=resolve_availability(status, inventory),
        price=to_number(raw.get("price") or raw.get("Price")),
        min_stay=to_int(_first(raw, "minimum_Stay", "minimumStay")),
        max_stay=to_int(_first(raw, "maximum_Stay", "maximumStay")),
    )


def parse_room_row(raw: Any) -> Optional[RoomRow]:
    """Parse one upstream room row; anything that is not an object is rejected."""
    if not isinstance(raw, dict):
        return None
    room_type_id = str(_first(raw, "RoomTypeId", "roomTypeId") or "").strip() or UNKNOWN_ROOM_TYPE
    room_type_name = str(_first(raw, "RoomTypeName", "roomTypeName") or "").strip() or None
    details_raw = raw.get("details")
    details: List[DayDetail] = []
    if isinstance(details_raw, list):
        for entry in details_raw:
            detail = parse_day_detail(entry)
            if detail is not None:
                details.append(detail)
    currency = raw.get("Currency") or raw.get("currencyCode")
    return RoomRow(
        room_type_id=room_type_id,
        room_type_name=room_type_name,
        currency=str(currency) if currency else None,
        min_nights=to_int(_first(raw, "min_Nights", "minNights")),
        max_nights=to_int(_first(raw, "max_Nights", "maxNights")),
        details=details,
    )


def _finalize(
    buckets: Dict[date, DateBucket],
    dates: Iterable[date],
    defaults: StayDefaults,
) -> NormalizedCalendar:
    calendar = NormalizedCalendar(defaults=defaults)
    for day in dates:
        bucket = buckets.get(day) or DateBucket(date=day)
        key = day.isoformat()
        calendar.availability[key] = 1 if bucket.available else 0
        if bucket.best_price is not None:
            calendar.daily_prices[key] = bucket.best_price
        calendar.min_stay[key] = bucket.min_stay if bucket.min_stay is not None else defaults.min_nights
        calendar.max_stay[key] = bucket.max_stay if bucket.max_stay is not None else defaults.max_nights
        calendar.days.append(bucket)
    return calendar


def _pick(*values: Optional[int]) -> Optional[int]:
    for value in values:
        if value is not None:
            return value
    return None


class _RoomAccumulator:
    __slots__ = ("room_type_id", "room_type_name", "currency", "defaults", "buckets")

    def __init__(self, room_type_id: str) -> None:
        self.room_type_id = room_type_id
        self.room_type_name: Optional[str] = None
        self.currency: Optional[str] = None
        self.defaults = StayDefaults()
        self.buckets: Dict[date, DateBucket] = {}


def normalize(
    rows: Iterable[Any],
    start_date: date,
    end_date: date,
    *,
    currency: str = "CAD",
    defaults: Optional[StayDefaults] = None,
) -> AvailabilityContext:
    """Merge raw upstream rows into hotel-level and per-room-type calendars over ``[start_date, end_date)``.

    Stay bounds for a row's date resolve as: the day's own value, then the
    row's room-level value, then the request-level default (the loosest
    room-level bounds seen across all rows for the hotel aggregate, or across
    the room type's rows for its own calendar), then ``defaults``.
    """
    parsed: List[RoomRow] = []
    for raw in rows:
        row = parse_room_row(raw)
        if row is None:
            logger.debug("Skipping non-object availability row: %r", raw)
            continue
        parsed.append(row)

    hotel_defaults = StayDefaults()
    rooms: Dict[str, _RoomAccumulator] = {}
    currency_code = str(currency or "CAD").upper()
    for row in parsed:
        hotel_defaults.widen(row.min_nights, row.max_nights)
        room = rooms.get(row.room_type_id)
        if room is None:
            room = rooms[row.room_type_id] = _RoomAccumulator(row.room_type_id)
        if room.room_type_name is None and row.room_type_name:
            room.room_type_name = row.room_type_name
        if row.currency:
            room.currency = room.currency or row.currency
            currency_code = row.currency
        room.defaults.widen(row.min_nights, row.max_nights)

    hotel_buckets: Dict[date, DateBucket] = {}
    for row in parsed:
        room = rooms[row.room_type_id]
        for detail in row.details:
            if not start_date <= detail.date < end_date:
                continue
            hotel_bucket = hotel_buckets.get(detail.date)
            if hotel_bucket is None:
                hotel_bucket = hotel_buckets[detail.date] = DateBucket(date=detail.date)
            room_bucket = room.buckets.get(detail.date)
            if room_bucket is None:
                room_bucket = room.buckets[detail.date] = DateBucket(date=detail.date)

            hotel_bucket.merge(
                available=detail.available,
                inventory=detail.inventory,
                price=detail.price,
                min_stay=_pick(detail.min_stay, row.min_nights, hotel_defaults.min_nights),
                max_stay=_pick(detail.max_stay, row.max_nights, hotel_defaults.max_nights),
            )
            room_bucket.merge(
                available=detail.available,
                inventory=detail.inventory,
                price=detail.price,
                min_stay=_pick(detail.min_stay, row.min_nights, room.defaults.min_nights),
                max_stay=_pick(detail.max_stay, row.max_nights, room.defaults.max_nights),
            )

    requested = each_date(start_date, end_date)
    aggregated = _finalize(hotel_buckets, requested, hotel_defaults.resolved(defaults))

    by_room_type: Dict[str, RoomTypeCalendar] = {}
    for room in rooms.values():
        by_room_type[room.room_type_id] = RoomTypeCalendar(
            room_type_id=room.room_type_id,
            room_type_name=room.room_type_name,
            currency_code=room.currency or currency_code,
            calendar=_finalize(room.buckets, requested, room.defaults.resolved(defaults)),
        )

    room_types = sorted(
        (RoomTypeSummary(room.room_type_id, room.room_type_name) for room in rooms.values()),
        key=lambda summary: (summary.room_type_name or "", summary.room_type_id),
    )
    logger.debug(
        "Normalised %s rows into %s dates across %s room types",
        len(parsed),
        len(requested),
        len(by_room_type),
    )
    return AvailabilityContext(
        start_date=start_date,
        end_date=end_date,
        aggregated=aggregated,
        by_room_type=by_room_type,
        room_types=room_types,
        currency_code=currency_code,
    )


def select_calendar(context: AvailabilityContext, room_type_id: Optional[str] = None) -> RoomTypeCalendar:
    """The requested room type's calendar, or the hotel aggregate when the id is blank or unknown."""
    key = str(room_type_id or "").strip()
    if key and key in context.by_room_type:
        return context.by_room_type[key]
    if key:
        logger.info("Room type %s not offered; falling back to hotel availability", key)
    return RoomTypeCalendar(
        room_type_id=None,
        room_type_name=None,
        currency_code=context.currency_code,
        calendar=context.aggregated,
    )
