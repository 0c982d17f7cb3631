"""Availability calendar models and normalisation helpers."""

from .dates import DateWindow, each_date, parse_date_range, parse_iso_date, split_into_windows
from .models import (
    AvailabilityContext,
    DateBucket,
    NormalizedCalendar,
    RoomTypeCalendar,
    RoomTypeSummary,
    StayDefaults,
)
from .normalizer import normalize, select_calendar

__all__ = [
    "AvailabilityContext",
    "DateBucket",
    "DateWindow",
    "NormalizedCalendar",
    "RoomTypeCalendar",
    "RoomTypeSummary",
    "StayDefaults",
    "each_date",
    "normalize",
    "parse_date_range",
    "parse_iso_date",
    "select_calendar",
    "split_into_windows",
]
