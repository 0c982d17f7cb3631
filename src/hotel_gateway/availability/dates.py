"""Calendar date helpers: strict ISO parsing, ranges and upstream query windows."""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

DEFAULT_WINDOW_DAYS = 90

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True)
class DateWindow:
    """Half-open ``[start, end)`` span sent to the upstream in one query."""

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days

    def to_params(self) -> dict[str, str]:
        return {"startTime": self.start.isoformat(), "endTime": self.end.isoformat()}


def parse_iso_date(value: object) -> Optional[date]:
    """Parse ``YYYY-MM-DD`` strictly; anything else (including impossible dates) is None."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raw = str(value or "").strip()
    if not _ISO_DATE.match(raw):
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def parse_date_range(start: object, end: object) -> tuple[date, date]:
    """Validate a requested ``[start, end)`` range."""
    start_date = parse_iso_date(start)
    end_date = parse_iso_date(end)
    if start_date is None or end_date is None:
        raise ValueError("startDate and endDate are required in YYYY-MM-DD format.")
    if start_date >= end_date:
        raise ValueError("startDate must be before endDate.")
    return start_date, end_date


def each_date(start: date, end: date) -> list[date]:
    """Every date from ``start`` inclusive to ``end`` exclusive."""
    days = (end - start).days
    return [start + timedelta(days=offset) for offset in range(max(days, 0))]


def split_into_windows(start: date, end: date, max_days: int = DEFAULT_WINDOW_DAYS) -> list[DateWindow]:
    """Partition ``[start, end)`` into successive windows of at most ``max_days`` days."""
    if max_days <= 0:
        raise ValueError("max_days must be positive")
    windows: list[DateWindow] = []
    current = start
    while current < end:
        window_end = min(current + timedelta(days=max_days), end)
        windows.append(DateWindow(start=current, end=window_end))
        current = window_end
    return windows
