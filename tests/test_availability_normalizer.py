from __future__ import annotations

from datetime import date

import pytest

from hotel_gateway.availability import StayDefaults, normalize, select_calendar
from hotel_gateway.availability.normalizer import (
    parse_inventory_count,
    parse_room_row,
    resolve_availability,
    to_int,
    to_number,
)

JAN_1 = date(2025, 1, 1)
JAN_5 = date(2025, 1, 5)


def _row(room_type_id: str, details: list[dict], **extra) -> dict:
    row = {"RoomTypeId": room_type_id, "RoomTypeName": f"Room {room_type_id}", "details": details}
    row.update(extra)
    return row


def test_available_row_wins_over_blocked_row_for_the_same_date() -> None:
    rows = [
        _row("A", [{"date": "2025-01-01", "Status": "reserved", "price": "100"}]),
        _row("B", [{"date": "2025-01-01", "Status": "available", "price": "120"}]),
    ]

    context = normalize(rows, JAN_1, date(2025, 1, 2))
    bucket = context.aggregated.days[0]

    assert bucket.available is True
    assert bucket.min_available_price == 120
    assert bucket.min_any_price == 100
    assert context.aggregated.daily_prices == {"2025-01-01": 120}
    assert context.aggregated.availability == {"2025-01-01": 1}


def test_only_blocked_rows_fall_back_to_any_price() -> None:
    rows = [
        _row("A", [{"date": "2025-01-01", "Status": "sold_out", "price": "140", "isAvailable": "3"}]),
        _row("B", [{"date": "2025-01-01", "Status": "Closed", "price": "90"}]),
    ]

    context = normalize(rows, JAN_1, date(2025, 1, 2))

    assert context.aggregated.availability == {"2025-01-01": 0}
    assert context.aggregated.daily_prices == {"2025-01-01": 90}


def test_later_rows_cannot_unmark_an_available_date() -> None:
    rows = [
        _row("A", [{"date": "2025-01-01", "Status": "open"}]),
        _row("A", [{"date": "2025-01-01", "Status": "blackout"}]),
    ]

    context = normalize(rows, JAN_1, date(2025, 1, 2))

    assert context.aggregated.availability["2025-01-01"] == 1
    assert context.by_room_type["A"].calendar.availability["2025-01-01"] == 1


def test_room_level_stay_bounds_apply_unless_the_day_overrides_them() -> None:
    rows = [
        _row(
            "K",
            [
                {"date": "2025-01-01", "Status": "available"},
                {"date": "2025-01-02", "Status": "available", "minimum_Stay": "3"},
            ],
            min_Nights="7",
            max_Nights="28",
        )
    ]

    context = normalize(rows, JAN_1, date(2025, 1, 3))

    for calendar in (context.aggregated, context.by_room_type["K"].calendar):
        assert calendar.min_stay == {"2025-01-01": 7, "2025-01-02": 3}
        assert calendar.max_stay == {"2025-01-01": 28, "2025-01-02": 28}


def test_merged_stay_bounds_keep_the_most_permissive_values() -> None:
    rows = [
        _row("A", [{"date": "2025-01-01", "minimum_Stay": 4, "maximum_Stay": 10}]),
        _row("B", [{"date": "2025-01-01", "minimumStay": "2", "maximumStay": "14"}]),
    ]

    context = normalize(rows, JAN_1, date(2025, 1, 2))

    assert context.aggregated.min_stay["2025-01-01"] == 2
    assert context.aggregated.max_stay["2025-01-01"] == 14
    assert context.by_room_type["A"].calendar.min_stay["2025-01-01"] == 4


def test_rows_without_room_bounds_use_the_hotel_default() -> None:
    rows = [
        _row("K", [{"date": "2025-01-01", "Status": "available"}], min_Nights=2),
        _row("Q", [{"date": "2025-01-02", "Status": "available"}]),
    ]

    context = normalize(rows, JAN_1, date(2025, 1, 4))

    assert context.aggregated.min_stay["2025-01-02"] == 2
    assert context.aggregated.min_stay["2025-01-03"] == 2
    assert context.aggregated.defaults.min_nights == 2
    assert context.by_room_type["Q"].calendar.min_stay["2025-01-02"] == 1
    assert context.by_room_type["Q"].calendar.max_stay["2025-01-02"] == 365


def test_caller_defaults_replace_the_builtin_fallback() -> None:
    rows = [_row("K", [{"date": "2025-01-01", "Status": "available"}])]

    context = normalize(rows, JAN_1, date(2025, 1, 2), defaults=StayDefaults(min_nights=2, max_nights=30))

    assert context.aggregated.min_stay["2025-01-01"] == 2
    assert context.aggregated.max_stay["2025-01-01"] == 30


def test_requested_dates_without_rows_are_unavailable_and_priceless() -> None:
    rows = [
        _row(
            "K",
            [
                {"date": "2025-01-01", "Status": "available", "price": "150"},
                {"date": "2025-01-03", "isAvailable": "2", "price": "$180.00"},
            ],
        )
    ]

    context = normalize(rows, JAN_1, JAN_5)
    aggregated = context.aggregated

    assert list(aggregated.availability) == ["2025-01-01", "2025-01-02", "2025-01-03", "2025-01-04"]
    assert aggregated.availability == {
        "2025-01-01": 1,
        "2025-01-02": 0,
        "2025-01-03": 1,
        "2025-01-04": 0,
    }
    assert aggregated.daily_prices == {"2025-01-01": 150.0, "2025-01-03": 180.0}
    assert aggregated.min_stay["2025-01-02"] == 1
    assert aggregated.max_stay["2025-01-04"] == 365


def test_output_is_ascending_regardless_of_row_order() -> None:
    rows = [
        _row("K", [{"date": "2025-01-04", "Status": "open"}]),
        _row("K", [{"date": "2025-01-02T00:00:00", "Status": "open"}, {"Date": "2025-01-01", "status": "open"}]),
    ]

    context = normalize(rows, JAN_1, JAN_5)

    assert [bucket.date for bucket in context.aggregated.days] == [
        date(2025, 1, 1),
        date(2025, 1, 2),
        date(2025, 1, 3),
        date(2025, 1, 4),
    ]
    assert context.aggregated.available_nights == 3


def test_dates_outside_the_requested_range_are_dropped() -> None:
    rows = [_row("K", [{"date": "2024-12-31", "Status": "open"}, {"date": "2025-01-05", "Status": "open"}])]

    context = normalize(rows, JAN_1, JAN_5)

    assert "2024-12-31" not in context.aggregated.availability
    assert "2025-01-05" not in context.aggregated.availability
    assert context.aggregated.available_nights == 0


def test_inventory_is_summed_across_rows() -> None:
    rows = [
        _row("A", [{"date": "2025-01-01", "isAvailable": "2"}]),
        _row("B", [{"date": "2025-01-01", "available": 3}]),
        _row("C", [{"date": "2025-01-01", "Available": "-4"}]),
    ]

    context = normalize(rows, JAN_1, date(2025, 1, 2))

    assert context.aggregated.days[0].inventory == 5
    assert context.aggregated.availability["2025-01-01"] == 1
    assert context.by_room_type["C"].calendar.availability["2025-01-01"] == 0


def test_room_type_missing_from_a_window_still_covers_the_full_range() -> None:
    window_one = [_row("K", [{"date": "2025-01-01", "Status": "open", "price": 100}])]
    window_two = [
        _row("K", [{"date": "2025-01-03", "Status": "open", "price": 110}]),
        _row("Q", [{"date": "2025-01-03", "Status": "open", "price": 90}]),
    ]

    context = normalize(window_one + window_two, JAN_1, JAN_5)
    queen = context.by_room_type["Q"].calendar

    assert list(queen.availability) == ["2025-01-01", "2025-01-02", "2025-01-03", "2025-01-04"]
    assert queen.availability["2025-01-01"] == 0
    assert queen.daily_prices == {"2025-01-03": 90}
    assert context.aggregated.daily_prices == {"2025-01-01": 100, "2025-01-03": 90}


def test_room_types_are_listed_by_name_and_unknown_ids_are_grouped() -> None:
    rows = [
        {"RoomTypeId": "S", "RoomTypeName": "Suite", "details": []},
        {"roomTypeId": "C", "roomTypeName": "Cabin", "details": []},
        {"RoomTypeName": "Mystery", "details": [{"date": "2025-01-01", "Status": "open"}]},
        "not-a-row",
    ]

    context = normalize(rows, JAN_1, date(2025, 1, 2))

    assert [summary.room_type_id for summary in context.room_types] == ["C", "unknown", "S"]
    assert context.by_room_type["unknown"].calendar.availability["2025-01-01"] == 1


def test_currency_is_taken_from_rows() -> None:
    rows = [_row("K", [], Currency="USD")]

    context = normalize(rows, JAN_1, date(2025, 1, 2), currency="cad")

    assert context.currency_code == "USD"
    assert context.by_room_type["K"].currency_code == "USD"
    assert normalize([], JAN_1, date(2025, 1, 2), currency="cad").currency_code == "CAD"


def test_select_calendar_falls_back_to_hotel_aggregate() -> None:
    rows = [_row("K", [{"date": "2025-01-01", "Status": "open", "price": 100}])]
    context = normalize(rows, JAN_1, date(2025, 1, 2))

    room = select_calendar(context, " K ")
    fallback = select_calendar(context, "does-not-exist")
    blank = select_calendar(context, None)

    assert room.room_type_id == "K"
    assert fallback.room_type_id is None
    assert fallback.calendar is context.aggregated
    assert blank.calendar is context.aggregated
    assert fallback.to_dict()["dailyPrices"] == {"2025-01-01": 100}


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("3", 3),
        ("2.7", 2),
        (4, 4),
        ("-1", 0),
        ("0", 0),
        ("yes", 1),
        ("Available", 1),
        ("true", 1),
        ("no", 0),
        ("", 0),
        (None, 0),
        ("nan", 0),
        ("inf", 0),
    ],
)
def test_parse_inventory_count(value: object, expected: int) -> None:
    assert parse_inventory_count(value) == expected


def test_status_keywords_override_inventory() -> None:
    assert resolve_availability("Not Available", 5) is False
    assert resolve_availability(" OPEN ", 0) is True
    assert resolve_availability("pending", 1) is True
    assert resolve_availability("", 0) is False


def test_value_parsers() -> None:
    assert to_number("CA$1,234.50") == 1234.5
    assert to_number("n/a") == 0
    assert to_number(None) == 0
    assert to_int("3 nights") == 3
    assert to_int("abc") is None
    assert to_int(None) is None


def test_parse_room_row_rejects_non_objects() -> None:
    assert parse_room_row(None) is None
    row = parse_room_row({"RoomTypeId": " 12 ", "details": [{"date": "bad"}, {"date": "2025-01-01"}]})
    assert row is not None
    assert row.room_type_id == "12"
    assert [detail.date for detail in row.details] == [JAN_1]


def test_hotel_default_does_not_depend_on_row_order() -> None:
    unbounded = _row("Q", [{"date": "2025-01-01", "Status": "available"}])
    bounded = _row("K", [{"date": "2025-01-02", "Status": "available"}], min_Nights=3, max_Nights=14)

    forward = normalize([bounded, unbounded], JAN_1, date(2025, 1, 3))
    backward = normalize([unbounded, bounded], JAN_1, date(2025, 1, 3))

    assert forward.aggregated.min_stay == backward.aggregated.min_stay == {"2025-01-01": 3, "2025-01-02": 3}
    assert forward.aggregated.max_stay == backward.aggregated.max_stay == {"2025-01-01": 14, "2025-01-02": 14}
