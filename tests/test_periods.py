from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from periods import (
    Period,
    add_months,
    clamped_date,
    month_anchor,
    month_period,
    month_window,
    months_between,
    parse_date,
    parse_month,
)


def test_month_anchor_is_first_of_month():
    assert month_anchor(date(2025, 3, 17)) == date(2025, 3, 1)
    assert month_anchor(date(2025, 3, 1)) == date(2025, 3, 1)


def test_month_anchor_uses_the_datetime_calendar_date():
    late_evening = datetime(2025, 3, 31, 23, 30, tzinfo=ZoneInfo("Europe/Berlin"))
    assert month_anchor(late_evening) == date(2025, 3, 1)
    assert month_anchor(datetime(2025, 4, 1, 0, 5, tzinfo=timezone.utc)) == date(
        2025, 4, 1
    )


def test_add_months_crosses_year_boundaries():
    assert add_months(date(2025, 11, 1), 3) == date(2026, 2, 1)
    assert add_months(date(2025, 1, 1), -1) == date(2024, 12, 1)
    assert add_months(date(2025, 1, 1), -25) == date(2022, 12, 1)
    assert add_months(date(2025, 1, 1), 0) == date(2025, 1, 1)


def test_months_between_is_signed():
    assert months_between(date(2023, 5, 10), date(2025, 1, 15)) == 20
    assert months_between(date(2025, 1, 15), date(2023, 5, 10)) == -20
    assert months_between(date(2025, 1, 1), date(2025, 1, 31)) == 0


def test_clamped_date_snaps_to_month_end():
    assert clamped_date(31, 2, 2025) == date(2025, 2, 28)
    assert clamped_date(31, 2, 2024) == date(2024, 2, 29)
    assert clamped_date(30, 2, 2025) == date(2025, 2, 28)
    assert clamped_date(31, 4, 2025) == date(2025, 4, 30)
    assert clamped_date(15, 4, 2025) == date(2025, 4, 15)


def test_clamping_does_not_carry_into_later_months():
    days = [clamped_date(31, month, 2025) for month in (1, 2, 3, 4, 5)]
    assert days == [
        date(2025, 1, 31),
        date(2025, 2, 28),
        date(2025, 3, 31),
        date(2025, 4, 30),
        date(2025, 5, 31),
    ]


def test_month_window_is_sorted_and_deduplicated():
    anchors = month_window(date(2025, 1, 15), [1, -1, 0, 0])
    assert anchors == [date(2024, 12, 1), date(2025, 1, 1), date(2025, 2, 1)]


def test_month_period_covers_leap_february():
    period = month_period(date(2024, 2, 10))
    assert period == Period("2024-02", date(2024, 2, 1), date(2024, 2, 29))
    assert period.contains(date(2024, 2, 29))
    assert not period.contains(date(2024, 3, 1))


def test_parse_date_accepts_day_first_and_iso():
    assert parse_date("31/01/2025", "%d/%m/%Y") == date(2025, 1, 31)
    assert parse_date("2025-01-31", "%d/%m/%Y") == date(2025, 1, 31)
    assert parse_date(date(2025, 1, 31)) == date(2025, 1, 31)
    assert parse_date(datetime(2025, 1, 31, 18, 0)) == date(2025, 1, 31)


@pytest.mark.parametrize("raw", ["31-01-2025", "31/02/2025", "", "   ", "yesterday"])
def test_parse_date_rejects_garbage(raw):
    with pytest.raises(ValueError):
        parse_date(raw, "%d/%m/%Y")


def test_parse_month():
    assert parse_month("2025-02") == date(2025, 2, 1)
    with pytest.raises(ValueError):
        parse_month("02/2025")
