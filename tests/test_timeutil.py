from __future__ import annotations

import datetime
import sys
from pathlib import Path

import pytest

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from errors import InvalidTimeFormat, InvalidYearMonth, UnknownWeekday  # noqa: E402
from timeutil import (  # noqa: E402
    date_key,
    expand_time,
    format_minutes,
    format_time,
    parse_minutes,
    parse_year_month,
    shift_minutes,
    week_containing,
    weekday_index,
    weeks_in_month,
)


def test_parse_minutes_reads_hours_and_minutes() -> None:
    assert parse_minutes("09:30") == 570
    assert parse_minutes("00:00") == 0
    assert parse_minutes("23:59") == 23 * 60 + 59


@pytest.mark.parametrize("value", ["9:30", "24:00", "12:60", "ab:cd", "", "09:30:00", None, 930])
def test_parse_minutes_rejects_malformed_values(value) -> None:
    with pytest.raises(InvalidTimeFormat):
        parse_minutes(value)


def test_format_time_truncates_seconds() -> None:
    assert format_time("09:00:00") == "09:00"
    assert format_time("18:30") == "18:30"
    assert format_time(datetime.time(7, 5)) == "07:05"


def test_expand_time_adds_seconds_for_api() -> None:
    assert expand_time("09:00") == "09:00:00"
    assert expand_time("09:00:15") == "09:00:15"
    with pytest.raises(InvalidTimeFormat):
        expand_time("9am")


def test_shift_minutes_wraps_overnight() -> None:
    assert shift_minutes("10:00", "18:00") == 480
    assert shift_minutes("22:00", "06:00") == 480
    assert shift_minutes("12:00", "12:00") == 0
    assert format_minutes(1500) == "01:00"


def test_weeks_in_month_uses_monday_start_and_keeps_spill_over_days() -> None:
    weeks = weeks_in_month(2024, 2)  # March 2024 starts on a Friday

    assert len(weeks) == 5
    assert weeks[0].start == datetime.date(2024, 2, 26)
    assert weeks[0].dates[0].weekday() == 0
    assert weeks[-1].end == datetime.date(2024, 3, 31)
    assert [week.index for week in weeks] == [0, 1, 2, 3, 4]
    assert all(len(week.dates) == 7 for week in weeks)
    assert weeks[0].label == "Week 1"


def test_weeks_in_month_spans_six_weeks_when_needed() -> None:
    weeks = weeks_in_month(2024, 8)  # September 2024: Sunday 1st, Monday 30th

    assert len(weeks) == 6
    assert weeks[0].start == datetime.date(2024, 8, 26)
    assert weeks[-1].dates[-1] == datetime.date(2024, 10, 6)


def test_weeks_in_month_exact_four_weeks() -> None:
    weeks = weeks_in_month(2021, 1)
    assert len(weeks) == 4
    assert weeks[0].start == datetime.date(2021, 2, 1)


def test_weeks_in_month_rejects_bad_month_index() -> None:
    with pytest.raises(ValueError):
        weeks_in_month(2024, 12)


def test_week_containing_returns_monday_start() -> None:
    week = week_containing("2024-04-04")
    assert week.start == datetime.date(2024, 4, 1)
    assert week.keys[-1] == "2024-04-07"


def test_weekday_labels_and_no_holiday() -> None:
    assert weekday_index("MONDAY") == 0
    assert weekday_index("sun") == 6
    assert weekday_index("수") == 2
    assert weekday_index("휴무 없음") is None
    assert weekday_index(None) is None
    with pytest.raises(UnknownWeekday):
        weekday_index("funday")


def test_year_month_and_date_keys() -> None:
    assert parse_year_month("2024-04") == (2024, 4)
    with pytest.raises(InvalidYearMonth):
        parse_year_month("2024-13")
    assert date_key(datetime.datetime(2024, 4, 1, 9, 0)) == "2024-04-01"
    with pytest.raises(ValueError):
        date_key("not-a-date")
