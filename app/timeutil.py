from __future__ import annotations

import calendar
import datetime
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from errors import InvalidTimeFormat, InvalidYearMonth, UnknownWeekday


MINUTES_PER_DAY = 24 * 60
WEEKDAY_TOKENS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
WEEKDAY_NAMES = ["MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY"]
WEEKDAY_KO = ["월", "화", "수", "목", "금", "토", "일"]
NO_HOLIDAY_LABELS = {"", "none", "no holiday", "휴무 없음"}

_TIME_PATTERN = re.compile(r"^(\d{2}):(\d{2})(?::(\d{2}))?$")
_YEAR_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def _split_time(value: str) -> Tuple[int, int, Optional[int]]:
    if not isinstance(value, str):
        raise InvalidTimeFormat(value)
    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidTimeFormat(value)
    hour, minute = int(match.group(1)), int(match.group(2))
    second = int(match.group(3)) if match.group(3) is not None else None
    if hour > 23 or minute > 59 or (second is not None and second > 59):
        raise InvalidTimeFormat(value)
    return hour, minute, second


def parse_minutes(value: str) -> int:
    """Return minutes since midnight for an ``HH:MM`` string."""
    hour, minute, second = _split_time(value)
    if second is not None:
        raise InvalidTimeFormat(value)
    return hour * 60 + minute


def format_time(value: str | datetime.time) -> str:
    """Normalize ``HH:MM:SS`` (or a ``datetime.time``) to ``HH:MM``."""
    if isinstance(value, datetime.time):
        return value.strftime("%H:%M")
    hour, minute, _ = _split_time(value)
    return f"{hour:02d}:{minute:02d}"


def expand_time(value: str | datetime.time) -> str:
    """Return the ``HH:MM:SS`` form expected by the schedule API."""
    if isinstance(value, datetime.time):
        return value.strftime("%H:%M:%S")
    hour, minute, second = _split_time(value)
    return f"{hour:02d}:{minute:02d}:{(second or 0):02d}"


def format_minutes(value: int) -> str:
    value = int(value) % MINUTES_PER_DAY
    hours = value // 60
    minutes = value % 60
    return f"{hours:02d}:{minutes:02d}"


def shift_minutes(start: str, end: str) -> int:
    """Duration of a same-day or overnight range in minutes."""
    start_minutes = parse_minutes(start)
    end_minutes = parse_minutes(end)
    if end_minutes < start_minutes:
        end_minutes += MINUTES_PER_DAY
    return end_minutes - start_minutes


def date_key(value: datetime.date | datetime.datetime | str) -> str:
    """Return the ``YYYY-MM-DD`` key used in monthly schedules."""
    if isinstance(value, datetime.datetime):
        return value.date().isoformat()
    if isinstance(value, datetime.date):
        return value.isoformat()
    return parse_date_key(value).isoformat()


def parse_date_key(value: str) -> datetime.date:
    try:
        return datetime.date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise ValueError(f"Invalid date '{value}'; expected YYYY-MM-DD.") from exc


def parse_year_month(value: str) -> Tuple[int, int]:
    """Return ``(year, month)`` with a 1-based month."""
    match = _YEAR_MONTH_PATTERN.match(str(value or "").strip())
    if not match:
        raise InvalidYearMonth(value)
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise InvalidYearMonth(value)
    return year, month


def weekday_index(value: str | int | None) -> Optional[int]:
    """Map an English, abbreviated or Korean weekday label to 0 (Monday) .. 6."""
    if value is None:
        return None
    if isinstance(value, int):
        if 0 <= value <= 6:
            return value
        raise UnknownWeekday(value)
    label = str(value).strip()
    if label.lower() in NO_HOLIDAY_LABELS:
        return None
    upper = label.upper()
    for index, name in enumerate(WEEKDAY_NAMES):
        if upper == name or upper == name[:3]:
            return index
    if label in WEEKDAY_KO:
        return WEEKDAY_KO.index(label)
    raise UnknownWeekday(value)


def normalize_week_start(date_value: datetime.date | datetime.datetime) -> datetime.date:
    """Return the Monday for the provided date."""
    if isinstance(date_value, datetime.datetime):
        date_value = date_value.date()
    weekday = date_value.weekday()
    if weekday == 0:
        return date_value
    return date_value - datetime.timedelta(days=weekday)


@dataclass(frozen=True)
class Week:
    index: int
    start: datetime.date
    end: datetime.date
    dates: Tuple[datetime.date, ...]
    label: str = ""
    is_current_month: bool = True

    @property
    def keys(self) -> List[str]:
        return [day.isoformat() for day in self.dates]

    def as_dict(self) -> dict:
        return {
            "index": self.index,
            "label": self.label,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "dates": self.keys,
            "is_current_month": self.is_current_month,
        }


def _build_week(index: int, week_start: datetime.date, month_anchor: Optional[datetime.date]) -> Week:
    dates = tuple(week_start + datetime.timedelta(days=offset) for offset in range(7))
    week_end = dates[-1]
    if month_anchor is None:
        current = True
    else:
        current = (week_start.year, week_start.month) == (month_anchor.year, month_anchor.month) or (
            week_end.year,
            week_end.month,
        ) == (month_anchor.year, month_anchor.month)
    return Week(
        index=index,
        start=week_start,
        end=week_end,
        dates=dates,
        label=f"Week {index + 1}",
        is_current_month=current,
    )


def weeks_in_month(year: int, month_index: int) -> List[Week]:
    """Return Monday-start weeks overlapping the month; ``month_index`` is 0-based."""
    if not 0 <= int(month_index) <= 11:
        raise ValueError(f"month_index must be between 0 and 11, got {month_index}.")
    month = int(month_index) + 1
    first = datetime.date(int(year), month, 1)
    last = datetime.date(int(year), month, calendar.monthrange(int(year), month)[1])
    weeks: List[Week] = []
    cursor = normalize_week_start(first)
    while cursor <= last:
        weeks.append(_build_week(len(weeks), cursor, first))
        cursor += datetime.timedelta(days=7)
    return weeks


def weeks_for_year_month(year_month: str) -> List[Week]:
    year, month = parse_year_month(year_month)
    return weeks_in_month(year, month - 1)


def week_containing(date_value: datetime.date | str) -> Week:
    day = date_value if isinstance(date_value, datetime.date) else parse_date_key(date_value)
    return _build_week(0, normalize_week_start(day), None)
