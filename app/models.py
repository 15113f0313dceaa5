"""Value objects shared by the schedule, payroll and exchange modules."""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from errors import InvalidRate, InvalidTimeFormat, UnknownPreset
from policy_defaults import CUSTOM_PRESET, PRESET_CHOICES
from roles import normalize_role
from timeutil import format_time, parse_minutes, parse_year_month, shift_minutes, weekday_index


DaySchedule = Dict[str, Optional["TimeRange"]]
ScheduleMap = Dict[str, DaySchedule]


@dataclass(frozen=True)
class TimeRange:
    start: str
    end: str

    def __post_init__(self) -> None:
        parse_minutes(self.start)
        parse_minutes(self.end)

    @classmethod
    def parse(cls, start: str | datetime.time, end: str | datetime.time) -> "TimeRange":
        """Build a range from ``HH:MM`` or ``HH:MM:SS`` values."""
        return cls(format_time(start), format_time(end))

    @property
    def minutes(self) -> int:
        return shift_minutes(self.start, self.end)

    @property
    def hours(self) -> float:
        return self.minutes / 60

    @property
    def is_overnight(self) -> bool:
        return parse_minutes(self.end) < parse_minutes(self.start)

    def as_dict(self) -> Dict[str, str]:
        return {"start": self.start, "end": self.end}

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True)
class Employee:
    id: str
    name: str
    hourly_rate: int = 0
    role: str = "staff"
    shift_preset: Optional[str] = None
    custom_shift_start: Optional[str] = None
    custom_shift_end: Optional[str] = None
    personal_holiday: Optional[str] = None
    email: str = ""
    phone_number: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "role", normalize_role(self.role))
        if isinstance(self.hourly_rate, bool) or not isinstance(self.hourly_rate, (int, float)):
            raise InvalidRate(self.hourly_rate)
        if self.hourly_rate < 0 or int(self.hourly_rate) != self.hourly_rate:
            raise InvalidRate(self.hourly_rate)
        object.__setattr__(self, "hourly_rate", int(self.hourly_rate))
        preset = self.shift_preset.strip().lower() if isinstance(self.shift_preset, str) else self.shift_preset
        if preset in ("", None):
            preset = None
        elif preset not in PRESET_CHOICES:
            raise UnknownPreset(self.shift_preset)
        object.__setattr__(self, "shift_preset", preset)
        if preset == CUSTOM_PRESET:
            if not self.custom_shift_start:
                raise InvalidTimeFormat(self.custom_shift_start)
            if not self.custom_shift_end:
                raise InvalidTimeFormat(self.custom_shift_end)
            object.__setattr__(self, "custom_shift_start", format_time(self.custom_shift_start))
            object.__setattr__(self, "custom_shift_end", format_time(self.custom_shift_end))
        # Validate the weekday label early; the raw label is kept for display.
        weekday_index(self.personal_holiday)

    @property
    def holiday_index(self) -> Optional[int]:
        return weekday_index(self.personal_holiday)


@dataclass(frozen=True)
class Store:
    name: str
    business_type: str = ""
    opening_time: str = ""
    closing_time: str = ""
    weekly_holiday: Optional[str] = None

    def __post_init__(self) -> None:
        for value in (self.opening_time, self.closing_time):
            if value:
                format_time(value)
        weekday_index(self.weekly_holiday)

    @property
    def holiday_index(self) -> Optional[int]:
        return weekday_index(self.weekly_holiday)


@dataclass
class MonthlySchedule:
    """One calendar month of shifts: date key -> employee id -> range or explicit ``None``."""

    year_month: str
    schedule: ScheduleMap = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    last_sent_at: Optional[datetime.datetime] = None
    is_modified_after_sent: bool = False

    def __post_init__(self) -> None:
        year, month = parse_year_month(self.year_month)
        self.year_month = f"{year:04d}-{month:02d}"

    @classmethod
    def empty(cls, year_month: str) -> "MonthlySchedule":
        return cls(year_month=year_month)

    def copy(self) -> "MonthlySchedule":
        """Copy with fresh per-date maps; ranges are immutable and shared."""
        return MonthlySchedule(
            year_month=self.year_month,
            schedule={key: dict(day) for key, day in self.schedule.items()},
            id=self.id,
            last_sent_at=self.last_sent_at,
            is_modified_after_sent=self.is_modified_after_sent,
        )

    def get(self, date_key: str, employee_id: str, default: Any = None) -> Any:
        return self.schedule.get(date_key, {}).get(str(employee_id), default)

    def has_entry(self, date_key: str, employee_id: str) -> bool:
        return str(employee_id) in self.schedule.get(date_key, {})


@dataclass(frozen=True)
class Payroll:
    employee_id: str
    total_hours: float
    base_pay: int
    weekly_holiday_allowance: int
    overtime_pay: int
    night_pay: int
    holiday_pay: int

    @property
    def total_pay(self) -> int:
        return (
            self.base_pay
            + self.weekly_holiday_allowance
            + self.overtime_pay
            + self.night_pay
            + self.holiday_pay
        )

    def as_dict(self) -> Dict[str, Any]:
        return {
            "employeeId": self.employee_id,
            "totalHours": self.total_hours,
            "basePay": self.base_pay,
            "weeklyHolidayAllowance": self.weekly_holiday_allowance,
            "overtimePay": self.overtime_pay,
            "nightPay": self.night_pay,
            "holidayPay": self.holiday_pay,
            "totalPay": self.total_pay,
        }
