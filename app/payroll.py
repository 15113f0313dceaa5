"""Weekly payroll for hourly staff.

Every amount is computed from the shifts themselves so the same
``(shifts, employee, policy)`` input always yields the same figures:

* base pay: all worked hours at the hourly rate
* weekly holiday allowance: paid rest day, pro-rated against a normal week,
  only once the week reaches the minimum hours
* overtime: hours beyond the daily threshold (and the weekly threshold for
  whatever the daily rule did not already count) at the overtime multiplier
* night: minutes inside the night window at the night multiplier
* holiday: hours worked on the employee's personal or the store's weekly
  holiday at the holiday multiplier

Amounts are whole currency units rounded half-up.
"""

from __future__ import annotations

import datetime
from collections import defaultdict
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from errors import InvalidHours, InvalidRate
from models import Employee, MonthlySchedule, Payroll, TimeRange
from policy import pay_settings
from timeutil import MINUTES_PER_DAY, Week, date_key, parse_date_key, parse_minutes, weekday_index

ShiftEntry = Tuple[datetime.date, TimeRange]
_SIXTY = Decimal(60)


def _round_currency(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _as_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _checked_rate(hourly_rate: Any) -> Decimal:
    if isinstance(hourly_rate, bool) or not isinstance(hourly_rate, (int, float, Decimal)):
        raise InvalidRate(hourly_rate)
    if hourly_rate < 0:
        raise InvalidRate(hourly_rate)
    return _as_decimal(hourly_rate)


def _checked_hours(total_hours: Any) -> Decimal:
    if isinstance(total_hours, bool) or not isinstance(total_hours, (int, float, Decimal)):
        raise InvalidHours(total_hours)
    if total_hours < 0:
        raise InvalidHours(total_hours)
    return _as_decimal(total_hours)


def _settings(policy: Optional[Dict]) -> Dict[str, Any]:
    return pay_settings(policy or {})


def base_pay(total_hours: Any, hourly_rate: Any) -> int:
    hours = _checked_hours(total_hours)
    rate = _checked_rate(hourly_rate)
    return _round_currency(hours * rate)


def weekly_holiday_allowance(total_hours: Any, hourly_rate: Any, policy: Optional[Dict] = None) -> int:
    hours = _checked_hours(total_hours)
    rate = _checked_rate(hourly_rate)
    cfg = _settings(policy)["weekly_holiday"]
    if hours < _as_decimal(cfg["min_hours"]):
        return 0
    counted = hours
    if cfg.get("cap_hours") is not None:
        counted = min(hours, _as_decimal(cfg["cap_hours"]))
    ratio = counted / _as_decimal(cfg["normal_week_hours"])
    return _round_currency(rate * _as_decimal(cfg["standard_day_hours"]) * ratio)


def _normalize_entries(shifts: Iterable[ShiftEntry]) -> List[ShiftEntry]:
    entries: List[ShiftEntry] = []
    for day, time_range in shifts:
        if time_range is None:
            continue
        if not isinstance(day, datetime.date):
            day = parse_date_key(day)
        entries.append((day, time_range))
    return entries


def overtime_minutes(shifts: Iterable[ShiftEntry], policy: Optional[Dict] = None) -> int:
    """Minutes past the daily threshold plus any weekly excess not already counted."""
    cfg = _settings(policy)["overtime"]
    entries = _normalize_entries(shifts)
    per_day: Dict[datetime.date, int] = defaultdict(int)
    for day, time_range in entries:
        per_day[day] += time_range.minutes
    total = sum(per_day.values())

    daily_excess = 0
    daily_threshold = cfg.get("daily_threshold_hours")
    if daily_threshold is not None:
        limit = int(round(daily_threshold * 60))
        daily_excess = sum(max(0, minutes - limit) for minutes in per_day.values())

    weekly_excess = 0
    weekly_threshold = cfg.get("weekly_threshold_hours")
    if weekly_threshold is not None:
        limit = int(round(weekly_threshold * 60))
        weekly_excess = max(0, (total - daily_excess) - limit)
    return daily_excess + weekly_excess


def _night_windows(policy: Optional[Dict]) -> List[Tuple[int, int]]:
    cfg = _settings(policy)["night"]
    start = parse_minutes(cfg["start"])
    end = parse_minutes(cfg["end"])
    if start == end:
        return []
    if start > end:
        # Wrapping window: the one ending this morning, tonight's, tomorrow night's.
        return [(k * MINUTES_PER_DAY + start, (k + 1) * MINUTES_PER_DAY + end) for k in (-1, 0, 1)]
    return [(k * MINUTES_PER_DAY + start, k * MINUTES_PER_DAY + end) for k in (0, 1)]


def night_minutes(time_range: Optional[TimeRange], policy: Optional[Dict] = None) -> int:
    """Minutes of ``time_range`` that fall inside the night window."""
    if time_range is None:
        return 0
    shift_start = parse_minutes(time_range.start)
    shift_end = shift_start + time_range.minutes
    covered = 0
    for window_start, window_end in _night_windows(policy):
        overlap = min(shift_end, window_end) - max(shift_start, window_start)
        if overlap > 0:
            covered += overlap
    return covered


def holiday_minutes(shifts: Iterable[ShiftEntry], holidays: Set[int]) -> int:
    if not holidays:
        return 0
    return sum(
        time_range.minutes for day, time_range in _normalize_entries(shifts) if day.weekday() in holidays
    )


def holiday_indices(employee: Employee, store_holiday: Optional[str] = None) -> Set[int]:
    indices: Set[int] = set()
    for label in (employee.personal_holiday, store_holiday):
        index = weekday_index(label)
        if index is not None:
            indices.add(index)
    return indices


def calculate_payroll(
    employee: Employee,
    shifts: Iterable[ShiftEntry],
    *,
    store_holiday: Optional[str] = None,
    policy: Optional[Dict] = None,
) -> Payroll:
    """Return one week of pay for ``employee`` from ``(date, TimeRange)`` pairs."""
    settings = _settings(policy)
    entries = _normalize_entries(shifts)
    rate = _checked_rate(employee.hourly_rate)

    worked = sum(time_range.minutes for _, time_range in entries)
    hours = Decimal(worked) / _SIXTY

    overtime = Decimal(overtime_minutes(entries, settings)) / _SIXTY
    night = Decimal(sum(night_minutes(time_range, settings) for _, time_range in entries)) / _SIXTY
    holiday = Decimal(holiday_minutes(entries, holiday_indices(employee, store_holiday))) / _SIXTY

    return Payroll(
        employee_id=employee.id,
        total_hours=round(worked / 60, 2),
        base_pay=base_pay(hours, rate),
        weekly_holiday_allowance=weekly_holiday_allowance(hours, rate, settings),
        overtime_pay=_round_currency(overtime * rate * _as_decimal(settings["overtime"]["multiplier"])),
        night_pay=_round_currency(night * rate * _as_decimal(settings["night"]["multiplier"])),
        holiday_pay=_round_currency(holiday * rate * _as_decimal(settings["holiday"]["multiplier"])),
    )


def employee_shifts(monthly: MonthlySchedule, employee_id: str, dates: Sequence[datetime.date]) -> List[ShiftEntry]:
    entries: List[ShiftEntry] = []
    for day in dates:
        time_range = monthly.get(date_key(day), str(employee_id))
        if time_range is not None:
            entries.append((day, time_range))
    return entries


def payroll_for_week(
    monthly: MonthlySchedule,
    week: Week,
    employees: Iterable[Employee],
    *,
    store_holiday: Optional[str] = None,
    policy: Optional[Dict] = None,
) -> List[Payroll]:
    settings = _settings(policy)
    return [
        calculate_payroll(
            employee,
            employee_shifts(monthly, employee.id, week.dates),
            store_holiday=store_holiday,
            policy=settings,
        )
        for employee in employees
    ]


def payroll_totals(payrolls: Iterable[Payroll]) -> Dict[str, Any]:
    rows = list(payrolls)
    return {
        "employees": len(rows),
        "total_hours": round(sum(row.total_hours for row in rows), 2),
        "total_pay": sum(row.total_pay for row in rows),
    }
