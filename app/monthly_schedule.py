"""Month-long shift calendar assembled from weekly fetches and user edits.

Every operation takes the previous :class:`MonthlySchedule` and returns a new
one; the input is never modified. In a schedule, a date maps employee ids to a
:class:`TimeRange` or to ``None`` ("explicitly no shift"). A missing employee
key means the slot was never considered, and only those slots are touched by
auto-fill.
"""

from __future__ import annotations

import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from audit import AuditLogger
from models import DaySchedule, Employee, MonthlySchedule, TimeRange
from shift_policy import default_window
from timeutil import Week, date_key

UTC = datetime.timezone.utc


def _touched(monthly: MonthlySchedule) -> MonthlySchedule:
    updated = monthly.copy()
    updated.is_modified_after_sent = True
    return updated


def _coerce_range(value: Any) -> Optional[TimeRange]:
    if value is None or isinstance(value, TimeRange):
        return value
    if isinstance(value, Mapping):
        return TimeRange.parse(value.get("start"), value.get("end"))
    raise TypeError(f"Expected TimeRange, mapping or None, got {type(value).__name__}.")


def _coerce_day(day: Mapping[Any, Any]) -> DaySchedule:
    return {str(employee_id): _coerce_range(value) for employee_id, value in (day or {}).items()}


def merge_weekly_detail(
    monthly: MonthlySchedule, week_detail: Mapping[Any, Mapping[Any, Any]]
) -> MonthlySchedule:
    """Overlay a synced week: each date present is replaced whole, others are kept."""
    incoming = {date_key(day): _coerce_day(entries) for day, entries in week_detail.items()}
    updated = _touched(monthly)
    updated.schedule.update(incoming)
    return updated


def apply_auto_fill(
    monthly: MonthlySchedule, weeks: Iterable[Week], employees: Iterable[Employee]
) -> MonthlySchedule:
    """Give every never-considered (date, employee) slot the employee's default shift."""
    staff = list(employees)
    defaults = {employee.id: default_window(employee) for employee in staff}
    updated = _touched(monthly)
    for week in weeks:
        for day in week.dates:
            entries = updated.schedule.setdefault(date_key(day), {})
            for employee in staff:
                if employee.id not in entries:
                    entries[employee.id] = defaults[employee.id]
    return updated


def copy_week_pattern(
    monthly: MonthlySchedule, source_week: Week, target_weeks: Iterable[Week]
) -> MonthlySchedule:
    """Stamp the source week's days onto each target week by day-of-week position."""
    pattern = [dict(monthly.schedule.get(date_key(day), {})) for day in source_week.dates]
    updated = _touched(monthly)
    for target in target_weeks:
        for position, day in enumerate(target.dates):
            if position >= len(pattern):
                break
            updated.schedule[date_key(day)] = dict(pattern[position])
    return updated


def mark_sent(monthly: MonthlySchedule, *, now: Optional[datetime.datetime] = None) -> MonthlySchedule:
    updated = monthly.copy()
    updated.last_sent_at = now or datetime.datetime.now(UTC)
    updated.is_modified_after_sent = False
    return updated


def set_shift(
    monthly: MonthlySchedule,
    day: datetime.date | str,
    employee_id: Any,
    time_range: Optional[TimeRange],
) -> MonthlySchedule:
    key = date_key(day)
    value = _coerce_range(time_range)
    updated = _touched(monthly)
    updated.schedule.setdefault(key, {})[str(employee_id)] = value
    return updated


def add_employees_to_slot(
    monthly: MonthlySchedule, day: datetime.date | str, employees: Iterable[Employee]
) -> MonthlySchedule:
    key = date_key(day)
    staff = list(employees)
    windows = [(employee.id, default_window(employee)) for employee in staff]
    updated = _touched(monthly)
    entries = updated.schedule.setdefault(key, {})
    for employee_id, window in windows:
        entries[employee_id] = window
    return updated


def week_detail(monthly: MonthlySchedule, week: Week) -> Dict[str, DaySchedule]:
    return {key: dict(monthly.schedule[key]) for key in week.keys if key in monthly.schedule}


def shifts_for_employee(
    monthly: MonthlySchedule, employee_id: Any, dates: Sequence[datetime.date]
) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    for day in dates:
        key = date_key(day)
        if not monthly.has_entry(key, employee_id):
            continue
        time_range = monthly.get(key, employee_id)
        rows.append({"date": key, "time_range": time_range})
    return rows


class ScheduleMutator:
    """Caller-owned holder for one month's schedule and the employees editing it.

    A failed operation raises before the held value is replaced, so the
    previous schedule stays in place.
    """

    def __init__(
        self,
        monthly: MonthlySchedule,
        employees: Iterable[Employee] = (),
        *,
        actor: str = "system",
        audit_logger: Optional[AuditLogger] = None,
    ) -> None:
        self.monthly = monthly
        self.employees: Dict[str, Employee] = {employee.id: employee for employee in employees}
        self.actor = actor
        self.audit_logger = audit_logger

    def _apply(self, event: str, operation: Callable[[], MonthlySchedule], details: Dict[str, Any]) -> MonthlySchedule:
        self.monthly = operation()
        if self.audit_logger is not None:
            payload = {"year_month": self.monthly.year_month}
            payload.update(details)
            self.audit_logger.log(event, self.actor, details=payload)
        return self.monthly

    def employee(self, employee_id: Any) -> Employee:
        try:
            return self.employees[str(employee_id)]
        except KeyError:
            raise ValueError(f"Employee {employee_id} is not part of this schedule.") from None

    def set_shift(self, day, employee_id, time_range: Optional[TimeRange]) -> MonthlySchedule:
        return self._apply(
            "SHIFT_SET",
            lambda: set_shift(self.monthly, day, employee_id, time_range),
            {"date": date_key(day), "employee_id": str(employee_id), "range": str(time_range) if time_range else None},
        )

    def add_employees(self, day, employee_ids: Iterable[Any]) -> MonthlySchedule:
        staff = [self.employee(employee_id) for employee_id in employee_ids]
        return self._apply(
            "SLOT_ADD",
            lambda: add_employees_to_slot(self.monthly, day, staff),
            {"date": date_key(day), "employee_ids": [employee.id for employee in staff]},
        )

    def auto_fill(self, weeks: Sequence[Week]) -> MonthlySchedule:
        return self._apply(
            "AUTO_FILL",
            lambda: apply_auto_fill(self.monthly, weeks, self.employees.values()),
            {"weeks": [week.start.isoformat() for week in weeks]},
        )

    def copy_week_pattern(self, source_week: Week, target_weeks: Sequence[Week]) -> MonthlySchedule:
        return self._apply(
            "PATTERN_COPY",
            lambda: copy_week_pattern(self.monthly, source_week, target_weeks),
            {"source": source_week.start.isoformat(), "targets": [week.start.isoformat() for week in target_weeks]},
        )

    def merge_weekly_detail(self, detail: Mapping[Any, Mapping[Any, Any]]) -> MonthlySchedule:
        return self._apply(
            "WEEK_SYNC",
            lambda: merge_weekly_detail(self.monthly, detail),
            {"dates": sorted(date_key(day) for day in detail)},
        )

    def mark_sent(self, *, now: Optional[datetime.datetime] = None) -> MonthlySchedule:
        return self._apply("SCHEDULE_SENT", lambda: mark_sent(self.monthly, now=now), {})
