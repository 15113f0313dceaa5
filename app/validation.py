from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

from models import Employee, MonthlySchedule
from policy import pay_settings
from shift_policy import is_outside_default_window, violation_message
from timeutil import WEEKDAY_TOKENS, Week, parse_date_key, weekday_index, weeks_for_year_month
from wages import validate_wages


def validate_month_schedule(
    monthly: MonthlySchedule,
    employees: Iterable[Employee],
    *,
    weeks: Optional[Sequence[Week]] = None,
    store_holiday: Optional[str] = None,
    policy: Optional[Dict] = None,
) -> Dict[str, Any]:
    """Return validation findings for the month (or only the given weeks)."""
    staff = {employee.id: employee for employee in employees}
    settings = pay_settings(policy or {})
    selected = list(weeks) if weeks is not None else weeks_for_year_month(monthly.year_month)
    keys = {key for week in selected for key in week.keys}
    days = {key: entries for key, entries in monthly.schedule.items() if key in keys}

    issues: List[Dict[str, Any]] = []
    warnings: List[Dict[str, Any]] = []
    issues.extend(_unknown_employee_issues(days, staff))
    issues.extend(_wage_issues(staff, settings))
    warnings.extend(_shift_window_warnings(days, staff))
    warnings.extend(_holiday_warnings(days, staff, store_holiday))
    warnings.extend(_weekly_hours_warnings(days, staff, selected, settings))
    return {
        "year_month": monthly.year_month,
        "weeks": [week.start.isoformat() for week in selected],
        "checks": _build_validation_checklist(issues=issues, warnings=warnings),
        "issues": issues,
        "warnings": warnings,
    }


def _day_token(key: str) -> str:
    return WEEKDAY_TOKENS[parse_date_key(key).weekday()]


def _unknown_employee_issues(days: Dict[str, Dict], staff: Dict[str, Employee]) -> List[Dict[str, Any]]:
    issues: List[Dict[str, Any]] = []
    for key in sorted(days):
        for employee_id, time_range in days[key].items():
            if time_range is None or employee_id in staff:
                continue
            issues.append(
                {
                    "type": "unknown_employee",
                    "severity": "error",
                    "employee_id": employee_id,
                    "date": key,
                    "day": _day_token(key),
                    "message": f"Shift on {key} belongs to unknown employee {employee_id}.",
                }
            )
    return issues


def _wage_issues(staff: Dict[str, Employee], policy: Dict[str, Any]) -> List[Dict[str, Any]]:
    issues: List[Dict[str, Any]] = []
    for employee_id, reason in validate_wages(staff.values(), policy).items():
        employee = staff[employee_id]
        issues.append(
            {
                "type": "wage",
                "severity": "error",
                "employee_id": employee_id,
                "employee": employee.name,
                "message": f"{employee.name}: {reason}.",
            }
        )
    return issues


def _shift_window_warnings(days: Dict[str, Dict], staff: Dict[str, Employee]) -> List[Dict[str, Any]]:
    warnings: List[Dict[str, Any]] = []
    for key in sorted(days):
        for employee_id, time_range in days[key].items():
            employee = staff.get(employee_id)
            if employee is None or not is_outside_default_window(employee, time_range):
                continue
            warnings.append(
                {
                    "type": "shift_window",
                    "severity": "warning",
                    "employee_id": employee_id,
                    "employee": employee.name,
                    "date": key,
                    "day": _day_token(key),
                    "range": time_range.as_dict(),
                    "message": violation_message(employee),
                }
            )
    return warnings


def _holiday_warnings(
    days: Dict[str, Dict], staff: Dict[str, Employee], store_holiday: Optional[str]
) -> List[Dict[str, Any]]:
    warnings: List[Dict[str, Any]] = []
    store_index = weekday_index(store_holiday)
    for key in sorted(days):
        weekday = parse_date_key(key).weekday()
        for employee_id, time_range in days[key].items():
            employee = staff.get(employee_id)
            if employee is None or time_range is None:
                continue
            if weekday == employee.holiday_index:
                reason = "personal holiday"
            elif weekday == store_index:
                reason = "store holiday"
            else:
                continue
            warnings.append(
                {
                    "type": "holiday",
                    "severity": "warning",
                    "employee_id": employee_id,
                    "employee": employee.name,
                    "date": key,
                    "day": WEEKDAY_TOKENS[weekday],
                    "message": f"{employee.name} is scheduled on a {reason} ({WEEKDAY_TOKENS[weekday]} {key}).",
                }
            )
    return warnings


def _weekly_hours_warnings(
    days: Dict[str, Dict], staff: Dict[str, Employee], weeks: Sequence[Week], policy: Dict[str, Any]
) -> List[Dict[str, Any]]:
    """Flag employees scheduled past the weekly hours limit."""
    warnings: List[Dict[str, Any]] = []
    limit = policy["schedule"].get("max_weekly_hours")
    if limit is None:
        return warnings
    for week in weeks:
        totals: Dict[str, int] = {}
        for key in week.keys:
            for employee_id, time_range in days.get(key, {}).items():
                if time_range is not None:
                    totals[employee_id] = totals.get(employee_id, 0) + time_range.minutes
        for employee_id, minutes in sorted(totals.items()):
            hours = minutes / 60
            if hours <= limit + 1e-6:
                continue
            employee = staff.get(employee_id)
            name = employee.name if employee else f"Employee {employee_id}"
            warnings.append(
                {
                    "type": "weekly_hours",
                    "severity": "warning",
                    "employee_id": employee_id,
                    "employee": name,
                    "week": week.label,
                    "hours": round(hours, 2),
                    "limit": limit,
                    "message": f"{name} is scheduled {round(hours, 2)} hours in {week.label} "
                    f"(exceeds {limit:g}-hour limit by {round(hours - limit, 2)} hours).",
                }
            )
    return warnings


def _build_validation_checklist(
    *,
    issues: List[Dict[str, Any]],
    warnings: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    """
    Produce a concise, UI-friendly checklist:
    - `status`: ok|fail
    - `label`: human readable prompt
    - `details`: optional context for failures
    """
    checks: List[Dict[str, Any]] = []

    def summarize(items: List[Dict[str, Any]], *, limit: int = 5) -> str:
        parts = [str(entry.get("message") or "").strip() for entry in items[:limit]]
        parts = [part for part in parts if part]
        if len(items) > limit:
            parts.append(f"+{len(items) - limit} more")
        return "; ".join(parts)

    def add_check(label: str, findings: List[Dict[str, Any]]) -> None:
        checks.append(
            {
                "label": label,
                "status": "fail" if findings else "ok",
                "details": summarize(findings) if findings else "",
            }
        )

    def of_type(items: List[Dict[str, Any]], type_name: str) -> List[Dict[str, Any]]:
        return [item for item in items if item.get("type") == type_name]

    add_check("All shifts belong to known employees?", of_type(issues, "unknown_employee"))
    add_check("Hourly rates confirmed?", of_type(issues, "wage"))
    add_check("Shifts inside default hours?", of_type(warnings, "shift_window"))
    add_check("Holidays respected?", of_type(warnings, "holiday"))
    add_check("Weekly hours within limit?", of_type(warnings, "weekly_hours"))
    return checks
