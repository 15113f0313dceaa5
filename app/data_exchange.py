from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from models import DaySchedule, Employee, MonthlySchedule, Store, TimeRange
from roles import employment_type, normalize_role
from timeutil import WEEKDAY_NAMES, Week, date_key, expand_time, format_time, weekday_index


EXPORT_DIR = Path(__file__).resolve().parent / "data" / "exports"


def _timestamp() -> str:
    return datetime.datetime.now().strftime("%Y%m%d_%H%M%S")


def _api_id(employee_id: str) -> int | str:
    return int(employee_id) if str(employee_id).isdigit() else employee_id


def _optional_time(value: Optional[str]) -> Optional[str]:
    return format_time(value) if value else None


def _optional_api_time(value: Optional[str]) -> Optional[str]:
    return expand_time(value) if value else None


# ---------------------------------------------------------------------------
# Weekdays


def day_to_api(label: Optional[str]) -> Optional[str]:
    """``"월"``/``"Mon"``/``"monday"`` -> ``"MONDAY"``; no holiday -> ``None``."""
    index = weekday_index(label)
    return WEEKDAY_NAMES[index] if index is not None else None


# ---------------------------------------------------------------------------
# Employees


def api_employee_to_employee(payload: Dict[str, Any]) -> Employee:
    preset = payload.get("shiftPreset")
    return Employee(
        id=str(payload["id"]),
        name=(payload.get("name") or "").strip(),
        hourly_rate=payload.get("hourlyWage") or 0,
        role=normalize_role(payload.get("employmentType")),
        shift_preset=preset.lower() if isinstance(preset, str) else None,
        custom_shift_start=_optional_time(payload.get("customShiftStartTime")),
        custom_shift_end=_optional_time(payload.get("customShiftEndTime")),
        personal_holiday=day_to_api(payload.get("personalHoliday")),
        email=payload.get("email") or "",
        phone_number=payload.get("phone") or "",
    )


def employee_to_api(employee: Employee) -> Dict[str, Any]:
    name = (employee.name or "").strip()
    if not name:
        raise ValueError("Employee name is required.")
    return {
        "name": name,
        "phone": employee.phone_number.strip() or None,
        "email": employee.email.strip() or None,
        "hourlyWage": employee.hourly_rate,
        "employmentType": employment_type(employee.role),
        "shiftPreset": employee.shift_preset.upper() if employee.shift_preset else None,
        "customShiftStartTime": employee.custom_shift_start or None,
        "customShiftEndTime": employee.custom_shift_end or None,
        "personalHoliday": day_to_api(employee.personal_holiday),
        "consentVerified": True,
    }


# ---------------------------------------------------------------------------
# Store


def api_store_to_store(payload: Dict[str, Any]) -> Store:
    return Store(
        name=payload.get("name") or "",
        business_type=payload.get("businessType") or "",
        opening_time=_optional_time(payload.get("openTime")) or "",
        closing_time=_optional_time(payload.get("closeTime")) or "",
        weekly_holiday=day_to_api(payload.get("storeHoliday")),
    )


def store_to_api(store: Store) -> Dict[str, Any]:
    return {
        "name": store.name,
        "businessType": store.business_type,
        "openTime": _optional_api_time(store.opening_time),
        "closeTime": _optional_api_time(store.closing_time),
        "storeHoliday": day_to_api(store.weekly_holiday),
    }


# ---------------------------------------------------------------------------
# Shifts


def shifts_to_week_detail(shifts: Iterable[Dict[str, Any]]) -> Dict[str, DaySchedule]:
    """Group a week's shift rows into ``date -> employee -> TimeRange``."""
    detail: Dict[str, DaySchedule] = {}
    for row in shifts:
        key = date_key(row["date"])
        time_range = TimeRange.parse(row["startTime"], row["endTime"])
        detail.setdefault(key, {})[str(row["employeeId"])] = time_range
    return detail


def week_detail_to_shift_requests(monthly: MonthlySchedule, week: Week) -> List[Dict[str, Any]]:
    """Every assigned shift of ``week``; the backend replaces the week with this list."""
    requests: List[Dict[str, Any]] = []
    for day in week.dates:
        key = date_key(day)
        for employee_id, time_range in sorted(monthly.schedule.get(key, {}).items()):
            if time_range is None:
                continue
            requests.append(
                {
                    "employeeId": _api_id(employee_id),
                    "date": key,
                    "startTime": expand_time(time_range.start),
                    "endTime": expand_time(time_range.end),
                }
            )
    return requests


# ---------------------------------------------------------------------------
# Monthly schedule payloads


def monthly_schedule_to_payload(monthly: MonthlySchedule) -> Dict[str, Any]:
    return {
        "id": monthly.id,
        "yearMonth": monthly.year_month,
        "schedule": {
            key: {
                employee_id: time_range.as_dict() if time_range is not None else None
                for employee_id, time_range in day.items()
            }
            for key, day in sorted(monthly.schedule.items())
        },
        "lastSentAt": monthly.last_sent_at.isoformat() if monthly.last_sent_at else None,
        "isModifiedAfterSent": bool(monthly.is_modified_after_sent),
    }


def monthly_schedule_from_payload(payload: Dict[str, Any]) -> MonthlySchedule:
    schedule: Dict[str, DaySchedule] = {}
    for key, day in (payload.get("schedule") or {}).items():
        entries: DaySchedule = {}
        for employee_id, value in (day or {}).items():
            entries[str(employee_id)] = TimeRange.parse(value["start"], value["end"]) if value else None
        schedule[date_key(key)] = entries
    last_sent = payload.get("lastSentAt")
    kwargs: Dict[str, Any] = {}
    if payload.get("id"):
        kwargs["id"] = str(payload["id"])
    return MonthlySchedule(
        year_month=payload["yearMonth"],
        schedule=schedule,
        last_sent_at=datetime.datetime.fromisoformat(last_sent) if last_sent else None,
        is_modified_after_sent=bool(payload.get("isModifiedAfterSent", False)),
        **kwargs,
    )


def export_monthly_schedule(monthly: MonthlySchedule) -> Path:
    EXPORT_DIR.mkdir(parents=True, exist_ok=True)
    filename = EXPORT_DIR / f"schedule_{monthly.year_month}_{_timestamp()}.json"
    filename.write_text(
        json.dumps(
            {
                "generated_at": datetime.datetime.now(datetime.timezone.utc).isoformat(),
                "monthly_schedule": monthly_schedule_to_payload(monthly),
            },
            indent=2,
            ensure_ascii=False,
        ),
        encoding="utf-8",
    )
    return filename


def import_monthly_schedule(file_path: Path) -> MonthlySchedule:
    data = json.loads(file_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict) or not isinstance(data.get("monthly_schedule"), dict):
        raise ValueError("Schedule file must contain a 'monthly_schedule' object.")
    return monthly_schedule_from_payload(data["monthly_schedule"])
