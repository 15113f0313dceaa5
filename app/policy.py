from __future__ import annotations

import copy
from typing import Any, Dict, Optional

from database import get_active_policy, upsert_policy
from errors import InvalidTimeFormat
from policy_defaults import BASELINE_POLICY, baseline_policy
from timeutil import format_time


def load_active_policy(conn) -> Dict:
    """Return the active pay policy, merged onto the baseline."""
    if conn is None:
        return pay_settings({})
    if callable(conn):
        with conn() as session:
            policy = get_active_policy(session)
            return pay_settings(policy.params_dict() if policy else {})
    policy = get_active_policy(conn)
    return pay_settings(policy.params_dict() if policy else {})


def _deep_update(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_update(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _coerce_float(value: Any, default: float, *, minimum: float = 0.0) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = float(default)
    return max(minimum, number)


def _coerce_optional_float(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def _coerce_time(value: Any, default: str) -> str:
    try:
        return format_time(value)
    except InvalidTimeFormat:
        return default


def pay_settings(policy: Dict | None) -> Dict[str, Any]:
    """Merge ``policy`` onto the baseline and clamp every value to a usable range."""
    payload = policy if isinstance(policy, dict) else {}
    merged = _deep_update(BASELINE_POLICY, payload)
    defaults = BASELINE_POLICY

    weekly = merged.get("weekly_holiday")
    if not isinstance(weekly, dict):
        weekly = copy.deepcopy(defaults["weekly_holiday"])
    weekly_defaults = defaults["weekly_holiday"]
    weekly["min_hours"] = _coerce_float(weekly.get("min_hours"), weekly_defaults["min_hours"])
    weekly["standard_day_hours"] = _coerce_float(
        weekly.get("standard_day_hours"), weekly_defaults["standard_day_hours"]
    )
    normal_week = _coerce_float(weekly.get("normal_week_hours"), weekly_defaults["normal_week_hours"])
    # The allowance ratio divides by this, so zero falls back to the default.
    weekly["normal_week_hours"] = normal_week or weekly_defaults["normal_week_hours"]
    weekly["cap_hours"] = _coerce_optional_float(weekly.get("cap_hours"))
    merged["weekly_holiday"] = weekly

    overtime = merged.get("overtime")
    if not isinstance(overtime, dict):
        overtime = copy.deepcopy(defaults["overtime"])
    overtime_defaults = defaults["overtime"]
    overtime["multiplier"] = _coerce_float(overtime.get("multiplier"), overtime_defaults["multiplier"])
    overtime["daily_threshold_hours"] = _coerce_optional_float(overtime.get("daily_threshold_hours"))
    overtime["weekly_threshold_hours"] = _coerce_optional_float(overtime.get("weekly_threshold_hours"))
    merged["overtime"] = overtime

    night = merged.get("night")
    if not isinstance(night, dict):
        night = copy.deepcopy(defaults["night"])
    night_defaults = defaults["night"]
    night["multiplier"] = _coerce_float(night.get("multiplier"), night_defaults["multiplier"])
    night["start"] = _coerce_time(night.get("start"), night_defaults["start"])
    night["end"] = _coerce_time(night.get("end"), night_defaults["end"])
    merged["night"] = night

    holiday = merged.get("holiday")
    if not isinstance(holiday, dict):
        holiday = copy.deepcopy(defaults["holiday"])
    holiday["multiplier"] = _coerce_float(holiday.get("multiplier"), defaults["holiday"]["multiplier"])
    merged["holiday"] = holiday

    wages = merged.get("wages")
    if not isinstance(wages, dict):
        wages = copy.deepcopy(defaults["wages"])
    wages["minimum_hourly"] = int(_coerce_float(wages.get("minimum_hourly"), defaults["wages"]["minimum_hourly"]))
    allow_zero = wages.get("allow_zero_roles")
    wages["allow_zero_roles"] = [str(role) for role in allow_zero] if isinstance(allow_zero, list) else []
    merged["wages"] = wages

    limits = merged.get("schedule")
    if not isinstance(limits, dict):
        limits = copy.deepcopy(defaults["schedule"])
    limits["max_weekly_hours"] = _coerce_optional_float(limits.get("max_weekly_hours"))
    merged["schedule"] = limits
    return merged


def build_default_policy() -> Dict[str, Any]:
    """Return a deepcopy so callers can mutate the policy safely."""
    return baseline_policy()


def ensure_default_policy(session_factory) -> None:
    """Seed the baseline policy once so payroll has an active policy to read."""

    with session_factory() as session:
        if get_active_policy(session):
            return
        defaults = build_default_policy()
        name = defaults.get("name", "Baseline Pay Policy")
        params = {key: value for key, value in defaults.items() if key != "name"}
        upsert_policy(session, name, params, edited_by="system")
