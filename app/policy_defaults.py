from __future__ import annotations

import copy
from typing import Any, Dict


SHIFT_PRESETS: Dict[str, Dict[str, str]] = {
    "morning": {"start": "10:00", "end": "18:00", "label": "Morning"},
    "afternoon": {"start": "13:00", "end": "21:00", "label": "Afternoon"},
}
DEFAULT_PRESET = "morning"
CUSTOM_PRESET = "custom"
PRESET_CHOICES = (*SHIFT_PRESETS.keys(), CUSTOM_PRESET)


def _premium_config(*, multiplier: float, **extra: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"multiplier": max(0.0, float(multiplier))}
    payload.update(extra)
    return payload


WEEKLY_HOLIDAY_DEFAULTS: Dict[str, Any] = {
    # Allowance is only paid once the week reaches this many hours.
    "min_hours": 15.0,
    "standard_day_hours": 8.0,
    "normal_week_hours": 40.0,
    # None pays the full ratio above a normal week; 40 caps it there.
    "cap_hours": None,
}

OVERTIME_DEFAULTS: Dict[str, Any] = _premium_config(
    multiplier=1.5,
    daily_threshold_hours=8.0,
    # Overtime is counted per day; set hours here to also pay a weekly excess.
    weekly_threshold_hours=None,
)

NIGHT_DEFAULTS: Dict[str, Any] = _premium_config(multiplier=0.5, start="22:00", end="06:00")

HOLIDAY_DEFAULTS: Dict[str, Any] = _premium_config(multiplier=1.5)

WAGE_DEFAULTS: Dict[str, Any] = {
    "minimum_hourly": 9860,
    "allow_zero_roles": ["manager"],
}

# Scheduling limit flagged by validation; it does not change pay.
SCHEDULE_LIMIT_DEFAULTS: Dict[str, Any] = {
    "max_weekly_hours": 40.0,
}


BASELINE_POLICY: Dict[str, Any] = {
    "name": "Baseline Pay Policy",
    "weekly_holiday": WEEKLY_HOLIDAY_DEFAULTS,
    "overtime": OVERTIME_DEFAULTS,
    "night": NIGHT_DEFAULTS,
    "holiday": HOLIDAY_DEFAULTS,
    "wages": WAGE_DEFAULTS,
    "schedule": SCHEDULE_LIMIT_DEFAULTS,
}


def baseline_policy() -> Dict[str, Any]:
    return copy.deepcopy(BASELINE_POLICY)
