from __future__ import annotations

from typing import Optional

from errors import UnknownPreset
from models import Employee, TimeRange
from policy_defaults import CUSTOM_PRESET, DEFAULT_PRESET, SHIFT_PRESETS
from timeutil import parse_minutes


def preset_window(name: str) -> TimeRange:
    preset = SHIFT_PRESETS.get((name or "").strip().lower())
    if preset is None:
        raise UnknownPreset(name)
    return TimeRange(preset["start"], preset["end"])


def default_window(employee: Employee) -> TimeRange:
    """Return the employee's default shift; no preset means the morning shift."""
    if employee.shift_preset == CUSTOM_PRESET:
        return TimeRange(employee.custom_shift_start, employee.custom_shift_end)
    return preset_window(employee.shift_preset or DEFAULT_PRESET)


def is_outside_default_window(employee: Employee, assigned: Optional[TimeRange]) -> bool:
    if assigned is None:
        return False
    window = default_window(employee)
    # Same-day comparison on raw minutes; overnight ranges are not unwrapped here.
    return parse_minutes(assigned.start) < parse_minutes(window.start) or parse_minutes(
        assigned.end
    ) > parse_minutes(window.end)


def violation_message(employee: Employee) -> str:
    window = default_window(employee)
    return f"{employee.name}님의 기본 근무 시간은 {window.start}~{window.end}입니다."
