from __future__ import annotations

from typing import Dict, Iterable, Optional

from models import Employee
from policy import pay_settings


def validate_wages(employees: Iterable[Employee], policy: Optional[Dict] = None) -> Dict[str, str]:
    """Return dict of employee id -> reason for hourly rates that cannot be paid out."""
    wages_cfg = pay_settings(policy or {})["wages"]
    minimum = wages_cfg["minimum_hourly"]
    allow_zero = set(wages_cfg["allow_zero_roles"])
    problems: Dict[str, str] = {}
    for employee in employees:
        if employee.hourly_rate <= 0:
            if employee.role not in allow_zero:
                problems[employee.id] = "wage is zero"
            continue
        if minimum and employee.hourly_rate < minimum:
            problems[employee.id] = f"below minimum wage ({minimum})"
    return problems
