from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional

from models import Employee, Payroll
from payroll import payroll_totals


DATA_DIR = Path(__file__).resolve().parent / "data" / "exports"
DATA_DIR.mkdir(parents=True, exist_ok=True)
PAYROLL_COLUMNS = [
    "employeeId",
    "employee",
    "totalHours",
    "basePay",
    "weeklyHolidayAllowance",
    "overtimePay",
    "nightPay",
    "holidayPay",
    "totalPay",
]


def mask_name(name: str) -> str:
    """Hide the middle of a name for schedules shared outside the store."""
    if not name or len(name) <= 1:
        return name
    if len(name) == 2:
        return name[0] + "*"
    return name[0] + "*" * (len(name) - 2) + name[-1]


def _safe_label(label: str) -> str:
    return "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in label).strip("_") or "report"


def export_payroll(
    payrolls: Iterable[Payroll],
    label: str,
    format: str = "csv",
    *,
    employees: Optional[Mapping[str, Employee]] = None,
    masked: bool = False,
) -> Path:
    """Write a payroll report for one period and return its path."""
    format = format.lower()
    if format not in {"csv", "json"}:
        raise ValueError("format must be 'csv' or 'json'")
    rows = list(payrolls)
    directory = employees or {}

    def display_name(employee_id: str) -> str:
        employee = directory.get(employee_id)
        name = employee.name if employee else employee_id
        return mask_name(name) if masked else name

    records = []
    for payroll in rows:
        record: Dict[str, object] = payroll.as_dict()
        record["employee"] = display_name(payroll.employee_id)
        records.append(record)

    DATA_DIR.mkdir(parents=True, exist_ok=True)
    filename = DATA_DIR / f"payroll_{_safe_label(label)}.{format}"
    if format == "json":
        filename.write_text(
            json.dumps({"period": label, "payrolls": records, "totals": payroll_totals(rows)}, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )
        return filename
    with filename.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=PAYROLL_COLUMNS)
        writer.writeheader()
        for record in records:
            writer.writerow({column: record[column] for column in PAYROLL_COLUMNS})
    return filename
