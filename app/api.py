"""Lightweight FastAPI wrapper over the monthly schedule and payroll modules.

Employee and store directories stay with the caller: requests that need them
carry the records in the body, in the same shape the directory API returns.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

# Ensure bare module imports (e.g., "import database") still resolve.
APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from data_exchange import (  # noqa: E402
    api_employee_to_employee,
    monthly_schedule_to_payload,
    shifts_to_week_detail,
    week_detail_to_shift_requests,
)
from database import (  # noqa: E402
    SessionLocal,
    get_active_policy,
    get_or_create_monthly_schedule,
    init_database,
    record_audit_log,
    save_monthly_schedule,
    upsert_policy,
)
from errors import ScheduleError  # noqa: E402
from models import Employee, TimeRange  # noqa: E402
from monthly_schedule import ScheduleMutator  # noqa: E402
from payroll import payroll_for_week, payroll_totals  # noqa: E402
from policy import ensure_default_policy, load_active_policy  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from timeutil import Week, normalize_week_start, parse_date_key, weeks_for_year_month  # noqa: E402
from validation import validate_month_schedule  # noqa: E402


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_database()
    ensure_default_policy(SessionLocal)
    yield


app = FastAPI(title="Shift Schedule & Payroll API", version="0.1", lifespan=lifespan)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class SessionAuditLogger:
    """Writes schedule mutation events to the ``audit_log`` table of the request session."""

    def __init__(self, db: Session, target_id: Optional[str]) -> None:
        self.db = db
        self.target_id = target_id

    def log(
        self,
        event: str,
        username: Optional[str],
        *,
        role: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        _audit(self.db, actor=username or "api", action=event, target=self.target_id, payload=details)


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=400, detail=str(exc))


def _weeks(year_month: str) -> List[Week]:
    try:
        return weeks_for_year_month(year_month)
    except ScheduleError as exc:
        raise _bad_request(exc) from exc


def _week_by_start(year_month: str, week_start: str) -> Week:
    try:
        start = normalize_week_start(parse_date_key(week_start))
    except ValueError:
        raise HTTPException(status_code=400, detail="weekStart must be YYYY-MM-DD")
    for week in _weeks(year_month):
        if week.start == start:
            return week
    raise HTTPException(status_code=404, detail=f"Week {start.isoformat()} is not part of {year_month}")


def _week_by_index(weeks: List[Week], value: Any) -> Week:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value < len(weeks):
        raise HTTPException(status_code=400, detail=f"Unknown week index {value!r}")
    return weeks[value]


def _selected_weeks(weeks: List[Week], indices: Any, *, default: Optional[List[Week]] = None) -> List[Week]:
    if not indices:
        return weeks if default is None else default
    if not isinstance(indices, list):
        raise HTTPException(status_code=400, detail="week indices must be a list")
    return [_week_by_index(weeks, index) for index in indices]


def _employees(payload: Dict[str, Any]) -> List[Employee]:
    try:
        return [api_employee_to_employee(entry) for entry in payload.get("employees") or []]
    except (KeyError, ValueError) as exc:
        raise _bad_request(exc) from exc


def _actor(payload: Optional[Dict[str, Any]]) -> str:
    actor = (payload or {}).get("actor")
    if actor is None:
        return "api"
    if not isinstance(actor, str):
        raise HTTPException(status_code=400, detail="actor must be a string")
    return actor.strip() or "api"


def _audit(db: Session, actor: str, action: str, target: Optional[str], payload: Optional[Dict[str, Any]] = None) -> None:
    record_audit_log(db, user_id=actor, action=action, target_type="MonthlySchedule", target_id=target, payload=payload)


def _month_response(monthly, weeks: Optional[List[Week]] = None) -> JSONResponse:
    content: Dict[str, Any] = {"schedule": monthly_schedule_to_payload(monthly)}
    if weeks is not None:
        content["weeks"] = [week.as_dict() for week in weeks]
    return JSONResponse(content=jsonable_encoder(content))


def _mutate(
    db: Session,
    year_month: str,
    payload: Optional[Dict[str, Any]],
    operation: Callable[[ScheduleMutator], Any],
    *,
    employees: Optional[List[Employee]] = None,
) -> JSONResponse:
    _weeks(year_month)
    actor = _actor(payload)
    monthly = get_or_create_monthly_schedule(db, year_month)
    audit_logger = SessionAuditLogger(db, monthly.id)
    mutator = ScheduleMutator(monthly, employees or [], actor=actor, audit_logger=audit_logger)
    try:
        operation(mutator)
    except (ScheduleError, TypeError, ValueError) as exc:
        raise _bad_request(exc) from exc
    save_monthly_schedule(db, mutator.monthly)
    return _month_response(mutator.monthly)


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.get("/api/v1/months/{year_month}")
def month_schedule(year_month: str, db=Depends(get_db)) -> JSONResponse:
    weeks = _weeks(year_month)
    monthly = get_or_create_monthly_schedule(db, year_month)
    return _month_response(monthly, weeks)


@app.put("/api/v1/months/{year_month}/weeks/{week_start}")
def sync_week(
    year_month: str,
    week_start: str,
    payload: Dict[str, Any],
    db=Depends(get_db),
) -> JSONResponse:
    week = _week_by_start(year_month, week_start)
    try:
        detail = shifts_to_week_detail(payload.get("shifts") or [])
    except (KeyError, ValueError) as exc:
        raise _bad_request(exc) from exc
    # A full week sync also clears days that came back without shifts.
    for key in week.keys:
        detail.setdefault(key, {})
    return _mutate(db, year_month, payload, lambda m: m.merge_weekly_detail(detail))


@app.get("/api/v1/months/{year_month}/weeks/{week_start}/shifts")
def week_shift_requests(year_month: str, week_start: str, db=Depends(get_db)) -> JSONResponse:
    week = _week_by_start(year_month, week_start)
    monthly = get_or_create_monthly_schedule(db, year_month)
    return JSONResponse(
        content=jsonable_encoder(
            {"week_start": week.start.isoformat(), "shifts": week_detail_to_shift_requests(monthly, week)}
        )
    )


@app.post("/api/v1/months/{year_month}/shift")
def set_shift_endpoint(
    year_month: str,
    payload: Dict[str, Any],
    db=Depends(get_db),
) -> JSONResponse:
    day = payload.get("date")
    employee_id = payload.get("employeeId")
    if not day or employee_id is None:
        raise HTTPException(status_code=400, detail="date and employeeId are required")
    start, end = payload.get("start"), payload.get("end")
    if bool(start) != bool(end):
        raise HTTPException(status_code=400, detail="start and end must be given together")
    try:
        time_range = TimeRange.parse(start, end) if start and end else None
    except ScheduleError as exc:
        raise _bad_request(exc) from exc
    return _mutate(db, year_month, payload, lambda m: m.set_shift(day, employee_id, time_range))


@app.post("/api/v1/months/{year_month}/slot")
def add_to_slot(
    year_month: str,
    payload: Dict[str, Any],
    db=Depends(get_db),
) -> JSONResponse:
    day = payload.get("date")
    if not day:
        raise HTTPException(status_code=400, detail="date is required")
    employees = _employees(payload)
    return _mutate(
        db,
        year_month,
        payload,
        lambda m: m.add_employees(day, [employee.id for employee in employees]),
        employees=employees,
    )


@app.post("/api/v1/months/{year_month}/auto-fill")
def auto_fill(
    year_month: str,
    payload: Dict[str, Any],
    db=Depends(get_db),
) -> JSONResponse:
    weeks = _weeks(year_month)
    selected = _selected_weeks(weeks, payload.get("weeks"))
    employees = _employees(payload)
    return _mutate(db, year_month, payload, lambda m: m.auto_fill(selected), employees=employees)


@app.post("/api/v1/months/{year_month}/copy-pattern")
def copy_pattern(
    year_month: str,
    payload: Dict[str, Any],
    db=Depends(get_db),
) -> JSONResponse:
    weeks = _weeks(year_month)
    if payload.get("sourceWeek") is None:
        raise HTTPException(status_code=400, detail="sourceWeek is required")
    source = _week_by_index(weeks, payload.get("sourceWeek"))
    targets = _selected_weeks(weeks, payload.get("targetWeeks"), default=[])
    return _mutate(db, year_month, payload, lambda m: m.copy_week_pattern(source, targets))


@app.post("/api/v1/months/{year_month}/send")
def send_schedule(
    year_month: str,
    payload: Dict[str, Any] | None = None,
    db=Depends(get_db),
) -> JSONResponse:
    return _mutate(db, year_month, payload, lambda m: m.mark_sent())


@app.post("/api/v1/months/{year_month}/weeks/{week_start}/payroll")
def week_payroll(year_month: str, week_start: str, payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    week = _week_by_start(year_month, week_start)
    employees = _employees(payload)
    monthly = get_or_create_monthly_schedule(db, year_month)
    try:
        payrolls = payroll_for_week(
            monthly,
            week,
            employees,
            store_holiday=payload.get("storeHoliday"),
            policy=load_active_policy(db),
        )
    except ScheduleError as exc:
        raise _bad_request(exc) from exc
    return JSONResponse(
        content=jsonable_encoder(
            {
                "week_start": week.start.isoformat(),
                "payrolls": [row.as_dict() for row in payrolls],
                "totals": payroll_totals(payrolls),
            }
        )
    )


@app.post("/api/v1/months/{year_month}/validate")
def validate_month(year_month: str, payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    weeks = _weeks(year_month)
    selected = _selected_weeks(weeks, payload.get("weeks"))
    employees = _employees(payload)
    monthly = get_or_create_monthly_schedule(db, year_month)
    try:
        report = validate_month_schedule(
            monthly,
            employees,
            weeks=selected,
            store_holiday=payload.get("storeHoliday"),
            policy=load_active_policy(db),
        )
    except ScheduleError as exc:
        raise _bad_request(exc) from exc
    return JSONResponse(content=jsonable_encoder(report))


def _policy_payload(policy) -> Dict[str, Any]:
    return {
        "id": policy.id,
        "name": policy.name,
        "params": policy.params_dict(),
        "lastEditedBy": policy.lastEditedBy,
        "lastEditedAt": policy.lastEditedAt.isoformat() if policy.lastEditedAt else None,
    }


@app.get("/api/v1/policy/active")
def active_policy(db=Depends(get_db)) -> JSONResponse:
    policy = get_active_policy(db)
    if not policy:
        raise HTTPException(status_code=404, detail="No active policy found")
    return JSONResponse(content=jsonable_encoder(_policy_payload(policy)))


@app.put("/api/v1/policy/active")
def set_active_policy(payload: Dict[str, Any], db=Depends(get_db)) -> JSONResponse:
    name = payload.get("name")
    params = payload.get("params") or {}
    actor = _actor(payload)
    if not name:
        raise HTTPException(status_code=400, detail="name is required")
    policy = upsert_policy(db, name=name, params_dict=params, edited_by=actor)
    _audit(db, actor=actor, action="POLICY_EDIT", target=str(policy.id), payload={"name": policy.name})
    return JSONResponse(content=jsonable_encoder(_policy_payload(policy)))
