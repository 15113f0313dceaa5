from __future__ import annotations

import datetime
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy import Boolean, DateTime, Integer, String, Text, UniqueConstraint, create_engine, select
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from data_exchange import monthly_schedule_from_payload, monthly_schedule_to_payload
from models import MonthlySchedule
from timeutil import parse_year_month


DATA_DIR = Path(__file__).resolve().parent / "data"
DATA_DIR.mkdir(parents=True, exist_ok=True)
SCHEDULE_DATABASE_URL = f"sqlite:///{(DATA_DIR / 'schedule.db').as_posix()}"
POLICY_DATABASE_URL = f"sqlite:///{(DATA_DIR / 'policy.db').as_posix()}"


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class PolicyBase(DeclarativeBase):
    """Standalone metadata for policy tables living in policy.db."""

    pass


class Base(DeclarativeBase):
    """Metadata for schedule/audit tables living in schedule.db."""

    pass


class Policy(PolicyBase):
    __tablename__ = "policies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    paramsJSON: Mapped[str] = mapped_column(String(8000), nullable=False, default="{}")
    lastEditedBy: Mapped[str] = mapped_column(String(60), nullable=False, default="system")
    lastEditedAt: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        UniqueConstraint("name", name="uq_policies_name"),
    )

    def params_dict(self) -> Dict:
        try:
            value = json.loads(self.paramsJSON or "{}")
            if isinstance(value, dict):
                return value
        except json.JSONDecodeError:
            pass
        return {}


class MonthlyScheduleRecord(Base):
    __tablename__ = "monthly_schedules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    public_id: Mapped[str] = mapped_column(String(40), nullable=False)
    year_month: Mapped[str] = mapped_column(String(7), nullable=False)
    scheduleJSON: Mapped[str] = mapped_column(Text, nullable=False, default="{}")
    last_sent_at: Mapped[datetime.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_modified_after_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (UniqueConstraint("year_month", name="uq_monthly_schedules_year_month"),)

    def to_schedule(self) -> MonthlySchedule:
        try:
            days = json.loads(self.scheduleJSON or "{}")
        except json.JSONDecodeError:
            days = {}
        last_sent = self.last_sent_at
        if last_sent is not None and last_sent.tzinfo is None:
            last_sent = last_sent.replace(tzinfo=datetime.timezone.utc)
        return monthly_schedule_from_payload(
            {
                "id": self.public_id,
                "yearMonth": self.year_month,
                "schedule": days if isinstance(days, dict) else {},
                "lastSentAt": last_sent.isoformat() if last_sent else None,
                "isModifiedAfterSent": bool(self.is_modified_after_sent),
            }
        )


class AuditLog(Base):
    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(60), nullable=False)
    action: Mapped[str] = mapped_column(String(60), nullable=False)
    target_type: Mapped[str] = mapped_column(String(32), nullable=False, default="MonthlySchedule")
    target_id: Mapped[str | None] = mapped_column(String(40), nullable=True)
    payloadJSON: Mapped[str] = mapped_column(String(2000), nullable=False, default="{}")
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


schedule_engine = create_engine(
    SCHEDULE_DATABASE_URL,
    echo=False,
    future=True,
)
policy_engine = create_engine(
    POLICY_DATABASE_URL,
    echo=False,
    future=True,
)
SessionLocal = sessionmaker(bind=schedule_engine, expire_on_commit=False, future=True)
PolicySessionLocal = sessionmaker(bind=policy_engine, expire_on_commit=False, future=True)


def init_database() -> None:
    Base.metadata.create_all(schedule_engine)
    PolicyBase.metadata.create_all(policy_engine)


def _coerce_policy_session(session):
    """Return (policy_session, should_close) ensuring policy data stays in its own database."""
    PolicyBase.metadata.create_all(policy_engine)
    if session is None:
        return PolicySessionLocal(), True
    bind = getattr(session, "bind", None)
    if bind is schedule_engine and policy_engine is not schedule_engine:
        return PolicySessionLocal(), True
    return session, False


def get_policies(session) -> List[Policy]:
    policy_session, close_session = _coerce_policy_session(session)
    try:
        stmt = select(Policy).order_by(Policy.name.asc(), Policy.id.asc())
        return list(policy_session.scalars(stmt))
    finally:
        if close_session:
            policy_session.close()


def upsert_policy(session, name: str, params_dict: Dict, *, edited_by: str = "system") -> Policy:
    policy_session, close_session = _coerce_policy_session(session)
    try:
        existing: Optional[Policy] = policy_session.execute(
            select(Policy).where(Policy.name == name)
        ).scalars().first()
        payload = params_dict if isinstance(params_dict, dict) else {}
        if existing:
            existing.paramsJSON = json.dumps(payload)
            existing.lastEditedBy = edited_by
            existing.lastEditedAt = _utcnow()
            policy_session.commit()
            policy_session.refresh(existing)
            return existing
        policy = Policy(
            name=name,
            paramsJSON=json.dumps(payload),
            lastEditedBy=edited_by,
            lastEditedAt=_utcnow(),
        )
        policy_session.add(policy)
        policy_session.commit()
        policy_session.refresh(policy)
        return policy
    finally:
        if close_session:
            policy_session.close()


def get_active_policy(session) -> Optional[Policy]:
    policy_session, close_session = _coerce_policy_session(session)
    try:
        stmt = select(Policy).order_by(Policy.lastEditedAt.desc(), Policy.id.desc())
        return policy_session.scalars(stmt).first()
    finally:
        if close_session:
            policy_session.close()


def _find_month(session, year_month: str) -> Optional[MonthlyScheduleRecord]:
    stmt = select(MonthlyScheduleRecord).where(MonthlyScheduleRecord.year_month == year_month)
    return session.scalars(stmt).first()


def _normalize_year_month(year_month: str) -> str:
    year, month = parse_year_month(year_month)
    return f"{year:04d}-{month:02d}"


def get_monthly_schedule(session, year_month: str) -> Optional[MonthlySchedule]:
    record = _find_month(session, _normalize_year_month(year_month))
    return record.to_schedule() if record else None


def get_or_create_monthly_schedule(session, year_month: str) -> MonthlySchedule:
    """Return the stored month, creating an empty one on first view."""
    normalized = _normalize_year_month(year_month)
    record = _find_month(session, normalized)
    if record:
        return record.to_schedule()
    monthly = MonthlySchedule.empty(normalized)
    save_monthly_schedule(session, monthly)
    return monthly


def save_monthly_schedule(session, monthly: MonthlySchedule) -> MonthlyScheduleRecord:
    payload = monthly_schedule_to_payload(monthly)
    record = _find_month(session, monthly.year_month)
    if record is None:
        record = MonthlyScheduleRecord(public_id=monthly.id, year_month=monthly.year_month)
        session.add(record)
    record.public_id = monthly.id
    record.scheduleJSON = json.dumps(payload["schedule"], ensure_ascii=False)
    record.last_sent_at = monthly.last_sent_at
    record.is_modified_after_sent = bool(monthly.is_modified_after_sent)
    session.commit()
    session.refresh(record)
    return record


def list_monthly_schedules(session) -> List[Dict[str, Any]]:
    stmt = select(MonthlyScheduleRecord).order_by(MonthlyScheduleRecord.year_month.desc())
    return [
        {
            "id": record.public_id,
            "year_month": record.year_month,
            "last_sent_at": record.last_sent_at,
            "is_modified_after_sent": bool(record.is_modified_after_sent),
        }
        for record in session.scalars(stmt)
    ]


def record_audit_log(
    session,
    user_id: str,
    action: str,
    target_type: str = "MonthlySchedule",
    target_id: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    log = AuditLog(
        user_id=user_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        payloadJSON=json.dumps(payload or {}, ensure_ascii=False),
    )
    session.add(log)
    session.commit()
    return log
