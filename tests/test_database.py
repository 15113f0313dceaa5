from __future__ import annotations

import datetime
import json
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

import database as db  # noqa: E402
from database import (  # noqa: E402
    AuditLog,
    Base,
    PolicyBase,
    get_active_policy,
    get_monthly_schedule,
    get_or_create_monthly_schedule,
    get_policies,
    list_monthly_schedules,
    record_audit_log,
    save_monthly_schedule,
    upsert_policy,
)
from errors import InvalidYearMonth  # noqa: E402
from models import TimeRange  # noqa: E402
from monthly_schedule import mark_sent, set_shift  # noqa: E402
from policy import ensure_default_policy, load_active_policy  # noqa: E402

UTC = datetime.timezone.utc


@pytest.fixture()
def memory_db(monkeypatch):
    """Single in-memory engine shared by the schedule and policy tables."""
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Session = sessionmaker(bind=engine, expire_on_commit=False, future=True)

    monkeypatch.setattr(db, "schedule_engine", engine)
    monkeypatch.setattr(db, "policy_engine", engine)
    monkeypatch.setattr(db, "SessionLocal", Session)
    monkeypatch.setattr(db, "PolicySessionLocal", Session)

    Base.metadata.create_all(engine)
    PolicyBase.metadata.create_all(engine)

    session = Session()
    try:
        yield {"session": session, "factory": Session, "engine": engine}
    finally:
        session.close()
        engine.dispose()


def test_first_view_creates_an_empty_month(memory_db) -> None:
    session = memory_db["session"]

    assert get_monthly_schedule(session, "2024-04") is None
    created = get_or_create_monthly_schedule(session, "2024-04")
    again = get_or_create_monthly_schedule(session, "2024-04")

    assert created.schedule == {}
    assert again.id == created.id
    assert [row["year_month"] for row in list_monthly_schedules(session)] == ["2024-04"]


def test_rejects_malformed_year_month(memory_db) -> None:
    with pytest.raises(InvalidYearMonth):
        get_or_create_monthly_schedule(memory_db["session"], "2024-4")


def test_saved_month_reloads_with_sent_state(memory_db) -> None:
    session = memory_db["session"]
    sent_at = datetime.datetime(2024, 4, 1, 9, 30, tzinfo=UTC)
    monthly = get_or_create_monthly_schedule(session, "2024-04")
    monthly = set_shift(monthly, "2024-04-01", "1", TimeRange("10:00", "18:00"))
    monthly = set_shift(monthly, "2024-04-02", "1", None)
    monthly = mark_sent(monthly, now=sent_at)
    monthly = set_shift(monthly, "2024-04-03", "2", TimeRange("22:00", "06:00"))

    save_monthly_schedule(session, monthly)
    loaded = get_monthly_schedule(session, "2024-04")

    assert loaded.schedule == monthly.schedule
    assert loaded.has_entry("2024-04-02", "1")
    assert loaded.last_sent_at == sent_at
    assert loaded.is_modified_after_sent is True
    assert len(list_monthly_schedules(session)) == 1


def test_policy_upsert_and_active_lookup(memory_db) -> None:
    session = memory_db["session"]
    upsert_policy(session, "Baseline", {"overtime": {"multiplier": 2}}, edited_by="owner")
    updated = upsert_policy(session, "Baseline", {"overtime": {"multiplier": 1.5}}, edited_by="manager")

    assert [policy.name for policy in get_policies(session)] == ["Baseline"]
    assert updated.lastEditedBy == "manager"
    active = get_active_policy(session)
    assert active.params_dict() == {"overtime": {"multiplier": 1.5}}


def test_load_active_policy_merges_onto_baseline(memory_db) -> None:
    session = memory_db["session"]
    assert load_active_policy(None)["night"]["start"] == "22:00"

    upsert_policy(session, "Custom", {"night": {"start": "21:00", "multiplier": "oops"}}, edited_by="tests")
    settings = load_active_policy(memory_db["factory"])

    assert settings["night"]["start"] == "21:00"
    assert settings["night"]["multiplier"] == 0.5
    assert settings["weekly_holiday"]["min_hours"] == 15.0


def test_ensure_default_policy_seeds_once(memory_db) -> None:
    factory = memory_db["factory"]
    ensure_default_policy(factory)
    ensure_default_policy(factory)

    policies = get_policies(memory_db["session"])
    assert [policy.name for policy in policies] == ["Baseline Pay Policy"]
    assert "name" not in policies[0].params_dict()
    assert policies[0].params_dict()["wages"]["minimum_hourly"] == 9860


def test_record_audit_log(memory_db) -> None:
    session = memory_db["session"]
    record_audit_log(session, "owner", "SCHEDULE_SENT", target_id="abc", payload={"year_month": "2024-04"})

    row = session.scalars(select(AuditLog)).one()
    assert (row.user_id, row.action, row.target_type, row.target_id) == (
        "owner",
        "SCHEDULE_SENT",
        "MonthlySchedule",
        "abc",
    )
    assert json.loads(row.payloadJSON) == {"year_month": "2024-04"}
