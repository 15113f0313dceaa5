from __future__ import annotations

import sys
import unittest

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pathlib import Path

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from database import PolicyBase, upsert_policy  # noqa: E402
import database as db  # noqa: E402
from models import Employee, MonthlySchedule, TimeRange  # noqa: E402
from monthly_schedule import set_shift  # noqa: E402
from policy import build_default_policy, load_active_policy  # noqa: E402
from timeutil import weeks_in_month  # noqa: E402
from validation import validate_month_schedule  # noqa: E402
from wages import validate_wages  # noqa: E402


class MonthValidationTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_engine(
            "sqlite://", future=True, connect_args={"check_same_thread": False}, poolclass=StaticPool
        )
        self._saved = (db.policy_engine, db.PolicySessionLocal)
        session_factory = sessionmaker(bind=self.engine, expire_on_commit=False, future=True)
        db.policy_engine = self.engine
        db.PolicySessionLocal = session_factory
        PolicyBase.metadata.create_all(self.engine)
        self.session = session_factory()
        upsert_policy(self.session, "Baseline", build_default_policy(), edited_by="tests")

        self.week = weeks_in_month(2024, 3)[0]  # 2024-04-01 .. 2024-04-07
        self.staff = [
            Employee(id="1", name="Minjun", hourly_rate=10000, shift_preset="morning", personal_holiday="SUNDAY"),
            Employee(id="2", name="Seoyeon", hourly_rate=0, shift_preset="afternoon"),
            Employee(id="3", name="Boss", hourly_rate=0, role="manager"),
            Employee(id="4", name="Hajun", hourly_rate=9000),
        ]

    def tearDown(self) -> None:
        self.session.close()
        self.engine.dispose()
        db.policy_engine, db.PolicySessionLocal = self._saved

    def _busy_month(self) -> MonthlySchedule:
        month = MonthlySchedule.empty("2024-04")
        month = set_shift(month, "2024-04-01", "1", TimeRange("08:00", "18:00"))
        month = set_shift(month, "2024-04-07", "1", TimeRange("10:00", "18:00"))
        month = set_shift(month, "2024-04-02", "2", TimeRange("13:00", "21:00"))
        month = set_shift(month, "2024-04-02", "99", TimeRange("10:00", "12:00"))
        month = set_shift(month, "2024-04-03", "99", None)
        for day in range(1, 7):
            month = set_shift(month, f"2024-04-{day:02d}", "4", TimeRange("10:00", "18:00"))
        return month

    def _validate(self, month: MonthlySchedule, **kwargs):
        return validate_month_schedule(
            month,
            self.staff,
            weeks=[self.week],
            policy=load_active_policy(self.session),
            **kwargs,
        )

    def test_reports_each_finding_type(self) -> None:
        report = self._validate(self._busy_month(), store_holiday="TUESDAY")

        self.assertEqual(report["year_month"], "2024-04")
        self.assertEqual(report["weeks"], ["2024-04-01"])

        unknown = [issue for issue in report["issues"] if issue["type"] == "unknown_employee"]
        self.assertEqual([(issue["employee_id"], issue["date"]) for issue in unknown], [("99", "2024-04-02")])

        wage = {issue["employee_id"]: issue["message"] for issue in report["issues"] if issue["type"] == "wage"}
        self.assertEqual(set(wage), {"2", "4"})
        self.assertIn("below minimum wage (9860)", wage["4"])

        window = [warning for warning in report["warnings"] if warning["type"] == "shift_window"]
        self.assertEqual(len(window), 1)
        self.assertEqual(window[0]["date"], "2024-04-01")
        self.assertEqual(window[0]["message"], "Minjun님의 기본 근무 시간은 10:00~18:00입니다.")

        holiday = [(w["employee_id"], w["date"]) for w in report["warnings"] if w["type"] == "holiday"]
        self.assertEqual(sorted(holiday), [("1", "2024-04-07"), ("2", "2024-04-02"), ("4", "2024-04-02")])

        weekly = [warning for warning in report["warnings"] if warning["type"] == "weekly_hours"]
        self.assertEqual(len(weekly), 1)
        self.assertEqual(weekly[0]["employee"], "Hajun")
        self.assertEqual(weekly[0]["hours"], 48.0)

        self.assertTrue(all(check["status"] == "fail" for check in report["checks"]))

    def test_clean_week_passes_every_check(self) -> None:
        staff = [self.staff[0]]
        month = set_shift(MonthlySchedule.empty("2024-04"), "2024-04-01", "1", TimeRange("10:00", "18:00"))
        report = validate_month_schedule(month, staff, weeks=[self.week])

        self.assertEqual(report["issues"], [])
        self.assertEqual(report["warnings"], [])
        self.assertEqual({check["status"] for check in report["checks"]}, {"ok"})

    def test_weekly_limit_comes_from_active_policy(self) -> None:
        params = build_default_policy()
        params["schedule"]["max_weekly_hours"] = 50
        upsert_policy(self.session, "Baseline", params, edited_by="tests")

        report = self._validate(self._busy_month())

        self.assertFalse([w for w in report["warnings"] if w["type"] == "weekly_hours"])

    def test_defaults_to_every_week_of_the_month(self) -> None:
        report = validate_month_schedule(MonthlySchedule.empty("2024-04"), [])
        self.assertEqual(report["weeks"][0], "2024-04-01")
        self.assertEqual(report["weeks"][-1], "2024-04-29")


class WageValidationTests(unittest.TestCase):
    def test_zero_wage_allowed_only_for_configured_roles(self) -> None:
        staff = [
            Employee(id="1", name="Staff", hourly_rate=0),
            Employee(id="2", name="Manager", hourly_rate=0, role="manager"),
            Employee(id="3", name="Fair", hourly_rate=9860),
        ]
        self.assertEqual(validate_wages(staff), {"1": "wage is zero"})
        self.assertEqual(
            validate_wages(staff, {"wages": {"allow_zero_roles": []}}),
            {"1": "wage is zero", "2": "wage is zero"},
        )
        self.assertEqual(validate_wages(staff, {"wages": {"minimum_hourly": 10000}})["3"], "below minimum wage (10000)")


if __name__ == "__main__":
    unittest.main()
