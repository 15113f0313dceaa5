from __future__ import annotations

import sys
import unittest
from pathlib import Path

APP_DIR = Path(__file__).resolve().parents[1] / "app"
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from errors import InvalidRate, InvalidTimeFormat, UnknownPreset  # noqa: E402
from models import Employee, TimeRange  # noqa: E402
from shift_policy import (  # noqa: E402
    default_window,
    is_outside_default_window,
    preset_window,
    violation_message,
)


class DefaultWindowTests(unittest.TestCase):
    def test_morning_ignores_custom_times(self) -> None:
        employee = Employee(
            id="1",
            name="Minjun",
            shift_preset="morning",
            custom_shift_start="01:00",
            custom_shift_end="02:00",
        )
        self.assertEqual(default_window(employee), TimeRange("10:00", "18:00"))

    def test_missing_preset_defaults_to_morning(self) -> None:
        employee = Employee(id="2", name="Seoyeon")
        self.assertEqual(default_window(employee), TimeRange("10:00", "18:00"))

    def test_afternoon_preset(self) -> None:
        employee = Employee(id="3", name="Hajun", shift_preset="AFTERNOON")
        self.assertEqual(default_window(employee), TimeRange("13:00", "21:00"))

    def test_custom_preset_uses_custom_window(self) -> None:
        employee = Employee(
            id="4",
            name="Jiwoo",
            shift_preset="custom",
            custom_shift_start="18:00:00",
            custom_shift_end="22:00",
        )
        self.assertEqual(default_window(employee), TimeRange("18:00", "22:00"))

    def test_custom_preset_requires_both_times(self) -> None:
        with self.assertRaises(InvalidTimeFormat):
            Employee(id="5", name="Nobody", shift_preset="custom", custom_shift_start="09:00")

    def test_unknown_preset_is_rejected(self) -> None:
        with self.assertRaises(UnknownPreset):
            Employee(id="6", name="Night Owl", shift_preset="night")
        with self.assertRaises(UnknownPreset):
            preset_window("night")

    def test_negative_rate_is_rejected(self) -> None:
        with self.assertRaises(InvalidRate):
            Employee(id="7", name="Broke", hourly_rate=-1)


class OutsideWindowTests(unittest.TestCase):
    def setUp(self) -> None:
        self.employee = Employee(id="1", name="Minjun", shift_preset="morning")

    def test_no_shift_is_never_outside(self) -> None:
        self.assertFalse(is_outside_default_window(self.employee, None))

    def test_earlier_start_is_outside(self) -> None:
        self.assertTrue(is_outside_default_window(self.employee, TimeRange("08:00", "18:00")))

    def test_later_end_is_outside(self) -> None:
        self.assertTrue(is_outside_default_window(self.employee, TimeRange("10:00", "19:00")))

    def test_inside_window(self) -> None:
        self.assertFalse(is_outside_default_window(self.employee, TimeRange("10:00", "18:00")))
        self.assertFalse(is_outside_default_window(self.employee, TimeRange("12:00", "16:00")))

    def test_message_names_employee_and_window(self) -> None:
        self.assertEqual(violation_message(self.employee), "Minjun님의 기본 근무 시간은 10:00~18:00입니다.")


if __name__ == "__main__":
    unittest.main()
