from __future__ import annotations


class ScheduleError(ValueError):
    """Base class for rejected schedule or payroll input."""


class InvalidTimeFormat(ScheduleError):
    """Raised when a time string is not a valid 24-hour HH:MM value."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid time '{value}'; expected HH:MM (24-hour).")
        self.value = value


class InvalidRate(ScheduleError):
    """Raised for a negative or non-numeric hourly rate."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Hourly rate must be a non-negative whole number, got {value!r}.")
        self.value = value


class InvalidHours(ScheduleError):
    """Raised for negative or non-numeric worked hours."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Worked hours must be non-negative, got {value!r}.")
        self.value = value


class UnknownPreset(ScheduleError):
    """Raised when a shift preset is not one of the supported names."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Unknown shift preset '{value}'.")
        self.value = value


class UnknownWeekday(ScheduleError):
    def __init__(self, value: object) -> None:
        super().__init__(f"Unknown weekday '{value}'.")
        self.value = value


class InvalidYearMonth(ScheduleError):
    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid month '{value}'; expected YYYY-MM.")
        self.value = value
