from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from decimal import Decimal
from typing import Mapping

from .core import constants
from .core.enums import DayCountRule, LeaveType, WeekendPolicy

# Only annual leave skips non-working days; every other type counts calendar days.
DAY_COUNT_RULES: dict[LeaveType, DayCountRule] = {
    LeaveType.ANNUAL: DayCountRule.BUSINESS_DAYS,
    LeaveType.SICK: DayCountRule.CALENDAR_DAYS,
    LeaveType.MATERNITY: DayCountRule.CALENDAR_DAYS,
    LeaveType.PATERNITY: DayCountRule.CALENDAR_DAYS,
    LeaveType.UNPAID: DayCountRule.CALENDAR_DAYS,
    LeaveType.OTHER: DayCountRule.CALENDAR_DAYS,
}


def _parse_time(value) -> time:
    if isinstance(value, time):
        return value
    hours, minutes = str(value).strip().split(":")[:2]
    return time(int(hours), int(minutes))


@dataclass(frozen=True)
class EngineSettings:
    """Policy knobs for attendance classification, leave and payroll."""

    late_threshold: time = constants.DEFAULT_LATE_THRESHOLD
    late_grace_minutes: int = constants.DEFAULT_LATE_GRACE_MINUTES
    standard_hours_per_day: float = constants.DEFAULT_STANDARD_HOURS_PER_DAY
    half_day_fraction: float = constants.DEFAULT_HALF_DAY_FRACTION
    annual_leave_days: int = constants.DEFAULT_ANNUAL_LEAVE_DAYS
    monthly_working_days: int = constants.DEFAULT_MONTHLY_WORKING_DAYS
    overtime_multiplier: Decimal = constants.DEFAULT_OVERTIME_MULTIPLIER
    weekend_policy: WeekendPolicy = WeekendPolicy.SAT_SUN
    statutory_deductions: bool = False
    day_count_rules: Mapping[LeaveType, DayCountRule] = field(default_factory=lambda: dict(DAY_COUNT_RULES))

    @classmethod
    def from_mapping(cls, values: Mapping | None) -> "EngineSettings":
        """Build settings from a config module's ENGINE dict; missing keys keep defaults."""
        values = dict(values or {})
        kwargs: dict = {}
        if "LATE_THRESHOLD" in values:
            kwargs["late_threshold"] = _parse_time(values["LATE_THRESHOLD"])
        if "LATE_GRACE_MINUTES" in values:
            kwargs["late_grace_minutes"] = int(values["LATE_GRACE_MINUTES"])
        if "STANDARD_HOURS_PER_DAY" in values:
            kwargs["standard_hours_per_day"] = float(values["STANDARD_HOURS_PER_DAY"])
        if "HALF_DAY_FRACTION" in values:
            kwargs["half_day_fraction"] = float(values["HALF_DAY_FRACTION"])
        if "ANNUAL_LEAVE_DAYS" in values:
            kwargs["annual_leave_days"] = int(values["ANNUAL_LEAVE_DAYS"])
        if "MONTHLY_WORKING_DAYS" in values:
            kwargs["monthly_working_days"] = int(values["MONTHLY_WORKING_DAYS"])
        if "OVERTIME_MULTIPLIER" in values:
            kwargs["overtime_multiplier"] = Decimal(str(values["OVERTIME_MULTIPLIER"]))
        if "WEEKEND_POLICY" in values:
            kwargs["weekend_policy"] = WeekendPolicy(values["WEEKEND_POLICY"])
        if "STATUTORY_DEDUCTIONS" in values:
            kwargs["statutory_deductions"] = bool(values["STATUTORY_DEDUCTIONS"])
        if "DAY_COUNT_RULES" in values:
            rules = dict(DAY_COUNT_RULES)
            for leave_type, rule in dict(values["DAY_COUNT_RULES"]).items():
                rules[LeaveType(leave_type)] = DayCountRule(rule)
            kwargs["day_count_rules"] = rules
        return cls(**kwargs)

    def day_count_rule(self, leave_type: LeaveType) -> DayCountRule:
        return self.day_count_rules.get(leave_type, DayCountRule.CALENDAR_DAYS)
