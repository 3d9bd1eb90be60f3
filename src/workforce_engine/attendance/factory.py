from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

from ..core.enums import AttendanceStatus
from .strategies.base import AttendanceStrategy, WorkdayPolicy
from .strategies.half_day_strategy import HalfDayStrategy
from .strategies.late_strategy import LateStrategy
from .strategies.normal_strategy import NormalStrategy
from .strategies.overtime_strategy import OvertimeStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_checkin(self, *, now: datetime, policy: WorkdayPolicy) -> AttendanceStrategy:
        cutoff = datetime.combine(now.date(), policy.late_threshold) + timedelta(minutes=policy.grace_minutes)
        if now <= cutoff:
            return NormalStrategy()
        return LateStrategy()

    def for_checkout(self, *, total_hours: float, policy: WorkdayPolicy, current_status: AttendanceStatus) -> AttendanceStrategy:
        if total_hours < policy.half_day_hours:
            return HalfDayStrategy()
        if total_hours > policy.standard_hours and current_status == AttendanceStatus.PRESENT:
            return OvertimeStrategy()
        return NormalStrategy()
