from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision, WorkdayPolicy


class OvertimeStrategy(AttendanceStrategy):
    """On-time day that ran past the standard hours."""

    def decide_checkin(self, *, now: datetime, policy: WorkdayPolicy) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)

    def decide_checkout(self, *, total_hours: float, policy: WorkdayPolicy, current: AttendanceStatus) -> StatusDecision:
        extra = round(total_hours - policy.standard_hours, 2)
        return StatusDecision(status=AttendanceStatus.OVERTIME, note=f"{extra}h overtime")
