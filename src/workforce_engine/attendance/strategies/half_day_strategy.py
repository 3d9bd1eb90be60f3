from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision, WorkdayPolicy


class HalfDayStrategy(AttendanceStrategy):
    """Checked out having worked less than the half-day threshold."""

    def decide_checkin(self, *, now: datetime, policy: WorkdayPolicy) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)

    def decide_checkout(self, *, total_hours: float, policy: WorkdayPolicy, current: AttendanceStatus) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.HALF_DAY)
