from __future__ import annotations

from datetime import datetime

from ...core.enums import AttendanceStatus
from .base import AttendanceStrategy, StatusDecision, WorkdayPolicy


class LateStrategy(AttendanceStrategy):
    """Late check-in."""

    def decide_checkin(self, *, now: datetime, policy: WorkdayPolicy) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.LATE, note=f"Checked in at {now.strftime('%H:%M')}")

    def decide_checkout(self, *, total_hours: float, policy: WorkdayPolicy, current: AttendanceStatus) -> StatusDecision:
        return StatusDecision(status=current)
