from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional

from ...core.enums import AttendanceStatus
from ...settings import EngineSettings


@dataclass(frozen=True)
class WorkdayPolicy:
    """Thresholds used to classify a day's attendance."""

    late_threshold: time
    grace_minutes: int
    standard_hours: float
    half_day_fraction: float

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> "WorkdayPolicy":
        return cls(
            late_threshold=settings.late_threshold,
            grace_minutes=int(settings.late_grace_minutes),
            standard_hours=float(settings.standard_hours_per_day),
            half_day_fraction=float(settings.half_day_fraction),
        )

    @property
    def half_day_hours(self) -> float:
        return self.standard_hours * self.half_day_fraction


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus
    note: Optional[str] = None


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how we decide an attendance status."""

    @abstractmethod
    def decide_checkin(self, *, now: datetime, policy: WorkdayPolicy) -> StatusDecision:
        raise NotImplementedError

    @abstractmethod
    def decide_checkout(self, *, total_hours: float, policy: WorkdayPolicy, current: AttendanceStatus) -> StatusDecision:
        raise NotImplementedError
