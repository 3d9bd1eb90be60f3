from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one employee's attendance for one calendar date."""

    attendance_id: int
    employee_id: str
    work_date: date
    status: AttendanceStatus
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    break_start: Optional[datetime] = None
    break_end: Optional[datetime] = None
    total_hours: float = 0.0
    note: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.check_in_time is not None and self.check_out_time is None

    @property
    def is_completed(self) -> bool:
        return self.check_in_time is not None and self.check_out_time is not None

    @property
    def on_break(self) -> bool:
        return self.break_start is not None and self.break_end is None


@dataclass(frozen=True)
class AttendanceSummary:
    total_days: int
    present_days: int
    absent_days: int
    late_days: int
    half_days: int
    total_hours: float
    average_hours: float
    overtime_hours: float

    def to_dict(self) -> dict:
        return {
            "totalDays": self.total_days,
            "presentDays": self.present_days,
            "absentDays": self.absent_days,
            "lateDays": self.late_days,
            "halfDays": self.half_days,
            "totalHours": self.total_hours,
            "averageHours": self.average_hours,
            "overtimeHours": self.overtime_hours,
        }


@dataclass(frozen=True)
class AttendanceFilter:
    """Query options for attendance listings. Every field is optional.

    employee_id: only this employee's records.
    date_from / date_to: inclusive bounds on work_date.
    status: only records with this status.
    limit: maximum number of rows, newest first.
    """

    employee_id: Optional[str] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    status: Optional[AttendanceStatus] = None
    limit: int = 200


def record_to_dict(r: AttendanceRecord) -> dict:
    return {
        "id": r.attendance_id,
        "employeeId": r.employee_id,
        "date": r.work_date.isoformat(),
        "checkIn": r.check_in_time.isoformat() if r.check_in_time else None,
        "checkOut": r.check_out_time.isoformat() if r.check_out_time else None,
        "breakStart": r.break_start.isoformat() if r.break_start else None,
        "breakEnd": r.break_end.isoformat() if r.break_end else None,
        "totalHours": r.total_hours,
        "status": r.status.value,
        "note": r.note,
    }
