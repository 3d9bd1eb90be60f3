from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import AttendanceStatus
from .model import AttendanceFilter, AttendanceRecord


class AttendanceRepository(Protocol):
    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_for_employee(self, employee_id: str, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_records(self, query: AttendanceFilter) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def create(
        self,
        *,
        employee_id: str,
        work_date: date,
        status: AttendanceStatus,
        check_in_time: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> Optional[AttendanceRecord]:
        """Insert a new record. None when (employee_id, work_date) already exists."""

        raise NotImplementedError

    def record_checkin(
        self,
        *,
        attendance_id: int,
        check_in_time: datetime,
        status: AttendanceStatus,
    ) -> bool:
        """Set check-in on a record that has none yet. False if it already had one."""

        raise NotImplementedError

    def record_checkout(
        self,
        *,
        attendance_id: int,
        check_out_time: datetime,
        break_end: Optional[datetime],
        total_hours: float,
        status: AttendanceStatus,
        note: Optional[str] = None,
    ) -> bool:
        """Conditional update: only applies while check_out_time is still unset.

        A None ``note`` keeps the note stored at check-in.
        """

        raise NotImplementedError

    def record_break(
        self,
        *,
        attendance_id: int,
        break_start: Optional[datetime] = None,
        break_end: Optional[datetime] = None,
    ) -> bool:
        """Set break start or end on an open record. False if the record was closed meanwhile."""

        raise NotImplementedError
