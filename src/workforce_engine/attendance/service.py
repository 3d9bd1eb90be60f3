from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional, Sequence

from ..common.calendar_utils import calendar_days_between, period_bounds
from ..common.datetime_utils import Clock, SystemClock
from ..common.validators import require_id
from ..core.enums import ATTENDED_STATUSES, AttendanceStatus
from ..core.exceptions import (
    DuplicateCheckInError,
    InvalidStateError,
    NoOpenCheckInError,
    NotFoundError,
    ValidationError,
)
from ..settings import EngineSettings
from .factory import AttendanceStrategyFactory
from .model import AttendanceFilter, AttendanceRecord, AttendanceSummary
from .repository import AttendanceRepository
from .strategies.base import WorkdayPolicy

logger = logging.getLogger(__name__)


def worked_hours(
    check_in: datetime,
    check_out: datetime,
    break_start: Optional[datetime] = None,
    break_end: Optional[datetime] = None,
) -> float:
    """(out - in) - break, not below 0, in hours rounded to 2 decimals."""
    seconds = (check_out - check_in).total_seconds()
    if break_start and break_end and break_end > break_start:
        seconds -= (break_end - break_start).total_seconds()
    return round(max(seconds, 0.0) / 3600, 2)


class AttendanceService:
    """Turns check-in/check-out/break events into daily records and summaries."""

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        clock: Clock | None = None,
        settings: EngineSettings | None = None,
        strategy_factory: AttendanceStrategyFactory | None = None,
    ):
        self._attendance = attendance
        self._clock = clock or SystemClock()
        self._policy = WorkdayPolicy.from_settings(settings or EngineSettings())
        self._factory = strategy_factory or AttendanceStrategyFactory()

    @property
    def policy(self) -> WorkdayPolicy:
        return self._policy

    def _require_open(self, employee_id: str, work_date: date) -> AttendanceRecord:
        record = self._attendance.get_for_employee_and_date(employee_id, work_date)
        if not record or not record.is_open:
            raise NoOpenCheckInError(f"No open check-in for employee {employee_id} on {work_date.isoformat()}")
        return record

    def _reload(self, employee_id: str, work_date: date) -> AttendanceRecord:
        record = self._attendance.get_for_employee_and_date(employee_id, work_date)
        if not record:
            raise NotFoundError(f"No attendance for employee {employee_id} on {work_date.isoformat()}")
        return record

    def check_in(self, employee_id: str, *, timestamp: datetime | None = None) -> AttendanceRecord:
        employee_id = require_id(employee_id, "employee_id")
        now = timestamp or self._clock.now()
        today = now.date()

        strategy = self._factory.for_checkin(now=now, policy=self._policy)
        decision = strategy.decide_checkin(now=now, policy=self._policy)

        existing = self._attendance.get_for_employee_and_date(employee_id, today)
        if existing:
            if existing.is_open:
                raise DuplicateCheckInError(f"Employee {employee_id} is already checked in on {today.isoformat()}")
            if existing.check_in_time is not None:
                raise DuplicateCheckInError(f"Attendance for {today.isoformat()} is already completed")

            # Absence placeholder: reuse the record for the real check-in.
            if not self._attendance.record_checkin(
                attendance_id=existing.attendance_id, check_in_time=now, status=decision.status
            ):
                raise DuplicateCheckInError(f"Employee {employee_id} is already checked in on {today.isoformat()}")
            record = self._reload(employee_id, today)
        else:
            created = self._attendance.create(
                employee_id=employee_id,
                work_date=today,
                status=decision.status,
                check_in_time=now,
                note=decision.note,
            )
            if created is None:
                raise DuplicateCheckInError(f"Employee {employee_id} is already checked in on {today.isoformat()}")
            record = created

        logger.info("Check-in employee=%s date=%s status=%s", employee_id, today, record.status.value)
        return record

    def check_out(self, employee_id: str, *, timestamp: datetime | None = None) -> AttendanceRecord:
        employee_id = require_id(employee_id, "employee_id")
        now = timestamp or self._clock.now()
        record = self._require_open(employee_id, now.date())

        if now < record.check_in_time:
            raise ValidationError("Check-out time cannot be earlier than check-in time")

        # An unfinished break ends with the day.
        break_end = now if record.on_break else record.break_end
        hours = worked_hours(record.check_in_time, now, record.break_start, break_end)

        strategy = self._factory.for_checkout(total_hours=hours, policy=self._policy, current_status=record.status)
        decision = strategy.decide_checkout(total_hours=hours, policy=self._policy, current=record.status)

        ok = self._attendance.record_checkout(
            attendance_id=record.attendance_id,
            check_out_time=now,
            break_end=break_end,
            total_hours=hours,
            status=decision.status,
            note=decision.note,
        )
        if not ok:
            raise NoOpenCheckInError(f"Employee {employee_id} has already checked out")

        logger.info(
            "Check-out employee=%s date=%s hours=%.2f status=%s",
            employee_id,
            record.work_date,
            hours,
            decision.status.value,
        )
        return self._reload(employee_id, record.work_date)

    def start_break(self, employee_id: str, *, timestamp: datetime | None = None) -> AttendanceRecord:
        employee_id = require_id(employee_id, "employee_id")
        now = timestamp or self._clock.now()
        record = self._require_open(employee_id, now.date())

        if record.break_start is not None:
            raise InvalidStateError("A break has already been recorded for today")
        if now < record.check_in_time:
            raise ValidationError("Break cannot start before check-in")

        if not self._attendance.record_break(attendance_id=record.attendance_id, break_start=now):
            raise NoOpenCheckInError(f"Employee {employee_id} has already checked out")
        return self._reload(employee_id, record.work_date)

    def end_break(self, employee_id: str, *, timestamp: datetime | None = None) -> AttendanceRecord:
        employee_id = require_id(employee_id, "employee_id")
        now = timestamp or self._clock.now()
        record = self._require_open(employee_id, now.date())

        if not record.on_break:
            raise InvalidStateError("No break in progress")
        if now < record.break_start:
            raise ValidationError("Break cannot end before it starts")

        if not self._attendance.record_break(attendance_id=record.attendance_id, break_end=now):
            raise NoOpenCheckInError(f"Employee {employee_id} has already checked out")
        return self._reload(employee_id, record.work_date)

    def mark_absent(self, employee_id: str, work_date: date, *, note: str | None = None) -> AttendanceRecord:
        employee_id = require_id(employee_id, "employee_id")
        created = self._attendance.create(
            employee_id=employee_id,
            work_date=work_date,
            status=AttendanceStatus.ABSENT,
            note=(note or "").strip() or None,
        )
        if created is None:
            raise DuplicateCheckInError(f"Attendance for {work_date.isoformat()} already exists")
        logger.info("Marked absent employee=%s date=%s", employee_id, work_date)
        return created

    def get_record(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        return self._attendance.get_for_employee_and_date(employee_id, work_date)

    def list_records(self, query: AttendanceFilter | None = None) -> Sequence[AttendanceRecord]:
        query = query or AttendanceFilter()
        if query.date_from and query.date_to:
            calendar_days_between(query.date_from, query.date_to)
        return self._attendance.list_records(query)

    def summarize(self, employee_id: str, start_date: date, end_date: date) -> AttendanceSummary:
        employee_id = require_id(employee_id, "employee_id")
        calendar_days_between(start_date, end_date)

        records = self._attendance.list_for_employee(employee_id, start_date, end_date)
        standard = self._policy.standard_hours

        present = sum(1 for r in records if r.status in ATTENDED_STATUSES)
        total_hours = round(sum(r.total_hours for r in records), 2)
        overtime = round(sum(max(r.total_hours - standard, 0.0) for r in records), 2)

        return AttendanceSummary(
            total_days=len(records),
            present_days=present,
            absent_days=sum(1 for r in records if r.status == AttendanceStatus.ABSENT),
            late_days=sum(1 for r in records if r.status == AttendanceStatus.LATE),
            half_days=sum(1 for r in records if r.status == AttendanceStatus.HALF_DAY),
            total_hours=total_hours,
            average_hours=round(total_hours / present, 2) if present else 0.0,
            overtime_hours=overtime,
        )

    def summarize_period(self, employee_id: str, year: int, month: int) -> AttendanceSummary:
        first, last = period_bounds(year, month)
        return self.summarize(employee_id, first, last)
