from __future__ import annotations

import dataclasses
import threading
from datetime import date, datetime
from typing import Iterable, Iterator, Optional

from workforce_engine.attendance.model import AttendanceFilter, AttendanceRecord
from workforce_engine.core.enums import AttendanceStatus, LeaveStatus, LeaveType, PayrollStatus
from workforce_engine.core.exceptions import CollaboratorError
from workforce_engine.events import DomainEvent
from workforce_engine.leave.model import LeaveFilter, LeaveRecord
from workforce_engine.payroll.model import PayrollDraft, PayrollFilter, PayrollRecord


class InMemoryAttendance:
    def __init__(self):
        self._by_key: dict[tuple[str, date], AttendanceRecord] = {}
        self._id = 0
        self._lock = threading.Lock()

    def _by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        for rec in self._by_key.values():
            if rec.attendance_id == attendance_id:
                return rec
        return None

    def _replace(self, rec: AttendanceRecord, **changes) -> None:
        self._by_key[(rec.employee_id, rec.work_date)] = dataclasses.replace(rec, **changes)

    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        return self._by_key.get((employee_id, work_date))

    def list_for_employee(self, employee_id: str, start_date: date, end_date: date):
        items = [
            r for r in self._by_key.values() if r.employee_id == employee_id and start_date <= r.work_date <= end_date
        ]
        return sorted(items, key=lambda r: r.work_date)

    def list_records(self, query: AttendanceFilter):
        items = list(self._by_key.values())
        if query.employee_id is not None:
            items = [r for r in items if r.employee_id == query.employee_id]
        if query.date_from is not None:
            items = [r for r in items if r.work_date >= query.date_from]
        if query.date_to is not None:
            items = [r for r in items if r.work_date <= query.date_to]
        if query.status is not None:
            items = [r for r in items if r.status == query.status]
        items.sort(key=lambda r: (r.work_date, r.attendance_id), reverse=True)
        return items[: query.limit]

    def create(
        self,
        *,
        employee_id: str,
        work_date: date,
        status: AttendanceStatus,
        check_in_time: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> Optional[AttendanceRecord]:
        with self._lock:
            if (employee_id, work_date) in self._by_key:
                return None
            self._id += 1
            rec = AttendanceRecord(
                attendance_id=self._id,
                employee_id=employee_id,
                work_date=work_date,
                status=status,
                check_in_time=check_in_time,
                note=note,
            )
            self._by_key[(employee_id, work_date)] = rec
            return rec

    def record_checkin(self, *, attendance_id: int, check_in_time: datetime, status: AttendanceStatus) -> bool:
        with self._lock:
            rec = self._by_id(attendance_id)
            if not rec or rec.check_in_time is not None:
                return False
            self._replace(rec, check_in_time=check_in_time, status=status)
            return True

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
        with self._lock:
            rec = self._by_id(attendance_id)
            if not rec or rec.check_in_time is None or rec.check_out_time is not None:
                return False
            changes = dict(check_out_time=check_out_time, break_end=break_end, total_hours=total_hours, status=status)
            if note is not None:
                changes["note"] = note
            self._replace(rec, **changes)
            return True

    def record_break(
        self,
        *,
        attendance_id: int,
        break_start: Optional[datetime] = None,
        break_end: Optional[datetime] = None,
    ) -> bool:
        with self._lock:
            rec = self._by_id(attendance_id)
            if not rec or rec.check_out_time is not None:
                return False
            if break_start is not None:
                if rec.break_start is not None:
                    return False
                self._replace(rec, break_start=break_start)
                return True
            if rec.break_start is None or rec.break_end is not None:
                return False
            self._replace(rec, break_end=break_end)
            return True


class InMemoryLeaves:
    def __init__(self, entitlements: Optional[dict[tuple[str, int], int]] = None):
        self.records: dict[int, LeaveRecord] = {}
        self.entitlements = dict(entitlements or {})
        self._id = 0
        self._lock = threading.Lock()

    def create(
        self,
        *,
        employee_id: str,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        days: int,
        reason: str,
        created_at: datetime,
        blocking_statuses: Iterable[LeaveStatus],
    ) -> Optional[LeaveRecord]:
        with self._lock:
            if self._overlapping(employee_id, start_date, end_date, blocking_statuses):
                return None
            self._id += 1
            rec = LeaveRecord(
                leave_id=self._id,
                employee_id=employee_id,
                leave_type=leave_type,
                start_date=start_date,
                end_date=end_date,
                days=days,
                reason=reason,
                status=LeaveStatus.PENDING,
                created_at=created_at,
            )
            self.records[rec.leave_id] = rec
            return rec

    def get(self, leave_id: int) -> Optional[LeaveRecord]:
        return self.records.get(leave_id)

    def find_overlapping(self, *, employee_id: str, start_date: date, end_date: date, statuses: Iterable[LeaveStatus]):
        return self._overlapping(employee_id, start_date, end_date, statuses)

    def _overlapping(self, employee_id, start_date, end_date, statuses):
        wanted = set(statuses)
        return [
            r
            for r in self.records.values()
            if r.employee_id == employee_id
            and r.status in wanted
            and r.start_date <= end_date
            and start_date <= r.end_date
        ]

    def list_for_employee_year(self, employee_id: str, year: int):
        return [r for r in self.records.values() if r.employee_id == employee_id and r.start_date.year == year]

    def list_leaves(self, query: LeaveFilter):
        items = list(self.records.values())
        if query.employee_id is not None:
            items = [r for r in items if r.employee_id == query.employee_id]
        if query.leave_type is not None:
            items = [r for r in items if r.leave_type == query.leave_type]
        if query.status is not None:
            items = [r for r in items if r.status == query.status]
        if query.start_from is not None:
            items = [r for r in items if r.start_date >= query.start_from]
        if query.start_to is not None:
            items = [r for r in items if r.start_date <= query.start_to]
        items.sort(key=lambda r: (r.start_date, r.leave_id), reverse=True)
        return items if query.limit is None else items[: query.limit]

    def iter_pending(self) -> Iterator[LeaveRecord]:
        pending = [r for r in self.records.values() if r.status == LeaveStatus.PENDING]
        for rec in sorted(pending, key=lambda r: (r.created_at, r.leave_id)):
            yield rec

    def get_annual_entitlement(self, employee_id: str, year: int) -> Optional[int]:
        return self.entitlements.get((employee_id, year))

    def approve(self, *, leave_id: int, approved_by: str, approved_at: datetime, annual_limit: Optional[int] = None) -> bool:
        with self._lock:
            rec = self.records.get(leave_id)
            if not rec or rec.status != LeaveStatus.PENDING:
                return False
            if annual_limit is not None:
                used = sum(
                    r.days
                    for r in self.records.values()
                    if r.employee_id == rec.employee_id
                    and r.leave_type == LeaveType.ANNUAL
                    and r.status == LeaveStatus.APPROVED
                    and r.start_date.year == rec.start_date.year
                )
                if used + rec.days > annual_limit:
                    return False
            self.records[leave_id] = dataclasses.replace(
                rec, status=LeaveStatus.APPROVED, approved_by=approved_by, approved_at=approved_at
            )
            return True

    def decide(
        self,
        *,
        leave_id: int,
        status: LeaveStatus,
        decided_by: str,
        decided_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        with self._lock:
            rec = self.records.get(leave_id)
            if not rec or rec.status != LeaveStatus.PENDING:
                return False
            if status == LeaveStatus.REJECTED:
                rec = dataclasses.replace(
                    rec, approved_by=decided_by, approved_at=decided_at, rejection_reason=rejection_reason
                )
            self.records[leave_id] = dataclasses.replace(rec, status=status)
            return True


class InMemoryPayrolls:
    def __init__(self):
        self.records: dict[int, PayrollRecord] = {}
        self._id = 0
        self._lock = threading.Lock()
        self.fail_transitions_for: set[int] = set()
        self.undecodable: set[int] = set()

    def _find(self, employee_id: str, year: int, month: int) -> Optional[PayrollRecord]:
        for rec in self.records.values():
            if rec.employee_id == employee_id and rec.year == year and rec.month == month:
                return rec
        return None

    def create(self, draft: PayrollDraft, *, created_at: datetime) -> Optional[PayrollRecord]:
        with self._lock:
            if self._find(draft.employee_id, draft.year, draft.month):
                return None
            self._id += 1
            rec = PayrollRecord(
                payroll_id=self._id,
                employee_id=draft.employee_id,
                year=draft.year,
                month=draft.month,
                base_salary=draft.base_salary,
                allowances=draft.allowances,
                deductions=draft.deductions,
                bonuses=draft.bonuses,
                overtime_hours=draft.overtime_hours,
                overtime_rate=draft.overtime_rate,
                total_gross=draft.totals.total_gross,
                total_deductions=draft.totals.total_deductions,
                net_salary=draft.totals.net_salary,
                status=PayrollStatus.DRAFT,
                created_at=created_at,
                updated_at=created_at,
            )
            self.records[rec.payroll_id] = rec
            return rec

    def update_computation(self, *, payroll_id: int, draft: PayrollDraft, updated_at: datetime, editable) -> bool:
        with self._lock:
            rec = self.records.get(payroll_id)
            if not rec or rec.status not in set(editable):
                return False
            self.records[payroll_id] = dataclasses.replace(
                rec,
                base_salary=draft.base_salary,
                allowances=draft.allowances,
                deductions=draft.deductions,
                bonuses=draft.bonuses,
                overtime_hours=draft.overtime_hours,
                overtime_rate=draft.overtime_rate,
                total_gross=draft.totals.total_gross,
                total_deductions=draft.totals.total_deductions,
                net_salary=draft.totals.net_salary,
                status=PayrollStatus.DRAFT,
                updated_at=updated_at,
            )
            return True

    def get(self, payroll_id: int) -> Optional[PayrollRecord]:
        if payroll_id in self.undecodable:
            raise ValueError("cannot decode stored lines")
        return self.records.get(payroll_id)

    def get_for_employee_period(self, employee_id: str, year: int, month: int) -> Optional[PayrollRecord]:
        return self._find(employee_id, year, month)

    def list_for_period(self, year: int, month: int, status: Optional[PayrollStatus] = None):
        items = [r for r in self.records.values() if r.year == year and r.month == month]
        if status is not None:
            items = [r for r in items if r.status == status]
        return sorted(items, key=lambda r: r.employee_id)

    def list_keys_for_period(self, year: int, month: int, status: Optional[PayrollStatus] = None):
        return [(r.payroll_id, r.employee_id) for r in self.list_for_period(year, month, status)]

    def list_payrolls(self, query: PayrollFilter):
        items = list(self.records.values())
        if query.employee_id is not None:
            items = [r for r in items if r.employee_id == query.employee_id]
        if query.year is not None:
            items = [r for r in items if r.year == query.year]
        if query.month is not None:
            items = [r for r in items if r.month == query.month]
        if query.status is not None:
            items = [r for r in items if r.status == query.status]
        items.sort(key=lambda r: (-r.year, -r.month, r.employee_id))
        return items[: query.limit]

    def transition(
        self,
        *,
        payroll_id: int,
        expected: PayrollStatus,
        new: PayrollStatus,
        changed_at: datetime,
        paid_at: Optional[datetime] = None,
    ) -> bool:
        if payroll_id in self.fail_transitions_for:
            raise CollaboratorError("Database operation failed, please retry")
        with self._lock:
            rec = self.records.get(payroll_id)
            if not rec or rec.status != expected:
                return False
            changes = {"status": new, "updated_at": changed_at}
            if paid_at is not None:
                changes["paid_at"] = paid_at
            self.records[payroll_id] = dataclasses.replace(rec, **changes)
            return True


class RecordingEventSink:
    def __init__(self):
        self.events: list[DomainEvent] = []

    def publish(self, event: DomainEvent) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [e.name for e in self.events]


class FailingEventSink:
    def __init__(self):
        self.attempts = 0

    def publish(self, event: DomainEvent) -> None:
        self.attempts += 1
        raise CollaboratorError("event bus unavailable")
