from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Iterable, Iterator, Optional, Sequence

from . import events
from .attendance.model import AttendanceFilter, AttendanceRecord, AttendanceSummary
from .attendance.service import AttendanceService
from .common.datetime_utils import Clock, SystemClock
from .core.enums import Capability, LeaveType
from .core.identity import Actor
from .events import DomainEvent, EventSink, LoggingEventSink
from .leave.model import LeaveBalance, LeaveFilter, LeaveRecord, LeaveSummary
from .leave.service import LeaveLedger
from .payroll.model import (
    BulkTransitionResult,
    EmployeeCompensation,
    PayrollComputation,
    PayrollFilter,
    PayrollInputs,
    PayrollRecord,
    PayrollSummary,
)
from .payroll.service import PayrollService

logger = logging.getLogger(__name__)


class WorkforceOrchestrator:
    """Entry point used by the outer layers.

    Checks the actor's capabilities, runs the service call, and only once that
    call has returned (the write is committed) publishes the matching domain
    event. A failing event sink is logged and never undoes or fails the
    operation.
    """

    def __init__(
        self,
        attendance: AttendanceService,
        leave: LeaveLedger,
        payroll: PayrollService,
        *,
        event_sink: EventSink | None = None,
        clock: Clock | None = None,
    ):
        self.attendance = attendance
        self.leave = leave
        self.payroll = payroll
        self._events = event_sink or LoggingEventSink()
        self._clock = clock or SystemClock()

    def _publish(self, name: str, entity_id, payload: dict) -> None:
        event = DomainEvent(name=name, entity_id=str(entity_id), occurred_at=self._clock.now(), payload=payload)
        try:
            self._events.publish(event)
        except Exception:
            logger.exception("Could not publish %s for %s", name, entity_id)

    @staticmethod
    def _self_or(actor: Actor, employee_id: Optional[str], capability: Capability) -> str:
        """Resolve the target employee; acting for someone else needs ``capability``."""
        target = str(employee_id) if employee_id else actor.actor_id
        if target != actor.actor_id:
            actor.require(capability)
        return target

    # ----- attendance -----

    def check_in(
        self, actor: Actor, employee_id: Optional[str] = None, *, timestamp: datetime | None = None
    ) -> AttendanceRecord:
        actor.require(Capability.RECORD_ATTENDANCE)
        target = self._self_or(actor, employee_id, Capability.MANAGE_ATTENDANCE)
        return self.attendance.check_in(target, timestamp=timestamp)

    def check_out(
        self, actor: Actor, employee_id: Optional[str] = None, *, timestamp: datetime | None = None
    ) -> AttendanceRecord:
        actor.require(Capability.RECORD_ATTENDANCE)
        target = self._self_or(actor, employee_id, Capability.MANAGE_ATTENDANCE)
        record = self.attendance.check_out(target, timestamp=timestamp)

        standard = self.attendance.policy.standard_hours
        if record.total_hours > standard:
            self._publish(
                events.ATTENDANCE_OVERTIME_DETECTED,
                record.attendance_id,
                {
                    "employeeId": record.employee_id,
                    "date": record.work_date.isoformat(),
                    "totalHours": record.total_hours,
                    "overtimeHours": round(record.total_hours - standard, 2),
                },
            )
        return record

    def start_break(
        self, actor: Actor, employee_id: Optional[str] = None, *, timestamp: datetime | None = None
    ) -> AttendanceRecord:
        actor.require(Capability.RECORD_ATTENDANCE)
        target = self._self_or(actor, employee_id, Capability.MANAGE_ATTENDANCE)
        return self.attendance.start_break(target, timestamp=timestamp)

    def end_break(
        self, actor: Actor, employee_id: Optional[str] = None, *, timestamp: datetime | None = None
    ) -> AttendanceRecord:
        actor.require(Capability.RECORD_ATTENDANCE)
        target = self._self_or(actor, employee_id, Capability.MANAGE_ATTENDANCE)
        return self.attendance.end_break(target, timestamp=timestamp)

    def mark_absent(self, actor: Actor, employee_id: str, work_date: date, *, note: str | None = None) -> AttendanceRecord:
        actor.require(Capability.MANAGE_ATTENDANCE)
        return self.attendance.mark_absent(employee_id, work_date, note=note)

    def attendance_summary(
        self, actor: Actor, employee_id: Optional[str], start_date: date, end_date: date
    ) -> AttendanceSummary:
        target = self._self_or(actor, employee_id, Capability.VIEW_REPORTS)
        return self.attendance.summarize(target, start_date, end_date)

    def list_attendance(self, actor: Actor, query: AttendanceFilter | None = None) -> Sequence[AttendanceRecord]:
        query = query or AttendanceFilter(employee_id=actor.actor_id)
        if query.employee_id != actor.actor_id:
            actor.require(Capability.VIEW_REPORTS)
        return self.attendance.list_records(query)

    # ----- leave -----

    def request_leave(
        self,
        actor: Actor,
        leave_type: LeaveType | str,
        start_date: date,
        end_date: date,
        reason: str,
        *,
        employee_id: Optional[str] = None,
    ) -> LeaveRecord:
        actor.require(Capability.REQUEST_LEAVE)
        target = self._self_or(actor, employee_id, Capability.DECIDE_LEAVE)
        record = self.leave.request(target, leave_type, start_date, end_date, reason)
        self._publish(
            events.LEAVE_REQUESTED,
            record.leave_id,
            {
                "employeeId": record.employee_id,
                "type": record.leave_type.value,
                "startDate": record.start_date.isoformat(),
                "endDate": record.end_date.isoformat(),
                "days": record.days,
            },
        )
        return record

    def approve_leave(self, actor: Actor, leave_id: int) -> LeaveRecord:
        actor.require(Capability.DECIDE_LEAVE)
        record = self.leave.approve(leave_id, actor.actor_id)
        self._publish(
            events.LEAVE_APPROVED,
            record.leave_id,
            {
                "employeeId": record.employee_id,
                "type": record.leave_type.value,
                "days": record.days,
                "approvedBy": record.approved_by,
            },
        )
        return record

    def reject_leave(self, actor: Actor, leave_id: int, reason: str) -> LeaveRecord:
        actor.require(Capability.DECIDE_LEAVE)
        record = self.leave.reject(leave_id, actor.actor_id, reason)
        self._publish(
            events.LEAVE_REJECTED,
            record.leave_id,
            {
                "employeeId": record.employee_id,
                "type": record.leave_type.value,
                "rejectionReason": record.rejection_reason,
            },
        )
        return record

    def cancel_leave(self, actor: Actor, leave_id: int) -> LeaveRecord:
        current = self.leave.get(leave_id)
        if current.employee_id == actor.actor_id:
            actor.require(Capability.REQUEST_LEAVE)
        else:
            actor.require(Capability.DECIDE_LEAVE)
        record = self.leave.cancel(leave_id, actor.actor_id)
        self._publish(
            events.LEAVE_CANCELLED,
            record.leave_id,
            {"employeeId": record.employee_id, "cancelledBy": actor.actor_id},
        )
        return record

    def get_leave(self, actor: Actor, leave_id: int) -> LeaveRecord:
        record = self.leave.get(leave_id)
        self._self_or(actor, record.employee_id, Capability.DECIDE_LEAVE)
        return record

    def leave_balance(self, actor: Actor, year: int, employee_id: Optional[str] = None) -> LeaveBalance:
        target = self._self_or(actor, employee_id, Capability.DECIDE_LEAVE)
        return self.leave.get_balance(target, year)

    def pending_leaves(self, actor: Actor) -> Iterator[LeaveRecord]:
        actor.require(Capability.DECIDE_LEAVE)
        return self.leave.list_pending()

    def list_leaves(self, actor: Actor, query: LeaveFilter | None = None) -> Sequence[LeaveRecord]:
        query = query or LeaveFilter(employee_id=actor.actor_id)
        if query.employee_id != actor.actor_id:
            actor.require(Capability.VIEW_REPORTS)
        return self.leave.list_leaves(query)

    def leave_summary(self, actor: Actor, query: LeaveFilter | None = None) -> LeaveSummary:
        query = query or LeaveFilter(employee_id=actor.actor_id)
        if query.employee_id != actor.actor_id:
            actor.require(Capability.VIEW_REPORTS)
        return self.leave.get_summary(query)

    # ----- payroll -----

    def _payroll_generated(self, record: PayrollRecord) -> None:
        self._publish(
            events.PAYROLL_GENERATED,
            record.payroll_id,
            {
                "employeeId": record.employee_id,
                "period": record.period,
                "netSalary": str(record.net_salary),
            },
        )

    def _payroll_moved(self, name: str, record: PayrollRecord) -> None:
        self._publish(
            name,
            record.payroll_id,
            {
                "employeeId": record.employee_id,
                "period": record.period,
                "status": record.status.value,
                "netSalary": str(record.net_salary),
            },
        )

    def _payroll_paid(self, record: PayrollRecord) -> None:
        self._publish(
            events.PAYROLL_PAID,
            record.payroll_id,
            {
                "employeeId": record.employee_id,
                "period": record.period,
                "netSalary": str(record.net_salary),
                "paidAt": record.paid_at.isoformat() if record.paid_at else None,
            },
        )

    def compute_payroll(
        self, actor: Actor, employee_id: str, year: int, month: int, inputs: PayrollInputs
    ) -> PayrollComputation:
        actor.require(Capability.COMPUTE_PAYROLL)
        result = self.payroll.compute(employee_id, year, month, inputs)
        self._payroll_generated(result.record)
        return result

    def generate_payroll_period(
        self, actor: Actor, year: int, month: int, staff: Iterable[EmployeeCompensation]
    ) -> BulkTransitionResult:
        actor.require(Capability.COMPUTE_PAYROLL)
        result = self.payroll.generate_period(year, month, staff)
        for record in result.succeeded:
            self._payroll_generated(record)
        return result

    def submit_payroll(self, actor: Actor, payroll_id: int) -> PayrollRecord:
        actor.require(Capability.COMPUTE_PAYROLL)
        record = self.payroll.submit(payroll_id)
        self._payroll_moved(events.PAYROLL_SUBMITTED, record)
        return record

    def submit_payroll_period(self, actor: Actor, year: int, month: int) -> BulkTransitionResult:
        actor.require(Capability.COMPUTE_PAYROLL)
        result = self.payroll.submit_period(year, month)
        for record in result.succeeded:
            self._payroll_moved(events.PAYROLL_SUBMITTED, record)
        return result

    def approve_payroll(self, actor: Actor, payroll_id: int) -> PayrollRecord:
        actor.require(Capability.APPROVE_PAYROLL)
        record = self.payroll.approve(payroll_id)
        self._payroll_moved(events.PAYROLL_APPROVED, record)
        return record

    def approve_payroll_period(self, actor: Actor, year: int, month: int) -> BulkTransitionResult:
        actor.require(Capability.APPROVE_PAYROLL)
        result = self.payroll.approve_period(year, month)
        for record in result.succeeded:
            self._payroll_moved(events.PAYROLL_APPROVED, record)
        return result

    def pay_payroll(self, actor: Actor, payroll_id: int) -> PayrollRecord:
        actor.require(Capability.PAY_PAYROLL)
        record = self.payroll.mark_as_paid(payroll_id)
        self._payroll_paid(record)
        return record

    def pay_payroll_period(self, actor: Actor, year: int, month: int) -> BulkTransitionResult:
        actor.require(Capability.PAY_PAYROLL)
        result = self.payroll.mark_period_as_paid(year, month)
        for record in result.succeeded:
            self._payroll_paid(record)
        return result

    def get_payroll(self, actor: Actor, payroll_id: int) -> PayrollRecord:
        record = self.payroll.get(payroll_id)
        self._self_or(actor, record.employee_id, Capability.VIEW_REPORTS)
        return record

    def list_payrolls(self, actor: Actor, query: PayrollFilter | None = None) -> Sequence[PayrollRecord]:
        query = query or PayrollFilter(employee_id=actor.actor_id)
        if query.employee_id != actor.actor_id:
            actor.require(Capability.VIEW_REPORTS)
        return self.payroll.list_payrolls(query)

    def payroll_summary(self, actor: Actor, year: int, month: int) -> PayrollSummary:
        actor.require(Capability.VIEW_REPORTS)
        return self.payroll.get_summary(year, month)
