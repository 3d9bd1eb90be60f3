from __future__ import annotations

import dataclasses
import logging
from collections import Counter
from datetime import date
from typing import Iterator, Optional, Sequence

from ..common.calendar_utils import business_days_between, calendar_days_between
from ..common.datetime_utils import Clock, SystemClock
from ..common.validators import require_id, require_non_empty
from ..core.enums import BLOCKING_LEAVE_STATUSES, DayCountRule, LeaveStatus, LeaveType
from ..core.exceptions import (
    InsufficientBalanceError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from ..settings import EngineSettings
from .model import AnnualBalance, LeaveBalance, LeaveFilter, LeaveRecord, LeaveSummary
from .repository import LeaveRepository

logger = logging.getLogger(__name__)


def _as_leave_type(value) -> LeaveType:
    try:
        return LeaveType(value)
    except ValueError:
        raise ValidationError(f"Unknown leave type: {value}")


class LeaveLedger:
    """Leave requests, their approval workflow and the balances they consume.

    Balances are derived on every read from the employee's approved records, so
    there is no second copy to keep in sync. The approval itself is a single
    conditional write (status still pending and, for annual leave, entitlement
    still sufficient), which is what makes the debit happen exactly once.
    """

    def __init__(
        self,
        leaves: LeaveRepository,
        *,
        clock: Clock | None = None,
        settings: EngineSettings | None = None,
    ):
        self._leaves = leaves
        self._clock = clock or SystemClock()
        self._settings = settings or EngineSettings()

    def count_days(self, leave_type: LeaveType, start_date: date, end_date: date) -> int:
        rule = self._settings.day_count_rule(leave_type)
        if rule == DayCountRule.BUSINESS_DAYS:
            return business_days_between(start_date, end_date, self._settings.weekend_policy)
        return calendar_days_between(start_date, end_date)

    def _get_or_raise(self, leave_id: int) -> LeaveRecord:
        record = self._leaves.get(int(leave_id))
        if not record:
            raise NotFoundError(f"Leave request {leave_id} not found")
        return record

    @staticmethod
    def _require_pending(record: LeaveRecord, action: str) -> None:
        if record.status != LeaveStatus.PENDING:
            raise InvalidStateError(f"Cannot {action} leave request {record.leave_id}: it is {record.status.value}")

    def request(
        self,
        employee_id: str,
        leave_type: LeaveType | str,
        start_date: date,
        end_date: date,
        reason: str,
    ) -> LeaveRecord:
        employee_id = require_id(employee_id, "employee_id")
        leave_type = _as_leave_type(leave_type)
        reason = require_non_empty(reason, "reason")

        days = self.count_days(leave_type, start_date, end_date)
        if days <= 0:
            raise ValidationError("The requested period contains no leave days")

        overlapping = self._leaves.find_overlapping(
            employee_id=employee_id,
            start_date=start_date,
            end_date=end_date,
            statuses=BLOCKING_LEAVE_STATUSES,
        )
        if overlapping:
            raise ValidationError(f"Leave request overlaps with existing leave {overlapping[0].leave_id}")

        if leave_type == LeaveType.ANNUAL:
            balance = self.get_balance(employee_id, start_date.year)
            if balance.annual.remaining < days:
                raise InsufficientBalanceError(
                    f"Insufficient annual leave balance: {balance.annual.remaining} remaining, {days} requested"
                )

        record = self._leaves.create(
            employee_id=employee_id,
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            days=days,
            reason=reason,
            created_at=self._clock.now(),
            blocking_statuses=BLOCKING_LEAVE_STATUSES,
        )
        if record is None:
            raise ValidationError("Leave request overlaps with an existing leave")
        logger.info(
            "Leave requested id=%s employee=%s type=%s days=%s",
            record.leave_id,
            employee_id,
            leave_type.value,
            days,
        )
        return record

    def approve(self, leave_id: int, approver_id: str) -> LeaveRecord:
        approver_id = require_id(approver_id, "approver_id")
        record = self._get_or_raise(leave_id)
        self._require_pending(record, "approve")

        annual_limit: Optional[int] = None
        if record.leave_type == LeaveType.ANNUAL:
            balance = self.get_balance(record.employee_id, record.year)
            if balance.annual.used + record.days > balance.annual.total:
                raise InsufficientBalanceError(
                    f"Insufficient annual leave balance: {balance.annual.remaining} remaining, {record.days} requested"
                )
            annual_limit = balance.annual.total

        ok = self._leaves.approve(
            leave_id=record.leave_id,
            approved_by=approver_id,
            approved_at=self._clock.now(),
            annual_limit=annual_limit,
        )
        if not ok:
            # Lost a race: either someone decided first or the balance moved.
            current = self._get_or_raise(leave_id)
            self._require_pending(current, "approve")
            raise InsufficientBalanceError("Insufficient annual leave balance")

        logger.info("Leave approved id=%s employee=%s by=%s", record.leave_id, record.employee_id, approver_id)
        return self._get_or_raise(leave_id)

    def reject(self, leave_id: int, approver_id: str, reason: str) -> LeaveRecord:
        approver_id = require_id(approver_id, "approver_id")
        reason = require_non_empty(reason, "rejection reason")
        record = self._get_or_raise(leave_id)
        self._require_pending(record, "reject")

        ok = self._leaves.decide(
            leave_id=record.leave_id,
            status=LeaveStatus.REJECTED,
            decided_by=approver_id,
            decided_at=self._clock.now(),
            rejection_reason=reason,
        )
        if not ok:
            self._require_pending(self._get_or_raise(leave_id), "reject")
            raise InvalidStateError(f"Leave request {leave_id} changed while being rejected")

        logger.info("Leave rejected id=%s employee=%s by=%s", record.leave_id, record.employee_id, approver_id)
        return self._get_or_raise(leave_id)

    def cancel(self, leave_id: int, actor_id: str) -> LeaveRecord:
        actor_id = require_id(actor_id, "actor_id")
        record = self._get_or_raise(leave_id)
        self._require_pending(record, "cancel")

        ok = self._leaves.decide(
            leave_id=record.leave_id,
            status=LeaveStatus.CANCELLED,
            decided_by=actor_id,
            decided_at=self._clock.now(),
        )
        if not ok:
            self._require_pending(self._get_or_raise(leave_id), "cancel")
            raise InvalidStateError(f"Leave request {leave_id} changed while being cancelled")

        logger.info("Leave cancelled id=%s employee=%s by=%s", record.leave_id, record.employee_id, actor_id)
        return self._get_or_raise(leave_id)

    def get(self, leave_id: int) -> LeaveRecord:
        return self._get_or_raise(leave_id)

    def get_balance(self, employee_id: str, year: int) -> LeaveBalance:
        employee_id = require_id(employee_id, "employee_id")
        total = self._leaves.get_annual_entitlement(employee_id, int(year))
        if total is None:
            total = self._settings.annual_leave_days

        used: Counter = Counter()
        for record in self._leaves.list_for_employee_year(employee_id, int(year)):
            if record.status == LeaveStatus.APPROVED:
                used[record.leave_type] += record.days

        return LeaveBalance(
            employee_id=employee_id,
            year=int(year),
            annual=AnnualBalance(total=int(total), used=used[LeaveType.ANNUAL]),
            sick_used=used[LeaveType.SICK],
            unpaid_used=used[LeaveType.UNPAID],
        )

    def list_pending(self) -> Iterator[LeaveRecord]:
        yield from self._leaves.iter_pending()

    def list_leaves(self, query: LeaveFilter | None = None) -> Sequence[LeaveRecord]:
        query = query or LeaveFilter()
        if query.start_from and query.start_to:
            calendar_days_between(query.start_from, query.start_to)
        return self._leaves.list_leaves(query)

    def get_summary(self, query: LeaveFilter | None = None) -> LeaveSummary:
        records = self.list_leaves(dataclasses.replace(query or LeaveFilter(), limit=None))
        by_status = Counter(r.status for r in records)
        return LeaveSummary(
            total_requests=len(records),
            pending=by_status[LeaveStatus.PENDING],
            approved=by_status[LeaveStatus.APPROVED],
            rejected=by_status[LeaveStatus.REJECTED],
            cancelled=by_status[LeaveStatus.CANCELLED],
            total_days=sum(r.days for r in records if r.status == LeaveStatus.APPROVED),
        )
