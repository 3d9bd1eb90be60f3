from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Iterator, Optional, Protocol, Sequence

from ..core.enums import LeaveStatus, LeaveType
from .model import LeaveFilter, LeaveRecord


class LeaveRepository(Protocol):
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
        """Insert a pending request unless one in ``blocking_statuses`` overlaps it.

        The overlap check and the insert are atomic per employee; returns None
        when an overlapping request exists.
        """
        raise NotImplementedError

    def get(self, leave_id: int) -> Optional[LeaveRecord]:
        raise NotImplementedError

    def find_overlapping(
        self,
        *,
        employee_id: str,
        start_date: date,
        end_date: date,
        statuses: Iterable[LeaveStatus],
    ) -> Sequence[LeaveRecord]:
        raise NotImplementedError

    def list_for_employee_year(self, employee_id: str, year: int) -> Sequence[LeaveRecord]:
        """All records whose start_date falls in ``year``."""

        raise NotImplementedError

    def list_leaves(self, query: LeaveFilter) -> Sequence[LeaveRecord]:
        raise NotImplementedError

    def iter_pending(self) -> Iterator[LeaveRecord]:
        """Lazily yield pending records, oldest request first."""

        raise NotImplementedError

    def get_annual_entitlement(self, employee_id: str, year: int) -> Optional[int]:
        """Configured annual total for the employee/year, None to use the default."""

        raise NotImplementedError

    def approve(
        self,
        *,
        leave_id: int,
        approved_by: str,
        approved_at: datetime,
        annual_limit: Optional[int] = None,
    ) -> bool:
        """Conditional transition pending -> approved.

        When ``annual_limit`` is given, the approval only commits if the
        employee's approved annual days for the year plus this record's days
        stay within the limit. Status check, balance check and write happen in
        one atomic step; False means nothing was written.
        """

        raise NotImplementedError

    def decide(
        self,
        *,
        leave_id: int,
        status: LeaveStatus,
        decided_by: str,
        decided_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """Conditional transition pending -> rejected | cancelled."""

        raise NotImplementedError
