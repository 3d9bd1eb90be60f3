from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import LeaveStatus, LeaveType


@dataclass(frozen=True)
class LeaveRecord:
    """Domain entity: a leave request over [start_date, end_date] inclusive."""

    leave_id: int
    employee_id: str
    leave_type: LeaveType
    start_date: date
    end_date: date
    days: int
    reason: str
    status: LeaveStatus
    created_at: datetime
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    @property
    def year(self) -> int:
        # A leave counts against the year it starts in.
        return self.start_date.year

    def to_dict(self) -> dict:
        return {
            "id": self.leave_id,
            "employeeId": self.employee_id,
            "type": self.leave_type.value,
            "startDate": self.start_date.isoformat(),
            "endDate": self.end_date.isoformat(),
            "days": self.days,
            "reason": self.reason,
            "status": self.status.value,
            "approvedBy": self.approved_by,
            "approvedAt": self.approved_at.isoformat() if self.approved_at else None,
            "rejectionReason": self.rejection_reason,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class AnnualBalance:
    total: int
    used: int

    @property
    def remaining(self) -> int:
        return self.total - self.used


@dataclass(frozen=True)
class LeaveBalance:
    """Derived per (employee, year) from approved leave records."""

    employee_id: str
    year: int
    annual: AnnualBalance
    sick_used: int = 0
    unpaid_used: int = 0

    def to_dict(self) -> dict:
        return {
            "employeeId": self.employee_id,
            "year": self.year,
            "annual": {
                "total": self.annual.total,
                "used": self.annual.used,
                "remaining": self.annual.remaining,
            },
            "sick": {"used": self.sick_used},
            "unpaid": {"used": self.unpaid_used},
        }


@dataclass(frozen=True)
class LeaveFilter:
    """Query options for leave listings. Every field is optional.

    employee_id: only this employee's requests.
    leave_type: only this type of leave.
    status: only requests in this state.
    start_from / start_to: inclusive bounds on start_date.
    limit: maximum number of rows, latest start first; None for no limit.
    """

    employee_id: Optional[str] = None
    leave_type: Optional[LeaveType] = None
    status: Optional[LeaveStatus] = None
    start_from: Optional[date] = None
    start_to: Optional[date] = None
    limit: Optional[int] = 200


@dataclass(frozen=True)
class LeaveSummary:
    total_requests: int
    pending: int
    approved: int
    rejected: int
    cancelled: int
    total_days: int

    def to_dict(self) -> dict:
        return {
            "totalRequests": self.total_requests,
            "pending": self.pending,
            "approved": self.approved,
            "rejected": self.rejected,
            "cancelled": self.cancelled,
            "totalDays": self.total_days,
        }
