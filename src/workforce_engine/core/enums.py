from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles handed over by the identity collaborator."""

    ADMIN = "admin"
    HR_MANAGER = "hr_manager"
    ACCOUNTANT = "accountant"
    STAFF = "staff"


class Capability(str, Enum):
    """What an authenticated actor is allowed to do inside the engine."""

    RECORD_ATTENDANCE = "attendance:record"
    MANAGE_ATTENDANCE = "attendance:manage"
    REQUEST_LEAVE = "leave:request"
    DECIDE_LEAVE = "leave:decide"
    COMPUTE_PAYROLL = "payroll:compute"
    APPROVE_PAYROLL = "payroll:approve"
    PAY_PAYROLL = "payroll:pay"
    VIEW_REPORTS = "reports:view"


class AttendanceStatus(str, Enum):
    """Daily attendance classification stored with each record."""

    PRESENT = "present"
    ABSENT = "absent"
    LATE = "late"
    HALF_DAY = "half_day"
    OVERTIME = "overtime"


# Days that count as "worked" for summaries.
ATTENDED_STATUSES = frozenset(
    {
        AttendanceStatus.PRESENT,
        AttendanceStatus.LATE,
        AttendanceStatus.HALF_DAY,
        AttendanceStatus.OVERTIME,
    }
)


class LeaveType(str, Enum):
    ANNUAL = "annual"
    SICK = "sick"
    MATERNITY = "maternity"
    PATERNITY = "paternity"
    UNPAID = "unpaid"
    OTHER = "other"


class LeaveStatus(str, Enum):
    """Leave approval workflow: pending -> approved | rejected | cancelled."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


# Records that block overlapping requests for the same employee.
BLOCKING_LEAVE_STATUSES = frozenset({LeaveStatus.PENDING, LeaveStatus.APPROVED})


class DayCountRule(str, Enum):
    BUSINESS_DAYS = "business_days"
    CALENDAR_DAYS = "calendar_days"


class PayrollStatus(str, Enum):
    """Payroll record lifecycle, strictly forward."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"


# A record in one of these states can no longer be recomputed.
LOCKED_PAYROLL_STATUSES = frozenset({PayrollStatus.APPROVED, PayrollStatus.PAID})

PAYROLL_NEXT_STATUS = {
    PayrollStatus.DRAFT: PayrollStatus.PENDING,
    PayrollStatus.PENDING: PayrollStatus.APPROVED,
    PayrollStatus.APPROVED: PayrollStatus.PAID,
}


class WeekendPolicy(str, Enum):
    """Which weekdays are non-working for business-day counting."""

    SAT_SUN = "sat_sun"
    FRI_SAT = "fri_sat"
    SUN_ONLY = "sun_only"
    NONE = "none"

    @property
    def weekend_days(self) -> frozenset[int]:
        # date.weekday(): Monday == 0 ... Sunday == 6
        return {
            WeekendPolicy.SAT_SUN: frozenset({5, 6}),
            WeekendPolicy.FRI_SAT: frozenset({4, 5}),
            WeekendPolicy.SUN_ONLY: frozenset({6}),
            WeekendPolicy.NONE: frozenset(),
        }[self]
