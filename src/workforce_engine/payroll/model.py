from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from ..core.constants import CENTS
from ..core.enums import PayrollStatus


def to_cents(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def _money(value: Decimal) -> str:
    return str(to_cents(value))


@dataclass(frozen=True)
class PayLine:
    """One allowance, deduction or bonus line: ``{type, amount}`` with amount >= 0."""

    type: str
    amount: Decimal

    def to_dict(self) -> dict:
        return {"type": self.type, "amount": _money(self.amount)}


@dataclass(frozen=True)
class PayrollInputs:
    """What the caller knows about an employee's month.

    ``overtime_hours`` left as None is taken from the attendance summary of
    the period; ``overtime_rate`` left as None is derived from the base salary.
    ``health_insurance`` / ``retirement_plan`` only matter when statutory
    deductions are enabled.
    """

    base_salary: Decimal
    allowances: Sequence[PayLine] = ()
    deductions: Sequence[PayLine] = ()
    bonuses: Sequence[PayLine] = ()
    overtime_hours: Optional[Decimal] = None
    overtime_rate: Optional[Decimal] = None
    health_insurance: bool = False
    retirement_plan: bool = False


@dataclass(frozen=True)
class PayrollTotals:
    total_gross: Decimal
    total_deductions: Decimal
    net_salary: Decimal


@dataclass(frozen=True)
class PayrollDraft:
    """Fully computed figures, ready to be written as a draft record."""

    employee_id: str
    year: int
    month: int
    base_salary: Decimal
    allowances: tuple[PayLine, ...]
    deductions: tuple[PayLine, ...]
    bonuses: tuple[PayLine, ...]
    overtime_hours: Decimal
    overtime_rate: Decimal
    totals: PayrollTotals


@dataclass(frozen=True)
class PayrollRecord:
    """Domain entity: one employee's payroll for one (year, month) period."""

    payroll_id: int
    employee_id: str
    year: int
    month: int
    base_salary: Decimal
    allowances: tuple[PayLine, ...]
    deductions: tuple[PayLine, ...]
    bonuses: tuple[PayLine, ...]
    overtime_hours: Decimal
    overtime_rate: Decimal
    total_gross: Decimal
    total_deductions: Decimal
    net_salary: Decimal
    status: PayrollStatus
    created_at: datetime
    updated_at: datetime
    paid_at: Optional[datetime] = None

    @property
    def period(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def to_dict(self) -> dict:
        return {
            "id": self.payroll_id,
            "employeeId": self.employee_id,
            "period": {"year": self.year, "month": self.month},
            "baseSalary": _money(self.base_salary),
            "allowances": [line.to_dict() for line in self.allowances],
            "deductions": [line.to_dict() for line in self.deductions],
            "bonuses": [line.to_dict() for line in self.bonuses],
            "overtimeHours": str(self.overtime_hours),
            "overtimeRate": _money(self.overtime_rate),
            "totalGross": _money(self.total_gross),
            "totalDeductions": _money(self.total_deductions),
            "netSalary": _money(self.net_salary),
            "status": self.status.value,
            "paidAt": self.paid_at.isoformat() if self.paid_at else None,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass(frozen=True)
class PayrollComputation:
    """Result of compute(): the stored record plus any anomalies worth a look."""

    record: PayrollRecord
    anomalies: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"payroll": self.record.to_dict(), "anomalies": list(self.anomalies)}


@dataclass(frozen=True)
class EmployeeCompensation:
    employee_id: str
    inputs: PayrollInputs


@dataclass(frozen=True)
class PayrollSummary:
    year: int
    month: int
    total_employees: int
    total_gross: Decimal
    total_deductions: Decimal
    total_net: Decimal
    average_salary: Decimal

    def to_dict(self) -> dict:
        return {
            "period": {"year": self.year, "month": self.month},
            "totalEmployees": self.total_employees,
            "totalGross": _money(self.total_gross),
            "totalDeductions": _money(self.total_deductions),
            "totalNet": _money(self.total_net),
            "averageSalary": _money(self.average_salary),
        }


@dataclass(frozen=True)
class PayrollFilter:
    """Query options for payroll listings. Every field is optional.

    employee_id: only this employee's records.
    year / month: only this period (month requires year).
    status: only records in this state.
    limit: maximum number of rows, latest period first.
    """

    employee_id: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = None
    status: Optional[PayrollStatus] = None
    limit: int = 200


@dataclass(frozen=True)
class BulkFailure:
    payroll_id: Optional[int]
    employee_id: str
    kind: str
    message: str

    def to_dict(self) -> dict:
        return {
            "payrollId": self.payroll_id,
            "employeeId": self.employee_id,
            "kind": self.kind,
            "message": self.message,
        }


@dataclass(frozen=True)
class BulkTransitionResult:
    """Outcome of a period-wide run. Successful writes stay committed."""

    succeeded: tuple[PayrollRecord, ...] = ()
    failures: tuple[BulkFailure, ...] = ()
    skipped: tuple[str, ...] = ()

    @property
    def attempted(self) -> int:
        return len(self.succeeded) + len(self.failures)

    def to_dict(self) -> dict:
        return {
            "succeeded": [r.payroll_id for r in self.succeeded],
            "succeededCount": len(self.succeeded),
            "failures": [f.to_dict() for f in self.failures],
            "failureCount": len(self.failures),
            "skipped": list(self.skipped),
        }
