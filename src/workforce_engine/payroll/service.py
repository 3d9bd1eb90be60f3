from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from ..attendance.service import AttendanceService
from ..common.datetime_utils import Clock, SystemClock
from ..common.validators import require_id, require_non_empty, require_non_negative, require_period
from ..core.enums import LOCKED_PAYROLL_STATUSES, PayrollStatus
from ..core.exceptions import DomainError, ImmutableRecordError, InvalidStateError, NotFoundError, ValidationError
from ..settings import EngineSettings
from .calculator.base import PayrollCalculator
from .calculator.deductions import StatutoryDeductions
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import (
    BulkFailure,
    BulkTransitionResult,
    EmployeeCompensation,
    PayLine,
    PayrollComputation,
    PayrollDraft,
    PayrollFilter,
    PayrollInputs,
    PayrollRecord,
    PayrollSummary,
    to_cents,
)
from .repository import PayrollRepository

logger = logging.getLogger(__name__)

EDITABLE_STATUSES = frozenset({PayrollStatus.DRAFT, PayrollStatus.PENDING})

UNEXPECTED_FAILURE = "UNEXPECTED_ERROR"


def _lines(lines: Sequence[PayLine], label: str) -> tuple[PayLine, ...]:
    out = []
    for line in lines or ():
        kind = require_non_empty(line.type, f"{label} type")
        out.append(PayLine(kind, require_non_negative(line.amount, f"{label} amount")))
    return tuple(out)


class PayrollService:
    """Monthly payroll records and their draft -> pending -> approved -> paid lifecycle.

    Every status change is a compare-and-swap on the stored status. Period-wide
    runs are a loop of independent swaps: a failure on one record is reported
    and the others still go through.
    """

    def __init__(
        self,
        payrolls: PayrollRepository,
        *,
        attendance: AttendanceService | None = None,
        clock: Clock | None = None,
        settings: EngineSettings | None = None,
        calculator: PayrollCalculator | None = None,
        statutory: StatutoryDeductions | None = None,
    ):
        self._payrolls = payrolls
        self._attendance = attendance
        self._clock = clock or SystemClock()
        self._settings = settings or EngineSettings()
        self._calculator = calculator or StandardPayrollCalculator.from_settings(self._settings)
        self._statutory = statutory or StatutoryDeductions()

    def _get_or_raise(self, payroll_id: int) -> PayrollRecord:
        record = self._payrolls.get(int(payroll_id))
        if not record:
            raise NotFoundError(f"Payroll record {payroll_id} not found")
        return record

    def _overtime_hours(self, employee_id: str, year: int, month: int, given: Optional[Decimal]) -> Decimal:
        if given is not None:
            return require_non_negative(given, "overtime_hours")
        if self._attendance is None:
            return Decimal("0")
        summary = self._attendance.summarize_period(employee_id, year, month)
        return Decimal(str(summary.overtime_hours))

    def _build_draft(self, employee_id: str, year: int, month: int, inputs: PayrollInputs) -> PayrollDraft:
        base = to_cents(require_non_negative(inputs.base_salary, "base_salary"))
        allowances = _lines(inputs.allowances, "allowance")
        deductions = _lines(inputs.deductions, "deduction")
        bonuses = _lines(inputs.bonuses, "bonus")

        overtime_hours = to_cents(self._overtime_hours(employee_id, year, month, inputs.overtime_hours))
        if inputs.overtime_rate is None:
            overtime_rate = self._calculator.default_overtime_rate(base)
        else:
            overtime_rate = to_cents(require_non_negative(inputs.overtime_rate, "overtime_rate"))

        def _totals(deduction_lines):
            return self._calculator.totals(
                base_salary=base,
                allowances=allowances,
                deductions=deduction_lines,
                bonuses=bonuses,
                overtime_hours=overtime_hours,
                overtime_rate=overtime_rate,
            )

        totals = _totals(deductions)
        if self._settings.statutory_deductions:
            deductions = deductions + tuple(
                self._statutory.lines(
                    base_salary=base,
                    total_gross=totals.total_gross,
                    health_insurance=inputs.health_insurance,
                    retirement_plan=inputs.retirement_plan,
                )
            )
            totals = _totals(deductions)

        return PayrollDraft(
            employee_id=employee_id,
            year=year,
            month=month,
            base_salary=base,
            allowances=allowances,
            deductions=deductions,
            bonuses=bonuses,
            overtime_hours=overtime_hours,
            overtime_rate=overtime_rate,
            totals=totals,
        )

    def _recompute(self, existing: PayrollRecord, draft: PayrollDraft) -> PayrollRecord:
        if existing.status in LOCKED_PAYROLL_STATUSES:
            raise ImmutableRecordError(
                f"Payroll {existing.payroll_id} for {existing.period} is {existing.status.value} and cannot be recomputed"
            )
        ok = self._payrolls.update_computation(
            payroll_id=existing.payroll_id,
            draft=draft,
            updated_at=self._clock.now(),
            editable=EDITABLE_STATUSES,
        )
        if not ok:
            # Approved (or paid) between our read and the write.
            current = self._get_or_raise(existing.payroll_id)
            raise ImmutableRecordError(
                f"Payroll {current.payroll_id} for {current.period} is {current.status.value} and cannot be recomputed"
            )
        return self._get_or_raise(existing.payroll_id)

    def compute(self, employee_id: str, year: int, month: int, inputs: PayrollInputs) -> PayrollComputation:
        employee_id = require_id(employee_id, "employee_id")
        year, month = require_period(year, month)

        existing = self._payrolls.get_for_employee_period(employee_id, year, month)
        if existing and existing.status in LOCKED_PAYROLL_STATUSES:
            raise ImmutableRecordError(
                f"Payroll {existing.payroll_id} for {existing.period} is {existing.status.value} and cannot be recomputed"
            )

        draft = self._build_draft(employee_id, year, month, inputs)

        if existing:
            record = self._recompute(existing, draft)
        else:
            record = self._payrolls.create(draft, created_at=self._clock.now())
            if record is None:
                # Someone else created the period's record first.
                existing = self._payrolls.get_for_employee_period(employee_id, year, month)
                if existing is None:
                    raise InvalidStateError(f"Payroll for employee {employee_id} {year}-{month:02d} could not be stored")
                record = self._recompute(existing, draft)

        anomalies: list[str] = []
        if record.net_salary < 0:
            anomalies.append(f"Negative net salary {record.net_salary} for {record.period}")
            logger.warning(
                "Negative net salary payroll=%s employee=%s period=%s net=%s",
                record.payroll_id,
                employee_id,
                record.period,
                record.net_salary,
            )

        logger.info(
            "Payroll computed id=%s employee=%s period=%s gross=%s net=%s",
            record.payroll_id,
            employee_id,
            record.period,
            record.total_gross,
            record.net_salary,
        )
        return PayrollComputation(record=record, anomalies=tuple(anomalies))

    def _require_reconciled(self, record: PayrollRecord) -> None:
        expected = self._calculator.totals(
            base_salary=record.base_salary,
            allowances=record.allowances,
            deductions=record.deductions,
            bonuses=record.bonuses,
            overtime_hours=record.overtime_hours,
            overtime_rate=record.overtime_rate,
        )
        stored = (to_cents(record.total_gross), to_cents(record.total_deductions), to_cents(record.net_salary))
        if stored != (expected.total_gross, expected.total_deductions, expected.net_salary):
            raise InvalidStateError(f"Payroll {record.payroll_id} totals do not reconcile with its lines")

    def _transition(
        self,
        record: PayrollRecord,
        expected: PayrollStatus,
        new: PayrollStatus,
        *,
        now: datetime,
        paid_at: Optional[datetime] = None,
    ) -> PayrollRecord:
        if record.status != expected:
            raise InvalidStateError(
                f"Payroll {record.payroll_id} is {record.status.value}, expected {expected.value}"
            )
        if new in LOCKED_PAYROLL_STATUSES:
            self._require_reconciled(record)

        ok = self._payrolls.transition(
            payroll_id=record.payroll_id,
            expected=expected,
            new=new,
            changed_at=now,
            paid_at=paid_at,
        )
        if not ok:
            raise InvalidStateError(f"Payroll {record.payroll_id} changed while moving to {new.value}")
        return self._get_or_raise(record.payroll_id)

    def submit(self, payroll_id: int) -> PayrollRecord:
        record = self._transition(
            self._get_or_raise(payroll_id), PayrollStatus.DRAFT, PayrollStatus.PENDING, now=self._clock.now()
        )
        logger.info("Payroll submitted id=%s employee=%s", record.payroll_id, record.employee_id)
        return record

    def approve(self, payroll_id: int) -> PayrollRecord:
        record = self._transition(
            self._get_or_raise(payroll_id), PayrollStatus.PENDING, PayrollStatus.APPROVED, now=self._clock.now()
        )
        logger.info("Payroll approved id=%s employee=%s", record.payroll_id, record.employee_id)
        return record

    def mark_as_paid(self, payroll_id: int) -> PayrollRecord:
        now = self._clock.now()
        record = self._transition(
            self._get_or_raise(payroll_id), PayrollStatus.APPROVED, PayrollStatus.PAID, now=now, paid_at=now
        )
        logger.info("Payroll paid id=%s employee=%s", record.payroll_id, record.employee_id)
        return record

    def _transition_period(
        self,
        year: int,
        month: int,
        expected: PayrollStatus,
        new: PayrollStatus,
    ) -> BulkTransitionResult:
        year, month = require_period(year, month)
        now = self._clock.now()
        paid_at = now if new == PayrollStatus.PAID else None

        succeeded: list[PayrollRecord] = []
        failures: list[BulkFailure] = []
        # A row that fails to decode is reported as that record's failure.
        for payroll_id, employee_id in self._payrolls.list_keys_for_period(year, month, status=expected):
            try:
                record = self._get_or_raise(payroll_id)
                succeeded.append(self._transition(record, expected, new, now=now, paid_at=paid_at))
            except DomainError as exc:
                logger.warning(
                    "Payroll %s -> %s failed id=%s employee=%s: %s",
                    expected.value,
                    new.value,
                    payroll_id,
                    employee_id,
                    exc.message,
                )
                failures.append(
                    BulkFailure(payroll_id=payroll_id, employee_id=employee_id, kind=exc.kind, message=exc.message)
                )
            except Exception as exc:
                logger.exception(
                    "Payroll %s -> %s crashed id=%s employee=%s", expected.value, new.value, payroll_id, employee_id
                )
                failures.append(
                    BulkFailure(
                        payroll_id=payroll_id,
                        employee_id=employee_id,
                        kind=UNEXPECTED_FAILURE,
                        message=f"{type(exc).__name__}: {exc}",
                    )
                )

        logger.info(
            "Payroll period %04d-%02d %s -> %s: %d succeeded, %d failed",
            year,
            month,
            expected.value,
            new.value,
            len(succeeded),
            len(failures),
        )
        return BulkTransitionResult(succeeded=tuple(succeeded), failures=tuple(failures))

    def submit_period(self, year: int, month: int) -> BulkTransitionResult:
        return self._transition_period(year, month, PayrollStatus.DRAFT, PayrollStatus.PENDING)

    def approve_period(self, year: int, month: int) -> BulkTransitionResult:
        return self._transition_period(year, month, PayrollStatus.PENDING, PayrollStatus.APPROVED)

    def mark_period_as_paid(self, year: int, month: int) -> BulkTransitionResult:
        return self._transition_period(year, month, PayrollStatus.APPROVED, PayrollStatus.PAID)

    def generate_period(self, year: int, month: int, staff: Iterable[EmployeeCompensation]) -> BulkTransitionResult:
        """Create a draft for every employee in ``staff`` that has none for the period yet."""
        year, month = require_period(year, month)

        created: list[PayrollRecord] = []
        failures: list[BulkFailure] = []
        skipped: list[str] = []
        for entry in staff:
            employee_id = str(entry.employee_id)
            try:
                if self._payrolls.get_for_employee_period(employee_id, year, month):
                    skipped.append(employee_id)
                    continue
                created.append(self.compute(employee_id, year, month, entry.inputs).record)
            except DomainError as exc:
                logger.warning("Payroll generation failed employee=%s period=%04d-%02d: %s", employee_id, year, month, exc.message)
                failures.append(BulkFailure(payroll_id=None, employee_id=employee_id, kind=exc.kind, message=exc.message))

        logger.info(
            "Payroll period %04d-%02d generated: %d created, %d skipped, %d failed",
            year,
            month,
            len(created),
            len(skipped),
            len(failures),
        )
        return BulkTransitionResult(succeeded=tuple(created), failures=tuple(failures), skipped=tuple(skipped))

    def get(self, payroll_id: int) -> PayrollRecord:
        return self._get_or_raise(payroll_id)

    def list_payrolls(self, query: PayrollFilter | None = None) -> Sequence[PayrollRecord]:
        query = query or PayrollFilter()
        if query.month is not None:
            if query.year is None:
                raise ValidationError("month filter requires year")
            require_period(query.year, query.month)
        return self._payrolls.list_payrolls(query)

    def get_summary(self, year: int, month: int) -> PayrollSummary:
        year, month = require_period(year, month)
        records = self._payrolls.list_for_period(year, month)

        total_gross = sum((r.total_gross for r in records), Decimal("0"))
        total_deductions = sum((r.total_deductions for r in records), Decimal("0"))
        total_net = sum((r.net_salary for r in records), Decimal("0"))
        average = total_net / len(records) if records else Decimal("0")

        return PayrollSummary(
            year=year,
            month=month,
            total_employees=len(records),
            total_gross=to_cents(total_gross),
            total_deductions=to_cents(total_deductions),
            total_net=to_cents(total_net),
            average_salary=to_cents(average),
        )
