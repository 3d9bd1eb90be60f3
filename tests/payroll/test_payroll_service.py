import dataclasses
import logging
from datetime import datetime
from decimal import Decimal

import pytest

from workforce_engine.core.enums import PayrollStatus
from workforce_engine.core.exceptions import (
    CorruptRecordError,
    ImmutableRecordError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from workforce_engine.payroll.model import EmployeeCompensation, PayLine, PayrollFilter, PayrollInputs
from workforce_engine.payroll.service import PayrollService
from workforce_engine.settings import EngineSettings


def _inputs(base="500000", **kwargs):
    kwargs.setdefault("overtime_hours", Decimal("0"))
    return PayrollInputs(base_salary=Decimal(base), **kwargs)


def _pending_staff(service, n, year=2024, month=3):
    ids = []
    for i in range(n):
        ids.append(service.compute(f"emp-{i}", year, month, _inputs("1000")).record.payroll_id)
    service.submit_period(year, month)
    return ids


def test_compute_gross_and_net(payroll_service):
    result = payroll_service.compute(
        "emp-1",
        2024,
        3,
        PayrollInputs(
            base_salary=Decimal("500000"),
            allowances=(PayLine("transport", Decimal("50000")),),
            deductions=(PayLine("loan", Decimal("30000")),),
            overtime_hours=Decimal("10"),
            overtime_rate=Decimal("2000"),
        ),
    )
    rec = result.record
    assert rec.total_gross == Decimal("570000.00")
    assert rec.total_deductions == Decimal("30000.00")
    assert rec.net_salary == Decimal("540000.00")
    assert rec.status == PayrollStatus.DRAFT
    assert rec.period == "2024-03"
    assert result.anomalies == ()

    body = rec.to_dict()
    assert body["netSalary"] == "540000.00"
    assert body["overtimeRate"] == "2000.00"


def test_overtime_comes_from_attendance_with_default_rate(payroll_service, attendance_service):
    attendance_service.check_in("emp-1", timestamp=datetime(2024, 3, 4, 9, 0))
    attendance_service.check_out("emp-1", timestamp=datetime(2024, 3, 4, 19, 0))

    rec = payroll_service.compute("emp-1", 2024, 3, PayrollInputs(base_salary=Decimal("3520"))).record

    assert rec.overtime_hours == Decimal("2.00")
    assert rec.overtime_rate == Decimal("30.00")
    assert rec.total_gross == Decimal("3580.00")


def test_statutory_deductions_when_enabled(payroll_repo, clock):
    service = PayrollService(payroll_repo, clock=clock, settings=EngineSettings(statutory_deductions=True))
    rec = service.compute(
        "emp-1", 2024, 3, PayrollInputs(base_salary=Decimal("3000"), health_insurance=True)
    ).record

    assert [line.type for line in rec.deductions] == ["health_insurance", "social_security", "income_tax"]
    assert rec.total_deductions == Decimal("540.00")
    assert rec.net_salary == Decimal("2460.00")

    # Stored lines still reconcile on approval.
    service.submit(rec.payroll_id)
    assert service.approve(rec.payroll_id).status == PayrollStatus.APPROVED


def test_invalid_inputs(payroll_service):
    with pytest.raises(ValidationError):
        payroll_service.compute("emp-1", 2024, 13, _inputs())
    with pytest.raises(ValidationError):
        payroll_service.compute("emp-1", 2024, 3, _inputs("-1"))
    with pytest.raises(ValidationError):
        payroll_service.compute("emp-1", 2024, 3, _inputs(deductions=(PayLine("loan", Decimal("-5")),)))
    with pytest.raises(ValidationError):
        payroll_service.compute("emp-1", 2024, 3, _inputs(bonuses=(PayLine(" ", Decimal("5")),)))


def test_negative_net_is_kept_and_flagged(payroll_service, caplog):
    with caplog.at_level(logging.WARNING):
        result = payroll_service.compute(
            "emp-1", 2024, 3, _inputs("1000", deductions=(PayLine("advance", Decimal("1500")),))
        )
    assert result.record.net_salary == Decimal("-500.00")
    assert len(result.anomalies) == 1
    assert "Negative net salary" in caplog.text


def test_recompute_pending_returns_to_draft(payroll_service):
    first = payroll_service.compute("emp-1", 2024, 3, _inputs("1000")).record
    payroll_service.submit(first.payroll_id)

    again = payroll_service.compute("emp-1", 2024, 3, _inputs("1200")).record

    assert again.payroll_id == first.payroll_id
    assert again.status == PayrollStatus.DRAFT
    assert again.net_salary == Decimal("1200.00")


def test_recompute_approved_or_paid_is_refused(payroll_service):
    rec = payroll_service.compute("emp-1", 2024, 3, _inputs("1000")).record
    payroll_service.submit(rec.payroll_id)
    payroll_service.approve(rec.payroll_id)

    with pytest.raises(ImmutableRecordError):
        payroll_service.compute("emp-1", 2024, 3, _inputs("9999"))

    payroll_service.mark_as_paid(rec.payroll_id)
    with pytest.raises(ImmutableRecordError):
        payroll_service.compute("emp-1", 2024, 3, _inputs("9999"))
    assert payroll_service.get(rec.payroll_id).net_salary == Decimal("1000.00")


def test_lifecycle_is_strictly_forward(payroll_service, clock):
    rec = payroll_service.compute("emp-1", 2024, 3, _inputs("1000")).record

    with pytest.raises(InvalidStateError):
        payroll_service.approve(rec.payroll_id)
    with pytest.raises(InvalidStateError):
        payroll_service.mark_as_paid(rec.payroll_id)

    payroll_service.submit(rec.payroll_id)
    payroll_service.approve(rec.payroll_id)
    clock.advance(days=1)
    paid = payroll_service.mark_as_paid(rec.payroll_id)
    assert paid.status == PayrollStatus.PAID
    assert paid.paid_at == clock.now()

    with pytest.raises(InvalidStateError):
        payroll_service.mark_as_paid(rec.payroll_id)
    with pytest.raises(NotFoundError):
        payroll_service.submit(999)


def test_approval_refuses_totals_that_do_not_reconcile(payroll_service, payroll_repo):
    rec = payroll_service.compute("emp-1", 2024, 3, _inputs("1000")).record
    payroll_service.submit(rec.payroll_id)
    payroll_repo.records[rec.payroll_id] = dataclasses.replace(
        payroll_repo.records[rec.payroll_id], net_salary=Decimal("999.00")
    )

    with pytest.raises(InvalidStateError):
        payroll_service.approve(rec.payroll_id)
    assert payroll_service.get(rec.payroll_id).status == PayrollStatus.PENDING


def test_approve_period_only_touches_pending(payroll_service, clock):
    ids = _pending_staff(payroll_service, 7)
    already = ids[5:]
    for payroll_id in already:
        payroll_service.approve(payroll_id)
    before = {pid: payroll_service.get(pid).updated_at for pid in already}
    clock.advance(hours=1)

    result = payroll_service.approve_period(2024, 3)

    assert len(result.succeeded) == 5
    assert result.failures == ()
    assert {r.payroll_id for r in result.succeeded} == set(ids[:5])
    for payroll_id in ids:
        assert payroll_service.get(payroll_id).status == PayrollStatus.APPROVED
    for payroll_id in already:
        assert payroll_service.get(payroll_id).updated_at == before[payroll_id]

    # Nothing left to approve.
    assert payroll_service.approve_period(2024, 3).attempted == 0


def test_pay_period_uses_one_paid_at(payroll_service, clock):
    _pending_staff(payroll_service, 3)
    payroll_service.approve_period(2024, 3)
    clock.advance(days=2)

    result = payroll_service.mark_period_as_paid(2024, 3)

    assert {r.paid_at for r in result.succeeded} == {clock.now()}


def test_period_failures_are_reported_per_record(payroll_service, payroll_repo):
    ids = _pending_staff(payroll_service, 4)
    payroll_repo.fail_transitions_for.add(ids[1])

    result = payroll_service.approve_period(2024, 3)

    assert len(result.succeeded) == 3
    assert [(f.payroll_id, f.kind) for f in result.failures] == [(ids[1], "SERVER_ERROR")]
    assert payroll_service.get(ids[1]).status == PayrollStatus.PENDING
    assert result.to_dict()["failureCount"] == 1


def test_generate_period_skips_existing_records(payroll_service):
    payroll_service.compute("emp-1", 2024, 3, _inputs("1000"))

    result = payroll_service.generate_period(
        2024,
        3,
        [
            EmployeeCompensation("emp-1", _inputs("5000")),
            EmployeeCompensation("emp-2", _inputs("2000")),
            EmployeeCompensation("emp-3", _inputs("-1")),
        ],
    )

    assert [r.employee_id for r in result.succeeded] == ["emp-2"]
    assert result.skipped == ("emp-1",)
    assert [(f.employee_id, f.kind) for f in result.failures] == [("emp-3", "VALIDATION_ERROR")]
    assert payroll_service.get(1).net_salary == Decimal("1000.00")


def test_summary_and_listing(payroll_service):
    payroll_service.compute("emp-1", 2024, 3, _inputs("1000"))
    payroll_service.compute("emp-2", 2024, 3, _inputs("2000", deductions=(PayLine("loan", Decimal("100")),)))
    payroll_service.compute("emp-1", 2024, 4, _inputs("1000"))

    summary = payroll_service.get_summary(2024, 3)
    assert summary.total_employees == 2
    assert summary.total_gross == Decimal("3000.00")
    assert summary.total_deductions == Decimal("100.00")
    assert summary.total_net == Decimal("2900.00")
    assert summary.average_salary == Decimal("1450.00")

    empty = payroll_service.get_summary(2024, 5)
    assert empty.total_employees == 0
    assert empty.average_salary == Decimal("0.00")

    mine = payroll_service.list_payrolls(PayrollFilter(employee_id="emp-1", year=2024))
    assert [r.month for r in mine] == [4, 3]

    with pytest.raises(ValidationError):
        payroll_service.list_payrolls(PayrollFilter(month=3))


def test_period_run_survives_a_record_that_cannot_be_read(payroll_service, payroll_repo):
    ids = _pending_staff(payroll_service, 4)
    payroll_repo.undecodable.add(ids[1])

    result = payroll_service.approve_period(2024, 3)

    assert {r.payroll_id for r in result.succeeded} == {ids[0], ids[2], ids[3]}
    assert [(f.payroll_id, f.employee_id, f.kind) for f in result.failures] == [
        (ids[1], "emp-1", "UNEXPECTED_ERROR")
    ]
    payroll_repo.undecodable.clear()
    statuses = [payroll_service.get(pid).status for pid in ids]
    assert statuses == [
        PayrollStatus.APPROVED,
        PayrollStatus.PENDING,
        PayrollStatus.APPROVED,
        PayrollStatus.APPROVED,
    ]


def test_corrupt_row_is_reported_with_its_kind(payroll_service, payroll_repo, monkeypatch):
    ids = _pending_staff(payroll_service, 2)
    real_get = payroll_repo.get

    def get(payroll_id):
        if payroll_id == ids[0]:
            raise CorruptRecordError(f"Payroll {payroll_id} could not be decoded")
        return real_get(payroll_id)

    monkeypatch.setattr(payroll_repo, "get", get)

    result = payroll_service.approve_period(2024, 3)

    assert [r.payroll_id for r in result.succeeded] == [ids[1]]
    assert [(f.payroll_id, f.kind) for f in result.failures] == [(ids[0], "CORRUPT_RECORD")]
