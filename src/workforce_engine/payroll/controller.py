from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.http_utils import as_int, current_actor, json_body, optional_int, required
from ..common.validators import to_decimal
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import PayrollStatus
from ..core.exceptions import ValidationError
from ..container import Container
from .model import EmployeeCompensation, PayLine, PayrollFilter, PayrollInputs


def _lines(items, label: str) -> tuple[PayLine, ...]:
    if items is None:
        return ()
    if not isinstance(items, list):
        raise ValidationError(f"{label} must be a list")
    out = []
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError(f"Each {label} entry must be an object with type and amount")
        out.append(PayLine(str(item.get("type") or ""), to_decimal(item.get("amount"), f"{label} amount")))
    return tuple(out)


def inputs_from_json(data: dict) -> PayrollInputs:
    overtime_hours = data.get("overtimeHours")
    overtime_rate = data.get("overtimeRate")
    return PayrollInputs(
        base_salary=to_decimal(required(data, "baseSalary"), "baseSalary"),
        allowances=_lines(data.get("allowances"), "allowances"),
        deductions=_lines(data.get("deductions"), "deductions"),
        bonuses=_lines(data.get("bonuses"), "bonuses"),
        overtime_hours=None if overtime_hours is None else to_decimal(overtime_hours, "overtimeHours"),
        overtime_rate=None if overtime_rate is None else to_decimal(overtime_rate, "overtimeRate"),
        health_insurance=bool(data.get("healthInsurance", False)),
        retirement_plan=bool(data.get("retirementPlan", False)),
    )


def register(app: Flask, container: Container) -> None:
    engine = container.orchestrator

    @app.route("/api/payroll", methods=["POST"], endpoint="payroll_compute")
    def compute():
        data = json_body()
        result = engine.compute_payroll(
            current_actor(),
            str(required(data, "employeeId")),
            as_int(required(data, "year"), "year"),
            as_int(required(data, "month"), "month"),
            inputs_from_json(data),
        )
        return jsonify(result.to_dict()), 201

    @app.route("/api/payroll", methods=["GET"], endpoint="payroll_list")
    def list_payrolls():
        actor = current_actor()
        status = request.args.get("status")
        try:
            status = PayrollStatus(status) if status else None
        except ValueError:
            raise ValidationError(f"Unknown payroll status: {status}")
        query = PayrollFilter(
            employee_id=request.args.get("employeeId") or actor.actor_id,
            year=optional_int(request.args.get("year"), "year"),
            month=optional_int(request.args.get("month"), "month"),
            status=status,
            limit=optional_int(request.args.get("limit"), "limit") or DEFAULT_LIST_LIMIT,
        )
        records = engine.list_payrolls(actor, query)
        return jsonify({"items": [r.to_dict() for r in records], "count": len(records)})

    @app.route("/api/payroll/<int:payroll_id>", methods=["GET"], endpoint="payroll_get")
    def get_payroll(payroll_id: int):
        return jsonify(engine.get_payroll(current_actor(), payroll_id).to_dict())

    @app.route("/api/payroll/<int:payroll_id>/submit", methods=["POST"], endpoint="payroll_submit")
    def submit(payroll_id: int):
        return jsonify(engine.submit_payroll(current_actor(), payroll_id).to_dict())

    @app.route("/api/payroll/<int:payroll_id>/approve", methods=["POST"], endpoint="payroll_approve")
    def approve(payroll_id: int):
        return jsonify(engine.approve_payroll(current_actor(), payroll_id).to_dict())

    @app.route("/api/payroll/<int:payroll_id>/pay", methods=["POST"], endpoint="payroll_pay")
    def pay(payroll_id: int):
        return jsonify(engine.pay_payroll(current_actor(), payroll_id).to_dict())

    @app.route("/api/payroll/periods/<int:year>/<int:month>/generate", methods=["POST"], endpoint="payroll_generate_period")
    def generate_period(year: int, month: int):
        data = json_body()
        staff = data.get("staff")
        if not isinstance(staff, list):
            raise ValidationError("staff must be a list")
        entries = []
        for item in staff:
            if not isinstance(item, dict):
                raise ValidationError("Each staff entry must be an object")
            entries.append(EmployeeCompensation(str(required(item, "employeeId")), inputs_from_json(item)))
        result = engine.generate_payroll_period(current_actor(), year, month, entries)
        return jsonify(result.to_dict())

    @app.route("/api/payroll/periods/<int:year>/<int:month>/submit", methods=["POST"], endpoint="payroll_submit_period")
    def submit_period(year: int, month: int):
        return jsonify(engine.submit_payroll_period(current_actor(), year, month).to_dict())

    @app.route("/api/payroll/periods/<int:year>/<int:month>/approve", methods=["POST"], endpoint="payroll_approve_period")
    def approve_period(year: int, month: int):
        return jsonify(engine.approve_payroll_period(current_actor(), year, month).to_dict())

    @app.route("/api/payroll/periods/<int:year>/<int:month>/pay", methods=["POST"], endpoint="payroll_pay_period")
    def pay_period(year: int, month: int):
        return jsonify(engine.pay_payroll_period(current_actor(), year, month).to_dict())

    @app.route("/api/payroll/periods/<int:year>/<int:month>/summary", methods=["GET"], endpoint="payroll_summary")
    def summary(year: int, month: int):
        return jsonify(engine.payroll_summary(current_actor(), year, month).to_dict())
