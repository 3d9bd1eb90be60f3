from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.http_utils import as_int, current_actor, json_body, optional_date, optional_int, required
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import LeaveStatus, LeaveType
from ..core.exceptions import ValidationError
from ..container import Container
from .model import LeaveFilter


def _enum(enum_cls, value, label: str):
    if not value:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"Unknown {label}: {value}")


def register(app: Flask, container: Container) -> None:
    engine = container.orchestrator

    def _filter_from_args(actor) -> LeaveFilter:
        return LeaveFilter(
            employee_id=request.args.get("employeeId") or actor.actor_id,
            leave_type=_enum(LeaveType, request.args.get("type"), "leave type"),
            status=_enum(LeaveStatus, request.args.get("status"), "leave status"),
            start_from=optional_date(request.args.get("from")),
            start_to=optional_date(request.args.get("to")),
            limit=optional_int(request.args.get("limit"), "limit") or DEFAULT_LIST_LIMIT,
        )

    @app.route("/api/leaves", methods=["POST"], endpoint="leave_request")
    def request_leave():
        data = json_body()
        record = engine.request_leave(
            current_actor(),
            _enum(LeaveType, required(data, "type"), "leave type"),
            parse_iso_date(required(data, "startDate")),
            parse_iso_date(required(data, "endDate")),
            data.get("reason", ""),
            employee_id=data.get("employeeId"),
        )
        return jsonify(record.to_dict()), 201

    @app.route("/api/leaves", methods=["GET"], endpoint="leave_list")
    def list_leaves():
        actor = current_actor()
        records = engine.list_leaves(actor, _filter_from_args(actor))
        return jsonify({"items": [r.to_dict() for r in records], "count": len(records)})

    @app.route("/api/leaves/summary", methods=["GET"], endpoint="leave_summary")
    def leave_summary():
        actor = current_actor()
        return jsonify(engine.leave_summary(actor, _filter_from_args(actor)).to_dict())

    @app.route("/api/leaves/pending", methods=["GET"], endpoint="leave_pending")
    def pending():
        items = [r.to_dict() for r in engine.pending_leaves(current_actor())]
        return jsonify({"items": items, "count": len(items)})

    @app.route("/api/leaves/balance", methods=["GET"], endpoint="leave_balance")
    def balance():
        year = as_int(request.args.get("year"), "year")
        result = engine.leave_balance(current_actor(), year, employee_id=request.args.get("employeeId"))
        return jsonify(result.to_dict())

    @app.route("/api/leaves/<int:leave_id>", methods=["GET"], endpoint="leave_get")
    def get_leave(leave_id: int):
        return jsonify(engine.get_leave(current_actor(), leave_id).to_dict())

    @app.route("/api/leaves/<int:leave_id>/approve", methods=["POST"], endpoint="leave_approve")
    def approve(leave_id: int):
        return jsonify(engine.approve_leave(current_actor(), leave_id).to_dict())

    @app.route("/api/leaves/<int:leave_id>/reject", methods=["POST"], endpoint="leave_reject")
    def reject(leave_id: int):
        data = json_body()
        return jsonify(engine.reject_leave(current_actor(), leave_id, data.get("reason", "")).to_dict())

    @app.route("/api/leaves/<int:leave_id>/cancel", methods=["POST"], endpoint="leave_cancel")
    def cancel(leave_id: int):
        return jsonify(engine.cancel_leave(current_actor(), leave_id).to_dict())
