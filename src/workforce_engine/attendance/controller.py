from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import parse_iso_date
from ..common.http_utils import current_actor, json_body, optional_date, optional_datetime, optional_int, required
from ..core.constants import DEFAULT_LIST_LIMIT
from ..core.enums import AttendanceStatus
from ..core.exceptions import ValidationError
from ..container import Container
from .model import AttendanceFilter, record_to_dict


def _status(value):
    if not value:
        return None
    try:
        return AttendanceStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown attendance status: {value}")


def register(app: Flask, container: Container) -> None:
    engine = container.orchestrator

    def _event_args():
        data = json_body()
        return data.get("employeeId"), optional_datetime(data.get("timestamp"))

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="attendance_check_in")
    def check_in():
        employee_id, timestamp = _event_args()
        record = engine.check_in(current_actor(), employee_id, timestamp=timestamp)
        return jsonify(record_to_dict(record)), 201

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="attendance_check_out")
    def check_out():
        employee_id, timestamp = _event_args()
        record = engine.check_out(current_actor(), employee_id, timestamp=timestamp)
        return jsonify(record_to_dict(record))

    @app.route("/api/attendance/break/start", methods=["POST"], endpoint="attendance_break_start")
    def break_start():
        employee_id, timestamp = _event_args()
        record = engine.start_break(current_actor(), employee_id, timestamp=timestamp)
        return jsonify(record_to_dict(record))

    @app.route("/api/attendance/break/end", methods=["POST"], endpoint="attendance_break_end")
    def break_end():
        employee_id, timestamp = _event_args()
        record = engine.end_break(current_actor(), employee_id, timestamp=timestamp)
        return jsonify(record_to_dict(record))

    @app.route("/api/attendance/absences", methods=["POST"], endpoint="attendance_mark_absent")
    def mark_absent():
        data = json_body()
        record = engine.mark_absent(
            current_actor(),
            str(required(data, "employeeId")),
            parse_iso_date(required(data, "date")),
            note=data.get("note"),
        )
        return jsonify(record_to_dict(record)), 201

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_list")
    def list_records():
        actor = current_actor()
        query = AttendanceFilter(
            employee_id=request.args.get("employeeId") or actor.actor_id,
            date_from=optional_date(request.args.get("from")),
            date_to=optional_date(request.args.get("to")),
            status=_status(request.args.get("status")),
            limit=optional_int(request.args.get("limit"), "limit") or DEFAULT_LIST_LIMIT,
        )
        records = engine.list_attendance(actor, query)
        return jsonify({"items": [record_to_dict(r) for r in records], "count": len(records)})

    @app.route("/api/attendance/summary", methods=["GET"], endpoint="attendance_summary")
    def summary():
        actor = current_actor()
        start = parse_iso_date(request.args.get("start", ""))
        end = parse_iso_date(request.args.get("end", ""))
        result = engine.attendance_summary(actor, request.args.get("employeeId"), start, end)
        return jsonify(result.to_dict())
