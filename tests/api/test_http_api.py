import pytest

from workforce_engine.container import Container
from workforce_engine.main import create_app

STAFF = {"X-Actor-Id": "emp-1", "X-Actor-Role": "staff"}
HR = {"X-Actor-Id": "hr-1", "X-Actor-Role": "hr_manager"}
ACCOUNTANT = {"X-Actor-Id": "acc-1", "X-Actor-Role": "accountant"}
ADMIN = {"X-Actor-Id": "admin-1", "X-Actor-Role": "admin"}


@pytest.fixture
def client(monkeypatch, settings, clock, attendance_service, leave_ledger, payroll_service, event_sink, orchestrator):
    monkeypatch.setenv("APP_ENV", "testing")
    container = Container(
        settings=settings,
        clock=clock,
        attendance_service=attendance_service,
        leave_ledger=leave_ledger,
        payroll_service=payroll_service,
        event_sink=event_sink,
        orchestrator=orchestrator,
    )
    app = create_app(container=container)
    return app.test_client()


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}


def test_missing_identity_is_forbidden(client):
    resp = client.post("/api/attendance/check-in", json={})
    assert resp.status_code == 403
    assert resp.get_json()["error"]["kind"] == "FORBIDDEN"


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/nope", headers=STAFF)
    assert resp.status_code == 404
    assert resp.get_json()["error"]["kind"] == "NOT_FOUND"


def test_check_in_and_out(client):
    resp = client.post("/api/attendance/check-in", json={}, headers=STAFF)
    assert resp.status_code == 201
    assert resp.get_json()["status"] == "present"

    again = client.post("/api/attendance/check-in", json={}, headers=STAFF)
    assert again.status_code == 409
    assert again.get_json()["error"]["kind"] == "DUPLICATE_CHECK_IN"

    out = client.post("/api/attendance/check-out", json={"timestamp": "2024-03-04T16:55:00"}, headers=STAFF)
    assert out.status_code == 200
    assert out.get_json()["totalHours"] == 8.0

    listing = client.get("/api/attendance", headers=STAFF).get_json()
    assert listing["count"] == 1


def test_check_out_without_check_in_is_conflict(client):
    resp = client.post("/api/attendance/check-out", json={}, headers=STAFF)
    assert resp.status_code == 409
    assert resp.get_json()["error"]["kind"] == "NO_OPEN_CHECK_IN"


def test_attendance_summary_of_others_needs_reports(client):
    resp = client.get(
        "/api/attendance/summary?start=2024-03-01&end=2024-03-31&employeeId=emp-2", headers=STAFF
    )
    assert resp.status_code == 403

    resp = client.get("/api/attendance/summary?start=2024-03-31&end=2024-03-01", headers=STAFF)
    assert resp.status_code == 400
    assert resp.get_json()["error"]["kind"] == "INVALID_RANGE"


def test_leave_request_and_approval(client):
    resp = client.post(
        "/api/leaves",
        json={"type": "annual", "startDate": "2024-03-04", "endDate": "2024-03-08", "reason": "Trip"},
        headers=STAFF,
    )
    assert resp.status_code == 201
    leave_id = resp.get_json()["id"]
    assert resp.get_json()["days"] == 5

    assert client.post(f"/api/leaves/{leave_id}/approve", headers=STAFF).status_code == 403

    approved = client.post(f"/api/leaves/{leave_id}/approve", headers=HR)
    assert approved.status_code == 200
    assert approved.get_json()["status"] == "approved"

    twice = client.post(f"/api/leaves/{leave_id}/approve", headers=HR)
    assert twice.status_code == 409
    assert twice.get_json()["error"]["kind"] == "INVALID_STATE"

    balance = client.get("/api/leaves/balance?year=2024", headers=STAFF).get_json()
    assert balance["annual"] == {"total": 22, "used": 5, "remaining": 17}


def test_leave_validation_errors(client):
    resp = client.post(
        "/api/leaves",
        json={"type": "annual", "startDate": "2024-03-04", "endDate": "2024-03-08"},
        headers=STAFF,
    )
    assert resp.status_code == 400
    assert resp.get_json()["error"]["kind"] == "VALIDATION_ERROR"

    assert client.get("/api/leaves/42", headers=HR).status_code == 404


def test_reject_needs_reason(client):
    leave_id = client.post(
        "/api/leaves",
        json={"type": "sick", "startDate": "2024-03-04", "endDate": "2024-03-04", "reason": "Flu"},
        headers=STAFF,
    ).get_json()["id"]

    assert client.post(f"/api/leaves/{leave_id}/reject", json={}, headers=HR).status_code == 400
    resp = client.post(f"/api/leaves/{leave_id}/reject", json={"reason": "No cover"}, headers=HR)
    assert resp.get_json()["rejectionReason"] == "No cover"

    pending = client.get("/api/leaves/pending", headers=HR).get_json()
    assert pending["count"] == 0


def test_payroll_compute_and_lifecycle(client):
    resp = client.post(
        "/api/payroll",
        json={
            "employeeId": "emp-1",
            "year": 2024,
            "month": 3,
            "baseSalary": "500000",
            "allowances": [{"type": "transport", "amount": "50000"}],
            "deductions": [{"type": "loan", "amount": 30000}],
            "overtimeHours": 10,
            "overtimeRate": "2000",
        },
        headers=ACCOUNTANT,
    )
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["anomalies"] == []
    payroll = body["payroll"]
    assert payroll["totalGross"] == "570000.00"
    assert payroll["netSalary"] == "540000.00"
    payroll_id = payroll["id"]

    assert client.post(f"/api/payroll/{payroll_id}/submit", headers=ACCOUNTANT).status_code == 200
    assert client.post(f"/api/payroll/{payroll_id}/approve", headers=HR).status_code == 200

    locked = client.post(
        "/api/payroll",
        json={"employeeId": "emp-1", "year": 2024, "month": 3, "baseSalary": "1"},
        headers=ACCOUNTANT,
    )
    assert locked.status_code == 409
    assert locked.get_json()["error"]["kind"] == "IMMUTABLE_RECORD"

    paid = client.post(f"/api/payroll/{payroll_id}/pay", headers=ACCOUNTANT).get_json()
    assert paid["status"] == "paid"
    assert paid["paidAt"] is not None

    mine = client.get("/api/payroll?year=2024", headers=STAFF).get_json()
    assert mine["count"] == 1


def test_payroll_rejects_bad_amounts(client):
    resp = client.post(
        "/api/payroll",
        json={"employeeId": "emp-1", "year": 2024, "month": 3, "baseSalary": "lots"},
        headers=ACCOUNTANT,
    )
    assert resp.status_code == 400


def test_payroll_period_run(client):
    staff = [{"employeeId": f"emp-{i}", "baseSalary": "1000", "overtimeHours": 0} for i in range(3)]
    generated = client.post("/api/payroll/periods/2024/3/generate", json={"staff": staff}, headers=ADMIN).get_json()
    assert generated["succeededCount"] == 3

    assert client.post("/api/payroll/periods/2024/3/submit", headers=ADMIN).get_json()["succeededCount"] == 3
    assert client.post("/api/payroll/periods/2024/3/approve", headers=ADMIN).get_json()["succeededCount"] == 3
    paid = client.post("/api/payroll/periods/2024/3/pay", headers=ADMIN).get_json()
    assert paid["succeededCount"] == 3
    assert paid["failureCount"] == 0

    summary = client.get("/api/payroll/periods/2024/3/summary", headers=HR).get_json()
    assert summary["totalEmployees"] == 3
    assert summary["totalNet"] == "3000.00"
