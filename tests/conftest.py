from __future__ import annotations

from datetime import datetime

import pytest

from tests.fakes import InMemoryAttendance, InMemoryLeaves, InMemoryPayrolls, RecordingEventSink
from workforce_engine.attendance.service import AttendanceService
from workforce_engine.common.datetime_utils import FixedClock
from workforce_engine.core.enums import Role
from workforce_engine.core.identity import actor_for
from workforce_engine.leave.service import LeaveLedger
from workforce_engine.orchestrator import WorkforceOrchestrator
from workforce_engine.payroll.service import PayrollService
from workforce_engine.settings import EngineSettings


@pytest.fixture
def clock():
    # Monday
    return FixedClock(datetime(2024, 3, 4, 8, 55))


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def attendance_repo():
    return InMemoryAttendance()


@pytest.fixture
def leave_repo():
    return InMemoryLeaves()


@pytest.fixture
def payroll_repo():
    return InMemoryPayrolls()


@pytest.fixture
def attendance_service(attendance_repo, clock, settings):
    return AttendanceService(attendance_repo, clock=clock, settings=settings)


@pytest.fixture
def leave_ledger(leave_repo, clock, settings):
    return LeaveLedger(leave_repo, clock=clock, settings=settings)


@pytest.fixture
def payroll_service(payroll_repo, attendance_service, clock, settings):
    return PayrollService(payroll_repo, attendance=attendance_service, clock=clock, settings=settings)


@pytest.fixture
def event_sink():
    return RecordingEventSink()


@pytest.fixture
def orchestrator(attendance_service, leave_ledger, payroll_service, event_sink, clock):
    return WorkforceOrchestrator(
        attendance_service,
        leave_ledger,
        payroll_service,
        event_sink=event_sink,
        clock=clock,
    )


@pytest.fixture
def admin():
    return actor_for("admin-1", Role.ADMIN)


@pytest.fixture
def hr():
    return actor_for("hr-1", Role.HR_MANAGER)


@pytest.fixture
def accountant():
    return actor_for("acc-1", Role.ACCOUNTANT)


@pytest.fixture
def staff():
    return actor_for("emp-1", Role.STAFF)
