from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .attendance.factory import AttendanceStrategyFactory
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .common.datetime_utils import Clock, SystemClock
from .database.connection import DBConfig, DatabaseConnection
from .events import CompositeEventSink, EventSink, LoggingEventSink, MySQLEventOutbox
from .leave.mysql_leave_repository import MySQLLeaveRepository
from .leave.service import LeaveLedger
from .orchestrator import WorkforceOrchestrator
from .payroll.mysql_payroll_repository import MySQLPayrollRepository
from .payroll.service import PayrollService
from .settings import EngineSettings


@dataclass(frozen=True)
class Container:
    settings: EngineSettings
    clock: Clock

    attendance_service: AttendanceService
    leave_ledger: LeaveLedger
    payroll_service: PayrollService
    event_sink: EventSink
    orchestrator: WorkforceOrchestrator

    conn: Optional[DatabaseConnection] = None


def build_container(
    *,
    db_config: dict,
    settings: EngineSettings | None = None,
    clock: Clock | None = None,
) -> Container:
    settings = settings or EngineSettings()
    clock = clock or SystemClock()
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    attendance_repo = MySQLAttendanceRepository(conn)
    leave_repo = MySQLLeaveRepository(conn)
    payroll_repo = MySQLPayrollRepository(conn)

    attendance_service = AttendanceService(
        attendance_repo,
        clock=clock,
        settings=settings,
        strategy_factory=AttendanceStrategyFactory(),
    )
    leave_ledger = LeaveLedger(leave_repo, clock=clock, settings=settings)
    payroll_service = PayrollService(payroll_repo, attendance=attendance_service, clock=clock, settings=settings)
    event_sink = CompositeEventSink([LoggingEventSink(), MySQLEventOutbox(conn)])

    return Container(
        settings=settings,
        clock=clock,
        attendance_service=attendance_service,
        leave_ledger=leave_ledger,
        payroll_service=payroll_service,
        event_sink=event_sink,
        orchestrator=WorkforceOrchestrator(
            attendance_service,
            leave_ledger,
            payroll_service,
            event_sink=event_sink,
            clock=clock,
        ),
        conn=conn,
    )
