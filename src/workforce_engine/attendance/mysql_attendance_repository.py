from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

import mysql.connector

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import AttendanceFilter, AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, employee_id, work_date, check_in_time, check_out_time,
    break_start, break_end, total_hours, status, note
"""


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        employee_id=str(r["employee_id"]),
        work_date=r["work_date"],
        status=AttendanceStatus(r["status"]),
        check_in_time=r.get("check_in_time"),
        check_out_time=r.get("check_out_time"),
        break_start=r.get("break_start"),
        break_end=r.get("break_end"),
        total_hours=float(r.get("total_hours") or 0),
        note=r.get("note"),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_for_employee_and_date(self, employee_id: str, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE employee_id=%s AND work_date=%s",
                (str(employee_id), work_date),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_for_employee(self, employee_id: str, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE employee_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date
                """,
                (str(employee_id), start_date, end_date),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_records(self, query: AttendanceFilter) -> Sequence[AttendanceRecord]:
        clauses: list[str] = []
        params: list[object] = []

        if query.employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(str(query.employee_id))
        if query.date_from is not None:
            clauses.append("work_date>=%s")
            params.append(query.date_from)
        if query.date_to is not None:
            clauses.append("work_date<=%s")
            params.append(query.date_to)
        if query.status is not None:
            clauses.append("status=%s")
            params.append(query.status.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE {build_where(clauses)}
                ORDER BY work_date DESC, attendance_id DESC
                LIMIT %s
                """,
                tuple(params + [int(query.limit)]),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def create(
        self,
        *,
        employee_id: str,
        work_date: date,
        status: AttendanceStatus,
        check_in_time: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    """
                    INSERT INTO attendance_records(employee_id, work_date, check_in_time, status, note)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    (str(employee_id), work_date, check_in_time, status.value, note),
                )
            except mysql.connector.IntegrityError:
                # uq_attendance_employee_date
                return None
            attendance_id = int(cur.lastrowid)

        return AttendanceRecord(
            attendance_id=attendance_id,
            employee_id=str(employee_id),
            work_date=work_date,
            status=status,
            check_in_time=check_in_time,
            note=note,
        )

    def record_checkin(self, *, attendance_id: int, check_in_time: datetime, status: AttendanceStatus) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_in_time=%s, status=%s
                WHERE attendance_id=%s AND check_in_time IS NULL
                """,
                (check_in_time, status.value, int(attendance_id)),
            )
            return cur.rowcount > 0

    def record_checkout(
        self,
        *,
        attendance_id: int,
        check_out_time: datetime,
        break_end: Optional[datetime],
        total_hours: float,
        status: AttendanceStatus,
        note: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_out_time=%s, break_end=%s, total_hours=%s, status=%s, note=COALESCE(%s, note)
                WHERE attendance_id=%s AND check_in_time IS NOT NULL AND check_out_time IS NULL
                """,
                (check_out_time, break_end, total_hours, status.value, note, int(attendance_id)),
            )
            return cur.rowcount > 0

    def record_break(
        self,
        *,
        attendance_id: int,
        break_start: Optional[datetime] = None,
        break_end: Optional[datetime] = None,
    ) -> bool:
        if break_start is not None:
            sql = """
                UPDATE attendance_records SET break_start=%s
                WHERE attendance_id=%s AND check_out_time IS NULL AND break_start IS NULL
            """
            params = (break_start, int(attendance_id))
        else:
            sql = """
                UPDATE attendance_records SET break_end=%s
                WHERE attendance_id=%s AND check_out_time IS NULL
                  AND break_start IS NOT NULL AND break_end IS NULL
            """
            params = (break_end, int(attendance_id))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, params)
            return cur.rowcount > 0
