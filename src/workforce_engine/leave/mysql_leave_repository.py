from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Iterator, Optional, Sequence

from ..core.constants import PENDING_BATCH_SIZE
from ..core.enums import LeaveStatus, LeaveType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import build_where, db_cursor, fetchall, fetchone
from .model import LeaveFilter, LeaveRecord
from .repository import LeaveRepository

_COLUMNS = """
    leave_id, employee_id, leave_type, start_date, end_date, days, reason,
    status, created_at, approved_by, approved_at, rejection_reason
"""


def _to_record(r: dict) -> LeaveRecord:
    return LeaveRecord(
        leave_id=int(r["leave_id"]),
        employee_id=str(r["employee_id"]),
        leave_type=LeaveType(r["leave_type"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        days=int(r["days"]),
        reason=r["reason"],
        status=LeaveStatus(r["status"]),
        created_at=r["created_at"],
        approved_by=r.get("approved_by"),
        approved_at=r.get("approved_at"),
        rejection_reason=r.get("rejection_reason"),
    )


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, batch_size: int = PENDING_BATCH_SIZE):
        self._conn_factory = conn_factory
        self._batch_size = int(batch_size)

    def create(
        self,
        *,
        employee_id: str,
        leave_type: LeaveType,
        start_date: date,
        end_date: date,
        days: int,
        reason: str,
        created_at: datetime,
        blocking_statuses: Iterable[LeaveStatus],
    ) -> Optional[LeaveRecord]:
        status_values = [s.value for s in blocking_statuses]
        with db_cursor(self._conn_factory) as (_, cur):
            # Requests for one employee serialize on their lock row.
            cur.execute("INSERT IGNORE INTO leave_request_locks(employee_id) VALUES(%s)", (str(employee_id),))
            cur.execute(
                "SELECT employee_id FROM leave_request_locks WHERE employee_id=%s FOR UPDATE",
                (str(employee_id),),
            )
            fetchone(cur)

            if status_values:
                placeholders = ",".join(["%s"] * len(status_values))
                cur.execute(
                    f"""
                    SELECT leave_id FROM leave_records
                    WHERE employee_id=%s AND status IN ({placeholders})
                      AND start_date <= %s AND end_date >= %s
                    LIMIT 1
                    """,
                    tuple([str(employee_id)] + status_values + [end_date, start_date]),
                )
                if fetchone(cur):
                    return None

            cur.execute(
                """
                INSERT INTO leave_records(employee_id, leave_type, start_date, end_date, days, reason, status, created_at)
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    str(employee_id),
                    leave_type.value,
                    start_date,
                    end_date,
                    int(days),
                    reason,
                    LeaveStatus.PENDING.value,
                    created_at,
                ),
            )
            leave_id = int(cur.lastrowid)

        return LeaveRecord(
            leave_id=leave_id,
            employee_id=str(employee_id),
            leave_type=leave_type,
            start_date=start_date,
            end_date=end_date,
            days=int(days),
            reason=reason,
            status=LeaveStatus.PENDING,
            created_at=created_at,
        )

    def get(self, leave_id: int) -> Optional[LeaveRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM leave_records WHERE leave_id=%s", (int(leave_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def find_overlapping(
        self,
        *,
        employee_id: str,
        start_date: date,
        end_date: date,
        statuses: Iterable[LeaveStatus],
    ) -> Sequence[LeaveRecord]:
        status_values = [s.value for s in statuses]
        if not status_values:
            return []
        placeholders = ",".join(["%s"] * len(status_values))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM leave_records
                WHERE employee_id=%s AND status IN ({placeholders})
                  AND start_date <= %s AND end_date >= %s
                ORDER BY start_date
                """,
                tuple([str(employee_id)] + status_values + [end_date, start_date]),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_employee_year(self, employee_id: str, year: int) -> Sequence[LeaveRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM leave_records
                WHERE employee_id=%s AND start_date BETWEEN %s AND %s
                ORDER BY start_date DESC
                """,
                (str(employee_id), date(int(year), 1, 1), date(int(year), 12, 31)),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_leaves(self, query: LeaveFilter) -> Sequence[LeaveRecord]:
        clauses: list[str] = []
        params: list[object] = []

        if query.employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(str(query.employee_id))
        if query.leave_type is not None:
            clauses.append("leave_type=%s")
            params.append(query.leave_type.value)
        if query.status is not None:
            clauses.append("status=%s")
            params.append(query.status.value)
        if query.start_from is not None:
            clauses.append("start_date>=%s")
            params.append(query.start_from)
        if query.start_to is not None:
            clauses.append("start_date<=%s")
            params.append(query.start_to)

        sql = f"""
            SELECT {_COLUMNS}
            FROM leave_records
            WHERE {build_where(clauses)}
            ORDER BY start_date DESC, leave_id DESC
        """
        if query.limit is not None:
            sql += " LIMIT %s"
            params.append(int(query.limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [_to_record(r) for r in fetchall(cur)]

    def iter_pending(self) -> Iterator[LeaveRecord]:
        # Keyset pagination: each batch is its own short query, nothing held open between yields.
        last_created: Optional[datetime] = None
        last_id = 0
        while True:
            with db_cursor(self._conn_factory) as (_, cur):
                if last_created is None:
                    cur.execute(
                        f"""
                        SELECT {_COLUMNS} FROM leave_records
                        WHERE status=%s
                        ORDER BY created_at, leave_id
                        LIMIT %s
                        """,
                        (LeaveStatus.PENDING.value, self._batch_size),
                    )
                else:
                    cur.execute(
                        f"""
                        SELECT {_COLUMNS} FROM leave_records
                        WHERE status=%s AND (created_at > %s OR (created_at = %s AND leave_id > %s))
                        ORDER BY created_at, leave_id
                        LIMIT %s
                        """,
                        (LeaveStatus.PENDING.value, last_created, last_created, last_id, self._batch_size),
                    )
                batch = [_to_record(r) for r in fetchall(cur)]

            yield from batch
            if len(batch) < self._batch_size:
                return
            last_created, last_id = batch[-1].created_at, batch[-1].leave_id

    def get_annual_entitlement(self, employee_id: str, year: int) -> Optional[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT annual_total FROM leave_entitlements WHERE employee_id=%s AND year=%s",
                (str(employee_id), int(year)),
            )
            r = fetchone(cur)
            return int(r["annual_total"]) if r else None

    def approve(
        self,
        *,
        leave_id: int,
        approved_by: str,
        approved_at: datetime,
        annual_limit: Optional[int] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT employee_id, leave_type, start_date, days, status FROM leave_records WHERE leave_id=%s FOR UPDATE",
                (int(leave_id),),
            )
            row = fetchone(cur)
            if not row or row["status"] != LeaveStatus.PENDING.value:
                return False

            if annual_limit is not None:
                employee_id = str(row["employee_id"])
                year = row["start_date"].year

                # The entitlement row is the per-employee/year lock that serializes annual debits.
                cur.execute(
                    """
                    INSERT INTO leave_entitlements(employee_id, year, annual_total)
                    VALUES(%s,%s,%s)
                    ON DUPLICATE KEY UPDATE annual_total=annual_total
                    """,
                    (employee_id, year, int(annual_limit)),
                )
                cur.execute(
                    "SELECT annual_total FROM leave_entitlements WHERE employee_id=%s AND year=%s FOR UPDATE",
                    (employee_id, year),
                )
                total = int(fetchone(cur)["annual_total"])
                cur.execute(
                    """
                    SELECT COALESCE(SUM(days), 0) AS used
                    FROM leave_records
                    WHERE employee_id=%s AND leave_type=%s AND status=%s
                      AND start_date BETWEEN %s AND %s
                    """,
                    (
                        employee_id,
                        LeaveType.ANNUAL.value,
                        LeaveStatus.APPROVED.value,
                        date(year, 1, 1),
                        date(year, 12, 31),
                    ),
                )
                used = int(fetchone(cur)["used"])
                if used + int(row["days"]) > min(total, int(annual_limit)):
                    return False

            cur.execute(
                """
                UPDATE leave_records
                SET status=%s, approved_by=%s, approved_at=%s
                WHERE leave_id=%s AND status=%s
                """,
                (
                    LeaveStatus.APPROVED.value,
                    str(approved_by),
                    approved_at,
                    int(leave_id),
                    LeaveStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def decide(
        self,
        *,
        leave_id: int,
        status: LeaveStatus,
        decided_by: str,
        decided_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            if status == LeaveStatus.REJECTED:
                cur.execute(
                    """
                    UPDATE leave_records
                    SET status=%s, approved_by=%s, approved_at=%s, rejection_reason=%s
                    WHERE leave_id=%s AND status=%s
                    """,
                    (
                        status.value,
                        str(decided_by),
                        decided_at,
                        rejection_reason,
                        int(leave_id),
                        LeaveStatus.PENDING.value,
                    ),
                )
            else:
                cur.execute(
                    "UPDATE leave_records SET status=%s WHERE leave_id=%s AND status=%s",
                    (status.value, int(leave_id), LeaveStatus.PENDING.value),
                )
            return cur.rowcount > 0
