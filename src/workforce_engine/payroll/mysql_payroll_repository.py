from __future__ import annotations

import json
from datetime import datetime
from typing import Iterable, Optional, Sequence

import mysql.connector

from ..core.enums import PayrollStatus
from ..core.exceptions import CorruptRecordError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, build_where, db_cursor, fetchall, fetchone
from .model import PayLine, PayrollDraft, PayrollFilter, PayrollRecord
from .repository import PayrollRepository

_COLUMNS = """
    payroll_id, employee_id, period_year, period_month, base_salary,
    allowances, deductions, bonuses, overtime_hours, overtime_rate,
    total_gross, total_deductions, net_salary, status, paid_at, created_at, updated_at
"""


def _dump_lines(lines: Iterable[PayLine]) -> str:
    return json.dumps([{"type": line.type, "amount": str(line.amount)} for line in lines])


def _load_lines(raw) -> tuple[PayLine, ...]:
    if raw is None:
        return ()
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    items = json.loads(raw) if isinstance(raw, str) else raw
    return tuple(PayLine(str(i["type"]), as_decimal(i["amount"])) for i in items)


def _to_record(r: dict) -> PayrollRecord:
    try:
        return PayrollRecord(
            payroll_id=int(r["payroll_id"]),
            employee_id=str(r["employee_id"]),
            year=int(r["period_year"]),
            month=int(r["period_month"]),
            base_salary=as_decimal(r["base_salary"]),
            allowances=_load_lines(r.get("allowances")),
            deductions=_load_lines(r.get("deductions")),
            bonuses=_load_lines(r.get("bonuses")),
            overtime_hours=as_decimal(r.get("overtime_hours")),
            overtime_rate=as_decimal(r.get("overtime_rate")),
            total_gross=as_decimal(r["total_gross"]),
            total_deductions=as_decimal(r["total_deductions"]),
            net_salary=as_decimal(r["net_salary"]),
            status=PayrollStatus(r["status"]),
            created_at=r["created_at"],
            updated_at=r["updated_at"],
            paid_at=r.get("paid_at"),
        )
    except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
        # json.JSONDecodeError is a ValueError, decimal.InvalidOperation an ArithmeticError.
        raise CorruptRecordError(f"Payroll {r.get('payroll_id')} could not be decoded: {exc!r}") from exc


class MySQLPayrollRepository(PayrollRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, draft: PayrollDraft, *, created_at: datetime) -> Optional[PayrollRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            try:
                cur.execute(
                    """
                    INSERT INTO payroll_records(
                        employee_id, period_year, period_month, base_salary,
                        allowances, deductions, bonuses, overtime_hours, overtime_rate,
                        total_gross, total_deductions, net_salary, status, created_at, updated_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (
                        draft.employee_id,
                        draft.year,
                        draft.month,
                        draft.base_salary,
                        _dump_lines(draft.allowances),
                        _dump_lines(draft.deductions),
                        _dump_lines(draft.bonuses),
                        draft.overtime_hours,
                        draft.overtime_rate,
                        draft.totals.total_gross,
                        draft.totals.total_deductions,
                        draft.totals.net_salary,
                        PayrollStatus.DRAFT.value,
                        created_at,
                        created_at,
                    ),
                )
            except mysql.connector.IntegrityError:
                # uq_payroll_employee_period
                return None
            payroll_id = int(cur.lastrowid)

        return PayrollRecord(
            payroll_id=payroll_id,
            employee_id=draft.employee_id,
            year=draft.year,
            month=draft.month,
            base_salary=draft.base_salary,
            allowances=draft.allowances,
            deductions=draft.deductions,
            bonuses=draft.bonuses,
            overtime_hours=draft.overtime_hours,
            overtime_rate=draft.overtime_rate,
            total_gross=draft.totals.total_gross,
            total_deductions=draft.totals.total_deductions,
            net_salary=draft.totals.net_salary,
            status=PayrollStatus.DRAFT,
            created_at=created_at,
            updated_at=created_at,
        )

    def update_computation(
        self,
        *,
        payroll_id: int,
        draft: PayrollDraft,
        updated_at: datetime,
        editable: Iterable[PayrollStatus],
    ) -> bool:
        status_values = [s.value for s in editable]
        if not status_values:
            return False
        placeholders = ",".join(["%s"] * len(status_values))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE payroll_records
                SET base_salary=%s, allowances=%s, deductions=%s, bonuses=%s,
                    overtime_hours=%s, overtime_rate=%s,
                    total_gross=%s, total_deductions=%s, net_salary=%s,
                    status=%s, updated_at=%s
                WHERE payroll_id=%s AND status IN ({placeholders})
                """,
                tuple(
                    [
                        draft.base_salary,
                        _dump_lines(draft.allowances),
                        _dump_lines(draft.deductions),
                        _dump_lines(draft.bonuses),
                        draft.overtime_hours,
                        draft.overtime_rate,
                        draft.totals.total_gross,
                        draft.totals.total_deductions,
                        draft.totals.net_salary,
                        PayrollStatus.DRAFT.value,
                        updated_at,
                        int(payroll_id),
                    ]
                    + status_values
                ),
            )
            return cur.rowcount > 0

    def get(self, payroll_id: int) -> Optional[PayrollRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM payroll_records WHERE payroll_id=%s", (int(payroll_id),))
            r = fetchone(cur)
            return _to_record(r) if r else None

    def get_for_employee_period(self, employee_id: str, year: int, month: int) -> Optional[PayrollRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM payroll_records
                WHERE employee_id=%s AND period_year=%s AND period_month=%s
                """,
                (str(employee_id), int(year), int(month)),
            )
            r = fetchone(cur)
            return _to_record(r) if r else None

    def list_for_period(
        self, year: int, month: int, status: Optional[PayrollStatus] = None
    ) -> Sequence[PayrollRecord]:
        clauses = ["period_year=%s", "period_month=%s"]
        params: list[object] = [int(year), int(month)]
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM payroll_records
                WHERE {build_where(clauses)}
                ORDER BY employee_id
                """,
                tuple(params),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_keys_for_period(
        self, year: int, month: int, status: Optional[PayrollStatus] = None
    ) -> Sequence[tuple[int, str]]:
        clauses = ["period_year=%s", "period_month=%s"]
        params: list[object] = [int(year), int(month)]
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT payroll_id, employee_id FROM payroll_records
                WHERE {build_where(clauses)}
                ORDER BY employee_id
                """,
                tuple(params),
            )
            return [(int(r["payroll_id"]), str(r["employee_id"])) for r in fetchall(cur)]

    def list_payrolls(self, query: PayrollFilter) -> Sequence[PayrollRecord]:
        clauses: list[str] = []
        params: list[object] = []

        if query.employee_id is not None:
            clauses.append("employee_id=%s")
            params.append(str(query.employee_id))
        if query.year is not None:
            clauses.append("period_year=%s")
            params.append(int(query.year))
        if query.month is not None:
            clauses.append("period_month=%s")
            params.append(int(query.month))
        if query.status is not None:
            clauses.append("status=%s")
            params.append(query.status.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM payroll_records
                WHERE {build_where(clauses)}
                ORDER BY period_year DESC, period_month DESC, employee_id
                LIMIT %s
                """,
                tuple(params + [int(query.limit)]),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def transition(
        self,
        *,
        payroll_id: int,
        expected: PayrollStatus,
        new: PayrollStatus,
        changed_at: datetime,
        paid_at: Optional[datetime] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            if paid_at is not None:
                cur.execute(
                    """
                    UPDATE payroll_records SET status=%s, paid_at=%s, updated_at=%s
                    WHERE payroll_id=%s AND status=%s
                    """,
                    (new.value, paid_at, changed_at, int(payroll_id), expected.value),
                )
            else:
                cur.execute(
                    """
                    UPDATE payroll_records SET status=%s, updated_at=%s
                    WHERE payroll_id=%s AND status=%s
                    """,
                    (new.value, changed_at, int(payroll_id), expected.value),
                )
            return cur.rowcount > 0
