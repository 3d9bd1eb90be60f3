from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import PayrollStatus
from .model import PayrollDraft, PayrollFilter, PayrollRecord


class PayrollRepository(Protocol):
    def create(self, draft: PayrollDraft, *, created_at: datetime) -> Optional[PayrollRecord]:
        """Insert a draft record; None when the employee already has one for the period."""

        raise NotImplementedError

    def update_computation(
        self,
        *,
        payroll_id: int,
        draft: PayrollDraft,
        updated_at: datetime,
        editable: Iterable[PayrollStatus],
    ) -> bool:
        """Overwrite figures and reset status to draft, only while status is in ``editable``."""

        raise NotImplementedError

    def get(self, payroll_id: int) -> Optional[PayrollRecord]:
        raise NotImplementedError

    def get_for_employee_period(self, employee_id: str, year: int, month: int) -> Optional[PayrollRecord]:
        raise NotImplementedError

    def list_for_period(
        self, year: int, month: int, status: Optional[PayrollStatus] = None
    ) -> Sequence[PayrollRecord]:
        raise NotImplementedError

    def list_keys_for_period(
        self, year: int, month: int, status: Optional[PayrollStatus] = None
    ) -> Sequence[tuple[int, str]]:
        """(payroll_id, employee_id) pairs for the period, without decoding the records."""

        raise NotImplementedError

    def list_payrolls(self, query: PayrollFilter) -> Sequence[PayrollRecord]:
        raise NotImplementedError

    def transition(
        self,
        *,
        payroll_id: int,
        expected: PayrollStatus,
        new: PayrollStatus,
        changed_at: datetime,
        paid_at: Optional[datetime] = None,
    ) -> bool:
        """Compare-and-swap status change; False when the record is no longer ``expected``."""

        raise NotImplementedError
