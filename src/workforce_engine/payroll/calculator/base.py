from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Sequence

from ..model import PayLine, PayrollTotals


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
    def default_overtime_rate(self, base_salary: Decimal) -> Decimal:
        raise NotImplementedError

    @abstractmethod
    def totals(
        self,
        *,
        base_salary: Decimal,
        allowances: Sequence[PayLine],
        deductions: Sequence[PayLine],
        bonuses: Sequence[PayLine],
        overtime_hours: Decimal,
        overtime_rate: Decimal,
    ) -> PayrollTotals:
        raise NotImplementedError
