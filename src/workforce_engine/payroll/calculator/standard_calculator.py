from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from ...core import constants
from ..model import PayLine, PayrollTotals, to_cents
from .base import PayrollCalculator


def _sum(lines: Sequence[PayLine]) -> Decimal:
    return sum((line.amount for line in lines), Decimal("0"))


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule.

    gross = base + allowances + bonuses + overtime_hours * overtime_rate
    net   = gross - deductions (may go negative; never clamped here)

    Overtime pay and every total are rounded half-up to cents.
    """

    def __init__(
        self,
        *,
        monthly_working_days: int = constants.DEFAULT_MONTHLY_WORKING_DAYS,
        standard_hours_per_day: float = constants.DEFAULT_STANDARD_HOURS_PER_DAY,
        overtime_multiplier: Decimal = constants.DEFAULT_OVERTIME_MULTIPLIER,
    ):
        self._monthly_hours = Decimal(int(monthly_working_days)) * Decimal(str(standard_hours_per_day))
        self._multiplier = Decimal(str(overtime_multiplier))

    @classmethod
    def from_settings(cls, settings) -> "StandardPayrollCalculator":
        return cls(
            monthly_working_days=settings.monthly_working_days,
            standard_hours_per_day=settings.standard_hours_per_day,
            overtime_multiplier=settings.overtime_multiplier,
        )

    def default_overtime_rate(self, base_salary: Decimal) -> Decimal:
        if self._monthly_hours <= 0:
            return Decimal("0.00")
        return to_cents(Decimal(base_salary) / self._monthly_hours * self._multiplier)

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
        overtime_pay = to_cents(Decimal(overtime_hours) * Decimal(overtime_rate))
        gross = to_cents(Decimal(base_salary) + _sum(allowances) + _sum(bonuses) + overtime_pay)
        total_deductions = to_cents(_sum(deductions))
        return PayrollTotals(
            total_gross=gross,
            total_deductions=total_deductions,
            net_salary=gross - total_deductions,
        )
