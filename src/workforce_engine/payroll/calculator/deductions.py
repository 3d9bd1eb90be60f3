"""Automatic statutory deductions, appended after the caller's own lines.

Disabled unless ENGINE["STATUTORY_DEDUCTIONS"] is set.
"""

from __future__ import annotations

from decimal import Decimal

from ..model import PayLine, to_cents

HEALTH_INSURANCE_RATE = Decimal("0.05")
RETIREMENT_PLAN_RATE = Decimal("0.10")
SOCIAL_SECURITY_RATE = Decimal("0.08")

# (threshold, rate): only the first bracket the gross exceeds applies, on the excess over it.
INCOME_TAX_BRACKETS: tuple[tuple[Decimal, Decimal], ...] = (
    (Decimal("5000"), Decimal("0.25")),
    (Decimal("2000"), Decimal("0.15")),
    (Decimal("1000"), Decimal("0.10")),
)


def income_tax(total_gross: Decimal) -> Decimal:
    for threshold, rate in INCOME_TAX_BRACKETS:
        if total_gross > threshold:
            return to_cents((total_gross - threshold) * rate)
    return Decimal("0.00")


class StatutoryDeductions:
    def lines(
        self,
        *,
        base_salary: Decimal,
        total_gross: Decimal,
        health_insurance: bool = False,
        retirement_plan: bool = False,
    ) -> list[PayLine]:
        out: list[PayLine] = []
        if health_insurance:
            out.append(PayLine("health_insurance", to_cents(base_salary * HEALTH_INSURANCE_RATE)))
        if retirement_plan:
            out.append(PayLine("retirement_plan", to_cents(base_salary * RETIREMENT_PLAN_RATE)))
        out.append(PayLine("social_security", to_cents(base_salary * SOCIAL_SECURITY_RATE)))

        tax = income_tax(total_gross)
        if tax > 0:
            out.append(PayLine("income_tax", tax))
        return out
