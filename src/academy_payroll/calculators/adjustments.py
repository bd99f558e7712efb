"""Monetary effect of allowances, bonuses and deductions."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal

from academy_payroll.calculators.types import ZERO, Adjustment
from academy_payroll.errors import PayrollValidationError

HUNDRED = Decimal("100")


class AdjustmentEngine:
    """Computes effective adjustment amounts.

    Conventions:
    - Flat adjustment: effective value is the amount itself
    - Percentage adjustment: effective value is base_salary * amount / 100
    - Percentages always apply to base salary, never to a running gross,
      so the order of adjustments does not matter
    - Percentages outside 0..100 are taken as given
    - Rows with a blank name or zero amount are incomplete and contribute
      nothing
    """

    @staticmethod
    def effective_amount(adjustment: Adjustment, base_salary: Decimal) -> Decimal:
        """Monetary value of a single adjustment."""
        if adjustment.is_percentage:
            return base_salary * adjustment.amount / HUNDRED
        return adjustment.amount

    @staticmethod
    def apply(adjustments: Iterable[Adjustment], base_salary: Decimal) -> Decimal:
        """Sum of effective amounts over complete adjustments."""
        total = ZERO
        for adjustment in adjustments:
            if not adjustment.is_complete:
                continue
            total += AdjustmentEngine.effective_amount(adjustment, base_salary)
        return total

    @staticmethod
    def validate(adjustments: Sequence[Adjustment], field: str = "adjustments") -> list[str]:
        """Validate adjustments, returning error messages (empty if valid)."""
        errors: list[str] = []
        for i, adjustment in enumerate(adjustments):
            if adjustment.amount < 0:
                errors.append(
                    f"{field}[{i}] has negative amount {adjustment.amount}"
                )
            blank_name = not adjustment.name or not adjustment.name.strip()
            if blank_name and adjustment.amount != 0:
                errors.append(f"{field}[{i}] has an amount but no name")
        return errors

    @staticmethod
    def finalize(adjustments: Sequence[Adjustment], field: str = "adjustments") -> list[Adjustment]:
        """Validate adjustments and drop incomplete rows before persistence.

        Raises:
            PayrollValidationError: On negative amounts or unnamed amounts
        """
        errors = AdjustmentEngine.validate(adjustments, field)
        if errors:
            raise PayrollValidationError("; ".join(errors), field=field)
        return [a for a in adjustments if a.is_complete]
