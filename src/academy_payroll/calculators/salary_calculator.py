"""Salary calculation: base salary, gross and net."""

from __future__ import annotations

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal

from academy_payroll.calculators.adjustments import AdjustmentEngine
from academy_payroll.calculators.types import (
    Adjustment,
    ResolvedRate,
    SalaryBreakdown,
    WorkedHours,
)


def round_for_display(amount: Decimal, quantum: Decimal = Decimal("1")) -> Decimal:
    """Round a final amount for display. Never used between calculation steps."""
    return amount.quantize(quantum, rounding=ROUND_HALF_UP)


class SalaryCalculator:
    """Pure salary calculation.

    Pipeline:
    1) base_salary = rate.total_rate * hours.total_usable_hours
    2) allowances, bonuses and deductions evaluated against base_salary
    3) total_gross = base_salary + allowances + bonuses
    4) total_net = total_gross - deductions

    No intermediate rounding is applied.
    """

    @staticmethod
    def calculate(
        rate: ResolvedRate,
        hours: WorkedHours,
        allowances: Sequence[Adjustment] = (),
        bonuses: Sequence[Adjustment] = (),
        deductions: Sequence[Adjustment] = (),
    ) -> SalaryBreakdown:
        """Calculate a salary from a resolved rate and worked hours."""
        hourly_rate = rate.total_rate
        hours_worked = hours.total_usable_hours
        breakdown = SalaryCalculator.calculate_from_base(
            hourly_rate * hours_worked, allowances, bonuses, deductions
        )
        breakdown.hourly_rate = hourly_rate
        breakdown.hours_worked = hours_worked
        return breakdown

    @staticmethod
    def calculate_from_base(
        base_salary: Decimal,
        allowances: Sequence[Adjustment] = (),
        bonuses: Sequence[Adjustment] = (),
        deductions: Sequence[Adjustment] = (),
    ) -> SalaryBreakdown:
        """Recompute totals for a known base salary."""
        return SalaryBreakdown(
            base_salary=base_salary,
            total_allowances=AdjustmentEngine.apply(allowances, base_salary),
            total_bonuses=AdjustmentEngine.apply(bonuses, base_salary),
            total_deductions=AdjustmentEngine.apply(deductions, base_salary),
            allowances=[a for a in allowances if a.is_complete],
            bonuses=[a for a in bonuses if a.is_complete],
            deductions=[a for a in deductions if a.is_complete],
        )
