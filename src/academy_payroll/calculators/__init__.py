"""Salary calculation core."""

from academy_payroll.calculators.adjustments import AdjustmentEngine
from academy_payroll.calculators.hours_resolver import (
    ScheduleProvider,
    SubstitutionProvider,
    WorkedHoursResolver,
    tally_worked_hours,
)
from academy_payroll.calculators.rate_resolver import RateResolver, compute_total_rate
from academy_payroll.calculators.salary_calculator import SalaryCalculator, round_for_display

__all__ = [
    "AdjustmentEngine",
    "RateResolver",
    "compute_total_rate",
    "ScheduleProvider",
    "SubstitutionProvider",
    "WorkedHoursResolver",
    "tally_worked_hours",
    "SalaryCalculator",
    "round_for_display",
]
