"""Salary workflow and persistence services."""

from academy_payroll.services.export_service import export_csv
from academy_payroll.services.hours_service import WorkedHoursService, WorkedHoursStats
from academy_payroll.services.permissions import Actor, Capability, Role
from academy_payroll.services.rate_service import SalaryRateService
from academy_payroll.services.salary_service import (
    BatchRecalculationResult,
    SalaryService,
    SalaryStatistics,
    TeacherOutcome,
)
from academy_payroll.services.state_machine import (
    InvalidTransitionError,
    SalaryStateMachine,
    SalaryStatus,
)
from academy_payroll.services.workflow import SalaryWorkflow, TransitionResult

__all__ = [
    "export_csv",
    "WorkedHoursService",
    "WorkedHoursStats",
    "Actor",
    "Capability",
    "Role",
    "SalaryRateService",
    "BatchRecalculationResult",
    "SalaryService",
    "SalaryStatistics",
    "TeacherOutcome",
    "InvalidTransitionError",
    "SalaryStateMachine",
    "SalaryStatus",
    "SalaryWorkflow",
    "TransitionResult",
]
