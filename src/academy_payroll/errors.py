"""Domain errors raised by the payroll core.

``NotConfiguredError`` and its subclasses are recoverable: callers are
expected to fall back to manual entry rather than report a hard failure.
"""

from __future__ import annotations

from uuid import UUID


class PayrollError(Exception):
    """Base class for payroll domain errors."""

    code = "PAYROLL_ERROR"


class NotConfiguredError(PayrollError):
    """Input data needed for an automatic calculation is missing."""

    code = "NOT_CONFIGURED"


class RateNotConfiguredError(NotConfiguredError):
    """Raised when no salary rate exists for a teacher."""

    def __init__(self, teacher_id: UUID):
        self.teacher_id = teacher_id
        super().__init__(f"No salary rate configured for teacher {teacher_id}")


class NoScheduleDataError(NotConfiguredError):
    """Raised when a teacher has no lesson slots in the period."""

    def __init__(self, teacher_id: UUID, month: int, year: int):
        self.teacher_id = teacher_id
        self.month = month
        self.year = year
        super().__init__(
            f"No schedule data for teacher {teacher_id} in {month:02d}/{year}"
        )


class PayrollValidationError(PayrollError):
    """Raised when input is rejected before calculation."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class PermissionDeniedError(PayrollError):
    """Raised when an actor lacks the capability for an operation."""

    code = "PERMISSION_DENIED"

    def __init__(self, actor_id: UUID | None, capability: str):
        self.actor_id = actor_id
        self.capability = capability
        super().__init__(f"Actor {actor_id} lacks capability '{capability}'")


class TeacherNotFoundError(PayrollError):
    code = "TEACHER_NOT_FOUND"

    def __init__(self, teacher_id: UUID):
        self.teacher_id = teacher_id
        super().__init__(f"Teacher {teacher_id} not found")


class SalaryNotFoundError(PayrollError):
    code = "SALARY_NOT_FOUND"

    def __init__(self, salary_id: UUID):
        self.salary_id = salary_id
        super().__init__(f"Salary record {salary_id} not found")


class DuplicateSalaryError(PayrollError):
    """Raised when a record already exists for the teacher and period."""

    code = "DUPLICATE_SALARY"

    def __init__(self, teacher_id: UUID, month: int, year: int):
        self.teacher_id = teacher_id
        self.month = month
        self.year = year
        super().__init__(
            f"Salary for teacher {teacher_id} for {month:02d}/{year} already exists"
        )


class ConcurrentModificationError(PayrollError):
    """Raised when a salary record changed underneath a write."""

    code = "CONCURRENT_MODIFICATION"

    def __init__(self, salary_id: UUID):
        self.salary_id = salary_id
        super().__init__(f"Salary record {salary_id} was modified concurrently")
