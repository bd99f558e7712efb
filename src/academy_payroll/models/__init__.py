"""ORM models."""

from academy_payroll.models.base import Base, TimestampMixin
from academy_payroll.models.rate import SalaryRate, SalaryRateFactor
from academy_payroll.models.salary import SalaryAdjustment, SalaryAuditEvent, SalaryRecord
from academy_payroll.models.schedule import LessonSlot, TeacherWorkedHours
from academy_payroll.models.teacher import Teacher

__all__ = [
    "Base",
    "TimestampMixin",
    "Teacher",
    "SalaryRate",
    "SalaryRateFactor",
    "LessonSlot",
    "TeacherWorkedHours",
    "SalaryRecord",
    "SalaryAdjustment",
    "SalaryAuditEvent",
]
