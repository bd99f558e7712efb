"""Type definitions for the salary calculation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

ZERO = Decimal("0")


class AdjustmentKind(str, Enum):
    """Salary adjustment categories."""

    ALLOWANCE = "ALLOWANCE"
    BONUS = "BONUS"
    DEDUCTION = "DEDUCTION"


class SlotStatus(str, Enum):
    """Lesson slot status values."""

    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    POSTPONED = "POSTPONED"
    RESCHEDULED = "RESCHEDULED"
    MOVED = "MOVED"


@dataclass(frozen=True)
class RateFactor:
    """Additive per-hour increment on top of the base rate."""

    name: str
    amount: Decimal


@dataclass(frozen=True)
class ResolvedRate:
    """A teacher's effective hourly rate."""

    teacher_id: UUID | None
    base_rate: Decimal
    factors: tuple[RateFactor, ...] = ()

    @property
    def total_rate(self) -> Decimal:
        return self.base_rate + sum((f.amount for f in self.factors), ZERO)


@dataclass(frozen=True)
class LessonSlotInfo:
    """A scheduled lesson slot as reported by the schedule provider."""

    slot_id: UUID
    teacher_id: UUID
    lesson_date: date
    start_time: time
    end_time: time
    status: SlotStatus = SlotStatus.SCHEDULED
    substitute_teacher_id: UUID | None = None

    @property
    def duration_hours(self) -> Decimal:
        """Slot length in hours, unrounded."""
        start = datetime.combine(self.lesson_date, self.start_time)
        end = datetime.combine(self.lesson_date, self.end_time)
        seconds = Decimal(int((end - start).total_seconds()))
        return seconds / Decimal(3600)

    @property
    def is_delivered(self) -> bool:
        return self.status == SlotStatus.COMPLETED


@dataclass(frozen=True)
class Substitution:
    """A slot delivered by a teacher other than the one scheduled."""

    slot: LessonSlotInfo
    original_teacher_id: UUID
    substitute_teacher_id: UUID


@dataclass(frozen=True)
class WorkedHours:
    """Derived attendance of a teacher for one month."""

    teacher_id: UUID
    month: int
    year: int
    scheduled_hours: Decimal = ZERO
    worked_hours: Decimal = ZERO
    substituted_hours: Decimal = ZERO
    substituted_by_others: Decimal = ZERO

    @property
    def total_usable_hours(self) -> Decimal:
        """Hours multiplicand used for base salary."""
        return self.worked_hours + self.substituted_hours

    def to_dict(self) -> dict[str, Any]:
        return {
            "teacher_id": str(self.teacher_id),
            "month": self.month,
            "year": self.year,
            "scheduled_hours": str(self.scheduled_hours),
            "worked_hours": str(self.worked_hours),
            "substituted_hours": str(self.substituted_hours),
            "substituted_by_others": str(self.substituted_by_others),
            "total_usable_hours": str(self.total_usable_hours),
        }


@dataclass(frozen=True)
class Adjustment:
    """Allowance, bonus or deduction line item.

    ``amount`` is a flat value, or a percentage of base salary when
    ``is_percentage`` is set. ``category`` is for reporting only.
    """

    name: str
    amount: Decimal
    is_percentage: bool = False
    comment: str | None = None
    category: str | None = None

    @property
    def is_complete(self) -> bool:
        return bool(self.name and self.name.strip()) and self.amount != 0


@dataclass
class SalaryBreakdown:
    """Result of a salary calculation. All amounts are unrounded."""

    base_salary: Decimal
    total_allowances: Decimal = ZERO
    total_bonuses: Decimal = ZERO
    total_deductions: Decimal = ZERO
    hourly_rate: Decimal | None = None
    hours_worked: Decimal | None = None
    allowances: list[Adjustment] = field(default_factory=list)
    bonuses: list[Adjustment] = field(default_factory=list)
    deductions: list[Adjustment] = field(default_factory=list)

    @property
    def total_gross(self) -> Decimal:
        return self.base_salary + self.total_allowances + self.total_bonuses

    @property
    def total_net(self) -> Decimal:
        return self.total_gross - self.total_deductions
