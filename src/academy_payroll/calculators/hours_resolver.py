"""Worked-hours derivation from lesson slots and substitutions."""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from datetime import date
from typing import Protocol
from uuid import UUID

from academy_payroll.calculators.types import (
    ZERO,
    LessonSlotInfo,
    SlotStatus,
    Substitution,
    WorkedHours,
)
from academy_payroll.errors import NoScheduleDataError, PayrollValidationError


class ScheduleProvider(Protocol):
    """Source of lesson slots assigned to a teacher."""

    async def get_slots(
        self, teacher_id: UUID, period_start: date, period_end: date
    ) -> list[LessonSlotInfo]: ...


class SubstitutionProvider(Protocol):
    """Source of substitutions a teacher gave away or took on."""

    async def get_substitutions(
        self, teacher_id: UUID, period_start: date, period_end: date
    ) -> list[Substitution]: ...


def month_bounds(month: int, year: int) -> tuple[date, date]:
    """First and last calendar day of a month."""
    if not 1 <= month <= 12:
        raise PayrollValidationError(f"Month must be in 1..12, got {month}", field="month")
    if year < 1:
        raise PayrollValidationError(f"Invalid year {year}", field="year")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def tally_worked_hours(
    teacher_id: UUID,
    month: int,
    year: int,
    slots: Iterable[LessonSlotInfo],
    substitutions: Iterable[Substitution],
) -> WorkedHours:
    """Classify every slot of the period and sum the four hour buckets.

    Own slots:
    - CANCELLED: ignored
    - otherwise: counted in scheduled hours
    - delivered by a substitute: substituted_by_others
    - delivered by the teacher: worked hours

    Slots of other teachers covered by this teacher count toward
    substituted hours once delivered. Only COMPLETED slots are delivered.
    """
    given_away: set[UUID] = set()
    covered: dict[UUID, LessonSlotInfo] = {}
    for sub in substitutions:
        if sub.original_teacher_id == teacher_id and sub.substitute_teacher_id != teacher_id:
            given_away.add(sub.slot.slot_id)
        elif sub.substitute_teacher_id == teacher_id and sub.original_teacher_id != teacher_id:
            covered[sub.slot.slot_id] = sub.slot

    own: dict[UUID, LessonSlotInfo] = {}
    for slot in slots:
        if slot.teacher_id == teacher_id:
            own[slot.slot_id] = slot
        elif slot.substitute_teacher_id == teacher_id:
            covered.setdefault(slot.slot_id, slot)

    scheduled = ZERO
    worked = ZERO
    substituted = ZERO
    substituted_by_others = ZERO

    for slot in own.values():
        if slot.status == SlotStatus.CANCELLED:
            continue
        duration = slot.duration_hours
        scheduled += duration
        if not slot.is_delivered:
            continue
        away = slot.slot_id in given_away or (
            slot.substitute_teacher_id is not None
            and slot.substitute_teacher_id != teacher_id
        )
        if away:
            substituted_by_others += duration
        else:
            worked += duration

    for slot in covered.values():
        if slot.is_delivered:
            substituted += slot.duration_hours

    return WorkedHours(
        teacher_id=teacher_id,
        month=month,
        year=year,
        scheduled_hours=scheduled,
        worked_hours=worked,
        substituted_hours=substituted,
        substituted_by_others=substituted_by_others,
    )


class WorkedHoursResolver:
    """Derives the hours a teacher actually worked in a month.

    Holds no state between calls: identical schedule and substitution data
    always yields identical figures.
    """

    def __init__(
        self,
        schedule_provider: ScheduleProvider,
        substitution_provider: SubstitutionProvider,
    ):
        self.schedule_provider = schedule_provider
        self.substitution_provider = substitution_provider

    async def resolve(self, teacher_id: UUID, month: int, year: int) -> WorkedHours:
        """Resolve worked hours for a teacher and month.

        Raises:
            NoScheduleDataError: If the teacher has no own slots and covered
                no substitutions in the month
        """
        period_start, period_end = month_bounds(month, year)

        slots = await self.schedule_provider.get_slots(teacher_id, period_start, period_end)
        substitutions = await self.substitution_provider.get_substitutions(
            teacher_id, period_start, period_end
        )

        has_own = any(s.teacher_id == teacher_id for s in slots)
        has_covered = any(
            s.substitute_teacher_id == teacher_id for s in substitutions
        ) or any(s.substitute_teacher_id == teacher_id for s in slots)
        if not has_own and not has_covered:
            raise NoScheduleDataError(teacher_id, month, year)

        return tally_worked_hours(teacher_id, month, year, slots, substitutions)
