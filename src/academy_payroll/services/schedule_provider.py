"""Lesson-slot backed schedule and substitution providers."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from academy_payroll.calculators.types import LessonSlotInfo, SlotStatus, Substitution
from academy_payroll.models.schedule import LessonSlot


def to_slot_info(slot: LessonSlot) -> LessonSlotInfo:
    return LessonSlotInfo(
        slot_id=slot.slot_id,
        teacher_id=slot.teacher_id,
        lesson_date=slot.lesson_date,
        start_time=slot.start_time,
        end_time=slot.end_time,
        status=SlotStatus(slot.status),
        substitute_teacher_id=slot.substitute_teacher_id,
    )


class SqlScheduleProvider:
    """Slots assigned to a teacher within a date range."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_slots(
        self, teacher_id: UUID, period_start: date, period_end: date
    ) -> list[LessonSlotInfo]:
        result = await self.session.execute(
            select(LessonSlot)
            .where(
                LessonSlot.teacher_id == teacher_id,
                LessonSlot.lesson_date >= period_start,
                LessonSlot.lesson_date <= period_end,
            )
            .order_by(LessonSlot.lesson_date, LessonSlot.start_time)
        )
        return [to_slot_info(s) for s in result.scalars().all()]


class SqlSubstitutionProvider:
    """Substitutions in both directions: slots given away and slots covered."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_substitutions(
        self, teacher_id: UUID, period_start: date, period_end: date
    ) -> list[Substitution]:
        result = await self.session.execute(
            select(LessonSlot)
            .where(
                LessonSlot.substitute_teacher_id.is_not(None),
                or_(
                    LessonSlot.teacher_id == teacher_id,
                    LessonSlot.substitute_teacher_id == teacher_id,
                ),
                LessonSlot.lesson_date >= period_start,
                LessonSlot.lesson_date <= period_end,
            )
            .order_by(LessonSlot.lesson_date, LessonSlot.start_time)
        )
        return [
            Substitution(
                slot=to_slot_info(s),
                original_teacher_id=s.teacher_id,
                substitute_teacher_id=s.substitute_teacher_id,
            )
            for s in result.scalars().all()
            if s.substitute_teacher_id is not None
        ]
