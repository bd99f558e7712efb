"""Worked-hours calculation with a per-month cache."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy_payroll.calculators.hours_resolver import WorkedHoursResolver
from academy_payroll.calculators.types import ZERO, WorkedHours
from academy_payroll.models.base import utcnow
from academy_payroll.models.schedule import TeacherWorkedHours
from academy_payroll.services.schedule_provider import (
    SqlScheduleProvider,
    SqlSubstitutionProvider,
)

logger = logging.getLogger(__name__)


@dataclass
class WorkedHoursStats:
    """Yearly worked-hours totals for a teacher."""

    teacher_id: UUID
    year: int
    total_scheduled: Decimal = ZERO
    total_worked: Decimal = ZERO
    total_substituted: Decimal = ZERO
    total_substituted_by_others: Decimal = ZERO
    months: list[WorkedHours] = field(default_factory=list)

    @property
    def efficiency(self) -> Decimal:
        """Worked hours as a percentage of scheduled hours."""
        if self.total_scheduled <= 0:
            return ZERO
        return self.total_worked / self.total_scheduled * 100


def _from_row(row: TeacherWorkedHours) -> WorkedHours:
    return WorkedHours(
        teacher_id=row.teacher_id,
        month=row.month,
        year=row.year,
        scheduled_hours=row.scheduled_hours,
        worked_hours=row.worked_hours,
        substituted_hours=row.substituted_hours,
        substituted_by_others=row.substituted_by_others,
    )


class WorkedHoursService:
    """Computes worked hours from the schedule and caches the result."""

    def __init__(self, session: AsyncSession, resolver: WorkedHoursResolver | None = None):
        self.session = session
        self.resolver = resolver or WorkedHoursResolver(
            SqlScheduleProvider(session), SqlSubstitutionProvider(session)
        )

    async def calculate_and_save(self, teacher_id: UUID, month: int, year: int) -> WorkedHours:
        """Recompute worked hours and upsert the cache row."""
        hours = await self.resolver.resolve(teacher_id, month, year)

        row = await self._get_row(teacher_id, month, year)
        if row is None:
            row = TeacherWorkedHours(teacher_id=teacher_id, month=month, year=year)
            self.session.add(row)
        row.scheduled_hours = hours.scheduled_hours
        row.worked_hours = hours.worked_hours
        row.substituted_hours = hours.substituted_hours
        row.substituted_by_others = hours.substituted_by_others
        row.calculated_at = utcnow()
        await self.session.flush()

        logger.debug(
            "Worked hours cached: teacher=%s period=%02d/%d usable=%s",
            teacher_id,
            month,
            year,
            hours.total_usable_hours,
        )
        return hours

    async def get_cached(self, teacher_id: UUID, month: int, year: int) -> WorkedHours | None:
        row = await self._get_row(teacher_id, month, year)
        return _from_row(row) if row is not None else None

    async def yearly_stats(self, teacher_id: UUID, year: int) -> WorkedHoursStats:
        result = await self.session.execute(
            select(TeacherWorkedHours)
            .where(
                TeacherWorkedHours.teacher_id == teacher_id,
                TeacherWorkedHours.year == year,
            )
            .order_by(TeacherWorkedHours.month)
        )
        stats = WorkedHoursStats(teacher_id=teacher_id, year=year)
        for row in result.scalars().all():
            hours = _from_row(row)
            stats.months.append(hours)
            stats.total_scheduled += hours.scheduled_hours
            stats.total_worked += hours.worked_hours
            stats.total_substituted += hours.substituted_hours
            stats.total_substituted_by_others += hours.substituted_by_others
        return stats

    async def _get_row(self, teacher_id: UUID, month: int, year: int) -> TeacherWorkedHours | None:
        result = await self.session.execute(
            select(TeacherWorkedHours).where(
                TeacherWorkedHours.teacher_id == teacher_id,
                TeacherWorkedHours.month == month,
                TeacherWorkedHours.year == year,
            )
        )
        return result.scalar_one_or_none()
