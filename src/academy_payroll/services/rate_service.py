"""Salary rate administration."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from academy_payroll.calculators.rate_resolver import (
    RateResolver,
    to_resolved_rate,
    validate_rate_input,
)
from academy_payroll.calculators.types import RateFactor, ResolvedRate
from academy_payroll.errors import TeacherNotFoundError
from academy_payroll.models.base import utcnow
from academy_payroll.models.rate import SalaryRate, SalaryRateFactor
from academy_payroll.models.teacher import Teacher
from academy_payroll.services.permissions import Actor, Capability

logger = logging.getLogger(__name__)


class SalaryRateService:
    """Creates and supersedes teacher salary rates.

    An update replaces the base rate and the whole factor list; previous
    values are not retained.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.resolver = RateResolver(session)

    async def set_rate(
        self,
        actor: Actor,
        teacher_id: UUID,
        base_rate: Decimal,
        factors: Sequence[RateFactor] = (),
    ) -> ResolvedRate:
        """Create or fully replace a teacher's rate."""
        actor.require(Capability.MANAGE_RATES)
        validate_rate_input(base_rate, factors)

        teacher = await self.session.get(Teacher, teacher_id)
        if teacher is None:
            raise TeacherNotFoundError(teacher_id)

        rate = await self.resolver.get_rate(teacher_id)
        if rate is None:
            rate = SalaryRate(teacher_id=teacher_id, base_rate=base_rate)
            self.session.add(rate)
        else:
            rate.base_rate = base_rate
            rate.updated_at = utcnow()

        rate.factors = [
            SalaryRateFactor(position=i, name=f.name.strip(), amount=f.amount)
            for i, f in enumerate(factors)
        ]
        await self.session.flush()

        resolved = to_resolved_rate(rate)
        logger.info(
            "Salary rate set: teacher=%s base=%s factors=%d total=%s",
            teacher_id,
            resolved.base_rate,
            len(resolved.factors),
            resolved.total_rate,
        )
        return resolved
