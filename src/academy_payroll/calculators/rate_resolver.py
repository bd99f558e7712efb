"""Hourly rate resolution from base rate plus additive factors."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from academy_payroll.calculators.types import ZERO, RateFactor, ResolvedRate
from academy_payroll.errors import PayrollValidationError, RateNotConfiguredError
from academy_payroll.models.rate import SalaryRate


def compute_total_rate(base_rate: Decimal, factors: Iterable[RateFactor]) -> Decimal:
    """Total hourly rate: base rate plus the sum of factor amounts."""
    return base_rate + sum((f.amount for f in factors), ZERO)


def validate_rate_input(base_rate: Decimal, factors: Sequence[RateFactor]) -> None:
    """Reject rate input that must not reach the calculator.

    Raises:
        PayrollValidationError: base rate not positive, a factor amount is
            negative, or a factor has no name
    """
    if base_rate <= 0:
        raise PayrollValidationError(
            f"Base rate must be greater than 0, got {base_rate}", field="base_rate"
        )
    for i, factor in enumerate(factors):
        if not factor.name or not factor.name.strip():
            raise PayrollValidationError(
                f"Factor {i} has no name", field=f"factors[{i}].name"
            )
        if factor.amount < 0:
            raise PayrollValidationError(
                f"Factor '{factor.name}' has negative amount {factor.amount}",
                field=f"factors[{i}].amount",
            )


def to_resolved_rate(rate: SalaryRate) -> ResolvedRate:
    """Convert a persisted rate into a calculation value."""
    return ResolvedRate(
        teacher_id=rate.teacher_id,
        base_rate=rate.base_rate,
        factors=tuple(RateFactor(name=f.name, amount=f.amount) for f in rate.factors),
    )


class RateResolver:
    """Resolves a teacher's effective hourly rate.

    The total rate is never stored; it is recomputed from the base rate and
    the ordered factor list on every resolution.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve(self, teacher_id: UUID) -> ResolvedRate:
        """Resolve the rate for a teacher.

        Raises:
            RateNotConfiguredError: If the teacher has no rate; callers fall
                back to manual entry
        """
        rate = await self.get_rate(teacher_id)
        if rate is None:
            raise RateNotConfiguredError(teacher_id)
        return to_resolved_rate(rate)

    async def get_rate(self, teacher_id: UUID) -> SalaryRate | None:
        """Load the persisted rate row, if any."""
        result = await self.session.execute(
            select(SalaryRate).where(SalaryRate.teacher_id == teacher_id)
        )
        return result.scalar_one_or_none()
