"""Integration tests for rate administration and the worked-hours cache."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from academy_payroll.calculators.rate_resolver import RateResolver
from academy_payroll.calculators.types import RateFactor
from academy_payroll.errors import (
    NoScheduleDataError,
    PayrollValidationError,
    PermissionDeniedError,
    TeacherNotFoundError,
)
from academy_payroll.services.hours_service import WorkedHoursService
from academy_payroll.services.rate_service import SalaryRateService


class TestSalaryRateService:
    """Test creating and superseding rates."""

    async def test_create_rate(self, session, admin, teacher):
        resolved = await SalaryRateService(session).set_rate(
            admin,
            teacher.teacher_id,
            Decimal("12000"),
            [RateFactor("Category", Decimal("2000")), RateFactor("Experience", Decimal("1000"))],
        )

        assert resolved.total_rate == Decimal("15000")
        stored = await RateResolver(session).resolve(teacher.teacher_id)
        assert [f.name for f in stored.factors] == ["Category", "Experience"]

    async def test_update_replaces_factors(self, session, admin, teacher):
        service = SalaryRateService(session)
        await service.set_rate(
            admin, teacher.teacher_id, Decimal("12000"), [RateFactor("Category", Decimal("2000"))]
        )

        resolved = await service.set_rate(
            admin, teacher.teacher_id, Decimal("13000"), [RateFactor("Night", Decimal("500"))]
        )

        assert resolved.base_rate == Decimal("13000")
        assert [f.name for f in resolved.factors] == ["Night"]
        assert resolved.total_rate == Decimal("13500")

    async def test_non_positive_base_rejected(self, session, admin, teacher):
        with pytest.raises(PayrollValidationError):
            await SalaryRateService(session).set_rate(admin, teacher.teacher_id, Decimal("0"))

    async def test_unknown_teacher(self, session, admin):
        with pytest.raises(TeacherNotFoundError):
            await SalaryRateService(session).set_rate(admin, uuid4(), Decimal("1000"))

    async def test_teacher_role_cannot_manage_rates(self, session, teacher_actor, teacher):
        with pytest.raises(PermissionDeniedError):
            await SalaryRateService(session).set_rate(
                teacher_actor, teacher.teacher_id, Decimal("1000")
            )


class TestWorkedHoursService:
    """Test hours derived from lesson slots."""

    async def test_substitution_in_both_directions(
        self, session, make_teacher, add_slot
    ):
        """Covering a colleague adds hours; being covered removes them."""
        main = await make_teacher("Main")
        colleague = await make_teacher("Colleague")
        await add_slot(main.teacher_id, date(2024, 3, 4))
        await add_slot(main.teacher_id, date(2024, 3, 5), substitute_teacher_id=colleague.teacher_id)
        await add_slot(colleague.teacher_id, date(2024, 3, 6), substitute_teacher_id=main.teacher_id)
        await add_slot(main.teacher_id, date(2024, 3, 7), status="CANCELLED")
        await add_slot(main.teacher_id, date(2024, 4, 1))

        hours = await WorkedHoursService(session).calculate_and_save(main.teacher_id, 3, 2024)

        assert hours.scheduled_hours == Decimal("4")
        assert hours.worked_hours == Decimal("2")
        assert hours.substituted_by_others == Decimal("2")
        assert hours.substituted_hours == Decimal("2")
        assert hours.total_usable_hours == Decimal("4")

    async def test_no_slots(self, session, teacher):
        with pytest.raises(NoScheduleDataError):
            await WorkedHoursService(session).calculate_and_save(teacher.teacher_id, 3, 2024)

    async def test_cache_upserts(self, session, teacher, add_slot):
        service = WorkedHoursService(session)
        await add_slot(teacher.teacher_id, date(2024, 3, 4))
        await service.calculate_and_save(teacher.teacher_id, 3, 2024)
        await add_slot(teacher.teacher_id, date(2024, 3, 5))

        await service.calculate_and_save(teacher.teacher_id, 3, 2024)

        cached = await service.get_cached(teacher.teacher_id, 3, 2024)
        assert cached.worked_hours == Decimal("4")

    async def test_yearly_stats(self, session, teacher, add_slot):
        service = WorkedHoursService(session)
        await add_slot(teacher.teacher_id, date(2024, 3, 4))
        await add_slot(teacher.teacher_id, date(2024, 4, 4))
        await add_slot(teacher.teacher_id, date(2024, 4, 5), status="POSTPONED")
        await service.calculate_and_save(teacher.teacher_id, 3, 2024)
        await service.calculate_and_save(teacher.teacher_id, 4, 2024)

        stats = await service.yearly_stats(teacher.teacher_id, 2024)

        assert [m.month for m in stats.months] == [3, 4]
        assert stats.total_scheduled == Decimal("6")
        assert stats.total_worked == Decimal("4")
        assert stats.efficiency.quantize(Decimal("0.01")) == Decimal("66.67")
