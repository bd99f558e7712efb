"""Teacher salary rate and worked-hours endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, status

from academy_payroll.api.dependencies import CurrentActor, DbSession
from academy_payroll.api.schemas import (
    ErrorResponse,
    SalaryRateResponse,
    SalaryRateUpdate,
    WorkedHoursResponse,
    WorkedHoursStatsResponse,
)
from academy_payroll.calculators.rate_resolver import RateResolver
from academy_payroll.services.hours_service import WorkedHoursService
from academy_payroll.services.permissions import Capability
from academy_payroll.services.rate_service import SalaryRateService

router = APIRouter(prefix="/teachers", tags=["teachers"])


@router.get(
    "/{teacher_id}/salary-rate",
    response_model=SalaryRateResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_salary_rate(
    db: DbSession,
    actor: CurrentActor,
    teacher_id: Annotated[UUID, Path()],
) -> SalaryRateResponse:
    """Get the teacher's base rate, factors and total hourly rate."""
    actor.require(Capability.VIEW)
    rate = await RateResolver(db).resolve(teacher_id)
    return SalaryRateResponse.from_resolved(rate)


@router.put(
    "/{teacher_id}/salary-rate",
    response_model=SalaryRateResponse,
    status_code=status.HTTP_200_OK,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def set_salary_rate(
    db: DbSession,
    actor: CurrentActor,
    teacher_id: Annotated[UUID, Path()],
    payload: SalaryRateUpdate,
) -> SalaryRateResponse:
    """Create or replace the teacher's rate. The factor list is replaced as a whole."""
    rate = await SalaryRateService(db).set_rate(
        actor,
        teacher_id,
        payload.base_rate,
        [f.to_factor() for f in payload.factors],
    )
    await db.commit()
    return SalaryRateResponse.from_resolved(rate)


@router.get(
    "/{teacher_id}/worked-hours/{year}/{month}",
    response_model=WorkedHoursResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_worked_hours(
    db: DbSession,
    actor: CurrentActor,
    teacher_id: Annotated[UUID, Path()],
    year: Annotated[int, Path(ge=2000, le=2100)],
    month: Annotated[int, Path(ge=1, le=12)],
) -> WorkedHoursResponse:
    """Compute worked hours from the schedule and refresh the cache."""
    actor.require(Capability.VIEW)
    hours = await WorkedHoursService(db).calculate_and_save(teacher_id, month, year)
    await db.commit()
    return WorkedHoursResponse.from_hours(hours)


@router.get(
    "/{teacher_id}/worked-hours-stats/{year}",
    response_model=WorkedHoursStatsResponse,
)
async def get_worked_hours_stats(
    db: DbSession,
    actor: CurrentActor,
    teacher_id: Annotated[UUID, Path()],
    year: Annotated[int, Path(ge=2000, le=2100)],
) -> WorkedHoursStatsResponse:
    """Yearly totals from the cached monthly figures."""
    actor.require(Capability.VIEW)
    stats = await WorkedHoursService(db).yearly_stats(teacher_id, year)
    return WorkedHoursStatsResponse(
        teacher_id=stats.teacher_id,
        year=stats.year,
        total_scheduled=stats.total_scheduled,
        total_worked=stats.total_worked,
        total_substituted=stats.total_substituted,
        total_substituted_by_others=stats.total_substituted_by_others,
        efficiency=stats.efficiency,
        months=[WorkedHoursResponse.from_hours(h) for h in stats.months],
    )
