"""Salary API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Path, Query, Response, status

from academy_payroll.api.dependencies import AppSettings, CurrentActor, DbSession
from academy_payroll.api.schemas import (
    AdjustmentsUpdate,
    ErrorResponse,
    RecalculateRequest,
    RecalculateResponse,
    RejectRequest,
    SalaryCalculateRequest,
    SalaryCreate,
    SalaryListResponse,
    SalaryResponse,
    SalaryUpdate,
    StatisticsResponse,
    WorkflowResponse,
    to_adjustments,
)
from academy_payroll.services.export_service import export_csv
from academy_payroll.services.permissions import Capability
from academy_payroll.services.salary_service import SalaryService

router = APIRouter(prefix="/salaries", tags=["salaries"])

PeriodMonth = Annotated[int | None, Query(ge=1, le=12)]
PeriodYear = Annotated[int | None, Query(ge=2000, le=2100)]


# ============================================================================
# Listing and reporting
# ============================================================================


@router.get("", response_model=SalaryListResponse)
async def list_salaries(
    db: DbSession,
    actor: CurrentActor,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=100)] = 20,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    teacher_id: UUID | None = None,
    month: PeriodMonth = None,
    year: PeriodYear = None,
) -> SalaryListResponse:
    """List salary records with optional filters."""
    actor.require(Capability.VIEW_SALARIES)
    records, total = await SalaryService(db).list(
        teacher_id=teacher_id,
        status=status_filter,
        month=month,
        year=year,
        page=page,
        page_size=page_size,
    )
    return SalaryListResponse(
        items=[SalaryResponse.from_record(r) for r in records],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/statistics", response_model=StatisticsResponse)
async def salary_statistics(
    db: DbSession,
    actor: CurrentActor,
    year: PeriodYear = None,
    month: PeriodMonth = None,
) -> StatisticsResponse:
    """Payroll totals grouped by status."""
    actor.require(Capability.VIEW_SALARIES)
    stats = await SalaryService(db).statistics(year=year, month=month)
    return StatisticsResponse.model_validate(stats)


@router.get("/export")
async def export_salaries(
    db: DbSession,
    actor: CurrentActor,
    settings: AppSettings,
    month: PeriodMonth = None,
    year: PeriodYear = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> Response:
    """Export salary records as CSV."""
    actor.require(Capability.VIEW_SALARIES)
    service = SalaryService(db)
    records = []
    page = 1
    while True:
        batch, total = await service.list(
            status=status_filter, month=month, year=year, page=page, page_size=500
        )
        records.extend(batch)
        if len(records) >= total or not batch:
            break
        page += 1

    filename = "salaries"
    if year:
        filename += f"-{year}"
    if month:
        filename += f"-{month:02d}"
    return Response(
        content=export_csv(records, settings.amount_display_quantum, settings.currency),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}.csv"'},
    )


@router.get("/pending-approvals", response_model=list[SalaryResponse])
async def pending_approvals(db: DbSession, actor: CurrentActor) -> list[SalaryResponse]:
    """Draft salaries waiting for approval."""
    actor.require(Capability.VIEW_SALARIES)
    records = await SalaryService(db).pending_approvals()
    return [SalaryResponse.from_record(r) for r in records]


@router.get("/approved", response_model=list[SalaryResponse])
async def approved_salaries(
    db: DbSession,
    actor: CurrentActor,
    month: PeriodMonth = None,
    year: PeriodYear = None,
) -> list[SalaryResponse]:
    """Approved salaries waiting for payment."""
    actor.require(Capability.VIEW_SALARIES)
    records = await SalaryService(db).approved(month=month, year=year)
    return [SalaryResponse.from_record(r) for r in records]


@router.get(
    "/history/{teacher_id}",
    response_model=list[SalaryResponse],
    responses={404: {"model": ErrorResponse}},
)
async def salary_history(
    db: DbSession,
    actor: CurrentActor,
    teacher_id: Annotated[UUID, Path()],
    year: PeriodYear = None,
) -> list[SalaryResponse]:
    """All salaries of a teacher, newest first."""
    actor.require(Capability.VIEW_SALARIES)
    records = await SalaryService(db).history(teacher_id, year=year)
    return [SalaryResponse.from_record(r) for r in records]


# ============================================================================
# Creation and calculation
# ============================================================================


@router.post(
    "",
    response_model=SalaryResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def create_salary(
    db: DbSession,
    actor: CurrentActor,
    payload: SalaryCreate,
) -> SalaryResponse:
    """Create a draft salary from a manually entered base salary."""
    record = await SalaryService(db).create_manual(
        actor,
        payload.teacher_id,
        payload.month,
        payload.year,
        payload.base_salary,
        allowances=to_adjustments(payload.allowances),
        bonuses=to_adjustments(payload.bonuses),
        deductions=to_adjustments(payload.deductions),
        comment=payload.comment,
        hourly_rate=payload.hourly_rate,
        hours_worked=payload.hours_worked,
    )
    await db.commit()
    return SalaryResponse.from_record(record)


@router.post(
    "/calculate",
    response_model=SalaryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def calculate_salary(
    db: DbSession,
    actor: CurrentActor,
    payload: SalaryCalculateRequest,
) -> SalaryResponse:
    """Calculate one teacher from rate and worked hours.

    Responds 404 with code NOT_CONFIGURED when the rate or schedule is
    missing; the client should offer manual entry instead.
    """
    record = await SalaryService(db).calculate_for_teacher(
        actor, payload.teacher_id, payload.month, payload.year
    )
    await db.commit()
    return SalaryResponse.from_record(record)


@router.post("/recalculate", response_model=RecalculateResponse)
async def recalculate_salaries(
    db: DbSession,
    actor: CurrentActor,
    payload: RecalculateRequest,
) -> RecalculateResponse:
    """Calculate salaries for many teachers. Failures are reported per teacher."""
    result = await SalaryService(db).recalculate_batch(
        actor, payload.month, payload.year, teacher_ids=payload.teacher_ids
    )
    await db.commit()
    return RecalculateResponse.model_validate(result)


# ============================================================================
# Single record
# ============================================================================


@router.get(
    "/{salary_id}",
    response_model=SalaryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_salary(
    db: DbSession,
    actor: CurrentActor,
    salary_id: Annotated[UUID, Path()],
) -> SalaryResponse:
    """Get a specific salary record by ID."""
    actor.require(Capability.VIEW_SALARIES)
    record = await SalaryService(db).get(salary_id)
    return SalaryResponse.from_record(record)


@router.patch(
    "/{salary_id}",
    response_model=SalaryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_salary(
    db: DbSession,
    actor: CurrentActor,
    salary_id: Annotated[UUID, Path()],
    payload: SalaryUpdate,
) -> SalaryResponse:
    """Correct base salary, comment or period. Adjustments are re-evaluated."""
    record = await SalaryService(db).update(
        actor,
        salary_id,
        base_salary=payload.base_salary,
        month=payload.month,
        year=payload.year,
        comment=payload.comment,
        hourly_rate=payload.hourly_rate,
        hours_worked=payload.hours_worked,
    )
    await db.commit()
    return SalaryResponse.from_record(record)


@router.delete(
    "/{salary_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def delete_salary(
    db: DbSession,
    actor: CurrentActor,
    salary_id: Annotated[UUID, Path()],
) -> Response:
    """Soft-delete a draft or cancelled salary."""
    await SalaryService(db).delete(actor, salary_id)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put(
    "/{salary_id}/adjustments",
    response_model=SalaryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def update_adjustments(
    db: DbSession,
    actor: CurrentActor,
    salary_id: Annotated[UUID, Path()],
    payload: AdjustmentsUpdate,
) -> SalaryResponse:
    """Replace allowances, bonuses or deductions and recompute totals.

    Editing an approved salary returns it to draft.
    """
    record = await SalaryService(db).edit_adjustments(
        actor,
        salary_id,
        allowances=to_adjustments(payload.allowances),
        bonuses=to_adjustments(payload.bonuses),
        deductions=to_adjustments(payload.deductions),
        comment=payload.comment,
    )
    await db.commit()
    return SalaryResponse.from_record(record)


# ============================================================================
# Workflow transitions
# ============================================================================


@router.post(
    "/{salary_id}/approve",
    response_model=SalaryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def approve_salary(
    db: DbSession,
    actor: CurrentActor,
    salary_id: Annotated[UUID, Path()],
) -> SalaryResponse:
    """Approve a draft salary."""
    record = await SalaryService(db).approve(actor, salary_id)
    await db.commit()
    return SalaryResponse.from_record(record)


@router.post(
    "/{salary_id}/mark-paid",
    response_model=SalaryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def mark_salary_paid(
    db: DbSession,
    actor: CurrentActor,
    salary_id: Annotated[UUID, Path()],
) -> SalaryResponse:
    """Mark an approved salary as paid."""
    record = await SalaryService(db).mark_paid(actor, salary_id)
    await db.commit()
    return SalaryResponse.from_record(record)


@router.post(
    "/{salary_id}/reject",
    response_model=SalaryResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def reject_salary(
    db: DbSession,
    actor: CurrentActor,
    salary_id: Annotated[UUID, Path()],
    payload: RejectRequest,
) -> SalaryResponse:
    """Cancel a draft or approved salary with a reason."""
    record = await SalaryService(db).reject(actor, salary_id, payload.reason)
    await db.commit()
    return SalaryResponse.from_record(record)


@router.get(
    "/{salary_id}/workflow",
    response_model=WorkflowResponse,
    responses={404: {"model": ErrorResponse}},
)
async def salary_workflow(
    db: DbSession,
    actor: CurrentActor,
    salary_id: Annotated[UUID, Path()],
) -> WorkflowResponse:
    """Current status, allowed actions and audit trail."""
    actor.require(Capability.VIEW_SALARIES)
    info = await SalaryService(db).workflow_info(salary_id)
    return WorkflowResponse.model_validate(info, from_attributes=True)
