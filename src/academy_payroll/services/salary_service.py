"""Salary service - orchestrates calculation, workflow and persistence."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from academy_payroll.calculators.rate_resolver import RateResolver
from academy_payroll.calculators.salary_calculator import SalaryCalculator
from academy_payroll.calculators.types import ZERO, Adjustment
from academy_payroll.errors import (
    ConcurrentModificationError,
    DuplicateSalaryError,
    PayrollError,
    PayrollValidationError,
    SalaryNotFoundError,
    TeacherNotFoundError,
)
from academy_payroll.models.base import utcnow
from academy_payroll.models.salary import SalaryAuditEvent, SalaryRecord
from academy_payroll.models.teacher import Teacher
from academy_payroll.services.hours_service import WorkedHoursService
from academy_payroll.services.permissions import Actor, Capability
from academy_payroll.services.state_machine import (
    InvalidTransitionError,
    SalaryStateMachine,
    SalaryStatus,
)
from academy_payroll.services.workflow import (
    SalaryWorkflow,
    TransitionResult,
    apply_breakdown,
    finalize_adjustment_lists,
)

logger = logging.getLogger(__name__)


@dataclass
class TeacherOutcome:
    """Result of calculating one teacher within a batch."""

    teacher_id: UUID
    teacher_name: str | None
    success: bool
    salary_id: UUID | None = None
    total_net: Decimal | None = None
    error_code: str | None = None
    error: str | None = None


@dataclass
class BatchRecalculationResult:
    """Per-teacher outcomes of a batch recalculation."""

    month: int
    year: int
    outcomes: list[TeacherOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def successful(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)


@dataclass
class StatusStat:
    status: str
    count: int
    total: Decimal


@dataclass
class SalaryStatistics:
    """Payroll aggregates over non-deleted salary records."""

    total_payroll: Decimal
    avg_salary: Decimal
    employee_count: int
    status_stats: list[StatusStat]


class SalaryService:
    """Service for managing salary record lifecycle.

    Operations:
    - create_manual: Record a salary entered by hand (rate or hours missing)
    - calculate_for_teacher: Create or recalculate a DRAFT from rate and hours
    - recalculate_batch: Calculate every teacher for a month, isolating failures
    - approve / mark_paid / reject: Workflow transitions
    - edit_adjustments: Replace adjustment lists and recompute totals
    - update: Correct base salary, comment or period
    - delete: Soft delete of draft or cancelled records

    Mutations load the record with a row lock and rely on the record's
    version column; a stale write raises ConcurrentModificationError.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.rate_resolver = RateResolver(session)
        self.hours_service = WorkedHoursService(session)

    # === Queries ===

    async def get(self, salary_id: UUID, for_update: bool = False) -> SalaryRecord:
        """Load a non-deleted salary record.

        Raises:
            SalaryNotFoundError: If missing or soft-deleted
        """
        query = select(SalaryRecord).where(
            SalaryRecord.salary_id == salary_id,
            SalaryRecord.deleted_at.is_(None),
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        record = result.scalar_one_or_none()
        if record is None:
            raise SalaryNotFoundError(salary_id)
        return record

    async def list(
        self,
        teacher_id: UUID | None = None,
        status: str | None = None,
        month: int | None = None,
        year: int | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[SalaryRecord], int]:
        """List salary records with filters, newest period first."""
        query = select(SalaryRecord).where(SalaryRecord.deleted_at.is_(None))
        if teacher_id:
            query = query.where(SalaryRecord.teacher_id == teacher_id)
        if status:
            query = query.where(SalaryRecord.status == status)
        if month:
            query = query.where(SalaryRecord.month == month)
        if year:
            query = query.where(SalaryRecord.year == year)

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.session.scalar(count_query) or 0

        query = query.order_by(
            SalaryRecord.year.desc(),
            SalaryRecord.month.desc(),
            SalaryRecord.created_at.desc(),
        )
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await self.session.execute(query)
        return list(result.scalars().all()), total

    async def history(self, teacher_id: UUID, year: int | None = None) -> list[SalaryRecord]:
        """All salary records of a teacher, newest period first."""
        if await self.session.get(Teacher, teacher_id) is None:
            raise TeacherNotFoundError(teacher_id)
        query = select(SalaryRecord).where(
            SalaryRecord.teacher_id == teacher_id,
            SalaryRecord.deleted_at.is_(None),
        )
        if year:
            query = query.where(SalaryRecord.year == year)
        result = await self.session.execute(
            query.order_by(SalaryRecord.year.desc(), SalaryRecord.month.desc())
        )
        return list(result.scalars().all())

    async def pending_approvals(self) -> list[SalaryRecord]:
        """Draft records waiting for approval."""
        return await self._by_status(SalaryStatus.DRAFT)

    async def approved(self, month: int | None = None, year: int | None = None) -> list[SalaryRecord]:
        """Approved records waiting for payment."""
        return await self._by_status(SalaryStatus.APPROVED, month, year)

    async def statistics(self, year: int | None = None, month: int | None = None) -> SalaryStatistics:
        """Aggregate net payroll by status."""
        query = select(
            SalaryRecord.status,
            func.count(SalaryRecord.salary_id),
            func.coalesce(func.sum(SalaryRecord.total_net), 0),
        ).where(SalaryRecord.deleted_at.is_(None))
        if year:
            query = query.where(SalaryRecord.year == year)
        if month:
            query = query.where(SalaryRecord.month == month)
        result = await self.session.execute(query.group_by(SalaryRecord.status))

        status_stats = [
            StatusStat(status=status, count=count, total=Decimal(str(total)))
            for status, count, total in result.all()
        ]
        employee_count = sum(s.count for s in status_stats)
        total_payroll = sum((s.total for s in status_stats), ZERO)
        avg_salary = total_payroll / employee_count if employee_count else ZERO
        return SalaryStatistics(
            total_payroll=total_payroll,
            avg_salary=avg_salary,
            employee_count=employee_count,
            status_stats=sorted(status_stats, key=lambda s: s.status),
        )

    async def workflow_info(self, salary_id: UUID) -> dict[str, Any]:
        """Current status, allowed next actions and audit trail of a record."""
        record = await self.get(salary_id)
        result = await self.session.execute(
            select(SalaryAuditEvent)
            .where(SalaryAuditEvent.salary_id == salary_id)
            .order_by(SalaryAuditEvent.created_at)
        )
        status = record.status
        return {
            "salary_id": record.salary_id,
            "status": status,
            "next_statuses": SalaryStateMachine.get_next_statuses(status),
            "can_edit": SalaryStateMachine.can_edit_adjustments(status),
            "is_final": SalaryStateMachine.are_results_immutable(status),
            "can_approve": status == SalaryStatus.DRAFT,
            "can_mark_paid": status == SalaryStatus.APPROVED,
            "can_reject": SalaryStateMachine.can_transition(status, SalaryStatus.CANCELLED),
            "approved_by": record.approved_by,
            "approved_at": record.approved_at,
            "paid_at": record.paid_at,
            "rejected_by": record.rejected_by,
            "rejected_at": record.rejected_at,
            "rejection_reason": record.rejection_reason,
            "events": list(result.scalars().all()),
        }

    # === Creation and calculation ===

    async def create_manual(
        self,
        actor: Actor,
        teacher_id: UUID,
        month: int,
        year: int,
        base_salary: Decimal,
        allowances: Sequence[Adjustment] = (),
        bonuses: Sequence[Adjustment] = (),
        deductions: Sequence[Adjustment] = (),
        comment: str | None = None,
        hourly_rate: Decimal | None = None,
        hours_worked: Decimal | None = None,
    ) -> SalaryRecord:
        """Create a DRAFT from a manually entered base salary."""
        actor.require(Capability.EDIT)
        if base_salary < 0:
            raise PayrollValidationError(
                f"Base salary must not be negative, got {base_salary}", field="base_salary"
            )
        teacher = await self._get_teacher(teacher_id)
        await self._ensure_period_free(teacher_id, month, year)

        allowances, bonuses, deductions = finalize_adjustment_lists(allowances, bonuses, deductions)
        breakdown = SalaryCalculator.calculate_from_base(base_salary, allowances, bonuses, deductions)
        breakdown.hourly_rate = hourly_rate
        breakdown.hours_worked = hours_worked

        record = self._new_record(teacher, month, year)
        record.comment = comment
        apply_breakdown(record, breakdown)
        self.session.add(record)
        await self._flush(record)

        await self._record_audit(
            record,
            actor,
            TransitionResult("created", record.status, record.status, {"source": "manual"}),
        )
        logger.info(
            "Manual salary created: salary=%s teacher=%s period=%02d/%d net=%s",
            record.salary_id, teacher_id, month, year, record.total_net,
        )
        return record

    async def calculate_for_teacher(
        self, actor: Actor, teacher_id: UUID, month: int, year: int
    ) -> SalaryRecord:
        """Create or recalculate the salary of a teacher for a month.

        Raises:
            RateNotConfiguredError: Teacher has no rate (use manual entry)
            NoScheduleDataError: Teacher has no slots (use manual entry)
            InvalidTransitionError: Existing record is PAID or CANCELLED
        """
        actor.require(Capability.CALCULATE)
        teacher = await self._get_teacher(teacher_id)

        rate = await self.rate_resolver.resolve(teacher_id)
        hours = await self.hours_service.calculate_and_save(teacher_id, month, year)

        record = await self._find_period(teacher_id, month, year, for_update=True)
        if record is not None and record.deleted_at is not None:
            await self.session.delete(record)
            await self.session.flush()
            record = None

        if record is None:
            breakdown = SalaryCalculator.calculate(rate, hours)
            record = self._new_record(teacher, month, year)
            apply_breakdown(record, breakdown)
            self.session.add(record)
            await self._flush(record)
            result = TransitionResult(
                "calculated",
                record.status,
                record.status,
                {
                    "hourly_rate": str(breakdown.hourly_rate),
                    "hours_worked": str(breakdown.hours_worked),
                    "base_salary": str(breakdown.base_salary),
                },
            )
        else:
            result = SalaryWorkflow.recalculate(record, actor, rate, hours)
            await self._flush(record)

        await self._record_audit(record, actor, result)
        logger.info(
            "Salary %s: salary=%s teacher=%s period=%02d/%d rate=%s hours=%s net=%s",
            result.action, record.salary_id, teacher_id, month, year,
            record.hourly_rate, record.hours_worked, record.total_net,
        )
        return record

    async def recalculate_batch(
        self,
        actor: Actor,
        month: int,
        year: int,
        teacher_ids: Sequence[UUID] | None = None,
    ) -> BatchRecalculationResult:
        """Calculate salaries for many teachers.

        Each teacher runs inside its own SAVEPOINT; a failure rolls back only
        that teacher and is reported in the outcomes.
        """
        actor.require(Capability.CALCULATE)
        query = select(Teacher.teacher_id, Teacher.full_name)
        if teacher_ids is not None:
            query = query.where(Teacher.teacher_id.in_(list(teacher_ids)))
        else:
            query = query.where(Teacher.is_active.is_(True))
        teachers = (await self.session.execute(query.order_by(Teacher.full_name))).all()

        batch = BatchRecalculationResult(month=month, year=year)
        for teacher_id, full_name in teachers:
            try:
                async with self.session.begin_nested():
                    record = await self.calculate_for_teacher(actor, teacher_id, month, year)
                    salary_id, total_net = record.salary_id, record.total_net
            except PayrollError as e:
                logger.warning(
                    "Salary calculation failed: teacher=%s period=%02d/%d code=%s reason=%s",
                    teacher_id, month, year, e.code, e,
                )
                batch.outcomes.append(
                    TeacherOutcome(teacher_id, full_name, False, error_code=e.code, error=str(e))
                )
                continue
            except Exception as e:
                logger.exception(
                    "Unexpected error calculating salary: teacher=%s period=%02d/%d",
                    teacher_id, month, year,
                )
                batch.outcomes.append(
                    TeacherOutcome(teacher_id, full_name, False, error_code="INTERNAL_ERROR", error=str(e))
                )
                continue

            batch.outcomes.append(
                TeacherOutcome(teacher_id, full_name, True, salary_id=salary_id, total_net=total_net)
            )

        logger.info(
            "Batch salary calculation %02d/%d: total=%d successful=%d failed=%d",
            month, year, batch.total, batch.successful, batch.failed,
        )
        return batch

    # === Workflow ===

    async def approve(self, actor: Actor, salary_id: UUID) -> SalaryRecord:
        record = await self.get(salary_id, for_update=True)
        return await self._commit_transition(record, actor, SalaryWorkflow.approve(record, actor))

    async def mark_paid(self, actor: Actor, salary_id: UUID) -> SalaryRecord:
        record = await self.get(salary_id, for_update=True)
        return await self._commit_transition(record, actor, SalaryWorkflow.mark_paid(record, actor))

    async def reject(self, actor: Actor, salary_id: UUID, reason: str) -> SalaryRecord:
        record = await self.get(salary_id, for_update=True)
        return await self._commit_transition(
            record, actor, SalaryWorkflow.reject(record, actor, reason)
        )

    async def edit_adjustments(
        self,
        actor: Actor,
        salary_id: UUID,
        allowances: Sequence[Adjustment] | None = None,
        bonuses: Sequence[Adjustment] | None = None,
        deductions: Sequence[Adjustment] | None = None,
        comment: str | None = None,
    ) -> SalaryRecord:
        record = await self.get(salary_id, for_update=True)
        result = SalaryWorkflow.edit_adjustments(
            record, actor, allowances, bonuses, deductions, comment
        )
        return await self._commit_transition(record, actor, result)

    async def update(
        self,
        actor: Actor,
        salary_id: UUID,
        base_salary: Decimal | None = None,
        month: int | None = None,
        year: int | None = None,
        comment: str | None = None,
        hourly_rate: Decimal | None = None,
        hours_worked: Decimal | None = None,
    ) -> SalaryRecord:
        """Correct base salary, comment or period of a DRAFT or APPROVED record.

        Raises:
            DuplicateSalaryError: The new period already has a salary
        """
        record = await self.get(salary_id, for_update=True)
        result = SalaryWorkflow.update_base(
            record, actor, base_salary, comment, hourly_rate, hours_worked
        )

        new_month = record.month if month is None else month
        new_year = record.year if year is None else year
        if (new_month, new_year) != (record.month, record.year):
            await self._ensure_period_free(record.teacher_id, new_month, new_year)
            result.details["period"] = f"{new_month:02d}/{new_year}"
            record.month = new_month
            record.year = new_year

        return await self._commit_transition(record, actor, result)

    async def delete(self, actor: Actor, salary_id: UUID) -> SalaryRecord:
        """Soft delete. PAID and APPROVED records are kept."""
        actor.require(Capability.EDIT)
        record = await self.get(salary_id, for_update=True)
        if not SalaryStateMachine.can_delete(record.status):
            raise InvalidTransitionError(
                record.status, "DELETED", f"A {record.status.lower()} salary cannot be deleted"
            )
        record.deleted_at = utcnow()
        record.updated_at = record.deleted_at
        return await self._commit_transition(
            record, actor, TransitionResult("deleted", record.status, record.status)
        )

    # === Internals ===

    async def _commit_transition(
        self, record: SalaryRecord, actor: Actor, result: TransitionResult
    ) -> SalaryRecord:
        await self._flush(record)
        await self._record_audit(record, actor, result)
        logger.info(
            "Salary %s %s: %s -> %s by %s",
            record.salary_id, result.action, result.from_status, result.to_status, actor.actor_id,
        )
        return record

    async def _flush(self, record: SalaryRecord) -> None:
        try:
            await self.session.flush()
        except StaleDataError as e:
            raise ConcurrentModificationError(record.salary_id) from e

    async def _record_audit(
        self, record: SalaryRecord, actor: Actor, result: TransitionResult
    ) -> None:
        """Record an audit event for a salary action."""
        event = SalaryAuditEvent(
            salary_id=record.salary_id,
            actor_id=actor.actor_id,
            action=result.action,
            from_status=result.from_status,
            to_status=result.to_status,
            details_json=result.details or None,
        )
        self.session.add(event)
        await self.session.flush()

    async def _get_teacher(self, teacher_id: UUID) -> Teacher:
        teacher = await self.session.get(Teacher, teacher_id)
        if teacher is None:
            raise TeacherNotFoundError(teacher_id)
        return teacher

    async def _find_period(
        self, teacher_id: UUID, month: int, year: int, for_update: bool = False
    ) -> SalaryRecord | None:
        query = select(SalaryRecord).where(
            SalaryRecord.teacher_id == teacher_id,
            SalaryRecord.month == month,
            SalaryRecord.year == year,
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def _ensure_period_free(self, teacher_id: UUID, month: int, year: int) -> None:
        if not 1 <= month <= 12:
            raise PayrollValidationError(f"Month must be in 1..12, got {month}", field="month")
        existing = await self._find_period(teacher_id, month, year)
        if existing is not None:
            if existing.deleted_at is None:
                raise DuplicateSalaryError(teacher_id, month, year)
            await self.session.delete(existing)
            await self.session.flush()

    def _new_record(self, teacher: Teacher, month: int, year: int) -> SalaryRecord:
        record = SalaryRecord(
            teacher_id=teacher.teacher_id,
            month=month,
            year=year,
            status=SalaryStatus.DRAFT.value,
        )
        record.teacher = teacher
        return record

    async def _by_status(
        self, status: SalaryStatus, month: int | None = None, year: int | None = None
    ) -> list[SalaryRecord]:
        query = select(SalaryRecord).where(
            SalaryRecord.status == status.value,
            SalaryRecord.deleted_at.is_(None),
        )
        if month:
            query = query.where(SalaryRecord.month == month)
        if year:
            query = query.where(SalaryRecord.year == year)
        result = await self.session.execute(
            query.order_by(SalaryRecord.year.desc(), SalaryRecord.month.desc())
        )
        return list(result.scalars().all())
