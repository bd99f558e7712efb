"""Salary record lifecycle operations.

Every operation takes an explicit ``Actor`` and checks its capability
before touching the record. Operations mutate the record in memory only;
persistence, locking and audit storage belong to ``SalaryService``.

Adjustment edits, base corrections and recalculations on an APPROVED record
recompute the totals and revert the record to DRAFT, so it has to be
approved again. PAID and CANCELLED records are frozen.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from academy_payroll.calculators.adjustments import AdjustmentEngine
from academy_payroll.calculators.salary_calculator import SalaryCalculator
from academy_payroll.calculators.types import (
    Adjustment,
    AdjustmentKind,
    ResolvedRate,
    SalaryBreakdown,
    WorkedHours,
)
from academy_payroll.errors import PayrollValidationError
from academy_payroll.models.base import utcnow
from academy_payroll.models.salary import SalaryAdjustment, SalaryRecord
from academy_payroll.services.permissions import Actor, Capability
from academy_payroll.services.state_machine import (
    InvalidTransitionError,
    SalaryStateMachine,
    SalaryStatus,
)

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    """What a workflow operation did to a record."""

    action: str
    from_status: str
    to_status: str
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def status_changed(self) -> bool:
        return self.from_status != self.to_status


def apply_breakdown(record: SalaryRecord, breakdown: SalaryBreakdown) -> None:
    """Replace the monetary fields and adjustment rows of a record in one step."""
    rows: list[SalaryAdjustment] = []
    for kind, items in (
        (AdjustmentKind.ALLOWANCE, breakdown.allowances),
        (AdjustmentKind.BONUS, breakdown.bonuses),
        (AdjustmentKind.DEDUCTION, breakdown.deductions),
    ):
        rows.extend(
            SalaryAdjustment.from_adjustment(kind, position, item)
            for position, item in enumerate(items)
        )

    if breakdown.hourly_rate is not None:
        record.hourly_rate = breakdown.hourly_rate
    if breakdown.hours_worked is not None:
        record.hours_worked = breakdown.hours_worked
    record.base_salary = breakdown.base_salary
    record.total_allowances = breakdown.total_allowances
    record.total_bonuses = breakdown.total_bonuses
    record.total_deductions = breakdown.total_deductions
    record.total_gross = breakdown.total_gross
    record.total_net = breakdown.total_net
    record.adjustments = rows
    record.updated_at = utcnow()


def finalize_adjustment_lists(
    allowances: Sequence[Adjustment],
    bonuses: Sequence[Adjustment],
    deductions: Sequence[Adjustment],
) -> tuple[list[Adjustment], list[Adjustment], list[Adjustment]]:
    """Validate all three lists together and drop incomplete rows."""
    errors = (
        AdjustmentEngine.validate(allowances, "allowances")
        + AdjustmentEngine.validate(bonuses, "bonuses")
        + AdjustmentEngine.validate(deductions, "deductions")
    )
    if errors:
        raise PayrollValidationError("; ".join(errors), field="adjustments")
    return (
        [a for a in allowances if a.is_complete],
        [a for a in bonuses if a.is_complete],
        [a for a in deductions if a.is_complete],
    )


class SalaryWorkflow:
    """State transitions and gated edits of a salary record."""

    @staticmethod
    def approve(record: SalaryRecord, actor: Actor) -> TransitionResult:
        """DRAFT → APPROVED. Sets approved_by and approved_at."""
        actor.require(Capability.APPROVE)
        from_status = record.status
        if from_status != SalaryStatus.DRAFT:
            raise InvalidTransitionError(
                from_status, SalaryStatus.APPROVED, "Only draft salaries can be approved"
            )
        SalaryStateMachine.validate_transition(from_status, SalaryStatus.APPROVED)

        record.status = SalaryStatus.APPROVED.value
        record.approved_by = actor.actor_id
        record.approved_at = utcnow()
        record.updated_at = record.approved_at
        return TransitionResult("approved", from_status, record.status)

    @staticmethod
    def mark_paid(record: SalaryRecord, actor: Actor) -> TransitionResult:
        """APPROVED → PAID. Sets paid_at; monetary fields freeze."""
        actor.require(Capability.PAY)
        from_status = record.status
        if from_status != SalaryStatus.APPROVED:
            raise InvalidTransitionError(
                from_status, SalaryStatus.PAID, "Only approved salaries can be marked as paid"
            )

        record.status = SalaryStatus.PAID.value
        record.paid_at = utcnow()
        record.updated_at = record.paid_at
        return TransitionResult("paid", from_status, record.status)

    @staticmethod
    def reject(record: SalaryRecord, actor: Actor, reason: str) -> TransitionResult:
        """DRAFT | APPROVED → CANCELLED. A reason is mandatory."""
        actor.require(Capability.REJECT)
        if not reason or not reason.strip():
            raise PayrollValidationError("Rejection reason is required", field="reason")
        from_status = record.status
        if not SalaryStateMachine.can_transition(from_status, SalaryStatus.CANCELLED):
            raise InvalidTransitionError(
                from_status,
                SalaryStatus.CANCELLED,
                "Only draft or approved salaries can be rejected",
            )

        record.status = SalaryStatus.CANCELLED.value
        record.rejected_by = actor.actor_id
        record.rejected_at = utcnow()
        record.rejection_reason = reason.strip()
        record.updated_at = record.rejected_at
        return TransitionResult(
            "rejected", from_status, record.status, {"reason": record.rejection_reason}
        )

    @staticmethod
    def edit_adjustments(
        record: SalaryRecord,
        actor: Actor,
        allowances: Sequence[Adjustment] | None = None,
        bonuses: Sequence[Adjustment] | None = None,
        deductions: Sequence[Adjustment] | None = None,
        comment: str | None = None,
    ) -> TransitionResult:
        """Replace adjustment lists and recompute totals.

        A list passed as None keeps its current rows; an empty list clears
        them. An APPROVED record reverts to DRAFT.
        """
        actor.require(Capability.EDIT)
        from_status = record.status
        if not SalaryStateMachine.can_edit_adjustments(from_status):
            raise InvalidTransitionError(
                from_status,
                from_status,
                f"Adjustments cannot be edited on a {from_status.lower()} salary",
            )

        new_allowances, new_bonuses, new_deductions = finalize_adjustment_lists(
            record.allowances if allowances is None else allowances,
            record.bonuses if bonuses is None else bonuses,
            record.deductions if deductions is None else deductions,
        )
        breakdown = SalaryCalculator.calculate_from_base(
            record.base_salary, new_allowances, new_bonuses, new_deductions
        )
        apply_breakdown(record, breakdown)
        if comment is not None:
            record.comment = comment

        SalaryWorkflow._revert_if_approved(record)
        return TransitionResult(
            "adjustments_edited",
            from_status,
            record.status,
            {
                "total_gross": str(record.total_gross),
                "total_net": str(record.total_net),
            },
        )

    @staticmethod
    def update_base(
        record: SalaryRecord,
        actor: Actor,
        base_salary: Decimal | None = None,
        comment: str | None = None,
        hourly_rate: Decimal | None = None,
        hours_worked: Decimal | None = None,
    ) -> TransitionResult:
        """Correct the base salary of a record and recompute its totals.

        A new base replaces the rate and hours snapshot with the values
        given, which may be None for a purely manual figure. Adjustments are
        kept and re-evaluated. An APPROVED record reverts to DRAFT.
        """
        actor.require(Capability.EDIT)
        from_status = record.status
        if not SalaryStateMachine.can_edit_adjustments(from_status):
            raise InvalidTransitionError(
                from_status,
                from_status,
                f"A {from_status.lower()} salary cannot be edited",
            )
        if base_salary is not None and base_salary < 0:
            raise PayrollValidationError(
                f"Base salary must not be negative, got {base_salary}", field="base_salary"
            )

        previous_base = record.base_salary
        breakdown = SalaryCalculator.calculate_from_base(
            record.base_salary if base_salary is None else base_salary,
            record.allowances,
            record.bonuses,
            record.deductions,
        )
        apply_breakdown(record, breakdown)
        if base_salary is not None:
            record.hourly_rate = hourly_rate
            record.hours_worked = hours_worked
        if comment is not None:
            record.comment = comment

        SalaryWorkflow._revert_if_approved(record)
        return TransitionResult(
            "updated",
            from_status,
            record.status,
            {
                "previous_base_salary": str(previous_base),
                "base_salary": str(record.base_salary),
                "total_net": str(record.total_net),
            },
        )

    @staticmethod
    def recalculate(
        record: SalaryRecord,
        actor: Actor,
        rate: ResolvedRate,
        hours: WorkedHours,
    ) -> TransitionResult:
        """Re-derive base salary from a fresh rate and hours snapshot.

        Existing adjustments are kept and re-evaluated against the new base.
        """
        actor.require(Capability.CALCULATE)
        from_status = record.status
        if not SalaryStateMachine.can_calculate(from_status):
            raise InvalidTransitionError(
                from_status,
                from_status,
                f"A {from_status.lower()} salary cannot be recalculated",
            )

        breakdown = SalaryCalculator.calculate(
            rate, hours, record.allowances, record.bonuses, record.deductions
        )
        apply_breakdown(record, breakdown)

        SalaryWorkflow._revert_if_approved(record)
        return TransitionResult(
            "recalculated",
            from_status,
            record.status,
            {
                "hourly_rate": str(breakdown.hourly_rate),
                "hours_worked": str(breakdown.hours_worked),
                "base_salary": str(breakdown.base_salary),
            },
        )

    @staticmethod
    def _revert_if_approved(record: SalaryRecord) -> None:
        if SalaryStateMachine.is_revert(record.status, SalaryStatus.DRAFT):
            SalaryStateMachine.validate_transition(record.status, SalaryStatus.DRAFT)
            logger.info("Salary %s reverted to DRAFT after change", record.salary_id)
            record.status = SalaryStatus.DRAFT.value
            record.approved_by = None
            record.approved_at = None
