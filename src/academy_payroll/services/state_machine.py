"""Salary record state machine with transition validation."""

from __future__ import annotations

from enum import Enum

from academy_payroll.errors import PayrollError


class SalaryStatus(str, Enum):
    """Salary record status values."""

    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    PAID = "PAID"
    CANCELLED = "CANCELLED"

    def __str__(self) -> str:
        return self.value


class InvalidTransitionError(PayrollError):
    """Raised when an invalid state transition is attempted."""

    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str, reason: str | None = None):
        self.from_status = from_status
        self.to_status = to_status
        self.reason = reason
        msg = f"Invalid transition from '{from_status}' to '{to_status}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class SalaryStateMachine:
    """State machine for salary record status transitions.

    Allowed transitions:
    - DRAFT → APPROVED
    - APPROVED → PAID
    - DRAFT → CANCELLED
    - APPROVED → CANCELLED
    - APPROVED → DRAFT (only as the revert caused by an adjustment edit)

    PAID and CANCELLED are terminal.
    """

    VALID_TRANSITIONS: dict[str, list[str]] = {
        SalaryStatus.DRAFT: [SalaryStatus.APPROVED, SalaryStatus.CANCELLED],
        SalaryStatus.APPROVED: [SalaryStatus.PAID, SalaryStatus.CANCELLED, SalaryStatus.DRAFT],
        SalaryStatus.PAID: [],
        SalaryStatus.CANCELLED: [],
    }

    # Statuses where adjustments may be edited
    ADJUSTMENTS_MUTABLE = {
        SalaryStatus.DRAFT,
        SalaryStatus.APPROVED,
    }

    # Statuses where the base salary may be recalculated from rate and hours
    CALCULATION_ALLOWED = {
        SalaryStatus.DRAFT,
        SalaryStatus.APPROVED,
    }

    # Statuses where monetary fields are frozen
    RESULTS_IMMUTABLE = {
        SalaryStatus.PAID,
        SalaryStatus.CANCELLED,
    }

    # Statuses where the record may be soft-deleted
    DELETABLE = {
        SalaryStatus.DRAFT,
        SalaryStatus.CANCELLED,
    }

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """Check if a transition is valid."""
        allowed = cls.VALID_TRANSITIONS.get(from_status, [])
        return to_status in allowed

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """Validate a transition, raising InvalidTransitionError if invalid."""
        if not cls.can_transition(from_status, to_status):
            raise InvalidTransitionError(from_status, to_status)

    @classmethod
    def can_edit_adjustments(cls, status: str) -> bool:
        return status in cls.ADJUSTMENTS_MUTABLE

    @classmethod
    def can_calculate(cls, status: str) -> bool:
        return status in cls.CALCULATION_ALLOWED

    @classmethod
    def are_results_immutable(cls, status: str) -> bool:
        return status in cls.RESULTS_IMMUTABLE

    @classmethod
    def can_delete(cls, status: str) -> bool:
        return status in cls.DELETABLE

    @classmethod
    def is_revert(cls, from_status: str, to_status: str) -> bool:
        """Check if this transition is a revert (APPROVED → DRAFT)."""
        return from_status == SalaryStatus.APPROVED and to_status == SalaryStatus.DRAFT

    @classmethod
    def get_next_statuses(cls, current_status: str) -> list[str]:
        """Get list of valid next statuses from current status."""
        return [str(s.value) for s in cls.VALID_TRANSITIONS.get(current_status, [])]
