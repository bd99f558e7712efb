"""Pydantic schemas for API request/response models."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from academy_payroll.calculators.types import Adjustment, RateFactor, ResolvedRate, WorkedHours
from academy_payroll.models.salary import SalaryRecord


# ============================================================================
# Adjustment schemas
# ============================================================================


class AdjustmentSchema(BaseModel):
    """One allowance, bonus or deduction row.

    Rows with an empty name or a zero amount are treated as unfinished
    form rows and dropped.
    """

    model_config = ConfigDict(from_attributes=True)

    name: str = ""
    amount: Decimal = Decimal("0")
    is_percentage: bool = False
    comment: str | None = None
    category: str | None = None

    def to_adjustment(self) -> Adjustment:
        return Adjustment(
            name=self.name,
            amount=self.amount,
            is_percentage=self.is_percentage,
            comment=self.comment,
            category=self.category,
        )


def to_adjustments(items: list[AdjustmentSchema] | None) -> list[Adjustment] | None:
    if items is None:
        return None
    return [item.to_adjustment() for item in items]


# ============================================================================
# Salary schemas
# ============================================================================


class SalaryCreate(BaseModel):
    """Schema for a manually entered salary."""

    teacher_id: UUID
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)
    base_salary: Decimal
    hourly_rate: Decimal | None = None
    hours_worked: Decimal | None = None
    allowances: list[AdjustmentSchema] = []
    bonuses: list[AdjustmentSchema] = []
    deductions: list[AdjustmentSchema] = []
    comment: str | None = None


class SalaryCalculateRequest(BaseModel):
    """Schema for calculating one teacher from rate and worked hours."""

    teacher_id: UUID
    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)


class SalaryResponse(BaseModel):
    """Schema for salary record response."""

    model_config = ConfigDict(from_attributes=True)

    salary_id: UUID
    teacher_id: UUID
    teacher_name: str | None = None
    month: int
    year: int
    hourly_rate: Decimal | None = None
    hours_worked: Decimal | None = None
    base_salary: Decimal
    total_allowances: Decimal
    total_bonuses: Decimal
    total_deductions: Decimal
    total_gross: Decimal
    total_net: Decimal
    allowances: list[AdjustmentSchema] = []
    bonuses: list[AdjustmentSchema] = []
    deductions: list[AdjustmentSchema] = []
    status: str
    comment: str | None = None
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    paid_at: datetime | None = None
    rejected_by: UUID | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    version_id: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: SalaryRecord) -> "SalaryResponse":
        resp = cls.model_validate(record)
        resp.teacher_name = record.teacher.full_name if record.teacher else None
        return resp


class SalaryListResponse(BaseModel):
    """Schema for listing salary records."""

    items: list[SalaryResponse]
    total: int
    page: int
    page_size: int


class SalaryUpdate(BaseModel):
    """Schema for correcting a salary. Omitted fields stay unchanged."""

    base_salary: Decimal | None = None
    hourly_rate: Decimal | None = None
    hours_worked: Decimal | None = None
    month: int | None = Field(default=None, ge=1, le=12)
    year: int | None = Field(default=None, ge=2000, le=2100)
    comment: str | None = None


class AdjustmentsUpdate(BaseModel):
    """Schema for replacing adjustment lists. Omitted lists stay unchanged."""

    allowances: list[AdjustmentSchema] | None = None
    bonuses: list[AdjustmentSchema] | None = None
    deductions: list[AdjustmentSchema] | None = None
    comment: str | None = None


class RejectRequest(BaseModel):
    """Schema for rejection request."""

    reason: str


# ============================================================================
# Batch recalculation schemas
# ============================================================================


class RecalculateRequest(BaseModel):
    """Schema for batch recalculation. No teacher list means all active teachers."""

    month: int = Field(ge=1, le=12)
    year: int = Field(ge=2000, le=2100)
    teacher_ids: list[UUID] | None = None


class TeacherOutcomeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    teacher_id: UUID
    teacher_name: str | None = None
    success: bool
    salary_id: UUID | None = None
    total_net: Decimal | None = None
    error_code: str | None = None
    error: str | None = None


class RecalculateResponse(BaseModel):
    """Schema for batch recalculation results."""

    model_config = ConfigDict(from_attributes=True)

    month: int
    year: int
    total: int
    successful: int
    failed: int
    outcomes: list[TeacherOutcomeResponse]


# ============================================================================
# Reporting schemas
# ============================================================================


class StatusStatResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: str
    count: int
    total: Decimal


class StatisticsResponse(BaseModel):
    """Schema for payroll statistics."""

    model_config = ConfigDict(from_attributes=True)

    total_payroll: Decimal
    avg_salary: Decimal
    employee_count: int
    status_stats: list[StatusStatResponse]


class AuditEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    audit_event_id: UUID
    actor_id: UUID | None = None
    action: str
    from_status: str | None = None
    to_status: str | None = None
    details_json: dict[str, Any] | None = None
    created_at: datetime


class WorkflowResponse(BaseModel):
    """Schema for workflow status of a salary record."""

    salary_id: UUID
    status: str
    next_statuses: list[str]
    can_edit: bool
    is_final: bool
    can_approve: bool
    can_mark_paid: bool
    can_reject: bool
    approved_by: UUID | None = None
    approved_at: datetime | None = None
    paid_at: datetime | None = None
    rejected_by: UUID | None = None
    rejected_at: datetime | None = None
    rejection_reason: str | None = None
    events: list[AuditEventResponse]


# ============================================================================
# Rate and worked-hours schemas
# ============================================================================


class RateFactorSchema(BaseModel):
    name: str
    amount: Decimal

    def to_factor(self) -> RateFactor:
        return RateFactor(name=self.name, amount=self.amount)


class SalaryRateUpdate(BaseModel):
    """Schema for setting a teacher's rate. Replaces all factors."""

    base_rate: Decimal
    factors: list[RateFactorSchema] = []


class SalaryRateResponse(BaseModel):
    """Schema for a resolved salary rate."""

    teacher_id: UUID
    base_rate: Decimal
    factors: list[RateFactorSchema]
    total_rate: Decimal

    @classmethod
    def from_resolved(cls, rate: ResolvedRate) -> "SalaryRateResponse":
        return cls(
            teacher_id=rate.teacher_id,
            base_rate=rate.base_rate,
            factors=[RateFactorSchema(name=f.name, amount=f.amount) for f in rate.factors],
            total_rate=rate.total_rate,
        )


class WorkedHoursResponse(BaseModel):
    """Schema for worked hours of one month."""

    teacher_id: UUID
    month: int
    year: int
    scheduled_hours: Decimal
    worked_hours: Decimal
    substituted_hours: Decimal
    substituted_by_others: Decimal
    total_usable_hours: Decimal

    @classmethod
    def from_hours(cls, hours: WorkedHours) -> "WorkedHoursResponse":
        return cls(**hours.to_dict())


class WorkedHoursStatsResponse(BaseModel):
    """Schema for yearly worked-hours totals."""

    teacher_id: UUID
    year: int
    total_scheduled: Decimal
    total_worked: Decimal
    total_substituted: Decimal
    total_substituted_by_others: Decimal
    efficiency: Decimal
    months: list[WorkedHoursResponse]


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    fallback: str | None = None
    context: dict[str, Any] | None = None
