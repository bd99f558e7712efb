"""Salary record, adjustment and audit models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from academy_payroll.calculators.types import Adjustment, AdjustmentKind
from academy_payroll.models.base import AMOUNT, HOURS, Base, TimestampMixin, utcnow

if TYPE_CHECKING:
    from academy_payroll.models.teacher import Teacher

class SalaryRecord(Base, TimestampMixin):
    """One payroll computation for a teacher for a month.

    ``hourly_rate`` and ``hours_worked`` are snapshots taken at calculation
    time. Hours and amounts are stored to ten decimal places. The
    ``total_*`` columns are cached results, always recomputable from
    ``base_salary`` and the adjustment rows.
    """

    __tablename__ = "salary_record"

    salary_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    teacher_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("teacher.teacher_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    # Calculation snapshot
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(14, 4), nullable=True)
    hours_worked: Mapped[Decimal | None] = mapped_column(HOURS, nullable=True)
    base_salary: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)

    # Cached totals
    total_allowances: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False, default=Decimal("0"))
    total_bonuses: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False, default=Decimal("0"))
    total_deductions: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False, default=Decimal("0"))
    total_gross: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)
    total_net: Mapped[Decimal] = mapped_column(AMOUNT, nullable=False)

    # Workflow
    status: Mapped[str] = mapped_column(String, nullable=False, default="DRAFT")
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejected_by: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("teacher_id", "month", "year", name="salary_record_period_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="salary_record_month_check"),
        CheckConstraint(
            "status IN ('DRAFT', 'APPROVED', 'PAID', 'CANCELLED')",
            name="salary_record_status_check",
        ),
    )
    __mapper_args__ = {"version_id_col": version_id}

    # Relationships
    teacher: Mapped[Teacher] = relationship(lazy="selectin")
    adjustments: Mapped[list[SalaryAdjustment]] = relationship(
        back_populates="salary",
        cascade="all, delete-orphan",
        order_by="SalaryAdjustment.position",
        lazy="selectin",
    )

    def adjustments_of(self, kind: AdjustmentKind) -> list[Adjustment]:
        """Return adjustment rows of one kind as calculation values."""
        return [a.to_adjustment() for a in self.adjustments if a.kind == kind.value]

    @property
    def allowances(self) -> list[Adjustment]:
        return self.adjustments_of(AdjustmentKind.ALLOWANCE)

    @property
    def bonuses(self) -> list[Adjustment]:
        return self.adjustments_of(AdjustmentKind.BONUS)

    @property
    def deductions(self) -> list[Adjustment]:
        return self.adjustments_of(AdjustmentKind.DEDUCTION)


class SalaryAdjustment(Base):
    """Allowance, bonus or deduction row attached to a salary record."""

    __tablename__ = "salary_adjustment"

    adjustment_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    salary_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("salary_record.salary_id", ondelete="CASCADE"),
        nullable=False,
    )
    kind: Mapped[str] = mapped_column(String, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 4), nullable=False)
    is_percentage: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    category: Mapped[str | None] = mapped_column(String, nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "kind IN ('ALLOWANCE', 'BONUS', 'DEDUCTION')",
            name="salary_adjustment_kind_check",
        ),
        CheckConstraint("amount >= 0", name="salary_adjustment_amount_nonneg"),
    )

    salary: Mapped[SalaryRecord] = relationship(back_populates="adjustments")

    @classmethod
    def from_adjustment(
        cls, kind: AdjustmentKind, position: int, adjustment: Adjustment
    ) -> SalaryAdjustment:
        return cls(
            kind=kind.value,
            position=position,
            name=adjustment.name.strip(),
            amount=adjustment.amount,
            is_percentage=adjustment.is_percentage,
            category=adjustment.category,
            comment=adjustment.comment,
        )

    def to_adjustment(self) -> Adjustment:
        return Adjustment(
            name=self.name,
            amount=self.amount,
            is_percentage=self.is_percentage,
            comment=self.comment,
            category=self.category,
        )


class SalaryAuditEvent(Base, TimestampMixin):
    """Audit trail entry for a salary record."""

    __tablename__ = "salary_audit_event"

    audit_event_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    salary_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("salary_record.salary_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    actor_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    action: Mapped[str] = mapped_column(String, nullable=False)
    from_status: Mapped[str | None] = mapped_column(String, nullable=True)
    to_status: Mapped[str | None] = mapped_column(String, nullable=True)
    details_json: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
