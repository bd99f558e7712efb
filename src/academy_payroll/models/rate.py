"""Salary rate models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from academy_payroll.models.base import Base, TimestampMixin, utcnow

if TYPE_CHECKING:
    from academy_payroll.models.teacher import Teacher


class SalaryRate(Base, TimestampMixin):
    """Hourly pay configuration of a teacher.

    One row per teacher. An update supersedes the previous values in place.
    """

    __tablename__ = "salary_rate"

    salary_rate_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    teacher_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("teacher.teacher_id", ondelete="CASCADE"),
        nullable=False,
    )
    base_rate: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        UniqueConstraint("teacher_id", name="salary_rate_teacher_unique"),
        CheckConstraint("base_rate > 0", name="salary_rate_base_positive"),
    )

    # Relationships
    teacher: Mapped[Teacher] = relationship(lazy="selectin")
    factors: Mapped[list[SalaryRateFactor]] = relationship(
        back_populates="salary_rate",
        cascade="all, delete-orphan",
        order_by="SalaryRateFactor.position",
        lazy="selectin",
    )

    @property
    def total_rate(self) -> Decimal:
        """Base rate plus every factor amount."""
        return self.base_rate + sum((f.amount for f in self.factors), Decimal("0"))


class SalaryRateFactor(Base):
    """Named additive per-hour increment (experience, category, etc.)."""

    __tablename__ = "salary_rate_factor"

    salary_rate_factor_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    salary_rate_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("salary_rate.salary_rate_id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)

    __table_args__ = (
        CheckConstraint("amount >= 0", name="salary_rate_factor_amount_nonneg"),
    )

    salary_rate: Mapped[SalaryRate] = relationship(back_populates="factors")
