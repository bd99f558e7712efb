"""Lesson schedule and worked-hours cache models."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from academy_payroll.models.base import HOURS, Base, TimestampMixin, utcnow


class LessonSlot(Base, TimestampMixin):
    """A dated lesson assigned to a teacher, optionally covered by a substitute."""

    __tablename__ = "lesson_slot"

    slot_id: Mapped[UUID] = mapped_column(
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
    substitute_teacher_id: Mapped[UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("teacher.teacher_id"),
        nullable=True,
        index=True,
    )
    lesson_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="SCHEDULED")
    substitute_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "status IN ('SCHEDULED', 'COMPLETED', 'CANCELLED', 'POSTPONED', "
            "'RESCHEDULED', 'MOVED')",
            name="lesson_slot_status_check",
        ),
        CheckConstraint("end_time > start_time", name="lesson_slot_times_check"),
    )


class TeacherWorkedHours(Base):
    """Cached worked-hours figures for a teacher and month.

    Always recomputable from lesson slots; rewritten on every calculation.
    """

    __tablename__ = "teacher_worked_hours"

    teacher_worked_hours_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    teacher_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("teacher.teacher_id", ondelete="CASCADE"),
        nullable=False,
    )
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    scheduled_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False)
    worked_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False)
    substituted_hours: Mapped[Decimal] = mapped_column(HOURS, nullable=False)
    substituted_by_others: Mapped[Decimal] = mapped_column(HOURS, nullable=False)
    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        UniqueConstraint("teacher_id", "month", "year", name="worked_hours_period_unique"),
        CheckConstraint("month BETWEEN 1 AND 12", name="worked_hours_month_check"),
    )
