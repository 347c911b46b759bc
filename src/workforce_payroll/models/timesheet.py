"""Clock event, timesheet and timesheet settings models."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Time,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from workforce_payroll.models.base import Base, TimestampMixin


class ClockEvent(Base, TimestampMixin):
    """Raw clock event. Never updated once written."""

    __tablename__ = "clock_event"

    clock_event_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    worker_id: Mapped[UUID] = mapped_column(
        ForeignKey("worker.worker_id", ondelete="CASCADE"),
        nullable=False,
    )
    project_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("project.project_id", ondelete="SET NULL"),
        nullable=True,
    )
    event_type: Mapped[str] = mapped_column(String, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    location: Mapped[str | None] = mapped_column(String, nullable=True)
    source: Mapped[str] = mapped_column(String, nullable=False, default="manual")

    __table_args__ = (
        CheckConstraint(
            "event_type IN ('clock_in', 'clock_out', 'break_start', 'break_end')",
            name="clock_event_type_check",
        ),
        CheckConstraint(
            "source IN ('qr', 'biometric', 'manual', 'auto')",
            name="clock_event_source_check",
        ),
        Index("ix_clock_event_worker_time", "company_id", "worker_id", "timestamp"),
    )


class Timesheet(Base, TimestampMixin):
    """Daily timesheet per (worker, project, date)."""

    __tablename__ = "timesheet"

    timesheet_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    worker_id: Mapped[UUID] = mapped_column(
        ForeignKey("worker.worker_id", ondelete="CASCADE"),
        nullable=False,
    )
    project_id: Mapped[UUID] = mapped_column(
        ForeignKey("project.project_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    clock_in: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    clock_out: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    break_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    regular_hours: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False, default=0)
    overtime_hours: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False, default=0)
    total_hours: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False, default=0)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    supervisor_approval: Mapped[str] = mapped_column(String, nullable=False, default="pending")
    auto_generated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    needs_review: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[UUID | None] = mapped_column(nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "worker_id",
            "project_id",
            "work_date",
            name="timesheet_worker_project_date_unique",
        ),
        CheckConstraint(
            "supervisor_approval IN ('pending', 'approved', 'rejected')",
            name="timesheet_approval_check",
        ),
        CheckConstraint(
            "regular_hours >= 0 AND overtime_hours >= 0",
            name="timesheet_hours_check",
        ),
        Index("ix_timesheet_company_worker_date", "company_id", "worker_id", "work_date"),
    )


class TimesheetSettings(Base, TimestampMixin):
    """Company-wide timesheet configuration."""

    __tablename__ = "timesheet_settings"

    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        primary_key=True,
    )
    work_day_end: Mapped[time] = mapped_column(Time, nullable=False, default=time(17, 0))
    break_time_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    overtime_threshold: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("8")
    )
    weekly_overtime_threshold: Mapped[Decimal | None] = mapped_column(
        Numeric(6, 2), nullable=True
    )
    rounding_method: Mapped[str] = mapped_column(String, nullable=False, default="exact")
    auto_clockout: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    allow_overtime: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    week_start_day: Mapped[int] = mapped_column(Integer, nullable=False, default=6)
    timezone: Mapped[str] = mapped_column(String, nullable=False, default="America/Nassau")

    __table_args__ = (
        CheckConstraint(
            "week_start_day BETWEEN 1 AND 7",
            name="timesheet_settings_week_start_check",
        ),
    )
