"""Payment schedule, payroll settings, deduction and payroll record models."""

from __future__ import annotations

from datetime import date, datetime
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
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from workforce_payroll.models.base import Base, TimestampMixin


# ===== Configuration =====


class PaymentSchedule(Base, TimestampMixin):
    """Company pay schedule."""

    __tablename__ = "payment_schedule"

    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        primary_key=True,
    )
    pay_period_type: Mapped[str] = mapped_column(String, nullable=False)
    pay_day: Mapped[int] = mapped_column(Integer, nullable=False)
    pay_day_type: Mapped[str] = mapped_column(String, nullable=False)
    period_start_day: Mapped[int] = mapped_column(Integer, nullable=False, default=6)
    period_start_type: Mapped[str] = mapped_column(
        String, nullable=False, default="day_of_week"
    )
    anchor_date: Mapped[date] = mapped_column(Date, nullable=False, default=date(2024, 1, 6))
    custom_period_days: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "pay_period_type IN ('weekly', 'bi-weekly', 'monthly', 'custom')",
            name="payment_schedule_type_check",
        ),
        CheckConstraint(
            "pay_day_type IN ('day_of_month', 'day_of_week')",
            name="payment_schedule_day_type_check",
        ),
    )


class PayrollSettings(Base, TimestampMixin):
    """Company payroll configuration."""

    __tablename__ = "payroll_settings"

    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        primary_key=True,
    )
    nib_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    nib_rate: Mapped[Decimal] = mapped_column(Numeric(6, 4), nullable=False, default=Decimal("4.65"))
    overtime_rate: Mapped[Decimal] = mapped_column(
        Numeric(6, 4), nullable=False, default=Decimal("1.5")
    )


# ===== Deductions =====


class DeductionRule(Base, TimestampMixin):
    """Recurring company deduction."""

    __tablename__ = "deduction_rule"

    rule_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    value: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    applies_to_overtime: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint("type IN ('percentage', 'fixed')", name="deduction_rule_type_check"),
        CheckConstraint("value >= 0", name="deduction_rule_value_check"),
    )


class PayrollDeduction(Base, TimestampMixin):
    """Manually entered deduction for one worker and period."""

    __tablename__ = "payroll_deduction"

    deduction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    worker_id: Mapped[UUID] = mapped_column(
        ForeignKey("worker.worker_id", ondelete="CASCADE"),
        nullable=False,
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    description: Mapped[str] = mapped_column(String, nullable=False, default="")

    __table_args__ = (
        CheckConstraint("amount >= 0", name="payroll_deduction_amount_check"),
        Index("ix_payroll_deduction_worker_period", "worker_id", "period_start", "period_end"),
    )


# ===== Payroll records =====


class PayrollRecord(Base, TimestampMixin):
    """Payroll aggregate per (worker, period)."""

    __tablename__ = "payroll_record"

    payroll_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    company_id: Mapped[UUID] = mapped_column(
        ForeignKey("company.company_id", ondelete="CASCADE"),
        nullable=False,
    )
    worker_id: Mapped[UUID] = mapped_column(
        ForeignKey("worker.worker_id", ondelete="CASCADE"),
        nullable=False,
    )
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    total_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    overtime_hours: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=0)
    gross_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    nib_deduction: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    other_deductions: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    total_deductions: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    net_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    calculation_id: Mapped[UUID | None] = mapped_column(nullable=True)
    timesheet_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[UUID | None] = mapped_column(nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "worker_id",
            "period_start",
            "period_end",
            name="payroll_record_worker_period_unique",
        ),
        CheckConstraint(
            "status IN ('draft', 'confirmed', 'paid')",
            name="payroll_record_status_check",
        ),
        CheckConstraint("period_end >= period_start", name="payroll_record_dates_check"),
        CheckConstraint(
            "gross_pay >= 0 AND net_pay >= 0 AND total_deductions >= 0",
            name="payroll_record_amounts_check",
        ),
    )
