"""Pydantic schemas for API request/response models."""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from workforce_payroll.calculators.types import (
    ApprovalStatus,
    DayType,
    PayPeriodType,
    PayrollStatus,
)

# Money leaves the API as a 2-place decimal string.
Money = Annotated[
    Decimal,
    PlainSerializer(
        lambda v: str(v.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)),
        return_type=str,
    ),
]


# ============================================================================
# Timesheet schemas
# ============================================================================


class TimesheetGenerateRequest(BaseModel):
    """Generate one worker's timesheet, or every worker's when worker_id is omitted."""

    project_id: UUID
    date: date
    worker_id: UUID | None = None
    rounding_strategy: str | None = None
    round_to_standard: bool = False


class TimesheetResponse(BaseModel):
    """Schema for timesheet entry response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    worker_id: UUID
    project_id: UUID
    company_id: UUID
    date: date
    clock_in: datetime | None = None
    clock_out: datetime | None = None
    break_duration_minutes: int
    regular_hours: Decimal
    overtime_hours: Decimal
    total_hours: Decimal
    hourly_rate: Money
    total_pay: Money
    supervisor_approval: ApprovalStatus
    auto_generated: bool
    needs_review: bool
    approved_at: datetime | None = None
    approved_by: UUID | None = None


class TimesheetGenerateResponse(BaseModel):
    """Schema for single-worker generation."""

    worker_id: UUID
    date: date
    created: bool
    open_shift: bool
    resplit_count: int
    timesheet: TimesheetResponse | None = None


class WorkerOutcomeResponse(BaseModel):
    """One worker's line in a batch generation."""

    worker_id: UUID
    success: bool
    timesheet: TimesheetResponse | None = None
    open_shift: bool = False
    error: str | None = None
    error_type: str | None = None


class BatchGenerateResponse(BaseModel):
    """Schema for batch generation."""

    project_id: UUID
    date: date
    succeeded: int
    failed: int
    results: list[WorkerOutcomeResponse]


class AutoClockoutRequest(BaseModel):
    """Schema for auto clock-out request."""

    date: date


class AutoClockoutResponse(BaseModel):
    """Schema for auto clock-out response."""

    date: date
    closed_worker_ids: list[UUID]
    events_created: int


# ============================================================================
# Payroll schemas
# ============================================================================


class PayrollGenerateRequest(BaseModel):
    """Schema for payroll generation request."""

    worker_id: UUID
    period_start: date
    period_end: date


class PayrollRecordResponse(BaseModel):
    """Schema for payroll record response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    worker_id: UUID
    company_id: UUID
    period_start: date
    period_end: date
    total_hours: Decimal
    overtime_hours: Decimal
    gross_pay: Money
    nib_deduction: Money
    other_deductions: Money
    total_deductions: Money
    net_pay: Money
    status: PayrollStatus
    calculation_id: UUID | None = None
    timesheet_count: int


class PayrollGenerateResponse(BaseModel):
    """Schema for payroll generation response."""

    generated: bool
    record: PayrollRecordResponse | None = None


class ApprovalResponse(BaseModel):
    """Schema for approval transitions.

    payroll_generated is false when the status change was kept but payroll
    regeneration failed; warning then says why.
    """

    timesheet: TimesheetResponse
    payroll_generated: bool
    payroll_record: PayrollRecordResponse | None = None
    warning: str | None = None


# ============================================================================
# Pay schedule schemas
# ============================================================================


class ScheduleRequest(BaseModel):
    """Payment schedule to validate."""

    pay_period_type: PayPeriodType
    pay_day: int
    pay_day_type: DayType
    period_start_day: int = 6
    period_start_type: DayType = DayType.DAY_OF_WEEK
    anchor_date: date | None = None
    custom_period_days: int | None = None


class ScheduleValidationResponse(BaseModel):
    """Schema for schedule validation."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    pay_day_label: str | None = None


class NextPayDatesResponse(BaseModel):
    """Schema for upcoming pay dates."""

    pay_dates: list[date]
    pay_day_label: str


class PayPeriodResponse(BaseModel):
    """Schema for the pay period containing a date."""

    date: date
    period_start: date
    period_end: date
    pay_date: date


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
