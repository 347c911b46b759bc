"""Type definitions for the timesheet and payroll pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


class ClockEventType(str, Enum):
    """Clock event kinds produced by scanners, biometric taps and manual entry."""

    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"
    BREAK_START = "break_start"
    BREAK_END = "break_end"


class ClockEventSource(str, Enum):
    """Where a clock event came from."""

    QR = "qr"
    BIOMETRIC = "biometric"
    MANUAL = "manual"
    AUTO = "auto"


class RoundingStrategy(str, Enum):
    """Named policies for snapping clock times or totals."""

    EXACT = "exact"
    NO_ROUNDING = "no_rounding"
    NEAREST_15 = "nearest_15"
    QUARTER_HOUR = "quarter_hour"
    NEAREST_30 = "nearest_30"
    STANDARD = "standard"


class ApprovalStatus(str, Enum):
    """Supervisor approval states for a timesheet entry."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PayrollStatus(str, Enum):
    """Payroll record lifecycle."""

    DRAFT = "draft"
    CONFIRMED = "confirmed"
    PAID = "paid"


class PayPeriodType(str, Enum):
    """Pay period frequencies."""

    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class DayType(str, Enum):
    """How a pay day or period start day number is interpreted."""

    DAY_OF_MONTH = "day_of_month"
    DAY_OF_WEEK = "day_of_week"


class DeductionType(str, Enum):
    """Deduction rule kinds."""

    PERCENTAGE = "percentage"
    FIXED = "fixed"


# ===== Inputs =====


@dataclass(frozen=True)
class ClockEvent:
    """An immutable clock event. Timestamps must be timezone-aware."""

    worker_id: UUID
    event_type: ClockEventType
    timestamp: datetime
    project_id: UUID | None = None
    location: str | None = None
    source: ClockEventSource = ClockEventSource.MANUAL


@dataclass(frozen=True)
class Worker:
    """Worker pay profile."""

    id: UUID
    company_id: UUID
    name: str
    hourly_rate: Decimal
    # Multiplier override; falls back to the company overtime rate when None.
    overtime_rate: Decimal | None = None
    nib_exempt: bool = False
    is_active: bool = True


@dataclass(frozen=True)
class PaymentSchedule:
    """Company pay schedule configuration."""

    pay_period_type: PayPeriodType
    pay_day: int
    pay_day_type: DayType
    period_start_day: int = 6
    period_start_type: DayType = DayType.DAY_OF_WEEK
    # A known period start; aligns bi-weekly and custom periods.
    anchor_date: date = date(2024, 1, 6)
    custom_period_days: int | None = None


@dataclass(frozen=True)
class PayrollSettings:
    """Company payroll configuration."""

    nib_enabled: bool = True
    nib_rate: Decimal = Decimal("4.65")  # percent of gross
    overtime_rate: Decimal = Decimal("1.5")  # multiplier


@dataclass(frozen=True)
class TimesheetSettings:
    """Company timesheet configuration."""

    work_day_end: time = time(17, 0)
    break_time_minutes: int = 0
    overtime_threshold: Decimal = Decimal("8")  # hours per day
    weekly_overtime_threshold: Decimal | None = None
    rounding_method: RoundingStrategy = RoundingStrategy.EXACT
    auto_clockout: bool = True
    allow_overtime: bool = True
    week_start_day: int = 6  # ISO weekday, 6 = Saturday
    timezone: str = "America/Nassau"


@dataclass(frozen=True)
class DeductionLine:
    """A manually entered deduction for one worker and period."""

    amount: Decimal
    description: str = ""
    worker_id: UUID | None = None


@dataclass(frozen=True)
class DeductionRule:
    """A recurring company deduction evaluated at payroll time."""

    name: str
    type: DeductionType
    value: Decimal
    is_active: bool = True
    applies_to_overtime: bool = True


# ===== Pipeline values =====


def elapsed(start: datetime, end: datetime) -> timedelta:
    """Real time between two aware instants, across DST changes."""
    return end.astimezone(timezone.utc) - start.astimezone(timezone.utc)


@dataclass(frozen=True)
class Interval:
    """A paired clock-in/clock-out interval."""

    clock_in: datetime
    clock_out: datetime
    break_minutes: int = 0
    auto_generated: bool = False

    @property
    def gross_minutes(self) -> Decimal:
        return Decimal(int(elapsed(self.clock_in, self.clock_out).total_seconds())) / 60


@dataclass
class NormalizedDay:
    """Normalizer output for one worker on one date."""

    worker_id: UUID
    work_date: date
    intervals: list[Interval] = field(default_factory=list)
    open_shift: bool = False

    @property
    def auto_generated(self) -> bool:
        return any(i.auto_generated for i in self.intervals)

    @property
    def break_minutes(self) -> int:
        return sum(i.break_minutes for i in self.intervals)


@dataclass(frozen=True)
class RoundedHours:
    """Rounding engine output."""

    hours: Decimal
    clock_in: datetime | None = None
    clock_out: datetime | None = None
    needs_review: bool = False


@dataclass(frozen=True)
class HoursSplit:
    """Regular/overtime split of a day's hours."""

    regular_hours: Decimal
    overtime_hours: Decimal

    @property
    def total_hours(self) -> Decimal:
        return self.regular_hours + self.overtime_hours


@dataclass(frozen=True)
class PayPeriod:
    """Inclusive pay period boundaries."""

    start_date: date
    end_date: date

    def __post_init__(self) -> None:
        if self.start_date > self.end_date:
            raise ValueError(
                f"Pay period start {self.start_date} is after end {self.end_date}"
            )

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


# ===== Records =====


@dataclass
class TimesheetEntry:
    """Daily timesheet aggregate, keyed by (worker_id, project_id, date)."""

    worker_id: UUID
    project_id: UUID
    company_id: UUID
    date: date
    clock_in: datetime | None = None
    clock_out: datetime | None = None
    break_duration_minutes: int = 0
    regular_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    total_hours: Decimal = Decimal("0")
    hourly_rate: Decimal = Decimal("0")
    total_pay: Decimal = Decimal("0")
    supervisor_approval: ApprovalStatus = ApprovalStatus.PENDING
    auto_generated: bool = False
    needs_review: bool = False
    approved_at: datetime | None = None
    approved_by: UUID | None = None
    id: UUID | None = None

    @property
    def natural_key(self) -> tuple[UUID, UUID, date]:
        return (self.worker_id, self.project_id, self.date)


@dataclass
class PayrollRecord:
    """Payroll aggregate, keyed by (worker_id, period_start, period_end)."""

    worker_id: UUID
    company_id: UUID
    period_start: date
    period_end: date
    # Sum of regular hours; overtime hours are carried separately.
    total_hours: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    gross_pay: Decimal = Decimal("0")
    nib_deduction: Decimal = Decimal("0")
    other_deductions: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")
    net_pay: Decimal = Decimal("0")
    status: PayrollStatus = PayrollStatus.DRAFT
    calculation_id: UUID | None = None
    timesheet_count: int = 0
    id: UUID | None = None

    @property
    def natural_key(self) -> tuple[UUID, date, date]:
        return (self.worker_id, self.period_start, self.period_end)

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict of the calculated values (deterministic ordering)."""
        return {
            "worker_id": str(self.worker_id),
            "company_id": str(self.company_id),
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "total_hours": str(self.total_hours),
            "overtime_hours": str(self.overtime_hours),
            "gross_pay": str(self.gross_pay),
            "nib_deduction": str(self.nib_deduction),
            "other_deductions": str(self.other_deductions),
            "total_deductions": str(self.total_deductions),
            "net_pay": str(self.net_pay),
            "calculation_id": str(self.calculation_id) if self.calculation_id else None,
            "timesheet_count": self.timesheet_count,
        }
