"""Timesheet aggregation: regular/overtime split and entry assembly."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from workforce_payroll.calculators.types import (
    HoursSplit,
    PayrollSettings,
    RoundedHours,
    TimesheetEntry,
    TimesheetSettings,
    Worker,
)

ZERO = Decimal("0")
CENTS = Decimal("0.01")


class NoActiveProjectAssignmentError(Exception):
    """Raised when a worker has no active assignment to a project on a date."""

    def __init__(self, worker_id: UUID, project_id: UUID, work_date: date):
        self.worker_id = worker_id
        self.project_id = project_id
        self.work_date = work_date
        super().__init__(
            f"Worker {worker_id} has no active assignment to project "
            f"{project_id} on {work_date}"
        )


class UnattributedClockEventsError(Exception):
    """Raised when clock events without a project cannot be tied to a single assignment."""

    def __init__(self, worker_id: UUID, work_date: date, project_ids: list[UUID]):
        self.worker_id = worker_id
        self.work_date = work_date
        self.project_ids = project_ids
        super().__init__(
            f"Worker {worker_id} has clock events without a project on {work_date} "
            f"and {len(project_ids)} active assignments"
        )


def split_hours(
    total_hours: Decimal,
    daily_threshold: Decimal | None,
    weekly_threshold: Decimal | None = None,
    week_to_date_regular: Decimal = ZERO,
    allow_overtime: bool = True,
    day_to_date_hours: Decimal = ZERO,
) -> HoursSplit:
    """Split an entry's hours into regular and overtime.

    Hours up to the daily threshold are regular, less the hours already
    worked that day on entries ordered before this one. With a weekly threshold,
    regular hours are further capped by what is left of the week after the
    regular hours already worked earlier in the same week.
    """
    total_hours = max(total_hours, ZERO)
    if not allow_overtime:
        return HoursSplit(regular_hours=total_hours, overtime_hours=ZERO)

    regular = total_hours
    if daily_threshold is not None:
        remaining_day = max(daily_threshold - max(day_to_date_hours, ZERO), ZERO)
        regular = min(regular, remaining_day)

    if weekly_threshold is not None:
        remaining_week = max(weekly_threshold - max(week_to_date_regular, ZERO), ZERO)
        regular = min(regular, remaining_week)

    return HoursSplit(regular_hours=regular, overtime_hours=total_hours - regular)


def week_start_for(day: date, week_start_day: int) -> date:
    """Return the first day of the pay week containing a date (ISO weekday start)."""
    if not 1 <= week_start_day <= 7:
        raise ValueError(f"Week start day must be between 1 and 7, got {week_start_day}")
    offset = (day.isoweekday() - week_start_day) % 7
    return day - timedelta(days=offset)


def entry_pay(
    split: HoursSplit,
    hourly_rate: Decimal,
    overtime_multiplier: Decimal,
) -> Decimal:
    """Compute a timesheet's pay at the hourly rate with the overtime multiplier."""
    pay = split.regular_hours * hourly_rate + split.overtime_hours * hourly_rate * overtime_multiplier
    return pay.quantize(CENTS, rounding=ROUND_HALF_UP)


def overtime_multiplier_for(worker: Worker, payroll_settings: PayrollSettings) -> Decimal:
    """Worker override first, then the company multiplier."""
    if worker.overtime_rate is not None:
        return worker.overtime_rate
    return payroll_settings.overtime_rate


def build_entry(
    *,
    worker: Worker,
    project_id: UUID,
    work_date: date,
    rounded: RoundedHours,
    break_minutes: int,
    timesheet_settings: TimesheetSettings,
    payroll_settings: PayrollSettings,
    week_to_date_regular: Decimal = ZERO,
    auto_generated: bool = False,
) -> TimesheetEntry:
    """Assemble a pending TimesheetEntry from rounded hours.

    Keeps total_hours == regular_hours + overtime_hours.
    """
    split = split_hours(
        rounded.hours,
        timesheet_settings.overtime_threshold,
        timesheet_settings.weekly_overtime_threshold,
        week_to_date_regular,
        timesheet_settings.allow_overtime,
    )
    return TimesheetEntry(
        worker_id=worker.id,
        project_id=project_id,
        company_id=worker.company_id,
        date=work_date,
        clock_in=rounded.clock_in,
        clock_out=rounded.clock_out,
        break_duration_minutes=break_minutes,
        regular_hours=split.regular_hours,
        overtime_hours=split.overtime_hours,
        total_hours=split.total_hours,
        hourly_rate=worker.hourly_rate,
        total_pay=entry_pay(split, worker.hourly_rate, overtime_multiplier_for(worker, payroll_settings)),
        auto_generated=auto_generated,
        needs_review=rounded.needs_review,
    )


def resplit_entry(
    entry: TimesheetEntry,
    timesheet_settings: TimesheetSettings,
    overtime_multiplier: Decimal,
    week_to_date_regular: Decimal,
    day_to_date_hours: Decimal = ZERO,
) -> bool:
    """Re-apply the daily and weekly caps to an existing entry in place.

    Returns True when the split changed.
    """
    split = split_hours(
        entry.total_hours,
        timesheet_settings.overtime_threshold,
        timesheet_settings.weekly_overtime_threshold,
        week_to_date_regular,
        timesheet_settings.allow_overtime,
        day_to_date_hours,
    )
    if split.regular_hours == entry.regular_hours and split.overtime_hours == entry.overtime_hours:
        return False
    entry.regular_hours = split.regular_hours
    entry.overtime_hours = split.overtime_hours
    entry.total_pay = entry_pay(split, entry.hourly_rate, overtime_multiplier)
    return True


def worked_order(entry: TimesheetEntry) -> tuple[date, float, str]:
    """Order in which a worker's entries use up the daily and weekly thresholds."""
    started = entry.clock_in.timestamp() if entry.clock_in is not None else float("inf")
    return (entry.date, started, str(entry.project_id))
