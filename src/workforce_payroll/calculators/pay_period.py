"""Pay period resolution and pay date arithmetic."""

from __future__ import annotations

import calendar
from datetime import date, timedelta

from workforce_payroll.calculators.types import (
    DayType,
    PaymentSchedule,
    PayPeriod,
    PayPeriodType,
)

DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


class InvalidScheduleConfigurationError(Exception):
    """Raised when a payment schedule fails validation."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("Invalid payment schedule: " + "; ".join(errors))


# ===== Date helpers =====


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamped_date(year: int, month: int, day: int) -> date:
    """Build a date, clamping the day to the last day of the month."""
    return date(year, month, min(day, days_in_month(year, month)))


def add_months(day: date, months: int) -> date:
    """Shift a date by whole months, keeping the month number valid."""
    month_index = day.year * 12 + (day.month - 1) + months
    return date(month_index // 12, month_index % 12 + 1, 1)


# ===== Validation =====


def validate_pay_day(pay_day: int, pay_day_type: DayType) -> str | None:
    """Validate a pay day.

    Returns a non-fatal warning (or None).

    Raises:
        InvalidScheduleConfigurationError: the day is out of range
    """
    if pay_day_type == DayType.DAY_OF_MONTH:
        if pay_day < 1 or pay_day > 31:
            raise InvalidScheduleConfigurationError(["Day of month must be between 1 and 31"])
        if pay_day > 28:
            return (
                "Some months don't have this day. Payment will be made on the "
                "last day of those months."
            )
    else:
        if pay_day < 1 or pay_day > 7:
            raise InvalidScheduleConfigurationError(
                ["Day of week must be between 1 (Monday) and 7 (Sunday)"]
            )
    return None


def validate_period_start_day(
    start_day: int,
    start_day_type: DayType,
    pay_day: int,
    pay_day_type: DayType,
    pay_period_type: PayPeriodType,
) -> str | None:
    """Validate the period start day against the pay day.

    Returns a non-fatal warning (or None).

    Raises:
        InvalidScheduleConfigurationError: the start day is out of range or
            collides with the pay day
    """
    if start_day_type == DayType.DAY_OF_MONTH:
        if start_day < 1 or start_day > 31:
            raise InvalidScheduleConfigurationError(["Day of month must be between 1 and 31"])
        if pay_day_type == DayType.DAY_OF_MONTH and pay_period_type == PayPeriodType.MONTHLY:
            if start_day >= pay_day:
                raise InvalidScheduleConfigurationError(
                    ["Period start day should be before the pay day"]
                )
        if start_day > 28:
            return (
                "Some months don't have this day. Period will start on the "
                "last day of those months."
            )
    else:
        if start_day < 1 or start_day > 7:
            raise InvalidScheduleConfigurationError(
                ["Day of week must be between 1 (Monday) and 7 (Sunday)"]
            )
        if pay_day_type == DayType.DAY_OF_WEEK and start_day == pay_day:
            if pay_period_type in (PayPeriodType.WEEKLY, PayPeriodType.BI_WEEKLY):
                raise InvalidScheduleConfigurationError(
                    [
                        f"For {pay_period_type.value} pay periods, start day should "
                        "be different from pay day"
                    ]
                )
    return None


def validate_schedule(schedule: PaymentSchedule) -> list[str]:
    """Validate a full schedule before any date math runs.

    Returns the list of non-fatal warnings.

    Raises:
        InvalidScheduleConfigurationError: with every error found
    """
    errors: list[str] = []
    warnings: list[str] = []

    for check in (
        lambda: validate_pay_day(schedule.pay_day, schedule.pay_day_type),
        lambda: validate_period_start_day(
            schedule.period_start_day,
            schedule.period_start_type,
            schedule.pay_day,
            schedule.pay_day_type,
            schedule.pay_period_type,
        ),
    ):
        try:
            warning = check()
        except InvalidScheduleConfigurationError as e:
            errors.extend(e.errors)
        else:
            if warning:
                warnings.append(warning)

    if schedule.pay_period_type in (PayPeriodType.WEEKLY, PayPeriodType.BI_WEEKLY):
        if schedule.period_start_type != DayType.DAY_OF_WEEK:
            errors.append(
                f"{schedule.pay_period_type.value} periods must start on a day of the week"
            )
    if schedule.pay_period_type == PayPeriodType.MONTHLY:
        if schedule.period_start_type != DayType.DAY_OF_MONTH:
            errors.append("Monthly periods must start on a day of the month")
    if schedule.pay_period_type == PayPeriodType.CUSTOM:
        if not schedule.custom_period_days or schedule.custom_period_days < 1:
            errors.append("Custom periods need a positive period length in days")

    if errors:
        raise InvalidScheduleConfigurationError(errors)
    return warnings


# ===== Pay dates =====


def next_pay_date(from_date: date, schedule: PaymentSchedule) -> date:
    """Return the first pay date strictly after from_date.

    day_of_month: the pay day in from_date's month, or next month's when it
    has already passed; clamped to the month's last day.
    day_of_week (1=Monday..7=Sunday): the next occurrence of the pay day;
    when it is not ahead in the current week, advance 7 days (14 for
    bi-weekly schedules).
    """
    if schedule.pay_day_type == DayType.DAY_OF_MONTH:
        target = clamped_date(from_date.year, from_date.month, schedule.pay_day)
        if target <= from_date:
            following = add_months(from_date, 1)
            target = clamped_date(following.year, following.month, schedule.pay_day)
        return target

    days_to_add = schedule.pay_day - from_date.isoweekday()
    if days_to_add <= 0:
        days_to_add += 14 if schedule.pay_period_type == PayPeriodType.BI_WEEKLY else 7
    return from_date + timedelta(days=days_to_add)


def get_next_pay_dates(
    schedule: PaymentSchedule,
    count: int = 3,
    today: date | None = None,
) -> list[date]:
    """Return the next `count` pay dates after today, strictly increasing."""
    validate_schedule(schedule)
    current = today or date.today()
    dates: list[date] = []
    while len(dates) < count:
        current = next_pay_date(current, schedule)
        dates.append(current)
    return dates


# ===== Periods =====


def _aligned_block(day: date, anchor: date, length_days: int) -> PayPeriod:
    offset = (day - anchor).days // length_days
    start = anchor + timedelta(days=offset * length_days)
    return PayPeriod(start_date=start, end_date=start + timedelta(days=length_days - 1))


def _align_to_weekday(day: date, weekday: int) -> date:
    return day - timedelta(days=(day.isoweekday() - weekday) % 7)


def period_containing(day: date, schedule: PaymentSchedule) -> PayPeriod:
    """Return the pay period that contains a date.

    weekly: seven days starting on the period start weekday
    bi-weekly: fourteen-day blocks aligned to the schedule anchor
    monthly: from the period start day (clamped) to the day before the next start
    custom: blocks of custom_period_days aligned to the schedule anchor
    """
    validate_schedule(schedule)
    period_type = schedule.pay_period_type

    if period_type == PayPeriodType.WEEKLY:
        start = _align_to_weekday(day, schedule.period_start_day)
        return PayPeriod(start_date=start, end_date=start + timedelta(days=6))

    if period_type == PayPeriodType.BI_WEEKLY:
        anchor = _align_to_weekday(schedule.anchor_date, schedule.period_start_day)
        return _aligned_block(day, anchor, 14)

    if period_type == PayPeriodType.MONTHLY:
        start = clamped_date(day.year, day.month, schedule.period_start_day)
        if start > day:
            previous = add_months(day, -1)
            start = clamped_date(previous.year, previous.month, schedule.period_start_day)
        following = add_months(start, 1)
        next_start = clamped_date(following.year, following.month, schedule.period_start_day)
        return PayPeriod(start_date=start, end_date=next_start - timedelta(days=1))

    return _aligned_block(day, schedule.anchor_date, schedule.custom_period_days)


def pay_date_for_period(period: PayPeriod, schedule: PaymentSchedule) -> date:
    """Return the first pay date on or after the period end.

    A weekday pay day is the next occurrence of that weekday, whatever the
    period length.
    """
    end = period.end_date
    if schedule.pay_day_type == DayType.DAY_OF_WEEK:
        return end + timedelta(days=(schedule.pay_day - end.isoweekday()) % 7)
    return next_pay_date(end - timedelta(days=1), schedule)


def format_pay_day(day: int, day_type: DayType) -> str:
    """Human label for a pay day: '15th' or 'Friday'."""
    if day_type == DayType.DAY_OF_MONTH:
        if 11 <= day <= 13:
            suffix = "th"
        else:
            suffix = {1: "st", 2: "nd", 3: "rd"}.get(day % 10, "th")
        return f"{day}{suffix}"
    return DAY_NAMES[day - 1] if 1 <= day <= 7 else ""
