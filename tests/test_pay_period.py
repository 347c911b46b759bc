"""Tests for pay period resolution and pay date arithmetic."""

from dataclasses import replace
from datetime import date

import pytest

from workforce_payroll.calculators.pay_period import (
    InvalidScheduleConfigurationError,
    format_pay_day,
    get_next_pay_dates,
    next_pay_date,
    pay_date_for_period,
    period_containing,
    validate_pay_day,
    validate_period_start_day,
    validate_schedule,
)
from workforce_payroll.calculators.types import (
    DayType,
    PaymentSchedule,
    PayPeriod,
    PayPeriodType,
)


def monthly(pay_day: int, start_day: int = 1) -> PaymentSchedule:
    return PaymentSchedule(
        pay_period_type=PayPeriodType.MONTHLY,
        pay_day=pay_day,
        pay_day_type=DayType.DAY_OF_MONTH,
        period_start_day=start_day,
        period_start_type=DayType.DAY_OF_MONTH,
    )


class TestValidation:
    """Schedule validation."""

    def test_pay_day_past_28_warns(self):
        """Day 31 is allowed but warns about short months."""
        warning = validate_pay_day(31, DayType.DAY_OF_MONTH)

        assert warning is not None
        assert "last day" in warning

    def test_pay_day_out_of_range(self):
        with pytest.raises(InvalidScheduleConfigurationError) as exc_info:
            validate_pay_day(0, DayType.DAY_OF_MONTH)

        assert exc_info.value.errors == ["Day of month must be between 1 and 31"]

    def test_weekday_out_of_range(self):
        with pytest.raises(InvalidScheduleConfigurationError):
            validate_pay_day(8, DayType.DAY_OF_WEEK)

    def test_monthly_start_must_precede_pay_day(self):
        """A monthly period cannot start on or after its pay day."""
        with pytest.raises(InvalidScheduleConfigurationError) as exc_info:
            validate_period_start_day(
                15, DayType.DAY_OF_MONTH, 15, DayType.DAY_OF_MONTH, PayPeriodType.MONTHLY
            )

        assert "before the pay day" in exc_info.value.errors[0]

    def test_weekly_start_differs_from_pay_day(self):
        """Weekly periods cannot start on the pay day."""
        with pytest.raises(InvalidScheduleConfigurationError) as exc_info:
            validate_period_start_day(
                5, DayType.DAY_OF_WEEK, 5, DayType.DAY_OF_WEEK, PayPeriodType.WEEKLY
            )

        assert "different from pay day" in exc_info.value.errors[0]

    def test_valid_schedule(self, weekly_schedule):
        assert validate_schedule(weekly_schedule) == []

    def test_collects_every_error(self, weekly_schedule):
        """All problems are reported together."""
        schedule = replace(
            weekly_schedule, pay_day=9, period_start_type=DayType.DAY_OF_MONTH
        )

        with pytest.raises(InvalidScheduleConfigurationError) as exc_info:
            validate_schedule(schedule)

        assert len(exc_info.value.errors) == 2
        assert any("day of the week" in e for e in exc_info.value.errors)

    def test_custom_needs_length(self, weekly_schedule):
        schedule = replace(weekly_schedule, pay_period_type=PayPeriodType.CUSTOM)

        with pytest.raises(InvalidScheduleConfigurationError):
            validate_schedule(schedule)


class TestNextPayDate:
    """Next pay date arithmetic."""

    def test_day_of_month_later_this_month(self):
        assert next_pay_date(date(2024, 3, 4), monthly(15)) == date(2024, 3, 15)

    def test_strictly_after(self):
        """A pay day equal to the from date moves to next month."""
        assert next_pay_date(date(2024, 3, 15), monthly(15)) == date(2024, 4, 15)

    def test_clamped_to_leap_february(self):
        """Day 31 in February 2024 is the 29th."""
        assert next_pay_date(date(2024, 2, 10), monthly(31)) == date(2024, 2, 29)

    def test_clamped_to_february(self):
        assert next_pay_date(date(2023, 2, 10), monthly(31)) == date(2023, 2, 28)

    def test_month_end_rolls_into_short_month(self):
        """After 31 January the next day-31 payment is 29 February."""
        assert next_pay_date(date(2024, 1, 31), monthly(31)) == date(2024, 2, 29)

    def test_year_rollover(self):
        assert next_pay_date(date(2024, 12, 20), monthly(15)) == date(2025, 1, 15)

    def test_weekday_ahead(self, weekly_schedule):
        """Monday to the coming Friday."""
        assert next_pay_date(date(2024, 3, 4), weekly_schedule) == date(2024, 3, 8)

    def test_weekday_today_moves_a_week(self, weekly_schedule):
        assert next_pay_date(date(2024, 3, 8), weekly_schedule) == date(2024, 3, 15)

    def test_bi_weekly_moves_two_weeks(self, weekly_schedule):
        """When the pay day has passed a bi-weekly schedule skips 14 days."""
        schedule = replace(weekly_schedule, pay_period_type=PayPeriodType.BI_WEEKLY)

        assert next_pay_date(date(2024, 3, 9), schedule) == date(2024, 3, 22)

    def test_next_three_month_ends(self):
        """Upcoming dates are strictly increasing and clamped."""
        dates = get_next_pay_dates(monthly(31), count=3, today=date(2024, 1, 15))

        assert dates == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]

    def test_invalid_schedule_rejected(self):
        with pytest.raises(InvalidScheduleConfigurationError):
            get_next_pay_dates(monthly(40), today=date(2024, 1, 1))


class TestPeriodContaining:
    """Period resolution."""

    def test_weekly(self, weekly_schedule):
        """Weekly periods run Saturday to Friday."""
        period = period_containing(date(2024, 3, 4), weekly_schedule)

        assert period == PayPeriod(date(2024, 3, 2), date(2024, 3, 8))

    def test_weekly_on_start_day(self, weekly_schedule):
        period = period_containing(date(2024, 3, 2), weekly_schedule)

        assert period.start_date == date(2024, 3, 2)

    def test_bi_weekly_aligned_to_anchor(self, weekly_schedule):
        """Fourteen-day blocks counted from the anchor Saturday."""
        schedule = replace(weekly_schedule, pay_period_type=PayPeriodType.BI_WEEKLY)

        assert period_containing(date(2024, 3, 4), schedule) == PayPeriod(
            date(2024, 3, 2), date(2024, 3, 15)
        )
        assert period_containing(date(2024, 3, 16), schedule) == PayPeriod(
            date(2024, 3, 16), date(2024, 3, 29)
        )

    def test_monthly_calendar_month(self):
        period = period_containing(date(2024, 2, 14), monthly(25))

        assert period == PayPeriod(date(2024, 2, 1), date(2024, 2, 29))

    def test_monthly_mid_month_start(self):
        """A period starting on the 16th straddles two months."""
        period = period_containing(date(2024, 3, 4), monthly(31, start_day=16))

        assert period == PayPeriod(date(2024, 2, 16), date(2024, 3, 15))

    def test_custom_blocks(self, weekly_schedule):
        """Custom periods are blocks of N days from the anchor, in both directions."""
        schedule = replace(
            weekly_schedule,
            pay_period_type=PayPeriodType.CUSTOM,
            custom_period_days=10,
        )

        assert period_containing(date(2024, 1, 20), schedule) == PayPeriod(
            date(2024, 1, 16), date(2024, 1, 25)
        )
        assert period_containing(date(2024, 1, 5), schedule) == PayPeriod(
            date(2023, 12, 27), date(2024, 1, 5)
        )

    def test_pay_date_for_period(self, weekly_schedule):
        """A period ending Friday is paid that Friday."""
        period = PayPeriod(date(2024, 3, 2), date(2024, 3, 8))

        assert pay_date_for_period(period, weekly_schedule) == date(2024, 3, 8)

    def test_bi_weekly_pay_date_after_period_end(self, weekly_schedule):
        """A bi-weekly period ending Friday with a Monday pay day is paid the next Monday."""
        schedule = replace(
            weekly_schedule,
            pay_period_type=PayPeriodType.BI_WEEKLY,
            pay_day=1,
            anchor_date=date(2024, 3, 2),
        )
        period = period_containing(date(2024, 3, 10), schedule)

        assert period == PayPeriod(date(2024, 3, 2), date(2024, 3, 15))
        assert pay_date_for_period(period, schedule) == date(2024, 3, 18)

    def test_bi_weekly_pay_on_period_end(self, weekly_schedule):
        schedule = replace(
            weekly_schedule, pay_period_type=PayPeriodType.BI_WEEKLY, anchor_date=date(2024, 3, 2)
        )
        period = PayPeriod(date(2024, 3, 2), date(2024, 3, 15))

        assert pay_date_for_period(period, schedule) == date(2024, 3, 15)

    def test_monthly_pay_date_clamped(self):
        period = PayPeriod(date(2024, 2, 1), date(2024, 2, 29))

        assert pay_date_for_period(period, monthly(31)) == date(2024, 2, 29)

    def test_inverted_period(self):
        with pytest.raises(ValueError):
            PayPeriod(date(2024, 3, 8), date(2024, 3, 2))


class TestFormatPayDay:
    """Human pay day labels."""

    @pytest.mark.parametrize(
        "day,label",
        [(1, "1st"), (2, "2nd"), (3, "3rd"), (11, "11th"), (12, "12th"), (22, "22nd"), (31, "31st")],
    )
    def test_ordinals(self, day, label):
        assert format_pay_day(day, DayType.DAY_OF_MONTH) == label

    def test_weekday(self):
        assert format_pay_day(5, DayType.DAY_OF_WEEK) == "Friday"
