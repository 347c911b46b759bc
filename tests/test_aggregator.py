"""Tests for timesheet aggregation."""

from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from factories import MONDAY, PERIOD_START, approved_entry, at
from workforce_payroll.calculators.aggregator import (
    build_entry,
    entry_pay,
    overtime_multiplier_for,
    resplit_entry,
    split_hours,
    week_start_for,
    worked_order,
)
from workforce_payroll.calculators.types import (
    ApprovalStatus,
    HoursSplit,
    PayrollSettings,
    RoundedHours,
    TimesheetSettings,
)


class TestSplitHours:
    """Regular/overtime split."""

    def test_under_daily_threshold(self):
        split = split_hours(Decimal("6"), Decimal("8"))

        assert split.regular_hours == Decimal("6")
        assert split.overtime_hours == Decimal("0")

    def test_over_daily_threshold(self):
        """Hours past the daily threshold are overtime."""
        split = split_hours(Decimal("10"), Decimal("8"))

        assert split.regular_hours == Decimal("8")
        assert split.overtime_hours == Decimal("2")
        assert split.total_hours == Decimal("10")

    def test_overtime_disabled(self):
        """With overtime disabled every hour is regular."""
        split = split_hours(Decimal("10"), Decimal("8"), allow_overtime=False)

        assert split.regular_hours == Decimal("10")
        assert split.overtime_hours == Decimal("0")

    def test_weekly_threshold_uses_week_to_date(self):
        """Regular hours are capped by what is left of the weekly threshold."""
        split = split_hours(
            Decimal("8"),
            Decimal("8"),
            weekly_threshold=Decimal("40"),
            week_to_date_regular=Decimal("36"),
        )

        assert split.regular_hours == Decimal("4")
        assert split.overtime_hours == Decimal("4")

    def test_weekly_threshold_already_reached(self):
        """Once the week is full every hour is overtime."""
        split = split_hours(
            Decimal("6"),
            Decimal("8"),
            weekly_threshold=Decimal("40"),
            week_to_date_regular=Decimal("40"),
        )

        assert split.regular_hours == Decimal("0")
        assert split.overtime_hours == Decimal("6")

    def test_weekly_only(self):
        """No daily threshold: only the weekly cap applies."""
        split = split_hours(
            Decimal("12"),
            None,
            weekly_threshold=Decimal("40"),
            week_to_date_regular=Decimal("30"),
        )

        assert split.regular_hours == Decimal("10")
        assert split.overtime_hours == Decimal("2")

    def test_hours_already_worked_today(self):
        """Earlier hours the same day use up the daily threshold."""
        split = split_hours(Decimal("8"), Decimal("8"), day_to_date_hours=Decimal("6"))

        assert split.regular_hours == Decimal("2")
        assert split.overtime_hours == Decimal("6")

    def test_day_and_week_both_cap(self):
        """The tighter of the two remaining allowances wins."""
        split = split_hours(
            Decimal("8"),
            Decimal("8"),
            weekly_threshold=Decimal("10"),
            week_to_date_regular=Decimal("8"),
            day_to_date_hours=Decimal("4"),
        )

        assert split.regular_hours == Decimal("2")
        assert split.overtime_hours == Decimal("6")


class TestWeekStart:
    """Pay week boundaries."""

    def test_saturday_week(self):
        """Monday belongs to the week that started the previous Saturday."""
        assert week_start_for(MONDAY, 6) == PERIOD_START

    def test_start_day_itself(self):
        assert week_start_for(PERIOD_START, 6) == PERIOD_START

    def test_monday_week(self):
        assert week_start_for(date(2024, 3, 10), 1) == MONDAY

    def test_invalid_start_day(self):
        with pytest.raises(ValueError):
            week_start_for(MONDAY, 0)


class TestPay:
    """Entry pay and multipliers."""

    def test_entry_pay(self):
        """Overtime hours are paid at rate times multiplier."""
        split = HoursSplit(regular_hours=Decimal("8"), overtime_hours=Decimal("2"))

        assert entry_pay(split, Decimal("25.00"), Decimal("1.5")) == Decimal("275.00")

    def test_entry_pay_rounds_half_up(self):
        split = HoursSplit(regular_hours=Decimal("0.3333"), overtime_hours=Decimal("0"))

        assert entry_pay(split, Decimal("10.15"), Decimal("1.5")) == Decimal("3.38")

    def test_worker_override_wins(self, worker):
        """A worker overtime rate overrides the company multiplier."""
        special = replace(worker, overtime_rate=Decimal("2"))

        assert overtime_multiplier_for(special, PayrollSettings()) == Decimal("2")
        assert overtime_multiplier_for(worker, PayrollSettings()) == Decimal("1.5")


class TestBuildEntry:
    """Entry assembly."""

    def test_pending_entry(self, worker):
        """Entries are built pending with the worker's rate and a balanced split."""
        project_id = uuid4()
        rounded = RoundedHours(
            hours=Decimal("9.5"),
            clock_in=at(MONDAY, 7, 0),
            clock_out=at(MONDAY, 17, 0),
        )
        entry = build_entry(
            worker=worker,
            project_id=project_id,
            work_date=MONDAY,
            rounded=rounded,
            break_minutes=30,
            timesheet_settings=TimesheetSettings(),
            payroll_settings=PayrollSettings(),
        )

        assert entry.supervisor_approval == ApprovalStatus.PENDING
        assert entry.natural_key == (worker.id, project_id, MONDAY)
        assert entry.company_id == worker.company_id
        assert entry.regular_hours == Decimal("8")
        assert entry.overtime_hours == Decimal("1.5")
        assert entry.total_hours == entry.regular_hours + entry.overtime_hours
        assert entry.hourly_rate == Decimal("25.00")
        # 8 * 25 + 1.5 * 25 * 1.5
        assert entry.total_pay == Decimal("256.25")
        assert entry.break_duration_minutes == 30

    def test_review_flag_carried(self, worker):
        entry = build_entry(
            worker=worker,
            project_id=uuid4(),
            work_date=MONDAY,
            rounded=RoundedHours(hours=Decimal("0"), needs_review=True),
            break_minutes=90,
            timesheet_settings=TimesheetSettings(),
            payroll_settings=PayrollSettings(),
            auto_generated=True,
        )

        assert entry.needs_review
        assert entry.auto_generated
        assert entry.total_pay == Decimal("0.00")


class TestResplit:
    """Re-applying the weekly cap."""

    def _entry(self, worker, hours: str):
        return build_entry(
            worker=worker,
            project_id=uuid4(),
            work_date=MONDAY,
            rounded=RoundedHours(hours=Decimal(hours)),
            break_minutes=0,
            timesheet_settings=TimesheetSettings(),
            payroll_settings=PayrollSettings(),
        )

    def test_unchanged(self, worker):
        """No change when the week-to-date total still leaves room."""
        entry = self._entry(worker, "8")
        settings = TimesheetSettings(weekly_overtime_threshold=Decimal("40"))

        assert not resplit_entry(entry, settings, Decimal("1.5"), Decimal("16"))
        assert entry.regular_hours == Decimal("8")

    def test_moves_hours_to_overtime(self, worker):
        """More earlier hours push this entry past the weekly cap."""
        entry = self._entry(worker, "8")
        settings = TimesheetSettings(weekly_overtime_threshold=Decimal("40"))

        assert resplit_entry(entry, settings, Decimal("1.5"), Decimal("35"))
        assert entry.regular_hours == Decimal("5")
        assert entry.overtime_hours == Decimal("3")
        assert entry.total_hours == Decimal("8")
        # 5 * 25 + 3 * 25 * 1.5
        assert entry.total_pay == Decimal("237.50")

    def test_counts_hours_worked_earlier_that_day(self, worker):
        """A second shift after a full day elsewhere is all overtime."""
        entry = self._entry(worker, "8")

        assert resplit_entry(entry, TimesheetSettings(), Decimal("1.5"), Decimal("8"), Decimal("8"))
        assert entry.regular_hours == Decimal("0")
        assert entry.overtime_hours == Decimal("8")
        assert entry.total_pay == Decimal("300.00")


class TestWorkedOrder:
    """Ordering of a worker's entries."""

    def test_same_day_by_clock_in(self, worker, project_id):
        morning = replace(
            approved_entry(worker, project_id, MONDAY, "8"),
            clock_in=at(MONDAY, 6),
            clock_out=at(MONDAY, 14),
        )
        evening = replace(
            morning, project_id=uuid4(), clock_in=at(MONDAY, 14), clock_out=at(MONDAY, 22)
        )

        assert sorted([evening, morning], key=worked_order) == [morning, evening]

    def test_entries_without_clock_times_last(self, worker, project_id):
        timed = replace(
            approved_entry(worker, project_id, MONDAY, "8"),
            clock_in=at(MONDAY, 6),
            clock_out=at(MONDAY, 14),
        )
        untimed = replace(timed, project_id=uuid4(), clock_in=None, clock_out=None)

        assert sorted([untimed, timed], key=worked_order) == [timed, untimed]

    def test_earlier_day_first(self, worker, project_id):
        tuesday = replace(
            approved_entry(worker, project_id, MONDAY + timedelta(days=1), "8"),
            clock_in=at(MONDAY + timedelta(days=1), 6),
        )
        monday = replace(
            approved_entry(worker, project_id, MONDAY, "8"), clock_in=at(MONDAY, 20)
        )

        assert sorted([tuesday, monday], key=worked_order) == [monday, tuesday]
