"""Tests for the rounding engine."""

from datetime import date
from decimal import Decimal

import pytest

from factories import MONDAY, at
from workforce_payroll.calculators.rounding import (
    parse_strategy,
    round_hours,
    snap_to_increment,
)
from workforce_payroll.calculators.types import Interval, RoundingStrategy


def interval(start: tuple[int, int], end: tuple[int, int]) -> Interval:
    return Interval(clock_in=at(MONDAY, *start), clock_out=at(MONDAY, *end))


class TestStrategies:
    """Boundary and total strategies."""

    def test_exact_keeps_minutes(self):
        """Exact rounding keeps fractional hours at four places."""
        result = round_hours(interval((7, 0), (7, 20)), "exact")

        assert result.hours == Decimal("0.3333")

    def test_exact_subtracts_break(self):
        """Break minutes come off the gross duration."""
        result = round_hours(interval((7, 0), (15, 30)), RoundingStrategy.EXACT, 30)

        assert result.hours == Decimal("8.0000")
        assert result.clock_in == at(MONDAY, 7, 0)
        assert result.clock_out == at(MONDAY, 15, 30)

    def test_nearest_15_snaps_boundaries(self):
        """Clock times snap to the nearest quarter hour, half up."""
        result = round_hours(interval((7, 7), (15, 22)), "nearest_15")

        assert result.clock_in == at(MONDAY, 7, 0)
        assert result.clock_out == at(MONDAY, 15, 15)
        assert result.hours == Decimal("8.25")

    def test_quarter_hour_matches_nearest_15(self):
        """quarter_hour is an alias of nearest_15."""
        worked = interval((6, 53), (14, 38))

        assert (
            round_hours(worked, "quarter_hour").hours
            == round_hours(worked, "nearest_15").hours
        )

    def test_nearest_30(self):
        """Half-hour snapping of both boundaries."""
        result = round_hours(interval((7, 14), (15, 46)), "nearest_30")

        assert result.clock_in == at(MONDAY, 7, 0)
        assert result.clock_out == at(MONDAY, 16, 0)
        assert result.hours == Decimal("9.00")

    def test_total_hours_input(self):
        """A bare total is rounded as minutes."""
        result = round_hours(Decimal("7.9"), "nearest_15")

        assert result.hours == Decimal("8.00")
        assert result.clock_in is None

    def test_multiple_intervals(self):
        """A day's intervals are summed; first in and last out are reported."""
        result = round_hours(
            [interval((6, 0), (10, 0)), interval((13, 0), (16, 30))], "exact"
        )

        assert result.hours == Decimal("7.5000")
        assert result.clock_in == at(MONDAY, 6, 0)
        assert result.clock_out == at(MONDAY, 16, 30)


class TestStandardDay:
    """Snapping totals near the standard day."""

    def test_snaps_within_tolerance(self):
        """8h05 becomes 8h when round_to_standard is set."""
        result = round_hours(interval((7, 0), (15, 5)), "standard", round_to_standard=True)

        assert result.hours == Decimal("8.00")

    def test_outside_tolerance(self):
        """8h12 is left alone."""
        result = round_hours(interval((7, 0), (15, 12)), "standard", round_to_standard=True)

        assert result.hours == Decimal("8.20")

    def test_only_when_requested(self):
        """Without the flag the total is untouched."""
        result = round_hours(interval((7, 0), (15, 5)), "standard")

        assert result.hours == Decimal("8.08")


class TestEdgeCases:
    """Clamping and invalid input."""

    def test_break_longer_than_shift(self):
        """Hours clamp to zero and the day is flagged for review."""
        result = round_hours(interval((7, 0), (8, 0)), "exact", break_minutes=90)

        assert result.hours == Decimal("0")
        assert result.needs_review

    def test_unknown_strategy(self):
        """Unknown names list the valid strategies."""
        with pytest.raises(ValueError) as exc_info:
            parse_strategy("nearest_7")

        assert "nearest_15" in str(exc_info.value)

    def test_negative_break(self):
        """Negative breaks are rejected."""
        with pytest.raises(ValueError):
            round_hours(Decimal("8"), "exact", break_minutes=-5)

    def test_snap_half_up(self):
        """Exactly halfway between marks rounds up."""
        moment = at(MONDAY, 7, 7).replace(second=30)

        assert snap_to_increment(moment, 15) == at(MONDAY, 7, 15)


class TestDaylightSaving:
    """Durations are real elapsed time, not wall-clock differences."""

    def test_spring_forward_shift(self):
        """Clocks jump 02:00 -> 03:00, so a midnight-to-08:00 shift is 7 hours."""
        day = date(2024, 3, 10)
        worked = Interval(clock_in=at(day, 0), clock_out=at(day, 8))

        assert worked.gross_minutes == Decimal("420")
        assert round_hours(worked, "exact").hours == Decimal("7")

    def test_fall_back_shift(self):
        """The repeated 01:00 hour is paid, so the same shift is 9 hours."""
        day = date(2024, 11, 3)
        worked = Interval(clock_in=at(day, 0), clock_out=at(day, 8))

        assert round_hours(worked, "standard").hours == Decimal("9.00")
