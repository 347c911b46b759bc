"""Rounding engine for clock boundaries and worked hours.

Rules:
- Break minutes come off the gross duration before any total rounding
- Boundary strategies snap clock times to a fixed mark, half up
- Results are never negative; a break longer than the worked time clamps
  hours to zero and flags the day for review
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal

from workforce_payroll.calculators.types import (
    Interval,
    RoundedHours,
    RoundingStrategy,
    elapsed,
)

HOURS_PRECISION = Decimal("0.01")
EXACT_PRECISION = Decimal("0.0001")

# Window around the standard day inside which round_to_standard snaps.
STANDARD_DAY_TOLERANCE_MINUTES = Decimal("9")

# Boundary snapping increment per strategy, in minutes (None = no snapping)
BOUNDARY_INCREMENTS: dict[RoundingStrategy, int | None] = {
    RoundingStrategy.EXACT: None,
    RoundingStrategy.NO_ROUNDING: None,
    RoundingStrategy.STANDARD: None,
    RoundingStrategy.NEAREST_15: 15,
    RoundingStrategy.QUARTER_HOUR: 15,
    RoundingStrategy.NEAREST_30: 30,
}


def parse_strategy(value: str | RoundingStrategy) -> RoundingStrategy:
    """Resolve a strategy name, raising ValueError for unknown names."""
    try:
        return RoundingStrategy(value)
    except ValueError:
        valid = ", ".join(s.value for s in RoundingStrategy)
        raise ValueError(f"Unknown rounding strategy '{value}' (expected one of: {valid})") from None


def snap_to_increment(moment: datetime, increment_minutes: int) -> datetime:
    """Snap a timestamp to the nearest increment mark of its local day (half up)."""
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    seconds = Decimal(str((moment - midnight).total_seconds()))
    step = Decimal(increment_minutes * 60)
    snapped = (seconds / step).quantize(Decimal("1"), rounding=ROUND_HALF_UP) * step
    return midnight + timedelta(seconds=int(snapped))


def _quantize(hours: Decimal, strategy: RoundingStrategy) -> Decimal:
    if strategy in (RoundingStrategy.EXACT, RoundingStrategy.NO_ROUNDING):
        return hours.quantize(EXACT_PRECISION, rounding=ROUND_HALF_UP)
    return hours.quantize(HOURS_PRECISION, rounding=ROUND_HALF_UP)


def round_hours(
    worked: Interval | Sequence[Interval] | Decimal,
    strategy: str | RoundingStrategy,
    break_minutes: int | Decimal = 0,
    round_to_standard: bool = False,
    standard_day_hours: Decimal = Decimal("8"),
) -> RoundedHours:
    """Apply a rounding strategy to one interval, a day's intervals, or a total.

    Args:
        worked: an Interval, the intervals of one day, or a total in hours
        strategy: rounding strategy name
        break_minutes: unpaid break minutes taken off the gross duration
        round_to_standard: snap totals within 9 minutes of the standard day
        standard_day_hours: length of the standard day

    Returns:
        RoundedHours with hours >= 0, the (rounded) first clock-in and last
        clock-out when intervals were given, and needs_review when the break
        exceeded the worked time.
    """
    strategy = parse_strategy(strategy)
    increment = BOUNDARY_INCREMENTS[strategy]
    break_minutes = Decimal(break_minutes)
    if break_minutes < 0:
        raise ValueError(f"Break minutes cannot be negative: {break_minutes}")

    first_in: datetime | None = None
    last_out: datetime | None = None

    if isinstance(worked, Decimal):
        gross_minutes = max(worked, Decimal("0")) * 60
        if increment is not None:
            step = Decimal(increment)
            gross_minutes = (gross_minutes / step).quantize(
                Decimal("1"), rounding=ROUND_HALF_UP
            ) * step
    else:
        intervals = [worked] if isinstance(worked, Interval) else list(worked)
        gross_minutes = Decimal("0")
        for interval in intervals:
            clock_in, clock_out = interval.clock_in, interval.clock_out
            if increment is not None:
                clock_in = snap_to_increment(clock_in, increment)
                clock_out = snap_to_increment(clock_out, increment)
            if clock_out > clock_in:
                gross_minutes += Decimal(str(elapsed(clock_in, clock_out).total_seconds())) / 60
            if first_in is None or clock_in < first_in:
                first_in = clock_in
            if last_out is None or clock_out > last_out:
                last_out = clock_out

    net_minutes = gross_minutes - break_minutes
    needs_review = False
    if net_minutes < 0:
        net_minutes = Decimal("0")
        needs_review = True

    standard_minutes = standard_day_hours * 60
    if (
        round_to_standard
        and net_minutes > 0
        and abs(net_minutes - standard_minutes) <= STANDARD_DAY_TOLERANCE_MINUTES
    ):
        net_minutes = standard_minutes

    hours = _quantize(net_minutes / 60, strategy)
    return RoundedHours(
        hours=hours,
        clock_in=first_in,
        clock_out=last_out,
        needs_review=needs_review,
    )
